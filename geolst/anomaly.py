# Copyright (C) 2022 European Union (Joint Research Centre)
#
# Licensed under the EUPL, Version 1.2 or – as soon they will be approved by
# the European Commission - subsequent versions of the EUPL (the "Licence");
# You may not use this work except in compliance with the Licence.
# You may obtain a copy of the Licence at:
#
#   https://joinup.ec.europa.eu/software/page/eupl
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the Licence is distributed on an "AS IS" basis,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the Licence for the specific language governing permissions and
# limitations under the Licence.

"""Regional anomaly thresholds and tiered anomaly layers

Thresholds are derived from the mean and standard deviation of the final,
elevation corrected, temporal mean composite within the region:
``main = mean + std`` and ``tier = mean + multiplier * std`` for the weak,
medium and strong tiers. With ``1 <= weak < medium < strong`` the layers are
nested: strong ⊆ medium ⊆ weak ⊆ main.
"""

from collections import namedtuple

import numpy as np
import xarray as xr

from geolst.log import logger
from geolst.stats import reduce_region


RegionalStatistics = namedtuple('RegionalStatistics',
                                ['mean', 'std', 'min', 'max'])
AnomalyThresholds = namedtuple('AnomalyThresholds',
                               ['main', 'weak', 'medium', 'strong'])

#: Values of the tier classification layer
TIERS = {0: 'No anomaly',
         1: 'Anomaly (> mean + std)',
         2: 'Weak anomaly',
         3: 'Medium anomaly',
         4: 'Strong anomaly'}


def regional_statistics(composite, valid, region_mask, grid, config):
    """Mean, standard deviation, minimum and maximum over the region

    Args:
        composite (xarray.DataArray): Final corrected composite
        valid (numpy.ndarray): Validity of the composite
        region_mask (numpy.ndarray): 2D boolean region mask
        grid (geolst.grid.Grid): Analysis grid
        config (geolst.config.Config): Analysis configuration

    Returns:
        RegionalStatistics: The statistics, standard deviation being the
        population standard deviation
    """
    values = np.asarray(composite)
    valid = np.asarray(valid)
    factor = grid.scale_factor(config.scale)
    mean, std = reduce_region(values, valid, region_mask, 'mean_std',
                              factor=factor,
                              max_pixels=config.max_pixels['statistics'],
                              name='regional statistics')
    min_, max_ = reduce_region(values, valid, region_mask, 'min_max',
                               factor=factor,
                               max_pixels=config.max_pixels['min_max'],
                               name='LST range')
    logger.info('Regional LST mean: %f, standard deviation: %f', mean, std)
    logger.info('Regional LST minimum: %f, maximum: %f', min_, max_)
    return RegionalStatistics(mean, std, min_, max_)


def anomaly_thresholds(stats, config):
    """Temperature thresholds of the main and tiered anomalies"""
    thresholds = AnomalyThresholds(
        main=stats.mean + stats.std,
        weak=stats.mean + config.weak_multiplier * stats.std,
        medium=stats.mean + config.medium_multiplier * stats.std,
        strong=stats.mean + config.strong_multiplier * stats.std)
    for name, value in thresholds._asdict().items():
        logger.info('%s anomaly threshold: %f degrees C', name.capitalize(),
                    value)
    return thresholds


def exceeds(composite, threshold):
    """Binary layer of pixels strictly above a threshold

    Returns a float layer with 1 above the threshold, 0 below and NaN where
    the composite is invalid
    """
    with np.errstate(invalid='ignore'):
        above = (composite > threshold).astype(np.float32)
    return above.where(np.isfinite(composite))


def self_mask(layer):
    """Keep only the non zero pixels of a layer, others becoming NaN"""
    return layer.where(layer != 0)


def anomaly_layers(composite, thresholds):
    """Anomaly layers of the composite

    Args:
        composite (xarray.DataArray): Final corrected composite (NaN where
            invalid)
        thresholds (AnomalyThresholds): Thresholds

    Returns:
        xarray.Dataset: ``base`` (1/0), ``weak``, ``medium`` and ``strong``
        (1 or NaN) layers
    """
    return xr.Dataset({
        'base': exceeds(composite, thresholds.main),
        'weak': self_mask(exceeds(composite, thresholds.weak)),
        'medium': self_mask(exceeds(composite, thresholds.medium)),
        'strong': self_mask(exceeds(composite, thresholds.strong))})


def anomaly_tiers(composite, thresholds):
    """Classification of every pixel in the highest anomaly tier it exceeds

    See ``TIERS`` for the meaning of the values; invalid pixels are NaN.
    """
    tiers = sum(exceeds(composite, t) for t in thresholds)
    return tiers.rename('tier')
