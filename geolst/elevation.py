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

"""Elevation (lapse rate) correction of land surface temperature

The temperature to elevation relation is fitted once, by ordinary least
squares on the temporal mean LST composite of the series, and then applied
to every scene independently so that remaining anomalies do not reflect
altitude.
"""

from collections import namedtuple

import numba
import numpy as np

from geolst.errors import NumericDomainError
from geolst.log import logger
from geolst.preprocess import update_mask
from geolst.stats import reduce_region
from geolst.temporal import mean_composite


LapseRateFit = namedtuple('LapseRateFit',
                          ['slope', 'intercept', 'reference_elevation'])


def correct_elevation(lst, elevation, slope, reference_elevation):
    """``LST - slope * (elevation - reference_elevation)``"""
    return lst - slope * (elevation - reference_elevation)


@numba.jit(nopython=True, cache=True, parallel=True)
def _correction_kernel(lst, elevation, slope, reference_elevation):
    out = np.empty_like(lst)
    offset = slope * (elevation - reference_elevation)
    for idx in numba.prange(lst.shape[0]):
        out[idx] = lst[idx] - offset
    return out


def fit_lapse_rate(ds, elevation, region_mask, grid, config):
    """Fit the linear relation between LST and elevation over the region

    Args:
        ds (xarray.Dataset): Series with ``LST`` and ``valid`` variables
        elevation (xarray.DataArray): Elevation aligned on the analysis grid
            (NaN for nodata)
        region_mask (numpy.ndarray): 2D boolean region mask
        grid (geolst.grid.Grid): Analysis grid
        config (geolst.config.Config): Analysis configuration

    Returns:
        LapseRateFit: Slope (degrees per elevation unit), intercept and median
        elevation of the region used as reference

    Raises:
        FullyMaskedError: No pixel with both a valid mean LST and an elevation
            within the region
        NumericDomainError: Constant elevation or non finite slope
    """
    composite = mean_composite(ds, 'LST', region_mask=region_mask)
    elev = elevation.values
    has_elev = np.isfinite(elev)
    factor = grid.scale_factor(config.scale)
    slope, intercept = reduce_region(
        (elev, composite.LST.values),
        np.logical_and(composite.valid.values, has_elev), region_mask,
        'linear_fit', factor=factor,
        max_pixels=config.max_pixels['linear_fit'], name='lapse rate')
    reference = reduce_region(elev, has_elev, region_mask, 'median',
                              factor=factor,
                              max_pixels=config.max_pixels['median'],
                              name='reference elevation')
    logger.info('Local lapse rate (slope): %f degrees C/m', slope)
    logger.info('Regression intercept: %f degrees C', intercept)
    logger.info('Reference elevation (median): %f m', reference)
    return LapseRateFit(slope, intercept, reference)


def apply_correction(ds, elevation, fit, n_threads=1):
    """Correct the LST of every scene for elevation

    Args:
        ds (xarray.Dataset): Series with an ``LST`` variable
        elevation (xarray.DataArray): Elevation aligned on the analysis grid
        fit (LapseRateFit): Fitted lapse rate
        n_threads (int): Number of threads of the parallel kernel

    Returns:
        xarray.Dataset: Series with an ``LST_corrected`` variable; pixels
        without elevation are invalid

    Raises:
        ValueError: The series has already been corrected
        NumericDomainError: Non finite slope or reference elevation
    """
    if 'LST_corrected' in ds:
        raise ValueError('Elevation correction has already been applied to '
                         'this series')
    if not (np.isfinite(fit.slope) and np.isfinite(fit.reference_elevation)):
        raise NumericDomainError('Invalid elevation correction: slope=%s, '
                                 'reference elevation=%s'
                                 % (fit.slope, fit.reference_elevation))
    numba.set_num_threads(n_threads)
    elev = np.ascontiguousarray(elevation.values, dtype=np.float64)
    lst = np.ascontiguousarray(ds.LST.values, dtype=np.float64)
    corrected = _correction_kernel(lst, elev, float(fit.slope),
                                   float(fit.reference_elevation))
    ds = ds.assign(LST_corrected=(ds.LST.dims, corrected))
    return update_mask(ds, np.isfinite(elevation))
