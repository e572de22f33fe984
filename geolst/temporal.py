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

"""Temporal compositing and annual aggregation"""

import warnings

import numpy as np
import pandas as pd
import xarray as xr

from geolst.errors import FullyMaskedError
from geolst.log import logger
from geolst.stats import reduce_region


def mean_composite(ds, var, region_mask=None):
    """Temporal mean of the valid pixels of a series variable

    Args:
        ds (xarray.Dataset): Series with a ``valid`` variable
        var (str): Name of the variable to composite
        region_mask (numpy.ndarray): Optional 2D boolean mask; pixels outside
            are invalid in the composite

    Returns:
        xarray.Dataset: 2D Dataset with ``var`` (NaN where invalid) and
        ``valid`` variables. A series without scenes yields a fully invalid
        composite
    """
    masked = ds[var].where(ds.valid)
    with warnings.catch_warnings():
        # Mean of empty slice
        warnings.simplefilter('ignore', category=RuntimeWarning)
        composite = masked.mean('time', skipna=True)
    valid = ds.valid.any('time')
    if region_mask is not None:
        valid = np.logical_and(valid, region_mask)
    composite = composite.where(valid)
    return xr.Dataset({var: composite.astype(np.float64), 'valid': valid})


def annual_composites(ds, start_year, end_year, var='LST_corrected'):
    """One mean composite per calendar year

    Scenes are grouped by the year of their acquisition date. Every year of
    the inclusive ``[start_year, end_year]`` range is present in the output,
    years without scene being fully invalid.

    Args:
        ds (xarray.Dataset): Corrected series
        start_year (int): First year
        end_year (int): Last year (inclusive)
        var (str): Variable to composite

    Returns:
        xarray.Dataset: Dataset with dimensions ``(year, y, x)``, variables
        ``var`` and ``valid``, and a ``time`` coordinate set to the first of
        January of every year
    """
    scene_years = pd.DatetimeIndex(ds.time.values).year
    composites = []
    years = list(range(start_year, end_year + 1))
    for year in years:
        idx = np.flatnonzero(scene_years == year)
        logger.debug('Year %d: %d scene(s)', year, idx.size)
        composites.append(mean_composite(ds.isel(time=idx), var))
    annual = xr.concat(composites, dim='year')
    annual = annual.assign_coords(
        year=years,
        time=('year', pd.to_datetime(['%d-01-01' % y for y in years])))
    return annual


def annual_series(annual, region_mask, grid, config, var='LST_corrected'):
    """Regional mean of every annual composite

    Computed at ``config.chart_scale``; years without valid pixel within the
    region are NaN.

    Returns:
        pandas.Series: Mean value indexed by year
    """
    values = []
    for year in annual.year.values:
        composite = annual.sel(year=year)
        try:
            value = reduce_region(composite[var].values,
                                  composite.valid.values, region_mask, 'mean',
                                  factor=grid.scale_factor(config.chart_scale),
                                  max_pixels=config.max_pixels['chart'],
                                  name='annual mean %d' % year)
        except FullyMaskedError:
            logger.info('No valid pixel within the region for year %d', year)
            value = np.nan
        values.append(value)
    return pd.Series(values, index=pd.Index(annual.year.values, name='year'),
                     name=var)
