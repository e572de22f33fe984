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

"""Water and urban surface masking

Both maskers only ever narrow the ``valid`` variable of a series; they are
idempotent and can be applied in any order.
"""

import numpy as np
import xarray as xr
import pandas as pd
from rasterio.enums import Resampling

from geolst.errors import ConfigurationError
from geolst.grid import align
from geolst.log import logger
from geolst.preprocess import normalized_difference, update_mask


def mask_water(ds, threshold=-0.25):
    """Mask water bodies using the Modified Normalized Difference Water Index

    MNDWI is computed from the green (``SR_B3``) and short wave infrared
    (``SR_B6``) reflectances; pixels with MNDWI lower than ``threshold`` are
    kept. The threshold is study area specific.

    Args:
        ds (xarray.Dataset): Preprocessed series
        threshold (float): MNDWI threshold

    Returns:
        xarray.Dataset: Series with an ``MNDWI`` variable and updated validity
    """
    mndwi = normalized_difference(ds.SR_B3, ds.SR_B6, name='MNDWI')
    ds = ds.assign(MNDWI=mndwi)
    # NaN comparisons are False, undefined index is masked
    return update_mask(ds, mndwi < threshold)


def select_landcover(landcover, year):
    """Select the slice of a land-cover product for a reference year

    Args:
        landcover (xarray.DataArray): 2D land-cover classification, or 3D with
            a ``time`` dimension holding several product years
        year (int): Reference year

    Returns:
        xarray.DataArray: 2D land-cover classification
    """
    if 'time' not in landcover.dims:
        return landcover
    years = pd.DatetimeIndex(landcover.time.values).year
    idx = np.flatnonzero(years == year)
    if idx.size == 0:
        raise ConfigurationError('No land-cover layer for year %d (available: '
                                 '%s)' % (year, ', '.join(map(str, years))))
    return landcover.isel(time=idx[0])


def urban_mask(landcover, grid, urban_class=50):
    """Boolean mask of non urban pixels on the analysis grid

    The land-cover classification is aligned with nearest neighbour
    resampling. Pixels of the urban class and pixels not covered by the
    land-cover product are ``False``.
    """
    lc = align(landcover, grid, resampling=Resampling.nearest)
    mask = np.logical_and(np.isfinite(lc.values), lc.values != urban_class)
    logger.debug('Urban mask excludes %.2f%% of the grid',
                 100 * (1 - mask.mean()))
    return mask


def mask_urban(ds, landcover, grid, urban_class=50, year=None):
    """Mask urban and built-up areas

    Args:
        ds (xarray.Dataset): Preprocessed series
        landcover (xarray.DataArray): Land-cover classification
        grid (geolst.grid.Grid): Analysis grid
        urban_class (int): Class code of urban areas
        year (int): Reference year of the land-cover product; only used when
            ``landcover`` has a ``time`` dimension

    Returns:
        xarray.Dataset: Series with updated validity
    """
    if year is not None:
        landcover = select_landcover(landcover, year)
    elif 'time' in landcover.dims:
        raise ConfigurationError('A reference year is required to select '
                                 'a layer of a multi-year land-cover product')
    mask = urban_mask(landcover, grid, urban_class=urban_class)
    return update_mask(ds, xr.DataArray(mask, coords=grid.coords(),
                                        dims=('y', 'x')))
