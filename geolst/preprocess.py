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

"""Scene preprocessing

Rescaling of Landsat Collection 2 level 2 digital numbers, cloud and cloud
shadow masking from the ``QA_PIXEL`` bitmask, and vegetation index.

Functions of this module operate on a whole scene series at once (a
``xarray.Dataset`` with dimensions ``(time, y, x)``); every scene is treated
independently.
"""

import numpy as np
import xarray as xr


OPTICAL_BANDS = ['SR_B2', 'SR_B3', 'SR_B4', 'SR_B5', 'SR_B6', 'SR_B7']
THERMAL_BAND = 'ST_B10'
QA_BAND = 'QA_PIXEL'
CLOUD_BIT = 3
CLOUD_SHADOW_BIT = 4


def normalized_difference(a, b, name=None):
    """Normalized difference ``(a - b) / (a + b)``

    Pixels where ``a + b`` is zero are NaN
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        nd = (a - b) / (a + b)
    nd = nd.where(np.isfinite(nd))
    if name is not None:
        nd = nd.rename(name)
    return nd


def scale_optical(ds, gain=2.75e-5, offset=-0.2):
    """Rescale optical digital numbers to surface reflectance"""
    bands = [b for b in OPTICAL_BANDS if b in ds]
    return ds.assign({b: ds[b].astype(np.float64) * gain + offset
                      for b in bands})


def scale_thermal(ds, gain=0.00341802, offset=149.0):
    """Rescale thermal digital numbers to brightness temperature in Kelvin"""
    return ds.assign({THERMAL_BAND:
                      ds[THERMAL_BAND].astype(np.float64) * gain + offset})


def cloud_mask(qa):
    """Clear pixels according to the quality bitmask

    Cloud (bit 3) and cloud shadow (bit 4) are independent flags; a pixel is
    clear only when both bits are unset.

    Args:
        qa (xarray.DataArray): Integer quality bitmask

    Returns:
        xarray.DataArray: Boolean array, ``True`` for clear pixels
    """
    qa = qa.astype(np.int64)
    cloud = (qa & (1 << CLOUD_BIT)) == 0
    shadow = (qa & (1 << CLOUD_SHADOW_BIT)) == 0
    return np.logical_and(cloud, shadow)


def update_mask(ds, mask):
    """Narrow the validity mask of a series

    The new validity is the intersection of the current ``valid`` variable
    (all ``True`` when absent) and ``mask``; values are never modified.
    """
    mask = xr.DataArray(mask) if not isinstance(mask, xr.DataArray) else mask
    valid = ds['valid'] if 'valid' in ds else True
    return ds.assign(valid=np.logical_and(valid, mask.astype(bool)))


def prepare(ds, config):
    """Preprocess a raw scene series

    Applies in order: optical rescaling, thermal rescaling, decoding of the
    cloud and cloud shadow flags, NDVI computation and masking of cloudy
    pixels. Malformed scenes are not rejected; their pixels simply end up
    invalid.

    Args:
        ds (xarray.Dataset): Raw series with optical, thermal and ``QA_PIXEL``
            variables
        config (geolst.config.Config): Configuration providing the rescaling
            gains and offsets

    Returns:
        xarray.Dataset: Series with rescaled bands, an ``NDVI`` variable and a
        boolean ``valid`` variable shared by all bands
    """
    ds = scale_optical(ds, gain=config.optical_gain,
                       offset=config.optical_offset)
    ds = scale_thermal(ds, gain=config.thermal_gain,
                       offset=config.thermal_offset)
    clear = cloud_mask(ds[QA_BAND])
    ndvi = normalized_difference(ds.SR_B5, ds.SR_B4, name='NDVI')
    ds = ds.assign(NDVI=ndvi)
    ds = update_mask(ds, clear)
    return update_mask(ds, np.isfinite(ndvi))
