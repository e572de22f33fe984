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

"""Land surface temperature retrieval

Single channel (mono-window) retrieval from the Landsat 8 band 10 brightness
temperature, with an emissivity estimated from the proportion of vegetation
derived from NDVI.

Citations:

- Sobrino, J.A., Jiménez-Muñoz, J.C. and Paolini, L., 2004. Land surface
  temperature retrieval from LANDSAT TM 5. Remote Sensing of Environment,
  90(4), pp.434-440.
"""

import warnings

import numba
import numpy as np

from geolst.errors import FullyMaskedError, NumericDomainError
from geolst.log import logger
from geolst.preprocess import THERMAL_BAND, update_mask
from geolst.stats import reduce_region


# Effective wavelength of Landsat 8 band 10 (m)
WAVELENGTH = 10.895e-6
# h * c / sigma (m K)
RHO = 1.438e-2
EMISSIVITY_SLOPE = 0.004
EMISSIVITY_SOIL = 0.986


def proportion_vegetation(ndvi, ndvi_min, ndvi_max):
    """Proportion of vegetation ``((ndvi - min) / (max - min)) ** 2``

    The normalized ratio is clamped to [0, 1] before squaring so that NDVI
    values outside the reference range do not produce proportions larger
    than 1.
    """
    ratio = (np.asarray(ndvi) - ndvi_min) / (ndvi_max - ndvi_min)
    return np.clip(ratio, 0, 1) ** 2


def emissivity(pv):
    """Land surface emissivity from the proportion of vegetation"""
    return EMISSIVITY_SLOPE * np.asarray(pv) + EMISSIVITY_SOIL


def check_emissivity(em):
    """Raise when any finite emissivity lies outside (0, 1]"""
    em = np.asarray(em)
    em = em[np.isfinite(em)]
    if np.any((em <= 0) | (em > 1)):
        raise NumericDomainError('Emissivity outside of (0, 1]: [%f, %f]'
                                 % (em.min(), em.max()))


def mono_window(tb, em):
    """Land surface temperature (degrees Celsius) with the mono-window formula

    ``LST = TB / (1 + (lambda * TB / rho) * ln(EM)) - 273.15``

    Args:
        tb (numpy.ndarray): Brightness temperature in Kelvin
        em (numpy.ndarray): Emissivity, in (0, 1]

    Returns:
        numpy.ndarray: Land surface temperature in degrees Celsius

    Raises:
        NumericDomainError: Emissivity outside (0, 1]
    """
    check_emissivity(em)
    tb = np.asarray(tb, dtype=np.float64)
    return tb / (1 + (WAVELENGTH * tb / RHO) * np.log(em)) - 273.15


@numba.jit(nopython=True, cache=True, parallel=True)
def _lst_kernel(tb, ndvi, ndvi_min, ndvi_max):
    """Per scene PV, emissivity and LST of a (time, y, x) cube"""
    pv = np.empty_like(tb)
    em = np.empty_like(tb)
    lst = np.empty_like(tb)
    for idx in numba.prange(tb.shape[0]):
        ratio = (ndvi[idx] - ndvi_min[idx]) / (ndvi_max[idx] - ndvi_min[idx])
        ratio = np.minimum(np.maximum(ratio, 0.), 1.)
        pv[idx] = ratio ** 2
        em[idx] = EMISSIVITY_SLOPE * pv[idx] + EMISSIVITY_SOIL
        tb_ = tb[idx]
        lst[idx] = tb_ / (1 + (WAVELENGTH * tb_ / RHO) * np.log(em[idx])) - 273.15
    return pv, em, lst


def ndvi_range(ds, region_mask, grid, config):
    """NDVI extrema over the valid pixels of the region

    With ``config.ndvi_range == 'scene'`` extrema are computed for every scene
    individually; with ``'series'`` a single pair of extrema is computed over
    the whole series and used for every scene.

    Args:
        ds (xarray.Dataset): Masked series with an ``NDVI`` variable
        region_mask (numpy.ndarray): 2D boolean region mask
        grid (geolst.grid.Grid): Analysis grid
        config (geolst.config.Config): Analysis configuration

    Returns:
        tuple: Two 1D arrays of minimum and maximum NDVI per scene. Values are
        NaN for scenes without valid pixel within the region
    """
    ndvi = ds.NDVI.values
    valid = ds.valid.values
    n = ndvi.shape[0]
    ndvi_min = np.full(n, np.nan)
    ndvi_max = np.full(n, np.nan)
    for idx in range(n):
        try:
            ndvi_min[idx], ndvi_max[idx] = reduce_region(
                ndvi[idx], valid[idx], region_mask, 'min_max',
                factor=grid.scale_factor(config.scale),
                max_pixels=config.max_pixels['ndvi_range'],
                name='NDVI range')
        except FullyMaskedError:
            logger.debug('Scene %d has no valid NDVI within the region', idx)
    if config.ndvi_range == 'series':
        if np.all(np.isnan(ndvi_min)):
            raise FullyMaskedError('NDVI range')
        ndvi_min[:] = np.nanmin(ndvi_min)
        ndvi_max[:] = np.nanmax(ndvi_max)
    return ndvi_min, ndvi_max


def retrieve_lst(ds, region_mask, grid, config):
    """Compute land surface temperature for every scene of a masked series

    Scenes for which the NDVI range over the region is undefined (no valid
    pixel) or degenerate (minimum equal to maximum) are entirely masked.

    Args:
        ds (xarray.Dataset): Preprocessed and masked series
        region_mask (numpy.ndarray): 2D boolean region mask
        grid (geolst.grid.Grid): Analysis grid
        config (geolst.config.Config): Analysis configuration

    Returns:
        xarray.Dataset: Series with added ``PV``, ``EM`` and ``LST`` (degrees
        Celsius) variables
    """
    numba.set_num_threads(config.n_threads)
    ndvi_min, ndvi_max = ndvi_range(ds, region_mask, grid, config)
    unusable = ~(np.isfinite(ndvi_min) & np.isfinite(ndvi_max)
                 & (ndvi_max > ndvi_min))
    amount = np.count_nonzero(unusable)
    if amount:
        warnings.warn(f'{amount} scene(s) without a usable NDVI range over '
                      f'the region were masked.')
        # Placeholder range, these scenes are masked below
        ndvi_min[unusable] = 0.
        ndvi_max[unusable] = 1.
    tb = np.ascontiguousarray(ds[THERMAL_BAND].values, dtype=np.float64)
    ndvi = np.ascontiguousarray(ds.NDVI.values, dtype=np.float64)
    pv, em, lst = _lst_kernel(tb, ndvi, ndvi_min, ndvi_max)
    valid = ds.valid.values & ~unusable[:, None, None]
    check_emissivity(em[valid])
    dims = ds.NDVI.dims
    ds = ds.assign(PV=(dims, pv), EM=(dims, em), LST=(dims, lst))
    ds = update_mask(ds, ds.LST.copy(data=valid))
    return update_mask(ds, np.isfinite(ds.LST))
