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

"""Region reductions

Every function reducing a raster to scalars goes through ``reduce_region``
which restricts the computation to valid pixels of the region, optionally
aggregates the raster to a coarser pixel scale, enforces a pixel count cap and
raises explicit errors instead of returning NaN.
"""

import warnings

import numba
import numpy as np

from geolst.errors import FullyMaskedError, NumericDomainError, PixelLimitError
from geolst.log import logger


REDUCERS = ('mean', 'std', 'min_max', 'median', 'linear_fit',
            'mean_std')


@numba.jit(nopython=True, cache=True, parallel=True)
def nanlstsq(X, y):
    """Return the least-squares solution to a linear matrix equation

    Analog to ``numpy.linalg.lstsq`` for dependant variable containing ``Nan``

    Note:
        By default the function will use all cores available; the number of
        cores used can be controled using the ``numba.set_num_threads``
        function or by modifying the ``NUMBA_NUM_THREADS`` environment variable

    Args:
        X ((M, N) np.ndarray): Matrix of independant variables
        y ((M, K) np.ndarray): Matrix of dependant variables

    Returns:
        np.ndarray: Least-squares solution, ignoring ``Nan``
    """
    beta = np.zeros((X.shape[1], y.shape[1]), dtype=np.float64)
    for idx in numba.prange(y.shape[1]):
        # subset y and X
        isna = np.isnan(y[:,idx])
        X_sub = X[~isna]
        y_sub = y[~isna,idx]
        beta[:, idx] = np.linalg.solve(np.dot(X_sub.T, X_sub), np.dot(X_sub.T, y_sub))
    return beta


def block_mean(arr, factor):
    """Aggregate a 2D array by averaging non-overlapping square blocks

    NaN values are ignored; a block containing only NaN is NaN. Trailing rows
    and columns that do not fill a complete block are dropped.

    Args:
        arr (np.ndarray): 2D array
        factor (int): Block size in pixels

    Returns:
        np.ndarray: The aggregated array
    """
    if factor == 1:
        return arr
    ny = arr.shape[0] // factor
    nx = arr.shape[1] // factor
    blocks = arr[:ny * factor, :nx * factor].reshape(ny, factor, nx, factor)
    with warnings.catch_warnings():
        # Mean of empty slice
        warnings.simplefilter('ignore', category=RuntimeWarning)
        return np.nanmean(blocks, axis=(1, 3))


def linear_fit(x, y):
    """Ordinary least squares fit of y on x

    Args:
        x (np.ndarray): 1D array of the predictor
        y (np.ndarray): 1D array of the response

    Returns:
        tuple: slope and intercept

    Raises:
        NumericDomainError: When the predictor is constant or the fit is not
            finite
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.size < 2 or np.ptp(x) == 0:
        raise NumericDomainError('Linear fit requires at least two distinct '
                                 'predictor values')
    X = np.column_stack([np.ones_like(x), x])
    beta = nanlstsq(X, y.reshape(-1, 1))
    intercept, slope = beta[0, 0], beta[1, 0]
    if not (np.isfinite(slope) and np.isfinite(intercept)):
        raise NumericDomainError('Linear fit produced a non finite result')
    return slope, intercept


def reduce_region(arrays, valid, region, reducer, factor=1, max_pixels=1e9,
                  name=None):
    """Reduce one or two rasters to scalar(s) over the valid pixels of a region

    Args:
        arrays (np.ndarray or tuple): A 2D array, or a ``(x, y)`` pair of 2D
            arrays for ``reducer='linear_fit'``
        valid (np.ndarray): 2D boolean validity mask of the arrays
        region (np.ndarray): 2D boolean mask of the region
        reducer (str): One of ``'mean'``, ``'std'`` (population standard
            deviation), ``'mean_std'``, ``'min_max'``, ``'median'`` and
            ``'linear_fit'``
        factor (int): Aggregation factor applied before reducing, the pixel
            scale of the reduction being ``factor`` times the grid resolution
        max_pixels (float): Maximum number of region pixels (at the reduction
            scale) allowed
        name (str): Name of the reduced quantity, used in error messages

    Returns:
        float or tuple: ``(min, max)`` for ``'min_max'``, ``(mean, std)`` for
        ``'mean_std'``, ``(slope, intercept)`` for ``'linear_fit'``, a float
        otherwise

    Raises:
        PixelLimitError: The region contains more than ``max_pixels`` pixels
        FullyMaskedError: No valid pixel within the region
        ValueError: Unknown reducer
    """
    if reducer not in REDUCERS:
        raise ValueError('Unknown reducer %r' % reducer)
    name = name or reducer
    n_region = np.count_nonzero(region) / factor ** 2
    if n_region > max_pixels:
        raise PixelLimitError('%s: region contains %d pixels, exceeding '
                              'max_pixels=%g' % (name, n_region, max_pixels))
    if reducer == 'linear_fit':
        arrays = tuple(arrays)
    else:
        arrays = (arrays,)
    keep = np.logical_and(valid, region)
    layers = [block_mean(np.where(keep, a, np.nan).astype(np.float64), factor)
              for a in arrays]
    is_finite = np.logical_and.reduce([np.isfinite(a) for a in layers])
    n = np.count_nonzero(is_finite)
    logger.debug('%s: reducing %d pixels (%s)', name, n, reducer)
    if n == 0:
        raise FullyMaskedError(name)
    values = [a[is_finite] for a in layers]
    if reducer == 'mean':
        return float(np.mean(values[0]))
    if reducer == 'std':
        return float(np.std(values[0]))
    if reducer == 'mean_std':
        return float(np.mean(values[0])), float(np.std(values[0]))
    if reducer == 'min_max':
        return float(np.min(values[0])), float(np.max(values[0]))
    if reducer == 'median':
        return float(np.median(values[0]))
    slope, intercept = linear_fit(*values)
    return float(slope), float(intercept)
