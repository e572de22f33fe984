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

"""Analysis grid, rasterization and explicit resampling

Every raster entering the pipeline from another source (elevation model,
land-cover product) is brought onto the analysis grid through ``align``, with
a documented resampling method: bilinear for continuous variables and nearest
neighbour for categorical ones.
"""

import warnings

import numpy as np
import xarray as xr
from affine import Affine
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.features import rasterize
from rasterio.warp import reproject

from geolst.errors import ConfigurationError


def _transform(x, y):
    """Affine transform of a north-up grid from its pixel centre coordinates"""
    if len(x) < 2 or len(y) < 2:
        raise ValueError('At least two coordinates per axis are required '
                         'to derive a grid transform')
    y_res = abs(y[0] - y[1])
    x_res = abs(x[0] - x[1])
    y_0 = np.max(y) + y_res / 2
    x_0 = np.min(x) - x_res / 2
    return Affine(x_res, 0, x_0,
                  0, -y_res, y_0)


def _crs(obj, crs=None):
    crs = crs if crs is not None else obj.attrs.get('crs')
    if crs is None:
        return None
    return CRS.from_user_input(crs)


class Grid:
    """Regular north-up pixel grid

    Args:
        x (numpy.ndarray): x coordinates of the pixel centres (increasing)
        y (numpy.ndarray): y coordinates of the pixel centres (decreasing)
        crs (str or rasterio.crs.CRS): Coordinate reference system

    Raises:
        geolst.errors.ConfigurationError: The coordinates do not describe a
            north-up grid
    """
    def __init__(self, x, y, crs=None):
        self.x = np.asarray(x)
        self.y = np.asarray(y)
        if np.any(np.diff(self.x) <= 0) or np.any(np.diff(self.y) >= 0):
            raise ConfigurationError('Grid coordinates must be strictly '
                                     'increasing along x and decreasing '
                                     'along y (north-up)')
        self.crs = CRS.from_user_input(crs) if crs is not None else None
        if self.crs is not None and self.crs.is_geographic:
            warnings.warn('Grid has a geographic coordinate reference system; '
                          'buffer distances and scales are expressed in '
                          'degrees')

    @classmethod
    def from_xarray(cls, obj, crs=None):
        """Build the grid of a xarray Dataset or DataArray

        Args:
            obj (xarray.Dataset or xarray.DataArray): Object with ``x`` and
                ``y`` coordinates
            crs (str): Coordinate reference system, takes precedence over the
                ``crs`` attribute of ``obj``
        """
        return cls(obj.x.values, obj.y.values, crs=_crs(obj, crs))

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return False
        return (self.shape == other.shape
                and np.allclose(self.x, other.x)
                and np.allclose(self.y, other.y)
                and self.crs == other.crs)

    @property
    def shape(self):
        return (self.y.size, self.x.size)

    @property
    def transform(self):
        return _transform(self.x, self.y)

    @property
    def res(self):
        return abs(self.transform.a)

    @property
    def bounds(self):
        """(xmin, ymin, xmax, ymax) of the grid outer edges"""
        t = self.transform
        return (t.c, t.f + t.e * self.shape[0],
                t.c + t.a * self.shape[1], t.f)

    def scale_factor(self, scale):
        """Integer aggregation factor to reduce at ``scale`` on this grid"""
        return max(1, int(round(scale / self.res)))

    def coords(self):
        return {'y': self.y, 'x': self.x}

    def full(self, fill_value, dtype=np.float32, name=None):
        """DataArray of the grid filled with a constant value"""
        return xr.DataArray(np.full(self.shape, fill_value, dtype=dtype),
                            coords=self.coords(), dims=('y', 'x'), name=name)


def rasterize_geometry(geometry, grid, all_touched=False):
    """Binary mask of a geometry on a grid

    A pixel is ``True`` when its centre falls within the geometry (or when it
    is touched by the geometry with ``all_touched=True``). Pixels outside the
    geometry are ``False``, never undefined.

    Args:
        geometry (shapely.geometry.base.BaseGeometry): The geometry to burn
        grid (geolst.grid.Grid): Target grid
        all_touched (bool): Burn every pixel touched by the geometry

    Returns:
        numpy.ndarray: 2D boolean array
    """
    if geometry is None or geometry.is_empty:
        return np.zeros(grid.shape, dtype=bool)
    arr = rasterize([(geometry, 1)], out_shape=grid.shape,
                    transform=grid.transform, fill=0,
                    all_touched=all_touched, dtype=np.uint8)
    return arr.astype(bool)


def region_mask(region, grid):
    """Boolean mask of the region pixels (pixel centre within the region)"""
    mask = rasterize_geometry(region, grid)
    if not mask.any():
        raise ConfigurationError('Region does not cover any pixel of the '
                                 'analysis grid')
    return mask


def is_aligned(da, grid):
    return (da.sizes.get('y') == grid.shape[0]
            and da.sizes.get('x') == grid.shape[1]
            and np.allclose(da.x.values, grid.x)
            and np.allclose(da.y.values, grid.y))


def align(da, grid, resampling=Resampling.bilinear, crs=None):
    """Resample a 2D DataArray onto the analysis grid

    The DataArray is returned unchanged (as float64) when it already shares
    the grid coordinates. Otherwise it is reprojected with ``rasterio``;
    destination pixels not covered by the source, and source nodata pixels
    (``nodata`` attribute or NaN), are NaN in the output.

    Args:
        da (xarray.DataArray): 2D (y, x) DataArray
        grid (geolst.grid.Grid): Target grid
        resampling (rasterio.enums.Resampling): Resampling method. Use
            ``Resampling.nearest`` for categorical data
        crs (str): Coordinate reference system of ``da``. Defaults to the
            ``crs`` attribute of ``da``, and to the grid crs when absent

    Returns:
        xarray.DataArray: DataArray on the grid
    """
    nodata = da.attrs.get('nodata')
    values = da.values.astype(np.float64)
    if nodata is not None:
        values[values == nodata] = np.nan
    if is_aligned(da, grid):
        return xr.DataArray(values, coords=grid.coords(), dims=('y', 'x'),
                            name=da.name)
    src_crs = _crs(da, crs) or grid.crs
    if src_crs is None or grid.crs is None:
        raise ConfigurationError('A coordinate reference system is required '
                                 'to resample %s onto the analysis grid'
                                 % (da.name or 'raster'))
    # reproject expects rows ordered from north to south
    if da.y.values[0] < da.y.values[-1]:
        values = values[::-1]
    dst = np.full(grid.shape, np.nan, dtype=np.float64)
    reproject(source=values, destination=dst,
              src_transform=_transform(da.x.values, da.y.values),
              src_crs=src_crs, src_nodata=np.nan,
              dst_transform=grid.transform, dst_crs=grid.crs,
              dst_nodata=np.nan, resampling=resampling)
    return xr.DataArray(dst, coords=grid.coords(), dims=('y', 'x'),
                        name=da.name)
