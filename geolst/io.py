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

"""Reading of user provided rasters and vector files"""

import geopandas as gpd
import rasterio
import xarray as xr
from rasterio.crs import CRS
from shapely.ops import unary_union


def read_raster(filename, band=1):
    """Read a single band raster as a DataArray

    The nodata value and coordinate reference system of the file are kept as
    ``nodata`` and ``crs`` attributes, making the DataArray ready for
    ``geolst.grid.align``.

    Args:
        filename (str): Path to the raster file
        band (int): Band index (starting from 1)

    Returns:
        xarray.DataArray: 2D (y, x) DataArray with pixel centre coordinates
    """
    with rasterio.open(filename) as src:
        arr = src.read(band)
        transform = src.transform
        crs = src.crs
        nodata = src.nodata
    rows, cols = arr.shape
    x = [(transform * (c + 0.5, 0.5))[0] for c in range(cols)]
    y = [(transform * (0.5, r + 0.5))[1] for r in range(rows)]
    attrs = {}
    if crs is not None:
        attrs['crs'] = crs.to_string()
    if nodata is not None:
        attrs['nodata'] = nodata
    return xr.DataArray(arr, coords={'y': y, 'x': x}, dims=('y', 'x'),
                        attrs=attrs)


def read_geometries(filename, crs=None):
    """Read the geometries of a vector file

    Args:
        filename (str): Path to any vector file supported by geopandas
        crs (str): When provided, geometries are reprojected to this
            coordinate reference system

    Returns:
        list: Shapely geometries
    """
    gdf = gpd.read_file(filename)
    if crs is not None:
        gdf = gdf.to_crs(CRS.from_user_input(crs).to_wkt())
    return [g for g in gdf.geometry if g is not None]


def read_region(filename, crs=None):
    """Read a vector file and dissolve its geometries into a single region"""
    return unary_union(read_geometries(filename, crs=crs))
