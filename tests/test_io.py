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

import geopandas as gpd
import numpy as np
import rasterio
from shapely.geometry import box

from geolst import data
from geolst.grid import Grid, align
from geolst.io import read_raster, read_geometries, read_region


def test_read_raster(grid, dem, tmp_path):
    filename = tmp_path / 'dem.tif'
    meta = {'driver': 'GTiff', 'crs': grid.crs, 'transform': grid.transform,
            'count': 1, 'dtype': 'float32', 'nodata': -9999.,
            'height': grid.shape[0], 'width': grid.shape[1]}
    arr = dem.values.astype(np.float32)
    arr[0, 0] = -9999.
    with rasterio.open(filename, 'w', **meta) as dst:
        dst.write(arr, 1)
    da = read_raster(filename)
    assert da.attrs['nodata'] == -9999.
    assert Grid.from_xarray(da) == grid
    np.testing.assert_allclose(da.x, grid.x)
    np.testing.assert_allclose(da.y, grid.y)
    aligned = align(da, grid)
    assert np.isnan(aligned.values[0, 0])
    np.testing.assert_allclose(aligned.values[1:], dem.values[1:], rtol=1e-6)


def test_read_geometries(grid, tmp_path):
    filename = tmp_path / 'faults.geojson'
    faults = data.make_faults(grid, col=0.25) + data.make_faults(grid, col=0.75)
    gpd.GeoDataFrame(geometry=faults, crs='EPSG:32748').to_file(filename,
                                                                 driver='GeoJSON')
    geoms = read_geometries(filename)
    assert len(geoms) == 2
    assert geoms[0].equals(faults[0])
    # Reprojection to geographic coordinates
    geoms = read_geometries(filename, crs='EPSG:4326')
    minx, miny, maxx, maxy = geoms[0].bounds
    assert -180 < minx < 180 and -90 < miny < 0


def test_read_region(grid, tmp_path):
    filename = tmp_path / 'region.gpkg'
    region = data.make_region(grid)
    xmin, ymin, xmax, ymax = region.bounds
    xmid = (xmin + xmax) / 2
    halves = [box(xmin, ymin, xmid, ymax), box(xmid, ymin, xmax, ymax)]
    gpd.GeoDataFrame(geometry=halves,
                     crs='EPSG:32748').to_file(filename, driver='GPKG')
    dissolved = read_region(filename)
    assert dissolved.equals(region)
