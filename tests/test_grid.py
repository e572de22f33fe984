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

import numpy as np
import pytest
from rasterio.enums import Resampling
from shapely.geometry import box

from geolst import data
from geolst.errors import ConfigurationError
from geolst.grid import Grid, align, rasterize_geometry, region_mask


def test_grid_properties(grid):
    assert grid.shape == (60, 60)
    assert grid.res == 30.
    assert grid.transform.c == 500000.
    assert grid.transform.f == 9250000.
    assert grid.bounds == (500000., 9250000. - 1800., 501800., 9250000.)
    assert grid.scale_factor(30) == 1
    assert grid.scale_factor(1000) == 33


def test_from_xarray(series, grid):
    assert Grid.from_xarray(series) == grid


def test_region_mask(grid):
    xmin, ymin, xmax, ymax = grid.bounds
    mask = region_mask(box(xmin, ymax - 300, xmin + 600, ymax), grid)
    assert mask.sum() == 10 * 20
    assert mask[:10, :20].all()
    with pytest.raises(ConfigurationError):
        region_mask(box(0, 0, 10, 10), grid)


def test_rasterize_all_touched(grid, config):
    line = config.faults[0]
    centres = rasterize_geometry(line.buffer(10), grid)
    touched = rasterize_geometry(line.buffer(10), grid, all_touched=True)
    assert np.all(~centres | touched)
    assert touched.sum() > centres.sum()


def test_align_identity(dem, grid):
    out = align(dem, grid)
    np.testing.assert_array_equal(out.values, dem.values)
    nodata = dem.copy(data=dem.values.copy())
    nodata.values[0, 0] = -9999
    nodata.attrs['nodata'] = -9999
    assert np.isnan(align(nodata, grid).values[0, 0])


def test_align_reproject(grid):
    coarse = data.make_grid(shape=(20, 20), res=90.)
    dem = data.make_dem(coarse)
    out = align(dem, grid, resampling=Resampling.bilinear)
    assert out.shape == grid.shape
    finite = np.isfinite(out.values)
    assert finite[5:-5, 5:-5].all()
    assert out.values[finite].min() >= 200 - 1e-6
    assert out.values[finite].max() <= 1400 + 1e-6
    # Elevation still increases eastward
    assert np.all(np.diff(out.values[30, 5:-5]) >= 0)


def test_align_requires_crs(grid):
    dem = data.make_dem(data.make_grid(shape=(20, 20), res=90.))
    dem.attrs.pop('crs')
    with pytest.raises(ConfigurationError):
        align(dem, Grid(grid.x, grid.y))


def test_grid_must_be_north_up(grid):
    with pytest.raises(ConfigurationError):
        Grid(grid.x, grid.y[::-1])
    with pytest.raises(ConfigurationError):
        Grid(grid.x[::-1], grid.y)
