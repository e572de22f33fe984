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

import pytest
import numpy as np

from geolst import data
from geolst.config import Config
from geolst.grid import region_mask as make_region_mask
from geolst import preprocess as pp


@pytest.fixture(scope='session')
def grid():
    return data.make_grid()


@pytest.fixture(scope='session')
def dem(grid):
    return data.make_dem(grid)


@pytest.fixture(scope='session')
def landcover(grid):
    return data.make_landcover(grid)


@pytest.fixture(scope='session')
def series(grid, dem):
    """Synthetic scene series, one scene every 16 days from 2017 to 2023"""
    return data.make_scene_series(grid, dem=dem)


@pytest.fixture(scope='session')
def config(grid):
    return Config(region=data.make_region(grid),
                  faults=data.make_faults(grid),
                  fault_buffer=150.)


@pytest.fixture(scope='session')
def region_mask(config, grid):
    return make_region_mask(config.region, grid)


@pytest.fixture
def prepared(series, config):
    """First five scenes of the series, preprocessed"""
    return pp.prepare(series.isel(time=slice(0, 5)), config)


@pytest.fixture
def composite(grid):
    """Random corrected composite with a few invalid pixels"""
    rng = np.random.default_rng(42)
    values = rng.normal(25, 2, size=grid.shape)
    values[rng.random(grid.shape) < 0.05] = np.nan
    return grid.full(0, dtype=np.float64).copy(data=values)
