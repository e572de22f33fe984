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

from geolst import data
import geolst.masking as mk
from geolst.errors import ConfigurationError


def _implies(after, before):
    return np.all(~after | before)


def test_water_mask_narrows(prepared):
    masked = mk.mask_water(prepared, threshold=-0.25)
    assert _implies(masked.valid.values, prepared.valid.values)
    # Synthetic water body
    assert not masked.valid.values[:, 50:56, 5:15].any()
    assert 'MNDWI' in masked


def test_water_threshold_is_tunable(prepared):
    strict = mk.mask_water(prepared, threshold=-0.6)
    loose = mk.mask_water(prepared, threshold=-0.25)
    assert _implies(strict.valid.values, loose.valid.values)
    assert not strict.valid.values.any()


def test_urban_mask_narrows(prepared, landcover, grid):
    masked = mk.mask_urban(prepared, landcover, grid, urban_class=50)
    assert _implies(masked.valid.values, prepared.valid.values)
    assert not masked.valid.values[:, :6, :6].any()


def test_masks_idempotent_and_order_insensitive(prepared, landcover, grid):
    a = mk.mask_urban(mk.mask_water(prepared), landcover, grid)
    b = mk.mask_water(mk.mask_urban(prepared, landcover, grid))
    np.testing.assert_array_equal(a.valid.values, b.valid.values)
    c = mk.mask_water(mk.mask_water(a))
    np.testing.assert_array_equal(a.valid.values, c.valid.values)


def test_select_landcover(grid):
    lc = data.make_landcover(grid, years=[2015, 2019])
    assert mk.select_landcover(lc, 2019).ndim == 2
    with pytest.raises(ConfigurationError):
        mk.select_landcover(lc, 2020)


def test_multi_year_landcover_requires_year(prepared, grid):
    lc = data.make_landcover(grid, years=[2015, 2019])
    with pytest.raises(ConfigurationError):
        mk.mask_urban(prepared, lc, grid)
    masked = mk.mask_urban(prepared, lc, grid, year=2019)
    assert not masked.valid.values[:, :6, :6].any()


def test_urban_mask_resampled(grid):
    coarse = data.make_grid(shape=(20, 20), res=90.)
    lc = data.make_landcover(coarse, urban=(slice(0, 2), slice(0, 2)))
    mask = mk.urban_mask(lc, grid, urban_class=50)
    assert mask.shape == grid.shape
    assert not mask[:6, :6].any()
    assert mask[6:, 6:].all()
