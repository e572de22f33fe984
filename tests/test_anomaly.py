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

import geolst.anomaly as an


def _ones(layer):
    return np.nan_to_num(layer.values) == 1


@pytest.fixture
def statistics(composite, region_mask, grid, config):
    return an.regional_statistics(composite, np.isfinite(composite.values),
                                  region_mask, grid, config)


def test_regional_statistics(composite, region_mask, statistics):
    sel = composite.values[region_mask & np.isfinite(composite.values)]
    np.testing.assert_allclose(statistics,
                               [sel.mean(), sel.std(), sel.min(), sel.max()])


def test_thresholds(statistics, config):
    t = an.anomaly_thresholds(statistics, config)
    np.testing.assert_allclose(t.main, statistics.mean + statistics.std)
    np.testing.assert_allclose(t.strong,
                               statistics.mean + 2.5 * statistics.std)
    assert t.main < t.weak < t.medium < t.strong


def test_layers_nested(composite, statistics, config):
    layers = an.anomaly_layers(composite, an.anomaly_thresholds(statistics,
                                                                config))
    strong, medium = _ones(layers.strong), _ones(layers.medium)
    weak, base = _ones(layers.weak), _ones(layers.base)
    assert strong.any()
    assert np.all(~strong | medium)
    assert np.all(~medium | weak)
    assert np.all(~weak | base)
    # Base layer is 0/1 where the composite is valid, self masked layers 1/NaN
    valid = np.isfinite(composite.values)
    assert np.isin(layers.base.values[valid], [0, 1]).all()
    assert np.isnan(layers.base.values[~valid]).all()
    assert np.isnan(layers.strong.values[~strong]).all()


def test_tiers(composite, statistics, config):
    thresholds = an.anomaly_thresholds(statistics, config)
    layers = an.anomaly_layers(composite, thresholds)
    tiers = an.anomaly_tiers(composite, thresholds).values
    np.testing.assert_array_equal(tiers == 4, _ones(layers.strong))
    np.testing.assert_array_equal(tiers >= 3, _ones(layers.medium))
    np.testing.assert_array_equal(tiers >= 1, _ones(layers.base))
    assert np.isnan(tiers[~np.isfinite(composite.values)]).all()


def test_thresholds_follow_composite(composite, region_mask, grid, config):
    shifted = composite + 3
    a = an.regional_statistics(composite, np.isfinite(composite.values),
                               region_mask, grid, config)
    b = an.regional_statistics(shifted, np.isfinite(shifted.values),
                               region_mask, grid, config)
    np.testing.assert_allclose(b.mean - a.mean, 3)
    np.testing.assert_allclose(b.std, a.std)
