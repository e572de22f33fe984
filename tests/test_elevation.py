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

import numba
import numpy as np
import pytest
from scipy import stats as sps

import geolst.elevation as el
from geolst.errors import NumericDomainError
from geolst.lst import retrieve_lst
from geolst.masking import mask_water
from geolst.temporal import mean_composite


@pytest.fixture
def lst_series(prepared, region_mask, grid, config):
    return retrieve_lst(mask_water(prepared), region_mask, grid, config)


def test_correction_zero_slope():
    lst = np.array([[20., 25.], [30., np.nan]])
    elev = np.array([[100., 500.], [900., 1300.]])
    np.testing.assert_array_equal(el.correct_elevation(lst, elev, 0., 700.),
                                  lst)


def test_correction_not_idempotent():
    lst = np.array([20., 25., 30.])
    elev = np.array([100., 500., 900.])
    once = el.correct_elevation(lst, elev, -0.0065, 500.)
    twice = el.correct_elevation(once, elev, -0.0065, 500.)
    np.testing.assert_allclose(once, [17.4, 25., 32.6])
    assert not np.allclose(once, twice)


def test_fit_lapse_rate(lst_series, dem, region_mask, grid, config):
    fit = el.fit_lapse_rate(lst_series, dem, region_mask, grid, config)
    composite = mean_composite(lst_series, 'LST', region_mask=region_mask)
    sel = composite.valid.values & region_mask
    reference = sps.linregress(dem.values[sel], composite.LST.values[sel])
    np.testing.assert_allclose(fit.slope, reference.slope, rtol=1e-6)
    np.testing.assert_allclose(fit.intercept, reference.intercept, rtol=1e-6)
    np.testing.assert_allclose(fit.reference_elevation,
                               np.median(dem.values[region_mask]))
    # Synthetic series are generated with a -6.5 K/km lapse rate
    assert fit.slope == pytest.approx(-0.0065, abs=1e-3)


def test_fit_constant_elevation(lst_series, dem, region_mask, grid, config):
    flat = dem.copy(data=np.full(dem.shape, 500.))
    with pytest.raises(NumericDomainError):
        el.fit_lapse_rate(lst_series, flat, region_mask, grid, config)


def test_apply_correction(lst_series, dem):
    fit = el.LapseRateFit(-0.0065, 30., 800.)
    ds = el.apply_correction(lst_series, dem, fit)
    expected = el.correct_elevation(lst_series.LST.values, dem.values[None],
                                    fit.slope, fit.reference_elevation)
    np.testing.assert_allclose(ds.LST_corrected.values, expected)
    np.testing.assert_array_equal(ds.valid.values, lst_series.valid.values)
    # Exactly once
    with pytest.raises(ValueError):
        el.apply_correction(ds, dem, fit)


def test_apply_correction_dem_nodata(lst_series, dem):
    holed = dem.copy(data=dem.values.copy())
    holed.values[10:20, 10:20] = np.nan
    ds = el.apply_correction(lst_series, holed, el.LapseRateFit(-0.0065, 30., 800.))
    assert not ds.valid.values[:, 10:20, 10:20].any()


@pytest.mark.parametrize('fit', [el.LapseRateFit(np.nan, 30., 800.),
                                 el.LapseRateFit(-0.0065, 30., np.inf)])
def test_apply_correction_non_finite(lst_series, dem, fit):
    with pytest.raises(NumericDomainError):
        el.apply_correction(lst_series, dem, fit)


@pytest.mark.skipif(numba.config.NUMBA_NUM_THREADS < 2,
                    reason='Requires at least 2 numba threads')
def test_apply_correction_threads(lst_series, dem):
    fit = el.LapseRateFit(-0.0065, 30., 800.)
    single = el.apply_correction(lst_series, dem, fit, n_threads=1)
    multi = el.apply_correction(lst_series, dem, fit, n_threads=2)
    np.testing.assert_array_equal(single.LST_corrected.values,
                                  multi.LST_corrected.values)
