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
import xarray as xr

import geolst.preprocess as pp


def test_cloud_mask_independent_bits():
    qa = xr.DataArray(np.array([0, 1 << 3, 1 << 4, (1 << 3) | (1 << 4),
                                1 << 5, 21824], dtype=np.uint16))
    np.testing.assert_array_equal(pp.cloud_mask(qa).values,
                                  [True, False, False, False, True, True])


def test_scaling(series):
    ds = series.isel(time=[0])
    scaled = pp.scale_thermal(pp.scale_optical(ds))
    np.testing.assert_allclose(scaled.SR_B4.values,
                               ds.SR_B4.values * 2.75e-5 - 0.2)
    np.testing.assert_allclose(scaled.ST_B10.values,
                               ds.ST_B10.values * 0.00341802 + 149.0)
    # Quality band untouched
    np.testing.assert_array_equal(scaled.QA_PIXEL.values, ds.QA_PIXEL.values)


def test_normalized_difference_zero_denominator():
    a = xr.DataArray(np.array([0.5, 0., 0.2]))
    b = xr.DataArray(np.array([0.1, 0., -0.2]))
    nd = pp.normalized_difference(a, b)
    np.testing.assert_allclose(nd.values[0], 0.4 / 0.6)
    assert np.isnan(nd.values[1])
    assert np.isnan(nd.values[2])


def test_prepare(series, prepared):
    raw = series.isel(time=slice(0, 5))
    qa = raw.QA_PIXEL.values
    cloudy = (qa & ((1 << 3) | (1 << 4))) != 0
    assert cloudy.any()
    assert not prepared.valid.values[cloudy].any()
    assert prepared.valid.values[~cloudy].all()
    assert prepared.valid.dtype == bool
    red, nir = prepared.SR_B4.values, prepared.SR_B5.values
    np.testing.assert_allclose(prepared.NDVI.values, (nir - red) / (nir + red))
    assert 250 < prepared.ST_B10.mean() < 350


def test_update_mask_narrows(prepared):
    mask = np.zeros(prepared.valid.shape, dtype=bool)
    mask[:, :10] = True
    ds = pp.update_mask(prepared, prepared.valid.copy(data=mask))
    assert not ds.valid.values[:, 10:].any()
    np.testing.assert_array_equal(ds.valid.values[:, :10],
                                  prepared.valid.values[:, :10])
