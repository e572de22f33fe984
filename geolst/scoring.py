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

"""Fault proximity and potential scores"""

import numpy as np
import xarray as xr
from shapely.ops import unary_union

from geolst.anomaly import exceeds, self_mask
from geolst.grid import rasterize_geometry
from geolst.log import logger


def fault_buffer(faults, distance):
    """Union of the buffers of every fault geometry

    Args:
        faults (list): Shapely geometries
        distance (float): Buffer distance in the unit of the geometries
            coordinate reference system

    Returns:
        shapely.geometry.base.BaseGeometry: A single (multi)polygon
    """
    return unary_union([g.buffer(distance) for g in faults if not g.is_empty])


def near_fault_layer(buffer_geometry, grid):
    """Binary layer of pixels within the fault buffer

    Pixels whose centre lies within the buffer are 1, all others 0; the layer
    is defined everywhere on the grid.
    """
    arr = rasterize_geometry(buffer_geometry, grid).astype(np.float32)
    logger.debug('%d pixel(s) near faults', np.count_nonzero(arr))
    return xr.DataArray(arr, coords=grid.coords(), dims=('y', 'x'),
                        name='near_fault')


def score_layers(composite, strong_threshold, near_fault):
    """Geothermal potential score layers

    Score 1 flags strong anomalies; score 2 flags strong anomalies that are
    also near a fault.

    Args:
        composite (xarray.DataArray): Final corrected composite
        strong_threshold (float): Strong anomaly threshold
        near_fault (xarray.DataArray): Binary near fault layer

    Returns:
        xarray.Dataset: ``score1`` and ``score2`` layers (1 or NaN)
    """
    strong = exceeds(composite, strong_threshold)
    total = strong + near_fault
    score2 = (total >= 2).astype(np.float32).where(np.isfinite(total))
    return xr.Dataset({'score1': self_mask(strong),
                       'score2': self_mask(score2)})
