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

"""Synthetic data

Functions of this module create small, controlled datasets mimicking Landsat 8
Collection 2 level 2 scene series, elevation models, land-cover products and
fault traces on a common grid. They are used in tests and examples.

Examples:
    >>> from geolst import data

    >>> grid = data.make_grid()
    >>> series = data.make_scene_series(grid)
    >>> dem = data.make_dem(grid)
    >>> landcover = data.make_landcover(grid)
    >>> region = data.make_region(grid)
    >>> faults = data.make_faults(grid)
"""

import numpy as np
import pandas as pd
import xarray as xr
from shapely.geometry import LineString, box

from geolst.grid import Grid


# Landsat Collection 2 QA_PIXEL value of a clear land pixel
QA_CLEAR = 21824
QA_CLOUD = QA_CLEAR | (1 << 3)
QA_SHADOW = QA_CLEAR | (1 << 4)
QA_FILL = 1
OPTICAL_GAIN = 2.75e-5
OPTICAL_OFFSET = -0.2
THERMAL_GAIN = 0.00341802
THERMAL_OFFSET = 149.0


def make_grid(shape=(60, 60), res=30., origin=(500000., 9250000.),
              crs='EPSG:32748'):
    """Regular north-up grid

    Args:
        shape (tuple): Number of rows and columns
        res (float): Pixel size
        origin (tuple): Coordinates of the upper left corner
        crs (str): Coordinate reference system

    Returns:
        geolst.grid.Grid: The grid
    """
    x = origin[0] + res / 2 + res * np.arange(shape[1])
    y = origin[1] - res / 2 - res * np.arange(shape[0])
    return Grid(x, y, crs=crs)


def _dataarray(grid, values, name=None):
    return xr.DataArray(values, coords=grid.coords(), dims=('y', 'x'),
                        name=name, attrs={'crs': grid.crs.to_string()})


def make_dem(grid, low=200., high=1400.):
    """Elevation increasing linearly from the west to the east edge"""
    ramp = np.linspace(low, high, grid.shape[1])
    return _dataarray(grid, np.tile(ramp, (grid.shape[0], 1)),
                      name='elevation')


def make_landcover(grid, urban=(slice(0, 6), slice(0, 6)), base_class=30,
                   urban_class=50, years=None):
    """Land-cover classification with a rectangular urban area

    Args:
        grid (geolst.grid.Grid): Grid
        urban (tuple): Row and column slices of the urban area
        base_class (int): Class code of every other pixel
        urban_class (int): Class code of the urban area
        years (list): When provided, the classification is repeated along a
            ``time`` dimension with one layer per year

    Returns:
        xarray.DataArray: Land-cover classification
    """
    arr = np.full(grid.shape, base_class, dtype=np.uint8)
    arr[urban] = urban_class
    lc = _dataarray(grid, arr, name='discrete_classification')
    if years is not None:
        times = pd.to_datetime(['%d-01-01' % y for y in years])
        lc = xr.concat([lc] * len(years), dim=pd.Index(times, name='time'))
    return lc


def make_region(grid, margin=2):
    """Rectangular region a few pixels inside the grid edges"""
    xmin, ymin, xmax, ymax = grid.bounds
    d = margin * grid.res
    return box(xmin + d, ymin + d, xmax - d, ymax - d)


def make_faults(grid, col=0.75):
    """A single north-south fault trace at a fraction of the grid width"""
    xmin, ymin, xmax, ymax = grid.bounds
    x = xmin + col * (xmax - xmin)
    return [LineString([(x, ymin), (x, ymax)])]


def hotspot(grid, center=(0.5, 0.75), radius=3., amplitude=10.):
    """Gaussian temperature anomaly (Kelvin)

    Args:
        grid (geolst.grid.Grid): Grid
        center (tuple): Row and column position as fractions of the grid shape
        radius (float): Standard deviation of the gaussian in pixels
        amplitude (float): Peak temperature increase

    Returns:
        numpy.ndarray: 2D array
    """
    rows, cols = np.indices(grid.shape)
    r0 = center[0] * (grid.shape[0] - 1)
    c0 = center[1] * (grid.shape[1] - 1)
    d2 = (rows - r0) ** 2 + (cols - c0) ** 2
    return amplitude * np.exp(-d2 / (2 * radius ** 2))


def make_scene_series(grid, dates=None, lapse_rate=-0.0065, dem=None,
                      base_temperature=300., anomaly=None, noise=0.3,
                      cloud_proportion=0.1, water=(slice(50, 56), slice(5, 15)),
                      cloud_cover=None, processing_level='L2SP', seed=0):
    """Synthetic Landsat 8 Collection 2 level 2 scene series

    Brightness temperature is the sum of a base temperature, an elevation
    effect (``lapse_rate * (elevation - median elevation)``), an anomaly and
    gaussian noise. Vegetation (NDVI between 0.2 and 0.7) varies smoothly from
    north to south, a rectangular water body is present, and every scene
    receives random square clouds (bit 3) and their shadows (bit 4).

    Args:
        grid (geolst.grid.Grid): Grid
        dates (numpy.ndarray): Acquisition dates. Defaults to one scene every
            16 days between 2017 and 2023
        lapse_rate (float): Temperature change per elevation unit (K/m)
        dem (xarray.DataArray): Elevation, defaults to ``make_dem(grid)``
        base_temperature (float): Brightness temperature at the median
            elevation, outside of the anomaly (K)
        anomaly (numpy.ndarray): 2D temperature anomaly (K), defaults to
            ``hotspot(grid)``
        noise (float): Standard deviation of the temperature noise (K)
        cloud_proportion (float): Approximate proportion of cloudy pixels
        water (tuple): Row and column slices of the water body, ``None`` for
            no water
        cloud_cover (numpy.ndarray): Per scene cloud cover percentage,
            defaults to random values between 0 and 9
        processing_level (str or list): Processing level of all scenes, or
            one per scene
        seed (int): Random seed

    Returns:
        xarray.Dataset: Scene series with digital numbers
    """
    rng = np.random.default_rng(seed)
    if dates is None:
        dates = np.arange('2017-01-01', '2023-12-31', 16, dtype='datetime64[D]')
    dates = pd.DatetimeIndex(dates)
    n = len(dates)
    ny, nx = grid.shape
    if dem is None:
        dem = make_dem(grid)
    if anomaly is None:
        anomaly = hotspot(grid)
    elev = dem.values
    tb = (base_temperature
          + lapse_rate * (elev - np.median(elev))
          + anomaly)
    tb = tb[None] + rng.normal(0, noise, size=(n, ny, nx))
    ndvi = np.linspace(0.2, 0.7, ny)[:, None] * np.ones((1, nx))
    red = np.full(grid.shape, 0.08)
    nir = red * (1 + ndvi) / (1 - ndvi)
    green = np.full(grid.shape, 0.07)
    swir = np.full(grid.shape, 0.22)
    if water is not None:
        red[water], nir[water] = 0.05, 0.03
        green[water], swir[water] = 0.09, 0.02
    bands = {'SR_B2': np.full(grid.shape, 0.05), 'SR_B3': green,
             'SR_B4': red, 'SR_B5': nir, 'SR_B6': swir,
             'SR_B7': swir * 0.8}
    qa = np.full((n, ny, nx), QA_CLEAR, dtype=np.uint16)
    size = max(1, int(np.sqrt(cloud_proportion * ny * nx)))
    for idx in range(n):
        if cloud_proportion <= 0:
            break
        r, c = rng.integers(0, ny - size + 1), rng.integers(0, nx - size + 1)
        qa[idx, r:r + size, c:c + size] = QA_CLOUD
        # Shadow shifted south east of the cloud
        rs, cs = min(r + size, ny - 1), min(c + size, nx - 1)
        shadow = qa[idx, rs:rs + size // 2, cs:cs + size // 2]
        shadow[shadow == QA_CLEAR] = QA_SHADOW
    if cloud_cover is None:
        cloud_cover = rng.uniform(0, 9, size=n)
    if isinstance(processing_level, str):
        processing_level = [processing_level] * n
    dims = ('time', 'y', 'x')
    data_vars = {b: (dims, np.broadcast_to(
        np.round((v - OPTICAL_OFFSET) / OPTICAL_GAIN).astype(np.uint16),
        (n, ny, nx)).copy()) for b, v in bands.items()}
    data_vars['ST_B10'] = (dims, np.round(
        (tb - THERMAL_OFFSET) / THERMAL_GAIN).astype(np.uint16))
    data_vars['QA_PIXEL'] = (dims, qa)
    data_vars['CLOUD_COVER'] = (('time',), np.asarray(cloud_cover, dtype=float))
    data_vars['PROCESSING_LEVEL'] = (('time',), np.asarray(processing_level))
    return xr.Dataset(data_vars,
                      coords={'time': dates, 'y': grid.y, 'x': grid.x},
                      attrs={'crs': grid.crs.to_string()})
