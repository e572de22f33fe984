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

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType

import numba
import pandas as pd

from geolst.errors import ConfigurationError


#: Default pixel count cap of every region reduction
DEFAULT_MAX_PIXELS = {'ndvi_range': 1e9,
                      'linear_fit': 1e9,
                      'median': 1e9,
                      'statistics': 1e13,
                      'min_max': 1e9,
                      'chart': 1e9}

NDVI_RANGE_MODES = ('scene', 'series')


@dataclass(frozen=True)
class Config:
    """Parameters of a geothermal potential analysis

    A single immutable instance is passed to every stage of the pipeline.
    All values are validated at instantiation and a
    ``geolst.errors.ConfigurationError`` is raised on the first problem found.

    Note:
        ``water_threshold``, ``landcover_year`` and ``urban_class`` default to
        values calibrated for one study area and one land-cover product version
        (Copernicus Global Land Cover 100 m, class 50 being built-up). They
        are not universal constants and should be set for every study area.

    Args:
        region (shapely.geometry.base.BaseGeometry): Area of interest, in the
            coordinate reference system of the analysis grid
        faults (list): Fault geometries (lines or polygons) in the coordinate
            reference system of the analysis grid
        start_date (str): First date of the analysis (inclusive)
        end_date (str): Last date of the analysis (exclusive)
        season (tuple): Start and end month (inclusive) of the seasonal window.
            The window wraps around the end of the year when start is larger
            than end (e.g. ``(10, 4)`` for October to April)
        cloud_cover_max (float): Scenes with a cloud cover percentage equal or
            larger are discarded
        processing_level (str): Required processing level of the scenes
        fault_buffer (float): Buffer distance around faults in grid units
            (meters)
        weak_multiplier (float): Multiple of the regional standard deviation
            defining weak anomalies
        medium_multiplier (float): Same for medium anomalies
        strong_multiplier (float): Same for strong anomalies
        water_threshold (float): MNDWI value below which pixels are kept
        landcover_year (int): Reference year of the land-cover product
        urban_class (int): Land-cover class code of urban/built-up areas
        scale (float): Pixel scale (meters) at which region reductions are
            computed
        chart_scale (float): Pixel scale (meters) of the annual series
            reduction
        max_pixels (dict): Pixel count cap per reduction, keys among
            ``'ndvi_range'``, ``'linear_fit'``, ``'median'``,
            ``'statistics'``, ``'min_max'`` and ``'chart'``. Missing keys
            take their default value
        optical_gain (float): Gain of the optical bands rescaling
        optical_offset (float): Offset of the optical bands rescaling
        thermal_gain (float): Gain of the thermal band rescaling
        thermal_offset (float): Offset of the thermal band rescaling (Kelvin)
        ndvi_range (str): Either ``'scene'`` (NDVI extrema over the region
            computed for every scene) or ``'series'`` (extrema over the region
            and the entire series)
        crs (str): Coordinate reference system of the analysis grid. Overrides
            the ``crs`` attribute of the input data when set
        n_threads (int): Number of threads used by the per scene kernels, at
            most ``numba.config.NUMBA_NUM_THREADS``
    """
    region: object = None
    faults: tuple = ()
    start_date: str = '2017-01-01'
    end_date: str = '2023-12-31'
    season: tuple = (10, 4)
    cloud_cover_max: float = 10
    processing_level: str = 'L2SP'
    fault_buffer: float = 1000.
    weak_multiplier: float = 1.5
    medium_multiplier: float = 2.0
    strong_multiplier: float = 2.5
    water_threshold: float = -0.25
    landcover_year: int = 2019
    urban_class: int = 50
    scale: float = 30.
    chart_scale: float = 1000.
    max_pixels: dict = field(default_factory=dict)
    optical_gain: float = 2.75e-5
    optical_offset: float = -0.2
    thermal_gain: float = 0.00341802
    thermal_offset: float = 149.0
    ndvi_range: str = 'scene'
    crs: str = None
    n_threads: int = 1

    def __post_init__(self):
        # frozen dataclass; normalize through object.__setattr__
        object.__setattr__(self, 'faults', tuple(self.faults or ()))
        object.__setattr__(self, 'season', tuple(self.season))
        unknown = set(self.max_pixels) - set(DEFAULT_MAX_PIXELS)
        if unknown:
            raise ConfigurationError('Unknown max_pixels key(s): %s'
                                     % ', '.join(sorted(unknown)))
        max_pixels = dict(DEFAULT_MAX_PIXELS, **self.max_pixels)
        object.__setattr__(self, 'max_pixels', MappingProxyType(max_pixels))
        self._validate()

    def _validate(self):
        if self.region is None or getattr(self.region, 'is_empty', True):
            raise ConfigurationError('region must be a non empty geometry')
        if not any(not g.is_empty for g in self.faults):
            raise ConfigurationError('faults must contain at least one non '
                                     'empty geometry')
        try:
            start = pd.Timestamp(self.start_date)
            end = pd.Timestamp(self.end_date)
        except ValueError as e:
            raise ConfigurationError(f'Invalid date range: {e}') from e
        if not start < end:
            raise ConfigurationError('start_date must be earlier than end_date')
        if len(self.season) != 2 or \
                not all(1 <= m <= 12 for m in self.season):
            raise ConfigurationError('season must be a (start_month, '
                                     'end_month) pair with months in 1..12')
        if not (1 <= self.weak_multiplier < self.medium_multiplier
                < self.strong_multiplier):
            raise ConfigurationError('Anomaly multipliers must satisfy '
                                     '1 <= weak < medium < strong')
        if not 0 <= self.cloud_cover_max <= 100:
            raise ConfigurationError('cloud_cover_max must be in [0, 100]')
        for name in ['fault_buffer', 'scale', 'chart_scale']:
            if not getattr(self, name) > 0:
                raise ConfigurationError(f'{name} must be strictly positive')
        if not all(v > 0 for v in self.max_pixels.values()):
            raise ConfigurationError('max_pixels values must be strictly '
                                     'positive')
        if self.ndvi_range not in NDVI_RANGE_MODES:
            raise ConfigurationError('ndvi_range must be one of %s'
                                     % ', '.join(NDVI_RANGE_MODES))
        if not 1 <= self.n_threads <= numba.config.NUMBA_NUM_THREADS:
            raise ConfigurationError('n_threads must be between 1 and %d'
                                     % numba.config.NUMBA_NUM_THREADS)

    @property
    def start_year(self):
        return pd.Timestamp(self.start_date).year

    @property
    def end_year(self):
        return pd.Timestamp(self.end_date).year

    def replace(self, **kwargs):
        """Return a validated copy of the configuration with updated values"""
        kwargs.setdefault('max_pixels', dict(self.max_pixels))
        return dataclasses.replace(self, **kwargs)
