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
import pandas as pd
import rasterio
import xarray as xr
from rasterio.enums import Resampling

from geolst.anomaly import (RegionalStatistics, AnomalyThresholds,
                            regional_statistics, anomaly_thresholds,
                            anomaly_layers, anomaly_tiers)
from geolst.collection import filter_series
from geolst.elevation import LapseRateFit, fit_lapse_rate, apply_correction
from geolst.grid import Grid, align, region_mask
from geolst.log import logger
from geolst.lst import retrieve_lst
from geolst.masking import mask_water, mask_urban
from geolst.preprocess import prepare
from geolst.scoring import fault_buffer, near_fault_layer, score_layers
from geolst.temporal import mean_composite, annual_composites, annual_series


LAYERS = ['lst', 'base', 'weak', 'medium', 'strong', 'tier', 'near_fault',
          'score1', 'score2']


class GeothermalPotential:
    """Geothermal potential mapping from a land surface temperature series

    The ``fit()`` method runs the full analysis on a Landsat 8 Collection 2
    level 2 scene series: filtering, preprocessing, water and urban masking,
    land surface temperature retrieval, elevation correction, temporal
    compositing, regional anomaly thresholding and fault proximity scoring.
    Every scalar used by a later stage is computed exactly once and kept as an
    attribute.

    Attributes:
        config (geolst.config.Config): Analysis configuration
        grid (geolst.grid.Grid): Analysis grid
        n_scenes (int): Number of scenes remaining after filtering
        lapse_rate (geolst.elevation.LapseRateFit): Fitted (or imposed)
            elevation correction
        statistics (geolst.anomaly.RegionalStatistics): Statistics of the
            final composite within the region
        thresholds (geolst.anomaly.AnomalyThresholds): Anomaly thresholds
        lst (xarray.DataArray): Final elevation corrected mean LST composite,
            clipped to the region (NaN where invalid)
        layers (xarray.Dataset): All final layers, see ``LAYERS``
        annual (xarray.Dataset): Annual composites of the corrected series

    Args:
        config (geolst.config.Config): Analysis configuration
        **kwargs: Used to set internal attributes when initializing with
            ``.from_netcdf()``
    """
    def __init__(self, config, grid=None, n_scenes=None, lapse_rate=None,
                 statistics=None, thresholds=None, layers=None, annual=None):
        self.config = config
        self.grid = grid
        self.n_scenes = n_scenes
        self.lapse_rate = lapse_rate
        self.statistics = statistics
        self.thresholds = thresholds
        self.layers = layers
        self.annual = annual

    def __eq__(self, other):
        if not isinstance(other, type(self)):
            return False
        for key in ['n_scenes', 'lapse_rate', 'statistics', 'thresholds']:
            a, b = getattr(self, key), getattr(other, key)
            if a is None or b is None:
                if a is not b:
                    return False
            elif not np.allclose(a, b):
                return False
        for key in ['layers', 'annual']:
            a, b = getattr(self, key), getattr(other, key)
            if a is None or b is None:
                if a is not b:
                    return False
                continue
            if set(a.data_vars) != set(b.data_vars):
                return False
            for var in a.data_vars:
                if not np.array_equal(a[var].values.astype(np.float64),
                                      b[var].values.astype(np.float64),
                                      equal_nan=True):
                    return False
        return self.grid == other.grid

    @property
    def lst(self):
        return None if self.layers is None else self.layers.lst

    @property
    def region_mask(self):
        return region_mask(self.config.region, self.grid)

    def fit(self, series, dem, landcover, lapse_rate=None):
        """Run the analysis

        Args:
            series (xarray.Dataset): Raw scene series with dimensions
                ``(time, y, x)``, variables ``SR_B2`` to ``SR_B7``,
                ``ST_B10``, ``QA_PIXEL``, and the per scene variables
                ``CLOUD_COVER`` and ``PROCESSING_LEVEL``. The ``crs``
                attribute (or ``config.crs``) gives its coordinate reference
                system; its grid is the analysis grid
            dem (xarray.DataArray): Digital elevation model, resampled
                bilinearly onto the analysis grid when needed
            landcover (xarray.DataArray): Land-cover classification (2D, or
                with a ``time`` dimension holding several years), resampled
                with nearest neighbour onto the analysis grid when needed
            lapse_rate (geolst.elevation.LapseRateFit): Imposed elevation
                correction. When ``None`` (default) it is fitted on the series

        Raises:
            geolst.errors.NoScenesError: No scene left after filtering
            geolst.errors.FullyMaskedError: Scenes are left but no valid
                pixel remains within the region for a required statistic
            geolst.errors.NumericDomainError: Degenerate elevation regression
                or emissivity outside its domain
        """
        config = self.config
        # North-up orientation, the grid and every rasterized mask assume it
        series = series.sortby('y', ascending=False).sortby('x')
        self.grid = Grid.from_xarray(series, crs=config.crs)
        region = region_mask(config.region, self.grid)
        # 1. Scene selection and per scene processing
        ds = filter_series(series, config, region_mask=region)
        self.n_scenes = ds.sizes['time']
        ds = prepare(ds, config)
        ds = mask_water(ds, threshold=config.water_threshold)
        ds = mask_urban(ds, landcover, self.grid,
                        urban_class=config.urban_class,
                        year=config.landcover_year)
        ds = retrieve_lst(ds, region, self.grid, config)
        # 2. Elevation correction
        elevation = align(dem, self.grid, resampling=Resampling.bilinear)
        if lapse_rate is None:
            lapse_rate = fit_lapse_rate(ds, elevation, region, self.grid,
                                        config)
        self.lapse_rate = LapseRateFit(*lapse_rate)
        ds = apply_correction(ds, elevation, self.lapse_rate,
                              n_threads=config.n_threads)
        # 3. Final composite, thresholds and layers
        final = mean_composite(ds, 'LST_corrected', region_mask=region)
        lst = final.LST_corrected
        self.statistics = regional_statistics(lst, final.valid.values, region,
                                              self.grid, config)
        self.thresholds = anomaly_thresholds(self.statistics, config)
        buffer = fault_buffer(config.faults, config.fault_buffer)
        near_fault = near_fault_layer(buffer, self.grid)
        layers = anomaly_layers(lst, self.thresholds)
        layers = layers.merge(score_layers(lst, self.thresholds.strong,
                                           near_fault))
        layers['lst'] = lst
        layers['tier'] = anomaly_tiers(lst, self.thresholds)
        layers['near_fault'] = near_fault
        self.layers = layers[LAYERS]
        # 4. Temporal aggregation
        self.annual = annual_composites(ds, config.start_year,
                                        config.end_year)
        logger.info('Strong anomalies: %d pixel(s), near a fault: %d pixel(s)',
                    np.count_nonzero(layers.score1 == 1),
                    np.count_nonzero(layers.score2 == 1))
        return self

    def annual_series(self):
        """Regional mean corrected LST per year, for trend charts

        Returns:
            pandas.Series: Mean value indexed by year, NaN for years without
            valid data
        """
        return annual_series(self.annual, self.region_mask, self.grid,
                             self.config)

    def summary(self):
        """Scalar results of the analysis

        Returns:
            pandas.Series: Scene count, lapse rate fit, regional statistics
            and anomaly thresholds
        """
        d = {'n_scenes': self.n_scenes}
        d.update({k: v for k, v in self.lapse_rate._asdict().items()})
        d.update({f'lst_{k}': v for k, v in self.statistics._asdict().items()})
        d.update({f'threshold_{k}': v
                  for k, v in self.thresholds._asdict().items()})
        return pd.Series(d)

    def _report(self, layers, dtype, nodata=None):
        """Prepare layers to be written to disk by ``self.report``

        Returns:
            numpy.ndarray: A 3D array (band, y, x) with the requested layers,
            NaN being replaced by ``nodata`` for integer data types
        """
        if not all([x in LAYERS for x in layers]):
            raise ValueError('invalid layer(s) requested')
        r = np.stack([self.layers[x].values for x in layers], axis=0)
        if np.issubdtype(np.dtype(dtype), np.integer):
            if nodata is None:
                raise ValueError('nodata is required for integer data types')
            r = np.where(np.isnan(r), nodata, r)
        return r.astype(dtype)

    def report(self, filename, layers=['score1', 'score2'], driver='GTiff',
               dtype=np.float32, nodata=None):
        """Write final layers to a raster geospatial file

        Args:
            filename (str): Output file
            layers (list): Layers to include, among ``LAYERS``. Provided list
                order is respected
            driver (str): GDAL driver
            dtype (type): Data type of the stacked layers. With integer data
                types ``nodata`` must be set
            nodata (float): Nodata value; defaults to NaN for float data
                types
        """
        r = self._report(layers=layers, dtype=dtype, nodata=nodata)
        if nodata is None:
            nodata = np.nan
        meta = {'driver': driver,
                'crs': self.grid.crs,
                'count': r.shape[0],
                'dtype': r.dtype,
                'nodata': nodata,
                'transform': self.grid.transform,
                'height': r.shape[-2],
                'width': r.shape[-1]}
        with rasterio.open(filename, 'w', **meta) as dst:
            dst.descriptions = layers
            dst.write(r)

    def to_netcdf(self, filename):
        """Write the fitted results to a netcdf file

        Layers, annual composites and scalar results are written; the
        configuration is not and must be provided again when reloading
        """
        annual = self.annual.rename({v: f'annual_{v}'
                                     for v in self.annual.data_vars})
        annual['annual_valid'] = annual.annual_valid.astype(np.uint8)
        ds = xr.merge([self.layers, annual.drop_vars('time')])
        attrs = {'n_scenes': self.n_scenes}
        for prefix, values in [('lapse_rate', self.lapse_rate),
                               ('statistics', self.statistics),
                               ('thresholds', self.thresholds)]:
            attrs.update({f'{prefix}_{k}': float(v)
                          for k, v in values._asdict().items()})
        if self.grid.crs is not None:
            attrs['crs'] = self.grid.crs.to_string()
        ds.attrs = attrs
        ds.to_netcdf(filename, engine='netcdf4')

    @classmethod
    def from_netcdf(cls, filename, config):
        """Reload results written with ``to_netcdf()``

        Args:
            filename (str): Netcdf file
            config (geolst.config.Config): The configuration of the analysis
        """
        with xr.open_dataset(filename, engine='netcdf4') as src:
            ds = src.load()
        attrs = ds.attrs

        def scalars(prefix, cls_):
            return cls_(*[attrs[f'{prefix}_{k}'] for k in cls_._fields])

        annual_vars = [v for v in ds.data_vars if v.startswith('annual_')]
        annual = ds[annual_vars].rename({v: v[len('annual_'):]
                                         for v in annual_vars})
        annual['valid'] = annual.valid.astype(bool)
        years = annual.year.values
        annual = annual.assign_coords(
            time=('year', pd.to_datetime(['%d-01-01' % y for y in years])))
        return cls(config=config,
                   grid=Grid.from_xarray(ds, crs=attrs.get('crs')),
                   n_scenes=int(attrs['n_scenes']),
                   lapse_rate=scalars('lapse_rate', LapseRateFit),
                   statistics=scalars('statistics', RegionalStatistics),
                   thresholds=scalars('thresholds', AnomalyThresholds),
                   layers=ds[LAYERS],
                   annual=annual)
