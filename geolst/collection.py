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

from geolst.errors import NoScenesError
from geolst.log import logger


# Landsat Collection 2 QA_PIXEL bit flagging fill pixels
FILL_BIT = 0


def season_mask(dates, start_month, end_month):
    """Boolean array of dates falling in a month window

    Both bounds are inclusive. The window wraps around the end of the year
    when ``start_month`` is larger than ``end_month``.

    Args:
        dates (pandas.DatetimeIndex): Dates to test
        start_month (int): First month of the window
        end_month (int): Last month of the window

    Returns:
        numpy.ndarray: 1D boolean array
    """
    month = np.asarray(dates.month)
    if start_month <= end_month:
        return (month >= start_month) & (month <= end_month)
    return (month >= start_month) | (month <= end_month)


def footprint_in_region(ds, region_mask):
    """Boolean array of scenes having at least one non fill pixel in the region

    Args:
        ds (xarray.Dataset): Raw scene series with a ``QA_PIXEL`` variable
        region_mask (numpy.ndarray): 2D boolean region mask

    Returns:
        numpy.ndarray: 1D boolean array
    """
    qa = ds.QA_PIXEL.values.astype(np.int64)
    not_fill = (qa & (1 << FILL_BIT)) == 0
    return np.any(not_fill & region_mask, axis=(1, 2))


def filter_series(ds, config, region_mask=None):
    """Select the scenes of a raw series usable for the analysis

    Scenes are kept when their acquisition date is within
    ``[config.start_date, config.end_date)`` and within the seasonal window,
    their cloud cover is below ``config.cloud_cover_max``, their processing
    level matches ``config.processing_level`` and, when a region mask is
    provided, their footprint intersects the region.

    Args:
        ds (xarray.Dataset): Raw scene series with a ``time`` dimension and
            ``CLOUD_COVER`` and ``PROCESSING_LEVEL`` variables indexed by time
        config (geolst.config.Config): Analysis configuration
        region_mask (numpy.ndarray): Optional 2D boolean region mask

    Returns:
        xarray.Dataset: The filtered series, sorted by time

    Raises:
        NoScenesError: No scene left after filtering
    """
    ds = ds.sortby('time')
    dates = pd.DatetimeIndex(ds.time.values)
    keep = (dates >= pd.Timestamp(config.start_date)) & \
        (dates < pd.Timestamp(config.end_date))
    keep &= season_mask(dates, *config.season)
    keep &= ds.CLOUD_COVER.values < config.cloud_cover_max
    keep &= ds.PROCESSING_LEVEL.values.astype(str) == config.processing_level
    if region_mask is not None:
        keep &= footprint_in_region(ds, region_mask)
    n = int(np.count_nonzero(keep))
    logger.info('%d scene(s) available after filtering (out of %d)',
                n, ds.sizes['time'])
    if n == 0:
        raise NoScenesError('No scene left after filtering %d scene(s) on '
                            'date range, season, cloud cover, processing '
                            'level and region' % ds.sizes['time'])
    return ds.isel(time=np.flatnonzero(keep))
