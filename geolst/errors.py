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

"""Exceptions raised by geolst

Errors coming from the numerical backend (numpy, numba, rasterio) are not
wrapped and propagate with their original message.
"""


class ConfigurationError(ValueError):
    """Invalid configuration, detected before any computation"""
    pass


class DataSufficiencyError(ValueError):
    """Not enough data to compute a required result"""
    pass


class NoScenesError(DataSufficiencyError):
    """No scene left in the series after filtering"""
    pass


class FullyMaskedError(DataSufficiencyError):
    """Scenes are present but no valid pixel falls within the region

    Args:
        statistic (str): Name of the statistic that could not be computed
    """
    def __init__(self, statistic, message=None):
        self.statistic = statistic
        if message is None:
            message = (f'No valid pixel within the region to compute '
                       f'{statistic!r}')
        super().__init__(message)


class NumericDomainError(ArithmeticError):
    """A value fell outside the domain required by a formula"""
    pass


class PixelLimitError(ValueError):
    """A region reduction would exceed its configured pixel count"""
    pass
