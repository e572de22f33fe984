#!/usr/bin/env python
# -*- coding: utf-8 -*-

import codecs
from setuptools import setup, find_packages


with codecs.open('README.rst', encoding='utf-8') as f:
    readme = f.read()

extra_reqs = {'tests': ['pytest',
                        'scipy'],
              'docs': ['sphinx',
                       'sphinx_rtd_theme',
                       'matplotlib',
                       'sphinx-gallery']}

setup(name='geolst',
      version='0.1.0',
      description=u"Geothermal potential mapping from land surface temperature time-series",
      long_description_content_type="text/x-rst",
      long_description=readme,
      keywords='landsat, xarray, land surface temperature, geothermal, anomaly',
      author=u"Loic Dutrieux, Jonas Viehweger, Chris Holden",
      author_email='loic.dutrieux@ec.europa.eu',
      license='EUPL-v1.2',
      classifiers=[
          'Programming Language :: Python :: 3.9',
          'Programming Language :: Python :: 3.10',
          'Programming Language :: Python :: 3.11',
      ],
      packages=find_packages(exclude=['tests', 'tests.*']),
      install_requires=[
          'numpy',
          'xarray',
          'rasterio',
          'netCDF4',
          'numba',
          'pandas',
          'affine<3',
          'shapely',
          'geopandas'
      ],
      python_requires=">=3.9",
      extras_require=extra_reqs)
