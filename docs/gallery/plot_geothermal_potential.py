r"""
Geothermal potential from synthetic data
========================================
This example runs the complete analysis on a synthetic Landsat 8 scene series
containing a warm anomaly next to a fault, and displays the resulting layers.
Real data are handled the same way, once loaded as an xarray Dataset and
accompanied by a digital elevation model and a land-cover classification
(see ``geolst.io``).
"""

##############################################################
# Create synthetic data
# =====================
#
# The grid is a 60 by 60 pixels, 30 m resolution, UTM grid. Brightness
# temperature decreases with elevation, which increases from west to east.
import matplotlib.pyplot as plt

from geolst import data
from geolst.config import Config
from geolst.pipeline import GeothermalPotential

grid = data.make_grid()
dem = data.make_dem(grid)
landcover = data.make_landcover(grid)
series = data.make_scene_series(grid, dem=dem)

##############################################################
# Run the analysis
# ================
#
# The configuration holds the region of interest, the fault traces and every
# parameter of the analysis. Scalar results are available after fitting.
config = Config(region=data.make_region(grid),
                faults=data.make_faults(grid),
                fault_buffer=150.)
gp = GeothermalPotential(config).fit(series, dem=dem, landcover=landcover)
print(gp.summary())

##############################################################
# Display the layers
# ==================
fig, axes = plt.subplots(1, 3, figsize=(12, 4))
gp.lst.plot(ax=axes[0], cmap='inferno')
gp.layers.tier.plot(ax=axes[1], cmap='viridis')
gp.layers.near_fault.plot(ax=axes[2], cmap='Greys', add_colorbar=False)
gp.layers.score2.plot(ax=axes[2], cmap='autumn', add_colorbar=False)
for ax, title in zip(axes, ['Corrected LST (°C)', 'Anomaly tier',
                            'Strong anomalies near faults']):
    ax.set_title(title)
    ax.set_aspect('equal')
plt.tight_layout()
plt.show()

##############################################################
# Annual trend
# ============
gp.annual_series().plot(marker='o')
plt.ylabel('Mean corrected LST (°C)')
plt.show()
