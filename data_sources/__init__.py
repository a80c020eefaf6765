"""
Data Sources Package
Async clients for the UK open-data services behind an area profile
"""

from . import police_api
from . import flood_monitoring
from . import land_registry
from . import bathing_water
from . import nbn_atlas
from . import historic_england
from . import ancient_trees
from . import natural_england
from . import storm_overflows
from . import climate_outlook
from . import postcodes_api

__all__ = [
    'police_api', 'flood_monitoring', 'land_registry', 'bathing_water', 'nbn_atlas',
    'historic_england', 'ancient_trees', 'natural_england', 'storm_overflows',
    'climate_outlook', 'postcodes_api',
]
