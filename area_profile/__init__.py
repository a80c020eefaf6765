"""
Area profile assembly
Fans a resolved postcode out to every data source and composes the report.
"""

from .orchestrator import SOURCES, build_area_profile, profile_postcode
from .report import AreaProfile, SourceOutcome

__all__ = ['SOURCES', 'build_area_profile', 'profile_postcode', 'AreaProfile', 'SourceOutcome']
