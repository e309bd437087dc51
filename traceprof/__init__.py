"""
traceprof

Call-tree reconstruction and hotspot ranking for sampled CPU profiles.
"""

from .settings import ProfileSettings, settings_from_dict, compute_settings_signature
from .reconstruction import analyze, analyze_trace, ProfileReport

__version__ = "0.1.0"

__all__ = [
    'ProfileSettings',
    'settings_from_dict',
    'compute_settings_signature',
    'analyze',
    'analyze_trace',
    'ProfileReport',
]
