"""
wardley package

Parsing, text patching and change detection for the Wardley Map DSL.
"""

from wardley.changes import GlitchTracker, detect_changes
from wardley.extractors import ConfigurationError, LineSyntaxError, WardleySyntaxError
from wardley.parser import WardleyParser, parse, strip_comments
from wardley.patcher import (
    apply_evolve_edit,
    apply_position_edit,
    update_evolve_maturity,
    update_position,
)

__all__ = [
    "ConfigurationError",
    "GlitchTracker",
    "LineSyntaxError",
    "WardleyParser",
    "WardleySyntaxError",
    "apply_evolve_edit",
    "apply_position_edit",
    "detect_changes",
    "parse",
    "strip_comments",
    "update_evolve_maturity",
    "update_position",
]
