"""Per-entity relationship analysis."""

from .analyzer import AnalysisStage, StaticAnalyzer
from .annotation import leading_comment, normalize_comment
from .markup import callback_event, is_component_tag, kebab_to_pascal

__all__ = [
    "AnalysisStage",
    "StaticAnalyzer",
    "callback_event",
    "is_component_tag",
    "kebab_to_pascal",
    "leading_comment",
    "normalize_comment",
]
