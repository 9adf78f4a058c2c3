"""JSON recovery for malformed, truncated or prose-wrapped model output."""

from meal_orchestrator.recovery.engine import recover
from meal_orchestrator.recovery.scanner import apply_common_fixes, find_balanced, scan_structure
from meal_orchestrator.recovery.strategies import (
    STRATEGIES,
    balanced_extraction,
    regex_candidates,
    repair_truncated,
    strip_code_fences,
    truncation_repair,
)

__all__ = [
    "STRATEGIES",
    "apply_common_fixes",
    "balanced_extraction",
    "find_balanced",
    "recover",
    "regex_candidates",
    "repair_truncated",
    "scan_structure",
    "strip_code_fences",
    "truncation_repair",
]
