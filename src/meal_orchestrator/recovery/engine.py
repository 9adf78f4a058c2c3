"""Recover a JSON object with a required key from untrusted model text."""

from __future__ import annotations

import logging
from typing import Any

from meal_orchestrator.errors import RecoveryError
from meal_orchestrator.recovery.strategies import STRATEGIES, strip_code_fences

logger = logging.getLogger(__name__)

SAMPLE_CHARS = 500


def recover(raw_text: str, expected_key: str) -> dict[str, Any]:
    """Return the first JSON object containing `expected_key` that can be recovered.

    Strategies run in a fixed order (balanced extraction, regex candidates,
    truncation repair) after code fences are stripped; the first success wins.
    Raises RecoveryError carrying a sample of the input when all of them fail.
    """
    text = strip_code_fences(raw_text)
    for name, strategy in STRATEGIES:
        parsed = strategy(text, expected_key)
        if parsed is not None:
            logger.debug("JSON recovered strategy=%s key=%s", name, expected_key)
            return parsed

    logger.warning(
        "JSON recovery failed key=%s length=%d head=%r tail=%r",
        expected_key,
        len(raw_text),
        raw_text[:300],
        raw_text[-300:],
    )
    raise RecoveryError(
        f'Failed to find JSON with "{expected_key}" key in response',
        sample=raw_text[:SAMPLE_CHARS],
    )
