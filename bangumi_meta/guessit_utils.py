"""Guessit as an alternate file name tokenizer for episode numbers."""

import logging
from typing import Any

import guessit
from pydantic import ValidationError

from .models import GuessitData

logger = logging.getLogger(__name__)

# Fields that must hold one value; a list of several means a batch or range
SINGLE_VALUE_FIELDS = {"episode", "season", "year"}


def _plain(value: Any) -> Any:
    """Convert guessit's Path and Language objects to strings."""
    if hasattr(value, "__fspath__"):
        return value.__fspath__()
    if type(value).__name__ in ("Language", "Country"):
        return str(value)
    return value


def parse_guessit_safe(filename: str | None) -> GuessitData:
    """Parse a media file name with guessit without ever raising.

    Multi-valued episode/season/year results (batches, ranges) are dropped
    unless they hold exactly one value.
    """
    if not filename:
        return GuessitData()

    try:
        result = dict(guessit.guessit(filename, {"type": "episode"}))
    except Exception as e:
        logger.warning(f"Guessit failed for {filename}: {e}")
        return GuessitData()

    data: dict[str, Any] = {}
    for key, value in result.items():
        if isinstance(value, list):
            values = [_plain(item) for item in value]
            if key in SINGLE_VALUE_FIELDS:
                data[key] = values[0] if len(values) == 1 else None
            else:
                data[key] = values
        else:
            data[key] = _plain(value)

    try:
        return GuessitData(**data)
    except ValidationError as e:
        logger.warning(f"GuessitData validation failed for {filename}: {e}")
        return GuessitData()
