"""Parsing helpers for JSON Lines content."""

import json
import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


def parse_jsonl_to_models(
    content: str,
    model_class: type[T],
    *,
    strict: bool = False
) -> list[T]:
    """
    Parse JSONL content into a list of Pydantic models.

    Args:
        content: One JSON object per line; blank lines are ignored
        model_class: Model to validate each line against
        strict: Raise on the first bad line instead of skipping it

    Returns:
        Parsed models in file order
    """
    models = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue

        try:
            models.append(model_class.model_validate(json.loads(line)))
        except (json.JSONDecodeError, ValidationError) as e:
            if strict:
                raise
            logger.debug(f"Skipping unparseable JSONL line {line_number}: {e}")

    return models
