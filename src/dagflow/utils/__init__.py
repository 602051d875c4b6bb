"""Shared utility functions for dagflow."""

from .atomic_io import atomic_write_model, atomic_write_text
from .rich_logging import ContextLogger, setup_rich_logging
from .stream_parser import parse_jsonl_to_models
from .validators import validate_identifier

__all__ = [
    # Atomic I/O
    "atomic_write_model",
    "atomic_write_text",
    # Logging
    "ContextLogger",
    "setup_rich_logging",
    # Stream parsing
    "parse_jsonl_to_models",
    # Validation
    "validate_identifier",
]
