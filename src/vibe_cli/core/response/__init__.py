"""
Command response model and the decoding strategies for model output.

Usage:
    from vibe_cli.core.response import parse_enhanced, validate_response

    response = parse_enhanced(raw_model_output)
    validate_response(response)
"""

from .models import (
    CommandResponse,
    SafetyLevel,
    PLACEHOLDER_EXPLANATION,
    SCHEMA_NAME,
    validate_response,
    normalize_response,
    get_json_schema,
)

from .parser import (
    parse_structured,
    parse_enhanced,
    parse_text_response,
    extract_json,
    remove_garbage_patterns,
    attempt_json_repair,
    clean_markdown,
)

__all__ = [
    "CommandResponse",
    "SafetyLevel",
    "PLACEHOLDER_EXPLANATION",
    "SCHEMA_NAME",
    "validate_response",
    "normalize_response",
    "get_json_schema",
    "parse_structured",
    "parse_enhanced",
    "parse_text_response",
    "extract_json",
    "remove_garbage_patterns",
    "attempt_json_repair",
    "clean_markdown",
]
