"""
Decoding strategies for model output, from strict to tolerant.

- ``parse_structured``: the content must be exactly a JSON command response
- ``extract_json`` / ``parse_enhanced``: recover JSON buried in prose,
  markdown, terminal escape codes or Unicode noise, repairing trailing commas
- ``parse_text_response``: rebuild a command and explanation from free text
"""

import json
import re
from typing import Optional

from pydantic import ValidationError

from .models import CommandResponse, PLACEHOLDER_EXPLANATION
from ...utils.error_handling import ResponseParseError, JSONExtractionError
from ...utils.logging import PipelineLogger, truncate


# Garbage removal, applied in this order
_ANSI_ESCAPE = re.compile(r'\x1b\[[0-9;?]*[ -/]*[@-~]')
_LINE_SEPARATORS = re.compile('[\u2028\u2029]')
_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f]')
_ELLIPSIS_RUNS = re.compile('[.\u2026]{3,}')
_NON_PRINTABLE = re.compile(r'[^\x20-\x7e\n\t]')

_TRAILING_COMMA_OBJECT = re.compile(r',\s*}')
_TRAILING_COMMA_ARRAY = re.compile(r',\s*]')

_CODE_FENCE = re.compile(r'```(?:bash|sh|shell|zsh)?\n?')
_INLINE_CODE = re.compile(r'`([^`]+)`')
_COMMAND_LABEL = re.compile(r'^\*\*Command\*\*:?\s*', re.IGNORECASE)
_EXPLANATION_LABEL = re.compile(r'^\*\*Explanation\*\*:?\s*', re.IGNORECASE)

_EXPLANATION_MARKERS = ('#', '-', '*')


def _is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def parse_structured(content: Optional[str]) -> CommandResponse:
    """
    Decode content that is expected to be exactly a JSON command response.

    Raises:
        ResponseParseError: on any decode or shape error; no repair is tried
    """
    if content is None:
        raise ResponseParseError("response content is empty")

    try:
        data = json.loads(content)
    except ValueError as e:
        raise ResponseParseError(
            f"failed to unmarshal command response (content: {truncate(content, 200)!r}): {e}"
        ) from e

    if not isinstance(data, dict):
        raise ResponseParseError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return CommandResponse.model_validate(data)
    except ValidationError as e:
        raise ResponseParseError(f"response does not match command schema: {e}") from e


def remove_garbage_patterns(text: str) -> str:
    """Strip escape codes, control characters, ellipsis runs and non-ASCII."""
    text = _ANSI_ESCAPE.sub('', text)
    text = _LINE_SEPARATORS.sub('', text)
    text = _CONTROL_CHARS.sub('', text)
    text = _ELLIPSIS_RUNS.sub('', text)
    text = _NON_PRINTABLE.sub('', text)
    return text.strip()


def attempt_json_repair(text: str) -> str:
    """Trim to the outermost braces and drop trailing commas."""
    text = text.strip()

    if not text.startswith('{'):
        idx = text.find('{')
        if idx >= 0:
            text = text[idx:]

    if not text.endswith('}'):
        idx = text.rfind('}')
        if idx >= 0:
            text = text[:idx + 1]

    text = _TRAILING_COMMA_OBJECT.sub('}', text)
    text = _TRAILING_COMMA_ARRAY.sub(']', text)
    return text


def extract_json(text: str, observer: Optional[PipelineLogger] = None) -> str:
    """
    Recover a JSON document from corrupted model output.

    Tries, in order: the span from the first ``{`` to the last ``}``
    verbatim, the whole text after garbage removal, and the cleaned text
    after brace trimming and trailing-comma repair.

    Raises:
        JSONExtractionError: if none of the candidates is valid JSON
    """
    observer = observer or PipelineLogger(enabled=False)

    first_brace = text.find('{')
    last_brace = text.rfind('}')

    if first_brace >= 0 and last_brace > first_brace:
        candidate = text[first_brace:last_brace + 1]
        if _is_valid_json(candidate):
            observer.log_json_extraction(candidate, text[:first_brace], text[last_brace + 1:])
            return candidate

    cleaned = remove_garbage_patterns(text)
    if _is_valid_json(cleaned):
        observer.debug("JSON extraction: garbage removal succeeded")
        return cleaned

    fixed = attempt_json_repair(cleaned)
    if _is_valid_json(fixed):
        observer.debug("JSON extraction: JSON repair succeeded")
        return fixed

    raise JSONExtractionError("unable to extract valid JSON from response")


def parse_enhanced(text: Optional[str], observer: Optional[PipelineLogger] = None) -> CommandResponse:
    """Extract JSON from ``text`` and decode it strictly."""
    if text is None:
        raise ResponseParseError("response content is empty")
    return parse_structured(extract_json(text, observer))


def _clean_inline(line: str) -> str:
    line = _INLINE_CODE.sub(r'\1', line)
    line = _COMMAND_LABEL.sub('', line)
    line = _EXPLANATION_LABEL.sub('', line)
    return line.strip()


def clean_markdown(text: str) -> str:
    """Remove code fences, inline backticks and leading bold labels."""
    text = _CODE_FENCE.sub('', text)
    text = _INLINE_CODE.sub(r'\1', text)
    text = _COMMAND_LABEL.sub('', text)
    text = _EXPLANATION_LABEL.sub('', text)
    return text


def parse_text_response(text: str) -> CommandResponse:
    """
    Rebuild a command response from loosely formatted text.

    The command is the first non-empty line that is neither a bullet nor a
    comment and has no colon, or the first line of a fenced code block. Later
    lines that are bullets, comments or contain a colon become explanation
    lines; a ``warning:`` line becomes the warning. Never raises: missing
    parts fall back to the first line of the text and a placeholder
    explanation.
    """
    text = text.strip()

    command = ""
    explanation = []
    warning = None
    in_code_block = False

    for i, raw_line in enumerate(text.split('\n')):
        stripped = raw_line.strip()
        if stripped.startswith('```'):
            in_code_block = not in_code_block
            continue

        line = _clean_inline(stripped)
        if not line:
            continue

        if not command:
            if in_code_block:
                command = line
                continue
            if ':' not in line and not line.startswith(_EXPLANATION_MARKERS):
                command = line
                continue

        if not command:
            continue

        if line.lower().startswith('warning:'):
            warning = line[len('warning:'):].strip() or None
        elif line.startswith(_EXPLANATION_MARKERS) or ':' in line:
            cleaned = line
            for marker in _EXPLANATION_MARKERS:
                if cleaned.startswith(marker):
                    cleaned = cleaned[len(marker):]
            cleaned = cleaned.strip()
            if cleaned and i > 0:
                explanation.append(cleaned)

    if not command:
        command = clean_markdown(text).strip().split('\n')[0].strip()

    return CommandResponse(
        command=command,
        explanation=explanation or [PLACEHOLDER_EXPLANATION],
        warning=warning,
    )
