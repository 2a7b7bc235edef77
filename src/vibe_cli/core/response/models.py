"""
Command response model, structural validation, and the JSON schema sent
with structured-output requests.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from ...utils.error_handling import ResponseValidationError

PLACEHOLDER_EXPLANATION = "Generated command"


class SafetyLevel(str, Enum):
    """Advisory risk tag attached by the model."""
    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"


class CommandResponse(BaseModel):
    """A generated shell command and its line-by-line explanation."""

    model_config = ConfigDict(frozen=True)

    command: str
    explanation: Tuple[str, ...] = ()
    warning: Optional[str] = None
    alternatives: Optional[Tuple[str, ...]] = None
    safety_level: Optional[SafetyLevel] = None

    @field_validator('warning', mode='before')
    @classmethod
    def blank_warning_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('safety_level', mode='before')
    @classmethod
    def unknown_safety_level_is_none(cls, v):
        """The tag is advisory; an unrecognised value must not sink the decode."""
        if v is None:
            return None
        try:
            return SafetyLevel(str(v).strip().lower())
        except ValueError:
            return None

    @property
    def is_fallback(self) -> bool:
        """True for the synthetic response produced when every strategy failed."""
        return not self.command and bool(self.warning)

    def to_wire(self) -> Dict[str, Any]:
        """Serialise without unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


def validate_response(response: CommandResponse) -> None:
    """
    Check the structural contract of a decoded response.

    Raises:
        ResponseValidationError: if the command is empty or whitespace, the
            explanation is empty, or any explanation line is blank
    """
    if response.command == "":
        raise ResponseValidationError("command field is empty")

    if not response.command.strip():
        raise ResponseValidationError("command contains only whitespace")

    if not response.explanation:
        raise ResponseValidationError("explanation field is empty or missing")

    for i, line in enumerate(response.explanation):
        if not line.strip():
            raise ResponseValidationError(f"explanation[{i}] is empty or contains only whitespace")


def normalize_response(response: CommandResponse) -> CommandResponse:
    """
    Repair cosmetic defects for lenient validation.

    Blank explanation lines are dropped and an empty explanation gets the
    placeholder line. The command itself is only stripped, never invented.
    """
    explanation = tuple(line.strip() for line in response.explanation if line.strip())
    return response.model_copy(update={
        "command": response.command.strip(),
        "explanation": explanation or (PLACEHOLDER_EXPLANATION,),
    })


SCHEMA_NAME = "shell_command_response"


def get_json_schema() -> Dict[str, Any]:
    """JSON schema describing ``CommandResponse`` for structured output."""
    return {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The shell command that accomplishes the user's request",
            },
            "explanation": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Array of explanation lines, each describing a part of the command",
            },
            "warning": {
                "type": "string",
                "description": "Optional warning message if the command is potentially dangerous",
            },
            "alternatives": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Optional alternative commands that accomplish the same goal",
            },
            "safety_level": {
                "type": "string",
                "enum": [level.value for level in SafetyLevel],
                "description": "Safety level: safe, caution, or dangerous",
            },
        },
        "required": ["command", "explanation"],
        "additionalProperties": False,
    }
