"""
Pydantic V2 models for the Claude Code hook envelopes.

These models describe the JSON documents exchanged with the host runtime:
the event read from stdin and the response written to stdout. Input models
are lenient (unknown fields are kept, missing fields default) because the
guard must never block the host on a schema mismatch.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class HookEventName(str, Enum):
    """Hook event types handled by the guard."""

    PRE_TOOL_USE = "PreToolUse"
    SESSION_START = "SessionStart"


class PermissionDecision(str, Enum):
    """Permission decisions for PreToolUse hooks."""

    DENY = "deny"


# Input models


def _drop_non_string(value: Any) -> Any:
    """Informational fields never decide anything; a bad value is dropped."""
    return value if value is None or isinstance(value, str) else None


class HookInputBase(BaseModel):
    """Fields common to every hook input."""

    session_id: str | None = Field(default=None, description="Session identifier")
    transcript_path: str | None = Field(
        default=None, description="Path to conversation JSON"
    )
    cwd: str | None = Field(default=None, description="Current working directory")
    hook_event_name: HookEventName | None = Field(
        default=None, description="Type of hook event"
    )

    model_config = {"extra": "allow"}

    @field_validator("session_id", "transcript_path", "cwd", mode="before")
    @classmethod
    def drop_odd_metadata(cls, v: Any) -> Any:
        return _drop_non_string(v)


class ToolInputData(BaseModel):
    """Tool parameters; only the fields the guard inspects are named."""

    command: str | None = None
    query: str | None = None
    description: str | None = None

    model_config = {"extra": "allow"}

    @field_validator("description", mode="before")
    @classmethod
    def drop_odd_description(cls, v: Any) -> Any:
        return _drop_non_string(v)


class PreToolUseInput(HookInputBase):
    """Input model for PreToolUse hook events."""

    tool_name: str | None = Field(default=None, description="Tool about to run")
    tool_input: ToolInputData = Field(
        default_factory=ToolInputData, description="Parameters for the tool call"
    )
    query: str | None = Field(
        default=None, description="Top-level query supplied by some search tools"
    )


class SessionStartInput(HookInputBase):
    """Input model for SessionStart hook events."""

    source: str | None = Field(
        default=None, description="startup, resume, clear or compact"
    )

    @field_validator("source", mode="before")
    @classmethod
    def drop_odd_source(cls, v: Any) -> Any:
        return _drop_non_string(v)


HookInput = PreToolUseInput | SessionStartInput


# Output models


class HookSpecificOutput(BaseModel):
    """Event-specific part of a hook response."""

    hook_event_name: HookEventName = Field(alias="hookEventName")
    additional_context: str | None = Field(
        default=None,
        alias="additionalContext",
        description="Advisory text injected into the agent's context",
    )

    model_config = {"populate_by_name": True}


class PreToolUseHookSpecificOutput(HookSpecificOutput):
    """Hook-specific output for PreToolUse events."""

    hook_event_name: Literal["PreToolUse"] = Field(
        default="PreToolUse", alias="hookEventName"
    )
    permission_decision: PermissionDecision | None = Field(
        default=None, alias="permissionDecision"
    )
    permission_decision_reason: str | None = Field(
        default=None,
        alias="permissionDecisionReason",
        description="Reason for the permission decision (fed back to the agent)",
    )


class SessionStartHookSpecificOutput(HookSpecificOutput):
    """Hook-specific output for SessionStart events."""

    hook_event_name: Literal["SessionStart"] = Field(
        default="SessionStart", alias="hookEventName"
    )


class HookOutput(BaseModel):
    """Top-level response envelope written to stdout."""

    suppress_output: bool | None = Field(
        default=None,
        alias="suppressOutput",
        description="Hide the hook output from the human-visible terminal",
    )
    hook_specific_output: (
        PreToolUseHookSpecificOutput | SessionStartHookSpecificOutput | None
    ) = Field(default=None, alias="hookSpecificOutput")

    model_config = {"populate_by_name": True}

    def to_json_dict(self) -> dict[str, Any]:
        """Dump without null fields, using the host's camelCase names."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def validate_hook_input(
    data: dict[str, Any], event_type: HookEventName | None = None
) -> HookInput:
    """
    Validate and parse hook input data into the appropriate model.

    Args:
        data: Raw hook input data
        event_type: Explicit event type; falls back to ``hook_event_name``
            in the data, then to PreToolUse

    Returns:
        Parsed hook input model

    Raises:
        ValueError: If the input is not an object or the event is unsupported
    """
    if not isinstance(data, dict):
        raise ValueError("Hook input must be a JSON object")

    if event_type is None:
        event_name = data.get("hook_event_name") or HookEventName.PRE_TOOL_USE.value
        try:
            event_type = HookEventName(event_name)
        except ValueError:
            raise ValueError(f"Unsupported hook event type: {event_name}") from None

    model_map: dict[HookEventName, type[HookInputBase]] = {
        HookEventName.PRE_TOOL_USE: PreToolUseInput,
        HookEventName.SESSION_START: SessionStartInput,
    }

    payload = {k: v for k, v in data.items() if k != "hook_event_name"}
    model = model_map[event_type].model_validate(payload)
    return model.model_copy(update={"hook_event_name": event_type})
