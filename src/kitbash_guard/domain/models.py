"""Domain models for the kitbash guard."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class EventKind(str, Enum):
    """Lifecycle points at which the host invokes the guard."""

    SESSION_START = "SessionStart"
    PRE_TOOL_USE = "PreToolUse"


class Verdict(str, Enum):
    """Outcome reported back to the host."""

    ALLOW = "allow"
    DENY = "deny"
    NO_OPINION = "no_opinion"


class RuleAction(str, Enum):
    """What a rule asserts when it fires.

    Inert rules stop evaluation without asserting an opinion.
    """

    DENY = "deny"
    ALLOW = "allow"
    INERT = "inert"


class ProbeStatus(str, Enum):
    """Result of resolving an external tool."""

    INSTALLED = "installed"
    MISSING = "missing"
    UNKNOWN = "unknown"


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    INPUT_MALFORMED = "INPUT_001"
    PROBE_UNAVAILABLE = "PROBE_001"
    RULE_EVALUATION_FAILED = "RULE_EVAL_001"
    INVALID_CONFIGURATION = "CONFIG_001"
    INTERNAL_ERROR = "INTERNAL_001"


class GuardError(Exception):
    """Base exception with user-friendly messages."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str,
        context: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.user_message = user_message
        self.context = context or {}
        super().__init__(message)


class GuardEvent(BaseModel):
    """One event delivered to the guard on stdin.

    The raw payload is kept so rules can select the text they inspect.
    """

    kind: EventKind
    tool_name: str | None = None
    command_text: str | None = None
    query: str | None = None
    cwd: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class Decision(BaseModel):
    """Verdict for a single event, serialized immediately and discarded."""

    verdict: Verdict
    reason: str | None = None
    suppress_terminal_output: bool = False
    additional_context: str | None = None
    rule_id: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def require_deny_reason(self) -> "Decision":
        """Deny decisions must explain the corrected command form."""
        if self.verdict == Verdict.DENY and not self.reason:
            raise ValueError("Deny decisions require a reason")
        return self

    @classmethod
    def no_opinion(cls, additional_context: str | None = None) -> "Decision":
        return cls(
            verdict=Verdict.NO_OPINION,
            suppress_terminal_output=True,
            additional_context=additional_context or None,
        )

    @classmethod
    def deny(cls, reason: str, rule_id: str | None = None) -> "Decision":
        return cls(verdict=Verdict.DENY, reason=reason, rule_id=rule_id)

    @classmethod
    def allow(cls, reason: str | None = None, rule_id: str | None = None) -> "Decision":
        return cls(
            verdict=Verdict.ALLOW,
            reason=reason,
            suppress_terminal_output=True,
            rule_id=rule_id,
        )


class ContextProbeResult(BaseModel):
    """Read-only snapshot of the workspace taken at session start."""

    tool_availability: dict[str, ProbeStatus] = Field(default_factory=dict)
    tool_versions: dict[str, str] = Field(default_factory=dict)
    repository_markers: dict[str, bool] = Field(default_factory=dict)
    language_counts: dict[str, int] = Field(default_factory=dict)
    command_output: dict[str, list[str]] = Field(default_factory=dict)
    advisories: list[str] = Field(default_factory=list)
    setup_required: list[str] = Field(default_factory=list)

    def to_context(self) -> str:
        """Concatenate advisory lines and remediation steps into one blob."""
        parts = list(self.advisories)
        if self.setup_required:
            steps = "\n".join(f"- {step}" for step in self.setup_required)
            parts.append(f"\n**Setup required:**\n{steps}")
        return "\n".join(parts).strip()
