"""Kitbash Guard - tool-invocation guard and context injector for AI agents.

This package runs as a Claude Code hook. At session start it inspects the
workspace and injects advisory context; before each tool invocation it
classifies the call against an ordered rule table and denies known-harmful
command forms with a corrective message.
"""

__version__ = "0.1.0"

from .domain.models import (
    ContextProbeResult,
    Decision,
    ErrorCode,
    EventKind,
    GuardError,
    GuardEvent,
    Verdict,
)

__all__ = [
    "__version__",
    "ContextProbeResult",
    "Decision",
    "ErrorCode",
    "EventKind",
    "GuardError",
    "GuardEvent",
    "Verdict",
]
