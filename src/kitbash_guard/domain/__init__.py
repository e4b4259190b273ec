"""Domain models and classification logic for the kitbash guard.

This module contains the event and decision value objects, the rule table,
and the Claude Code hook wire models.
"""

# Claude Code integration
from .claude_code_models import (
    HookEventName,
    HookInput,
    HookOutput,
    PermissionDecision,
    PreToolUseHookSpecificOutput,
    PreToolUseInput,
    SessionStartHookSpecificOutput,
    SessionStartInput,
    validate_hook_input,
)
from .classifier import InvocationClassifier
from .hook_integration import HookIntegrationService
from .models import (
    ContextProbeResult,
    Decision,
    ErrorCode,
    EventKind,
    GuardError,
    GuardEvent,
    ProbeStatus,
    RuleAction,
    Verdict,
)
from .pattern_engine import PatternEngine
from .rules import PatternRule, Rule, RuleSet, StaleYearRule

__all__ = [
    "ContextProbeResult",
    "Decision",
    "ErrorCode",
    "EventKind",
    "GuardError",
    "GuardEvent",
    "ProbeStatus",
    "RuleAction",
    "Verdict",
    "InvocationClassifier",
    "PatternEngine",
    "PatternRule",
    "Rule",
    "RuleSet",
    "StaleYearRule",
    # Claude Code integration
    "HookEventName",
    "HookInput",
    "HookOutput",
    "PermissionDecision",
    "PreToolUseHookSpecificOutput",
    "PreToolUseInput",
    "SessionStartHookSpecificOutput",
    "SessionStartInput",
    "HookIntegrationService",
    "validate_hook_input",
]
