"""
Hook integration service for converting between Claude Code envelopes and
guard domain models.

Inbound, raw stdin JSON becomes a ``GuardEvent``. Outbound, a ``Decision``
becomes the exact envelope the host expects for the event kind, without
fields the host does not expect and without null values.
"""

from typing import Any

import structlog
from pydantic import ValidationError

from .claude_code_models import (
    HookEventName,
    HookInput,
    HookOutput,
    PermissionDecision,
    PreToolUseHookSpecificOutput,
    PreToolUseInput,
    SessionStartHookSpecificOutput,
    validate_hook_input,
)
from .models import Decision, ErrorCode, EventKind, GuardError, GuardEvent, Verdict


class HookIntegrationService:
    """Service for integrating Claude Code hooks with guard domain models."""

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    def parse_hook_input(
        self, raw_input: Any, event_kind: EventKind | None = None
    ) -> HookInput:
        """
        Parse and validate raw hook input data.

        Args:
            raw_input: Decoded JSON document from stdin
            event_kind: Explicit event kind, overriding ``hook_event_name``

        Returns:
            Validated hook input model

        Raises:
            GuardError: If the input is not a usable hook event
        """
        event_type = HookEventName(event_kind.value) if event_kind else None
        try:
            return validate_hook_input(raw_input, event_type)
        except (ValueError, ValidationError) as e:
            raise GuardError(
                code=ErrorCode.INPUT_MALFORMED,
                message=f"Invalid hook input: {e}",
                user_message="The hook input data is malformed or incomplete",
            ) from e

    def convert_to_event(
        self, hook_input: HookInput, raw_input: dict[str, Any]
    ) -> GuardEvent:
        """Build the immutable event the classifier and probes consume."""
        kind = EventKind(hook_input.hook_event_name.value)

        if isinstance(hook_input, PreToolUseInput):
            return GuardEvent(
                kind=kind,
                tool_name=hook_input.tool_name,
                command_text=hook_input.tool_input.command,
                query=hook_input.tool_input.query or hook_input.query,
                cwd=hook_input.cwd,
                payload=raw_input,
            )

        return GuardEvent(kind=kind, cwd=hook_input.cwd, payload=raw_input)

    def format_decision(
        self, decision: Decision, event_kind: EventKind
    ) -> dict[str, Any]:
        """
        Serialize a decision into the host's JSON envelope.

        Args:
            decision: Guard decision
            event_kind: Lifecycle point the decision answers

        Returns:
            JSON-ready dictionary for stdout
        """
        return self.build_output(decision, event_kind).to_json_dict()

    def build_output(self, decision: Decision, event_kind: EventKind) -> HookOutput:
        context = decision.additional_context or None

        if event_kind == EventKind.SESSION_START:
            return HookOutput(
                suppressOutput=True,
                hookSpecificOutput=(
                    SessionStartHookSpecificOutput(additionalContext=context)
                    if context
                    else None
                ),
            )

        if decision.verdict == Verdict.DENY:
            return HookOutput(
                suppressOutput=True if decision.suppress_terminal_output else None,
                hookSpecificOutput=PreToolUseHookSpecificOutput(
                    permissionDecision=PermissionDecision.DENY,
                    permissionDecisionReason=decision.reason,
                    additionalContext=context,
                ),
            )

        # Allow and NoOpinion share the silent shape.
        return HookOutput(
            suppressOutput=True,
            hookSpecificOutput=(
                PreToolUseHookSpecificOutput(additionalContext=context)
                if context
                else None
            ),
        )

    def parse_hook_output(
        self, envelope: dict[str, Any], event_kind: EventKind
    ) -> Decision:
        """Recover a decision from an envelope produced by ``format_decision``."""
        output = HookOutput.model_validate(envelope)
        specific = output.hook_specific_output
        context = specific.additional_context if specific else None

        if (
            event_kind == EventKind.PRE_TOOL_USE
            and isinstance(specific, PreToolUseHookSpecificOutput)
            and specific.permission_decision == PermissionDecision.DENY
        ):
            return Decision(
                verdict=Verdict.DENY,
                reason=specific.permission_decision_reason,
                suppress_terminal_output=bool(output.suppress_output),
                additional_context=context,
            )

        return Decision(
            verdict=Verdict.NO_OPINION,
            suppress_terminal_output=bool(output.suppress_output),
            additional_context=context,
        )


# Convenience functions for direct usage


def process_hook_input(
    raw_input: Any,
    event_kind: EventKind | None = None,
    integration_service: HookIntegrationService | None = None,
) -> GuardEvent:
    """
    Parse raw hook input straight into a guard event.

    Raises:
        GuardError: If the input is malformed
    """
    service = integration_service or HookIntegrationService()
    hook_input = service.parse_hook_input(raw_input, event_kind)
    return service.convert_to_event(hook_input, raw_input)
