#!/usr/bin/env python3
"""
Hook entry point for the kitbash guard.

Reads one Claude Code hook event as JSON from stdin, classifies it (PreToolUse)
or probes the workspace (SessionStart), and writes one JSON response to
stdout.

Usage:
    echo '{"tool_name": "Bash", "tool_input": {"command": "jj describe -m x"}}' \\
        | kitbash-guard-hook

Exit Codes:
    0: Always. The JSON response, not the exit code, tells the host whether
       to block. Any internal failure produces ``{"suppressOutput": true}``.
"""

import json
import sys
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, TextIO

from .domain.classifier import InvocationClassifier
from .domain.hook_integration import HookIntegrationService, process_hook_input
from .domain.models import Decision, ErrorCode, EventKind, GuardError, GuardEvent
from .domain.rules import RuleSet
from .infrastructure.config import ConfigManager, GuardConfig
from .infrastructure.error_handler import ErrorHandler
from .infrastructure.logging_config import configure_stderr_logging
from .infrastructure.probes import ProbeEnvironment, probe_session

FAIL_OPEN_RESPONSE: dict[str, Any] = {"suppressOutput": True}


class GuardEvaluator:
    """Turns one raw hook document into one hook response."""

    def __init__(
        self,
        config: GuardConfig,
        clock: Callable[[], datetime] | None = None,
        environment: ProbeEnvironment | None = None,
    ) -> None:
        self.config = config
        self.hook_integration = HookIntegrationService()
        self.error_handler = ErrorHandler()
        self.rule_set = RuleSet(
            [rule for rule in config.rules if EventKind.PRE_TOOL_USE in rule.events]
        )
        self.classifier = InvocationClassifier(self.rule_set, clock=clock)
        self.environment = environment

    def parse_event(
        self, raw_text: str, event_kind: EventKind | None = None
    ) -> GuardEvent:
        """Decode stdin text into a guard event.

        Raises:
            GuardError: If the text is empty, not JSON, or not a hook event
        """
        if not raw_text.strip():
            raise GuardError(
                ErrorCode.INPUT_MALFORMED,
                "No input data received on stdin",
                "The hook received no input",
            )
        try:
            raw_input = json.loads(raw_text)
        except json.JSONDecodeError as e:
            raise GuardError(
                ErrorCode.INPUT_MALFORMED,
                f"Invalid JSON input: {e}",
                "The hook input is not valid JSON",
            ) from e

        return process_hook_input(raw_input, event_kind, self.hook_integration)

    def decide(self, event: GuardEvent) -> Decision:
        if event.kind == EventKind.SESSION_START:
            environment = self.environment or ProbeEnvironment.from_process(
                cwd=self._probe_cwd(event),
                version_timeout=self.config.settings.version_timeout_seconds,
            )
            return probe_session(self.config.session_start, environment)
        return self.classifier.classify(event)

    def evaluate_text(
        self, raw_text: str, event_kind: EventKind | None = None
    ) -> dict[str, Any]:
        """Evaluate one stdin document; never raises."""
        kind = event_kind
        try:
            event = self.parse_event(raw_text, event_kind)
            kind = event.kind
            decision = self.decide(event)
            return self.hook_integration.format_decision(decision, kind)
        except Exception as e:
            decision = self.error_handler.handle_error(e, kind)
            return self.hook_integration.format_decision(
                decision, kind or EventKind.PRE_TOOL_USE
            )

    @staticmethod
    def _probe_cwd(event: GuardEvent) -> Path | None:
        if event.cwd and Path(event.cwd).is_dir():
            return Path(event.cwd)
        return None


def run_hook(
    stdin: TextIO,
    stdout: TextIO,
    config_file: str | Path | None = None,
    event_kind: EventKind | None = None,
    cwd: str | Path | None = None,
) -> None:
    """Fail-open boundary: read stdin, write exactly one JSON document."""
    configure_stderr_logging()
    try:
        raw_text = stdin.read()
        config = ConfigManager(config_file).load_config()
        configure_stderr_logging(
            level=config.settings.log_level, json_logs=config.settings.json_logs
        )
        environment = (
            ProbeEnvironment.from_process(
                cwd=cwd, version_timeout=config.settings.version_timeout_seconds
            )
            if cwd
            else None
        )
        evaluator = GuardEvaluator(config, environment=environment)
        response = evaluator.evaluate_text(raw_text, event_kind)
    except Exception as e:
        ErrorHandler().handle_error(e, event_kind)
        response = FAIL_OPEN_RESPONSE

    stdout.write(json.dumps(response, separators=(",", ":")) + "\n")
    stdout.flush()


def main() -> None:
    """Main entry point for the hook process."""
    try:
        run_hook(sys.stdin, sys.stdout)
    except Exception as e:
        # Writing the response itself failed; there is nothing left to report.
        print(f"kitbash-guard: {e}", file=sys.stderr)
    sys.exit(0)


if __name__ == "__main__":
    main()
