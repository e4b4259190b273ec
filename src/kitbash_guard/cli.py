#!/usr/bin/env python3
"""
Unified CLI interface for the kitbash guard.

Subcommands:
- kitbash-guard hook: Claude Code hook boundary (stdin JSON in, stdout JSON out)
- kitbash-guard rules: List and validate the active rule table
- kitbash-guard probe: Run the session-start probe and print its context

Usage:
    kitbash-guard hook < hook_input.json
    kitbash-guard hook --event SessionStart < hook_input.json
    kitbash-guard rules --json
    kitbash-guard probe --cwd ~/src/project
    kitbash-guard --version
"""

import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .cli_eval import run_hook
from .domain.models import EventKind, GuardError
from .domain.rules import RuleSet
from .infrastructure.config import ConfigManager
from .infrastructure.logging_config import configure_stderr_logging
from .infrastructure.probes import ContextProbe, ProbeEnvironment


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="kitbash-guard",
        description="Tool-invocation guard and context injector for Claude Code hooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Evaluate a PreToolUse event
  echo '{"tool_name": "Bash", "tool_input": {"command": "jj split -m wip"}}' | kitbash-guard hook

  # Inject session-start context
  echo '{}' | kitbash-guard hook --event SessionStart

Claude Code Hook Integration:
  "hooks": {
    "SessionStart": [
      {"hooks": [{"type": "command", "command": "kitbash-guard hook --event SessionStart"}]}
    ],
    "PreToolUse": [
      {
        "matcher": "Bash|WebSearch|mcp__perplexity__.*",
        "hooks": [{"type": "command", "command": "kitbash-guard hook --event PreToolUse"}]
      }
    ]
  }
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"kitbash-guard {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        metavar="{hook,rules,probe}",
    )

    hook_parser = subparsers.add_parser(
        "hook",
        help="Handle one Claude Code hook event",
        description="""
Read one hook event as JSON from stdin and write one JSON response to stdout.
The process always exits 0; a deny decision is carried in the response.
Malformed input or any internal error yields {"suppressOutput": true}.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    hook_parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to configuration file (default: $KITBASH_GUARD_CONFIG or built-in)",
        metavar="PATH",
    )
    hook_parser.add_argument(
        "-e",
        "--event",
        type=str,
        choices=[kind.value for kind in EventKind],
        help="Event kind (default: hook_event_name from the input, else PreToolUse)",
        metavar="EVENT",
    )
    hook_parser.add_argument(
        "--cwd",
        type=Path,
        help="Workspace directory for session-start probes (default: input cwd)",
        metavar="DIR",
    )

    rules_parser = subparsers.add_parser(
        "rules",
        help="List and validate the active rules",
        description="Print the rule table in evaluation order. Exits 1 if any "
        "pattern fails to compile.",
    )
    rules_parser.add_argument(
        "-c", "--config", type=Path, help="Path to configuration file", metavar="PATH"
    )
    rules_parser.add_argument("--json", action="store_true", help="Output as JSON")

    probe_parser = subparsers.add_parser(
        "probe",
        help="Run the session-start probe",
        description="Inspect the workspace the way a SessionStart hook would and "
        "print the advisory text injected into the agent's context.",
    )
    probe_parser.add_argument(
        "-c", "--config", type=Path, help="Path to configuration file", metavar="PATH"
    )
    probe_parser.add_argument(
        "--cwd", type=Path, help="Workspace directory (default: .)", metavar="DIR"
    )
    probe_parser.add_argument(
        "--json", action="store_true", help="Output the raw probe result as JSON"
    )

    return parser


def cmd_hook(args: argparse.Namespace) -> int:
    """Handle the hook subcommand."""
    run_hook(
        sys.stdin,
        sys.stdout,
        config_file=args.config,
        event_kind=EventKind(args.event) if args.event else None,
        cwd=args.cwd,
    )
    return 0


def cmd_rules(args: argparse.Namespace) -> int:
    """Handle the rules subcommand."""
    config = ConfigManager(args.config).load_config()
    rule_set = RuleSet(config.rules)

    if args.json:
        payload = [
            {
                **rule.model_dump(mode="json", exclude_none=True),
                "valid": rule.id not in rule_set.invalid_patterns,
            }
            for rule in rule_set
        ]
        print(json.dumps(payload, indent=2))
    else:
        if not len(rule_set):
            print("No active rules.")
        for index, rule in enumerate(rule_set, start=1):
            status = "INVALID" if rule.id in rule_set.invalid_patterns else "ok"
            tools = ",".join(rule.tools)
            print(f"{index:>2}. {rule.id} [{rule.type}] {rule.action.value} {tools} ({status})")
            for pattern in rule_set.invalid_patterns.get(rule.id, []):
                print(f"      invalid pattern: {pattern}")

    return 1 if rule_set.invalid_patterns else 0


def cmd_probe(args: argparse.Namespace) -> int:
    """Handle the probe subcommand."""
    config = ConfigManager(args.config).load_config()
    environment = ProbeEnvironment.from_process(
        cwd=args.cwd, version_timeout=config.settings.version_timeout_seconds
    )
    result = ContextProbe(config.session_start, environment).run()

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print(result.to_context() or "(no context)")
    return 0


def main() -> None:
    """Main entry point for the unified CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_stderr_logging(level="WARNING")

    handlers = {
        "hook": cmd_hook,
        "rules": cmd_rules,
        "probe": cmd_probe,
    }

    try:
        exit_code = handlers[args.command](args)
    except GuardError as e:
        print(f"Error: {e.user_message}: {e.message}", file=sys.stderr)
        exit_code = 1
    except KeyboardInterrupt:
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
