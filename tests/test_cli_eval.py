"""Tests for the hook entry point."""

import json
from io import StringIO
from unittest.mock import patch

import pytest

from kitbash_guard.cli_eval import FAIL_OPEN_RESPONSE, GuardEvaluator, main, run_hook
from kitbash_guard.domain.models import EventKind
from kitbash_guard.infrastructure.config import SessionStartConfig
from kitbash_guard.infrastructure.probes import ProbeEnvironment


def run(stdin_text: str, **kwargs) -> tuple[dict, str]:
    stdout = StringIO()
    run_hook(StringIO(stdin_text), stdout, **kwargs)
    text = stdout.getvalue()
    return json.loads(text), text


class TestGuardEvaluator:
    """Test cases for GuardEvaluator."""

    @pytest.fixture
    def evaluator(self, default_config, fixed_clock, tmp_path):
        environment = ProbeEnvironment(cwd=tmp_path, which=lambda name: None)
        return GuardEvaluator(default_config, clock=fixed_clock, environment=environment)

    def test_describe_denied(self, evaluator):
        raw = json.dumps(
            {"tool_name": "Bash", "tool_input": {"command": 'jj describe -m "message"'}}
        )
        result = evaluator.evaluate_text(raw)

        hook_output = result["hookSpecificOutput"]
        assert hook_output["hookEventName"] == "PreToolUse"
        assert hook_output["permissionDecision"] == "deny"
        assert "jj split ." in hook_output["permissionDecisionReason"]
        assert "suppressOutput" not in result

    def test_describe_with_revision_passes(self, evaluator):
        raw = json.dumps(
            {"tool_name": "Bash", "tool_input": {"command": 'jj describe -r abc123 -m "message"'}}
        )
        assert evaluator.evaluate_text(raw) == {"suppressOutput": True}

    def test_stale_search_denied(self, evaluator):
        raw = json.dumps(
            {"tool_name": "WebSearch", "tool_input": {"query": "framework patterns 2023"}}
        )
        reason = evaluator.evaluate_text(raw)["hookSpecificOutput"]["permissionDecisionReason"]
        assert "'2023'" in reason
        assert "2026" in reason

    def test_historical_search_passes(self, evaluator):
        raw = json.dumps(
            {"tool_name": "WebSearch", "tool_input": {"query": "historical framework evolution 2023"}}
        )
        assert evaluator.evaluate_text(raw) == {"suppressOutput": True}

    def test_odd_session_fields_still_denied(self, evaluator):
        raw = json.dumps(
            {
                "tool_name": "Bash",
                "session_id": 5,
                "cwd": None,
                "transcript_path": ["x"],
                "tool_input": {"command": "jj describe -m x", "description": {"k": 1}},
            }
        )
        result = evaluator.evaluate_text(raw)
        assert result["hookSpecificOutput"]["permissionDecision"] == "deny"

    @pytest.mark.parametrize(
        "raw",
        ["", "   \n", "{not json", "[1, 2]", '"string"', '{"tool_name": 42}', "null"],
    )
    def test_malformed_input_fails_open(self, evaluator, raw):
        assert evaluator.evaluate_text(raw) == {"suppressOutput": True}

    def test_unknown_tool_no_opinion(self, evaluator):
        raw = json.dumps({"tool_name": "Read", "tool_input": {"file_path": "/etc/hosts"}})
        assert evaluator.evaluate_text(raw) == {"suppressOutput": True}

    def test_session_start_context(self, evaluator):
        raw = json.dumps({"hook_event_name": "SessionStart", "source": "startup"})
        result = evaluator.evaluate_text(raw)

        assert result["suppressOutput"] is True
        specific = result["hookSpecificOutput"]
        assert specific["hookEventName"] == "SessionStart"
        assert "**jj**: jj not installed" in specific["additionalContext"]

    def test_event_kind_override(self, evaluator):
        result = evaluator.evaluate_text("{}", EventKind.SESSION_START)
        assert result["hookSpecificOutput"]["hookEventName"] == "SessionStart"

    def test_session_start_uses_event_cwd(self, default_config, tmp_path):
        (tmp_path / ".beads").mkdir()
        evaluator = GuardEvaluator(default_config)
        event = evaluator.parse_event(
            json.dumps({"hook_event_name": "SessionStart", "cwd": str(tmp_path)})
        )

        assert evaluator._probe_cwd(event) == tmp_path

        config = default_config.model_copy(
            update={"session_start": SessionStartConfig(sections=[default_config.session_start.sections[1]])}
        )
        context = GuardEvaluator(config).decide(event).additional_context
        assert "beads initialized" in context

    def test_missing_cwd_falls_back(self, default_config):
        evaluator = GuardEvaluator(default_config)
        event = evaluator.parse_event(
            json.dumps({"hook_event_name": "SessionStart", "cwd": "/definitely/not/here"})
        )
        assert evaluator._probe_cwd(event) is None

    def test_internal_error_fails_open(self, evaluator, monkeypatch):
        def boom(event):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(evaluator.classifier, "classify", boom)
        raw = json.dumps({"tool_name": "Bash", "tool_input": {"command": "jj split -m x"}})
        assert evaluator.evaluate_text(raw) == {"suppressOutput": True}

    def test_session_start_error_fails_open(self, evaluator, monkeypatch):
        def unreadable(config, environment):
            raise OSError("disk gone")

        monkeypatch.setattr("kitbash_guard.cli_eval.probe_session", unreadable)
        result = evaluator.evaluate_text("{}", EventKind.SESSION_START)
        assert result == {"suppressOutput": True}


class TestRunHook:
    """The stdin/stdout boundary."""

    def test_single_compact_document(self, tmp_path):
        config_file = tmp_path / "guard.yaml"
        config_file.write_text(
            "rules:\n"
            "  - id: no-split\n"
            "    pattern: 'jj split -m'\n"
            "    reason: Use jj split . -m\n"
        )
        result, text = run(
            json.dumps({"tool_name": "Bash", "tool_input": {"command": "jj split -m x"}}),
            config_file=config_file,
        )

        assert text.endswith("\n")
        assert text.count("\n") == 1
        assert result["hookSpecificOutput"]["permissionDecisionReason"] == "Use jj split . -m"

    def test_empty_stdin(self):
        result, _ = run("")
        assert result == FAIL_OPEN_RESPONSE

    def test_broken_config_fails_open(self, tmp_path):
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("rules: [")
        result, _ = run(
            json.dumps({"tool_name": "Bash", "tool_input": {"command": "jj split -m x"}}),
            config_file=config_file,
        )
        assert result == FAIL_OPEN_RESPONSE

    def test_explicit_cwd_for_session_start(self, tmp_path):
        config_file = tmp_path / "guard.yaml"
        config_file.write_text(
            "session_start:\n"
            "  sections:\n"
            "    - name: beads\n"
            "      markers:\n"
            "        - name: beads\n"
            "          paths: [.beads]\n"
            "          present: beads initialized\n"
            "          absent: beads not initialized\n"
        )
        (tmp_path / ".beads").mkdir()

        result, _ = run(
            "{}", config_file=config_file, event_kind=EventKind.SESSION_START, cwd=tmp_path
        )
        assert result["hookSpecificOutput"]["additionalContext"] == "**beads**: beads initialized."

    def test_logs_never_reach_stdout(self, tmp_path, capsys):
        config_file = tmp_path / "guard.yaml"
        config_file.write_text(
            "settings:\n"
            "  log_level: DEBUG\n"
            "rules:\n"
            "  - id: broken\n"
            "    pattern: '('\n"
            "    reason: never\n"
        )
        stdout = StringIO()
        run_hook(
            StringIO(json.dumps({"tool_name": "Bash", "tool_input": {"command": "("}})),
            stdout,
            config_file=config_file,
        )

        assert json.loads(stdout.getvalue()) == FAIL_OPEN_RESPONSE
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "broken" in captured.err

    def test_reads_config_from_environment(self, tmp_path, monkeypatch):
        config_file = tmp_path / "guard.yaml"
        config_file.write_text("rules: []\n")
        monkeypatch.setenv("KITBASH_GUARD_CONFIG", str(config_file))

        result, _ = run(json.dumps({"tool_name": "Bash", "tool_input": {"command": "jj split -m x"}}))
        assert result == FAIL_OPEN_RESPONSE


class TestMain:
    """Process entry point."""

    def test_always_exits_zero_on_deny(self, capsys):
        stdin = json.dumps({"tool_name": "Bash", "tool_input": {"command": 'jj describe -m "x"'}})
        with patch("sys.stdin", StringIO(stdin)):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["hookSpecificOutput"]["permissionDecision"] == "deny"

    @pytest.mark.parametrize("stdin", ["", "garbage", "{}"])
    def test_always_exits_zero_on_bad_input(self, capsys, stdin):
        with patch("sys.stdin", StringIO(stdin)):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
        assert json.loads(capsys.readouterr().out) == {"suppressOutput": True}
