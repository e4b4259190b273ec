"""Read-only workspace inspection run at session start.

Each configured section produces at most one advisory entry for the agent's
context: a status line, optionally followed by blocks of command output.
Checks never write anything and never abort each other: a check that cannot
complete is recorded as missing or unknown.
"""

import os
import shutil
import subprocess
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import structlog

from ..domain.models import ContextProbeResult, Decision, ProbeStatus
from ..domain.pattern_engine import PatternEngine
from .config import (
    CommandCheckConfig,
    LanguageConfig,
    MarkerCheckConfig,
    ProbeSectionConfig,
    SessionStartConfig,
    ToolCheckConfig,
)

MAX_MARKER_READ_BYTES = 1_000_000

CommandRunner = Callable[[str, list[str], float], str | None]

MarkerState = Literal["found", "content_mismatch", "missing"]


def _capture(
    executable: str, args: list[str], timeout: float
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [executable, *args],
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
        stdin=subprocess.DEVNULL,
    )


def run_version_command(executable: str, args: list[str], timeout: float) -> str | None:
    """Return the first line a tool prints for its version query."""
    completed = _capture(executable, args, timeout)
    lines = (completed.stdout or completed.stderr or "").strip().splitlines()
    return lines[0].strip() if lines else None


def run_listing_command(executable: str, args: list[str], timeout: float) -> str | None:
    """Return stdout of a successful command, or None if it exits non-zero."""
    completed = _capture(executable, args, timeout)
    if completed.returncode != 0:
        return None
    return completed.stdout


@dataclass(frozen=True)
class ProbeEnvironment:
    """Everything the probe reads from the outside world.

    Tests replace ``which`` and the command runners and point ``cwd`` at a
    temporary directory.
    """

    cwd: Path
    which: Callable[[str], str | None] = shutil.which
    run_version: CommandRunner = run_version_command
    run_listing: CommandRunner = run_listing_command
    version_timeout: float = 2.0

    @classmethod
    def from_process(
        cls, cwd: str | Path | None = None, version_timeout: float = 2.0
    ) -> "ProbeEnvironment":
        return cls(
            cwd=Path(cwd) if cwd else Path.cwd(),
            version_timeout=version_timeout,
        )


class ContextProbe:
    """Runs the configured session-start checks against one environment."""

    def __init__(
        self,
        config: SessionStartConfig,
        environment: ProbeEnvironment,
        pattern_engine: PatternEngine | None = None,
    ):
        self.config = config
        self.environment = environment
        self.pattern_engine = pattern_engine or PatternEngine()
        self.logger = structlog.get_logger(__name__)
        self._extension_counts: Counter[str] | None = None

    def run(self) -> ContextProbeResult:
        result = ContextProbeResult()
        for section in self.config.sections:
            if not section.enabled:
                continue
            try:
                self._probe_section(section, result)
            except Exception as e:
                self.logger.warning(
                    "Probe section failed", section=section.name, error=str(e)
                )
        return result

    def _probe_section(
        self, section: ProbeSectionConfig, result: ContextProbeResult
    ) -> None:
        statuses: list[str] = []
        tool_remediation: list[str] = []
        marker_remediation: list[str] = []

        marker_texts: list[str] = []
        markers_found = False
        for marker in section.markers:
            state = self.marker_state(marker)
            found = state == "found"
            result.repository_markers[marker.name] = found
            markers_found = markers_found or found
            text = marker.present if found else marker.absent
            if text:
                marker_texts.append(text)
            if marker.remediation and self._needs_remediation(marker, state):
                marker_remediation.append(marker.remediation)

        if section.when == "marker_present" and not markers_found:
            return

        for tool in section.tools:
            status, version = self.check_tool(tool)
            result.tool_availability[tool.name] = status
            if version:
                result.tool_versions[tool.name] = version
            statuses.append(self._tool_status_text(tool.name, status, version))
            if status == ProbeStatus.MISSING and tool.install_hint:
                tool_remediation.append(tool.install_hint)

        statuses.extend(marker_texts)

        if section.languages:
            counts = self.count_languages(section.languages)
            result.language_counts.update(counts)
            detected = [f"{name} ({count})" for name, count in counts.items() if count]
            if not detected:
                return
            statuses.extend(detected)

        line = f"**{section.heading}**:"
        if statuses:
            line += f" {', '.join(statuses)}."
        if section.hint:
            line += f" {section.hint}"

        for command in section.commands:
            block = self._command_block(command, result)
            if block:
                line += f"\n\n{block}"

        result.advisories.append(line)
        result.setup_required.extend(tool_remediation + marker_remediation)

    @staticmethod
    def _needs_remediation(marker: MarkerCheckConfig, state: MarkerState) -> bool:
        if marker.remediate_if == "content_mismatch":
            return state == "content_mismatch"
        return state != "found"

    @staticmethod
    def _tool_status_text(name: str, status: ProbeStatus, version: str | None) -> str:
        if status == ProbeStatus.INSTALLED:
            return f"{name} installed ({version})" if version else f"{name} installed"
        if status == ProbeStatus.MISSING:
            return f"{name} not installed"
        return f"{name} status unknown"

    def _resolve(self, name: str) -> str | None:
        try:
            return self.environment.which(name)
        except OSError as e:
            self.logger.warning("Tool lookup failed", tool=name, error=str(e))
            raise

    def check_tool(self, tool: ToolCheckConfig) -> tuple[ProbeStatus, str | None]:
        """Resolve ``tool`` on PATH and, if found, query its version."""
        try:
            executable = self._resolve(tool.name)
        except OSError:
            return ProbeStatus.UNKNOWN, None

        if not executable:
            return ProbeStatus.MISSING, None
        if tool.version_args is None:
            return ProbeStatus.INSTALLED, None

        try:
            version = self.environment.run_version(
                executable, tool.version_args, self.environment.version_timeout
            )
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.info("Version query failed", tool=tool.name, error=str(e))
            version = None
        return ProbeStatus.INSTALLED, version or "unknown"

    def check_command(self, command: CommandCheckConfig) -> list[str] | None:
        """Run a listing command and return its non-blank output lines.

        Returns None when the executable is not on PATH; an empty list when it
        fails, times out, or prints nothing.
        """
        try:
            executable = self._resolve(command.command[0])
        except OSError:
            return None
        if not executable:
            return None

        try:
            output = self.environment.run_listing(
                executable, command.command[1:], self.environment.version_timeout
            )
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.info("Listing command failed", command=command.name, error=str(e))
            output = None
        return [line.rstrip() for line in (output or "").splitlines() if line.strip()]

    def _command_block(
        self, command: CommandCheckConfig, result: ContextProbeResult
    ) -> str | None:
        lines = self.check_command(command)
        if lines is None:
            return None
        result.command_output[command.name] = lines

        if lines:
            shown = lines[: command.max_lines] if command.max_lines else list(lines)
            remaining = len(lines) - len(shown)
            if remaining > 0 and command.overflow:
                shown.append(command.overflow.format(remaining=remaining))
        elif command.fallback:
            shown = [command.fallback]
        else:
            return None

        body = "\n".join(shown)
        return f"{command.name}:\n```\n{body}\n```"

    def check_marker(self, marker: MarkerCheckConfig) -> bool:
        """Return True when any of the marker's paths exists (and matches)."""
        return self.marker_state(marker) == "found"

    def marker_state(self, marker: MarkerCheckConfig) -> MarkerState:
        """Classify a marker as found, present without the wanted content, or missing."""
        bases = [self.environment.cwd]
        if marker.search_parents:
            bases.extend(self.environment.cwd.parents)

        state: MarkerState = "missing"
        for base in bases:
            for relative in marker.paths:
                candidate = base / relative
                try:
                    candidate_state = self._marker_state_at(candidate, marker)
                except OSError as e:
                    self.logger.info(
                        "Marker check failed", marker=marker.name, error=str(e)
                    )
                    continue
                if candidate_state == "found":
                    return "found"
                if candidate_state == "content_mismatch":
                    state = "content_mismatch"
        return state

    def _marker_state_at(self, candidate: Path, marker: MarkerCheckConfig) -> MarkerState:
        if marker.kind == "dir" and not candidate.is_dir():
            return "missing"
        if marker.kind == "file" and not candidate.is_file():
            return "missing"
        if not candidate.exists():
            return "missing"
        if marker.contains is None:
            return "found"
        if not candidate.is_file():
            return "content_mismatch"

        with open(candidate, encoding="utf-8", errors="ignore") as f:
            text = f.read(MAX_MARKER_READ_BYTES)
        if self.pattern_engine.match_regex(marker.contains, text, ignore_case=True):
            return "found"
        return "content_mismatch"

    def count_languages(self, languages: list[LanguageConfig]) -> dict[str, int]:
        counts = self._count_extensions()
        return {
            language.name: sum(counts[ext] for ext in language.extensions)
            for language in languages
        }

    def _count_extensions(self) -> Counter[str]:
        """Walk the workspace once, skipping excluded directories."""
        if self._extension_counts is not None:
            return self._extension_counts

        excluded = set(self.config.exclude_dirs)
        counts: Counter[str] = Counter()
        seen = 0

        for _root, dirnames, filenames in os.walk(self.environment.cwd):
            dirnames[:] = [d for d in dirnames if d not in excluded]
            for filename in filenames:
                suffix = os.path.splitext(filename)[1]
                if suffix:
                    counts[suffix[1:].lower()] += 1
                seen += 1
            if seen >= self.config.max_scan_files:
                self.logger.info(
                    "File scan limit reached", limit=self.config.max_scan_files
                )
                break

        self._extension_counts = counts
        return counts


def probe_session(
    config: SessionStartConfig, environment: ProbeEnvironment
) -> Decision:
    """Run the probe and wrap its advisory text in a silent decision."""
    result = ContextProbe(config, environment).run()
    return Decision.no_opinion(additional_context=result.to_context())
