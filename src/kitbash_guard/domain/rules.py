"""Declarative guard rules and the ordered rule set they are evaluated from."""

import fnmatch
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Annotated, Literal

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator

from .models import Decision, EventKind, RuleAction
from .pattern_engine import PatternEngine

logger = structlog.get_logger(__name__)

SEARCH_TOOLS = ["WebSearch", "mcp__perplexity__*"]

STALE_YEAR_REASON = (
    "Query contains outdated year '{year}'. Current date is {month} {current_year}. "
    "Retry with '{current_year}' for current information. "
    "(Add 'historical' to query for past data)"
)


class BaseRule(BaseModel):
    """Fields and applicability shared by every rule type."""

    id: str = Field(..., min_length=1)
    description: str | None = None
    events: list[EventKind] = Field(default_factory=lambda: [EventKind.PRE_TOOL_USE])
    tools: list[str] = Field(
        default_factory=lambda: ["*"], description="Glob patterns over tool_name"
    )
    target: list[str] = Field(
        default_factory=lambda: ["$.tool_input.command"],
        description="JSONPath expressions selecting the inspected text",
    )
    action: RuleAction = RuleAction.DENY
    reason: str | None = None
    enabled: bool = True

    model_config = {"frozen": True}

    @field_validator("target", "tools", mode="before")
    @classmethod
    def coerce_to_list(cls, v: object) -> object:
        if isinstance(v, str):
            return [v]
        return v

    @model_validator(mode="after")
    def require_reason_for_deny(self) -> "BaseRule":
        if self.action == RuleAction.DENY and not self.reason:
            raise ValueError(f"Rule {self.id} denies but has no reason")
        return self

    def applies_to(self, event_kind: EventKind, tool_name: str | None) -> bool:
        if event_kind not in self.events:
            return False
        if event_kind == EventKind.PRE_TOOL_USE:
            return tool_name is not None and any(
                fnmatch.fnmatchcase(tool_name, pattern) for pattern in self.tools
            )
        return True

    def regexes(self) -> list[tuple[str, bool]]:
        """Regexes used by this rule, as ``(pattern, ignore_case)`` pairs."""
        return []

    def decide(self, reason: str | None) -> Decision:
        if self.action == RuleAction.DENY:
            return Decision.deny(reason or self.id, rule_id=self.id)
        if self.action == RuleAction.ALLOW:
            return Decision.allow(reason, rule_id=self.id)
        return Decision.no_opinion()


class PatternRule(BaseRule):
    """Fires when ``pattern`` matches the target text and ``unless`` does not.

    ``unless`` describes the corrective form of the command: once the agent
    applies the suggested fix the rule no longer fires. The reason template
    may reference ``{match}``, positional groups (``{0}`` is the whole match)
    and named groups.
    """

    type: Literal["regex"] = "regex"
    pattern: str
    unless: str | None = None
    ignore_case: bool = False

    def regexes(self) -> list[tuple[str, bool]]:
        found = [(self.pattern, self.ignore_case)]
        if self.unless:
            found.append((self.unless, self.ignore_case))
        return found

    def evaluate(
        self, payload: dict, engine: PatternEngine, now: datetime
    ) -> Decision | None:
        text = engine.extract_text(self.target, payload)
        if not text:
            return None

        match = engine.search_regex(self.pattern, text, self.ignore_case)
        if match is None:
            return None
        if self.unless and engine.match_regex(self.unless, text, self.ignore_case):
            return None

        return self.decide(self._render_reason(match))

    def _render_reason(self, match) -> str | None:
        if not self.reason:
            return None
        try:
            return self.reason.format(
                match.group(0),
                *match.groups(default=""),
                match=match.group(0),
                **match.groupdict(default=""),
            )
        except (IndexError, KeyError, ValueError) as e:
            logger.warning("Reason template failed", rule_id=self.id, error=str(e))
            return self.reason


class StaleYearRule(BaseRule):
    """Denies search queries that pin a year older than the current one.

    Years are four-digit tokens in 2000-2029; this is a heuristic, not date
    parsing. Queries matching ``opt_out`` are always let through.
    """

    type: Literal["stale_year"] = "stale_year"
    tools: list[str] = Field(default_factory=lambda: list(SEARCH_TOOLS))
    target: list[str] = Field(
        default_factory=lambda: ["$.tool_input.query", "$.query"]
    )
    reason: str | None = STALE_YEAR_REASON
    year_pattern: str = r"\b20[0-2][0-9]\b"
    opt_out: str = r"(historical|archive|history of|in the past)"

    def regexes(self) -> list[tuple[str, bool]]:
        return [(self.year_pattern, False), (self.opt_out, True)]

    def evaluate(
        self, payload: dict, engine: PatternEngine, now: datetime
    ) -> Decision | None:
        query = engine.extract_text(self.target, payload)
        if not query:
            return None
        if engine.match_regex(self.opt_out, query, ignore_case=True):
            return None

        years = sorted({int(y) for y in engine.findall_regex(self.year_pattern, query)})
        for year in years:
            if year < now.year:
                return self.decide(
                    (self.reason or STALE_YEAR_REASON).format(
                        year=year,
                        month=now.strftime("%B"),
                        current_year=now.year,
                    )
                )
        return None


Rule = Annotated[PatternRule | StaleYearRule, Field(discriminator="type")]


class RuleSet:
    """Ordered, immutable collection of rules.

    Declaration order is the only tie-break. Patterns are compiled when the
    set is built so invalid ones are reported once, up front.
    """

    def __init__(
        self,
        rules: Sequence[PatternRule | StaleYearRule],
        pattern_engine: PatternEngine | None = None,
    ):
        self.pattern_engine = pattern_engine or PatternEngine()
        self._rules = tuple(rule for rule in rules if rule.enabled)
        self.invalid_patterns = self._compile_all()

    def _compile_all(self) -> dict[str, list[str]]:
        invalid: dict[str, list[str]] = {}
        for rule in self._rules:
            for pattern, ignore_case in rule.regexes():
                if not self.pattern_engine.validate_pattern(pattern, ignore_case):
                    invalid.setdefault(rule.id, []).append(pattern)
            for path in rule.target:
                if not self.pattern_engine.validate_jsonpath(path):
                    invalid.setdefault(rule.id, []).append(path)
        for rule_id, patterns in invalid.items():
            logger.warning(
                "Rule has invalid patterns and will never match",
                rule_id=rule_id,
                patterns=patterns,
            )
        return invalid

    def __iter__(self) -> Iterator[PatternRule | StaleYearRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> tuple[PatternRule | StaleYearRule, ...]:
        return self._rules

    def get(self, rule_id: str) -> PatternRule | StaleYearRule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None
