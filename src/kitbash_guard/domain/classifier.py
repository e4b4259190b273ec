"""Invocation classifier: first-match evaluation of a rule set against one event."""

from collections.abc import Callable
from datetime import datetime

import structlog

from .models import Decision, EventKind, GuardEvent
from .pattern_engine import PatternEngine
from .rules import RuleSet

Clock = Callable[[], datetime]


class InvocationClassifier:
    """Evaluate rules in declaration order; the first rule that fires decides.

    The clock is injected so the date guard can be tested against a fixed
    "current year".
    """

    def __init__(
        self,
        rule_set: RuleSet,
        clock: Clock | None = None,
        pattern_engine: PatternEngine | None = None,
    ):
        self.rule_set = rule_set
        self.clock = clock or datetime.now
        self.pattern_engine = pattern_engine or rule_set.pattern_engine
        self.logger = structlog.get_logger(__name__)

    def classify(self, event: GuardEvent) -> Decision:
        """Return the decision of the first firing rule, or NoOpinion."""
        if event.kind != EventKind.PRE_TOOL_USE:
            return Decision.no_opinion()

        now = self.clock()
        for rule in self.rule_set:
            if not rule.applies_to(event.kind, event.tool_name):
                continue

            try:
                decision = rule.evaluate(event.payload, self.pattern_engine, now)
            except Exception as e:
                self.logger.warning(
                    "Rule evaluation failed, treating as no match",
                    rule_id=rule.id,
                    tool_name=event.tool_name,
                    error=str(e),
                )
                continue

            if decision is None:
                continue

            self.logger.info(
                "Rule fired",
                rule_id=rule.id,
                verdict=decision.verdict.value,
                tool_name=event.tool_name,
                command=event.command_text or event.query,
            )
            return decision

        return Decision.no_opinion()
