"""Error handling for the guard boundary.

Every failure degrades to the fail-open decision: the guard must never block
or crash the host's session because of its own problems.
"""

import structlog

from ..domain.models import Decision, ErrorCode, EventKind, GuardError


class ErrorHandler:
    """Centralized error handling with structured logging"""

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    def handle_error(
        self, error: Exception, event_kind: EventKind | None = None
    ) -> Decision:
        """Log ``error`` and return the NoOpinion/suppressed decision."""
        if isinstance(error, GuardError):
            self._log_guard_error(error, event_kind)
        else:
            self.logger.error(
                "Unexpected error in guard",
                error_type=type(error).__name__,
                error_message=str(error),
                event_kind=event_kind.value if event_kind else None,
                exc_info=True,
            )
        return Decision.no_opinion()

    def _log_guard_error(self, error: GuardError, event_kind: EventKind | None) -> None:
        # Malformed input is routine for hooks wired to unrelated tools.
        log = (
            self.logger.info
            if error.code == ErrorCode.INPUT_MALFORMED
            else self.logger.error
        )
        log(
            "Guard error occurred",
            error_code=error.code.value,
            error_message=error.message,
            user_message=error.user_message,
            context=error.context,
            event_kind=event_kind.value if event_kind else None,
        )
