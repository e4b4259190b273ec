"""Infrastructure layer: configuration, logging, error handling and probes."""

from .config import ConfigManager, GuardConfig
from .error_handler import ErrorHandler
from .logging_config import configure_logging, configure_stderr_logging
from .probes import ContextProbe, ProbeEnvironment, probe_session

__all__ = [
    "ConfigManager",
    "ContextProbe",
    "ErrorHandler",
    "GuardConfig",
    "ProbeEnvironment",
    "configure_logging",
    "configure_stderr_logging",
    "probe_session",
]
