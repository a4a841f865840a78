"""User notification and telemetry collaborators.

The orchestrator reports to the user only through these narrow
interfaces, so it does not depend on any particular frontend. The Null
implementations are the defaults for non-interactive use.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

YES = "Yes"
NO = "No"


class Notifier(Protocol):
    """Shows messages to the user."""

    def show_error(self, message: str) -> None:
        """Show an error message."""
        ...

    def show_warning(self, message: str, *choices: str) -> str | None:
        """Show a warning and return the selected choice (None if dismissed)."""
        ...

    def show_info(self, message: str) -> None:
        """Show an informational message."""
        ...


class TelemetryLogger(Protocol):
    """Records usage events."""

    def log_usage(self, event: str, data: dict[str, Any]) -> None:
        """Record a usage event."""
        ...


class NullNotifier:
    """Notifier that logs messages and answers prompts with a fixed choice."""

    def __init__(self, answer: str | None = YES) -> None:
        self.answer = answer

    def show_error(self, message: str) -> None:
        logger.error("%s", message)

    def show_warning(self, message: str, *choices: str) -> str | None:
        logger.warning("%s (answering %s)", message, self.answer)
        return self.answer

    def show_info(self, message: str) -> None:
        logger.info("%s", message)


class NullTelemetry:
    """TelemetryLogger that drops all events."""

    def log_usage(self, event: str, data: dict[str, Any]) -> None:
        pass


__all__ = [
    "NO",
    "YES",
    "Notifier",
    "NullNotifier",
    "NullTelemetry",
    "TelemetryLogger",
]
