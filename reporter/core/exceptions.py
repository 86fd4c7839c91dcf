"""Errors raised by the stats client and the notifier.

None of these are fatal: the monitor loop logs them and moves on to the
next tick.
"""

from typing import Optional


class ReporterError(Exception):
    """Base class for reporter errors."""


class StatsError(ReporterError):
    """Stats control-plane query failed."""


class ConnectFailed(StatsError):
    """Could not reach the stats endpoint (DNS, refused, reset)."""


class WriteFailed(StatsError):
    """Connected, but sending the query command failed."""


class StatsTimeout(StatsError):
    """The query did not finish within its deadline."""


class DecodeFailed(StatsError):
    """The response could not be decoded into a snapshot."""


class NotifyError(ReporterError):
    """Report delivery failed."""


class TransportError(NotifyError):
    """Network or timeout error talking to the chat API."""


class DeliveryRejected(NotifyError):
    """Chat API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body or ""
        super().__init__(f"Telegram API error: {status_code} - {self.body}")
