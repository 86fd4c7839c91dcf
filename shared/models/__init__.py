from .stats import Stat, StatsResponse, ConnectionSnapshot
from .monitor import MonitorConfig
from .common import TickOutcome, DecoderName

__all__ = [
    "Stat",
    "StatsResponse",
    "ConnectionSnapshot",
    "MonitorConfig",
    "TickOutcome",
    "DecoderName",
]
