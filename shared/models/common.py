from enum import Enum


class TickOutcome(str, Enum):
    REPORTED = "reported"
    STATS_FAILED = "stats_failed"  # Stats query failed, nothing sent
    DELIVERY_FAILED = "delivery_failed"  # Report built but Telegram refused it
    ERROR = "error"  # Unexpected exception inside the tick


class DecoderName(str, Enum):
    STUB = "stub"
    JSON = "json"
