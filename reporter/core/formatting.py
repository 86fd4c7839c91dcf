"""Human-readable formatting for traffic counters and report messages."""

from datetime import datetime
from html import escape
from typing import Optional, Dict

from shared.models import ConnectionSnapshot

KB = 1024
MB = KB * 1024
GB = MB * 1024

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
UNKNOWN = "unknown"


def format_traffic(num_bytes: int) -> str:
    """Format a byte count using 1024-based units.

    Boundaries go to the larger unit, so 1024 is "1.00 KB".
    Negative counts are rejected.
    """
    if num_bytes < 0:
        raise ValueError(f"byte count must be non-negative, got {num_bytes}")
    if num_bytes < KB:
        return f"{num_bytes} B"
    if num_bytes < MB:
        return f"{num_bytes / KB:.2f} KB"
    if num_bytes < GB:
        return f"{num_bytes / MB:.2f} MB"
    return f"{num_bytes / GB:.2f} GB"


def format_counter(value: Optional[int]) -> str:
    return UNKNOWN if value is None else str(value)


def format_traffic_or_unknown(value: Optional[int]) -> str:
    return UNKNOWN if value is None else format_traffic(value)


def build_report_message(
    snapshot: ConnectionSnapshot,
    timestamp: datetime,
    server_name: Optional[str] = None,
    system_metrics: Optional[Dict[str, float]] = None
) -> str:
    """Build the HTML report sent to Telegram."""
    header = "<b>📊 Server Stats</b>"
    if server_name:
        header += f" <i>{escape(server_name)}</i>"

    lines = [
        header,
        f"<b>Active Connections:</b> {format_counter(snapshot.active_connections)}",
        f"<b>Upload Traffic:</b> {format_traffic_or_unknown(snapshot.upload_bytes)}",
        f"<b>Download Traffic:</b> {format_traffic_or_unknown(snapshot.download_bytes)}",
        f"<b>Total Traffic:</b> {format_traffic_or_unknown(snapshot.total_bytes)}",
    ]

    if system_metrics:
        if "cpu_percent" in system_metrics:
            lines.append(f"<b>CPU:</b> {system_metrics['cpu_percent']:.1f}%")
        if "memory_percent" in system_metrics:
            lines.append(f"<b>Memory:</b> {system_metrics['memory_percent']:.1f}%")

    lines.append(f"<b>Timestamp:</b> {timestamp.strftime(TIMESTAMP_FORMAT)}")
    return "\n".join(lines)
