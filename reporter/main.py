"""Main entry point for the proxystat reporter."""

import asyncio
import logging
import signal
from typing import Optional

from reporter.config import ReporterSettings, settings
from reporter.core.monitor import ConnectionMonitor
from reporter.core.notifier import TelegramNotifier
from reporter.core.stats_client import StatsClient, get_decoder

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_monitor(config: ReporterSettings) -> ConnectionMonitor:
    """Wire the stats client, notifier and loop from settings."""
    monitor_config = config.monitor_config()
    stats_client = StatsClient(
        host=monitor_config.stats_host,
        port=monitor_config.stats_port,
        timeout=config.stats_timeout,
        service=config.stats_service,
        method=config.stats_method,
        decoder=get_decoder(config.stats_decoder),
        max_response_bytes=config.max_response_bytes
    )
    notifier = TelegramNotifier(
        api_url=config.telegram_api_url,
        timeout=config.notify_timeout
    )
    return ConnectionMonitor(
        config=monitor_config,
        stats_client=stats_client,
        notifier=notifier,
        server_name=config.server_name,
        include_system_metrics=config.include_system_metrics,
        shutdown_grace=config.shutdown_grace
    )


async def start_monitoring(config: ReporterSettings = settings) -> Optional[ConnectionMonitor]:
    """Start the monitor in the background if Telegram is configured.

    Missing credentials are not an error: monitoring simply stays off.
    """
    if not config.monitor_config().is_complete:
        logger.info("Telegram not configured, monitoring disabled")
        return None

    monitor = build_monitor(config)
    await monitor.start()
    logger.info(
        f"Reporting stats from {config.stats_endpoint} "
        f"(decoder: {config.stats_decoder.value})"
    )
    return monitor


async def main():
    """Main entry point."""
    configure_logging(settings.log_level)

    monitor = await start_monitoring(settings)
    if monitor is None:
        return

    loop = asyncio.get_event_loop()
    stop_requested = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_requested.set()

    # Handle SIGTERM and SIGINT
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await stop_requested.wait()
    finally:
        await monitor.stop()


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
