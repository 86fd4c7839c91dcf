import socket
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings

from shared.models import MonitorConfig, DecoderName


def get_hostname() -> str:
    """Get the system hostname."""
    return socket.gethostname()


class ReporterSettings(BaseSettings):
    # Telegram credentials (monitoring is disabled unless both are set)
    bot_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("PROXYSTAT_BOT_TOKEN", "BOT_TOKEN"),
    )
    chat_id: str = Field(
        default="",
        validation_alias=AliasChoices("PROXYSTAT_CHAT_ID", "CHAT_ID"),
    )
    telegram_api_url: str = "https://api.telegram.org"
    notify_timeout: float = 10.0

    # Reporting
    report_interval: float = 300.0  # seconds
    server_name: str = get_hostname()
    include_system_metrics: bool = True
    shutdown_grace: float = 15.0

    # Stats control-plane
    stats_host: str = "127.0.0.1"
    stats_port: int = 10085
    stats_timeout: float = 2.0
    stats_service: str = "StatsService"
    stats_method: str = "QueryStats"
    stats_decoder: DecoderName = DecoderName.STUB
    max_response_bytes: int = 64 * 1024

    log_level: str = "INFO"

    class Config:
        env_prefix = "PROXYSTAT_"
        env_file = ".env"
        populate_by_name = True

    @property
    def stats_endpoint(self) -> str:
        if ":" in self.stats_host:
            return f"[{self.stats_host}]:{self.stats_port}"
        return f"{self.stats_host}:{self.stats_port}"

    def monitor_config(self) -> MonitorConfig:
        """Snapshot the settings the monitor loop needs."""
        return MonitorConfig(
            bot_token=self.bot_token,
            chat_id=self.chat_id,
            interval=self.report_interval,
            api_endpoint=self.stats_endpoint,
        )


settings = ReporterSettings()
