from pydantic import BaseModel, ConfigDict, Field, SecretStr


class MonitorConfig(BaseModel):
    """Read-only configuration held by the monitor loop for its lifetime."""
    model_config = ConfigDict(frozen=True)

    bot_token: SecretStr = SecretStr("")
    chat_id: str = ""
    interval: float = Field(default=300.0, gt=0)  # seconds
    api_endpoint: str = "127.0.0.1:10085"  # stats control-plane host:port

    @property
    def is_complete(self) -> bool:
        return bool(self.bot_token.get_secret_value()) and bool(self.chat_id)

    @property
    def stats_host(self) -> str:
        host, _, _ = self.api_endpoint.rpartition(":")
        return host.strip("[]")

    @property
    def stats_port(self) -> int:
        _, _, port = self.api_endpoint.rpartition(":")
        return int(port)
