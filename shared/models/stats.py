from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Stat(BaseModel):
    """Single named counter from the stats control-plane."""
    name: str
    value: int = 0


class StatsResponse(BaseModel):
    """QueryStats response payload."""
    stat: List[Stat] = Field(default_factory=list)


class ConnectionSnapshot(BaseModel):
    """Counters read from the proxy in one tick. None means unknown."""
    model_config = ConfigDict(frozen=True)

    active_connections: Optional[int] = Field(default=None, ge=0)
    upload_bytes: Optional[int] = Field(default=None, ge=0)
    download_bytes: Optional[int] = Field(default=None, ge=0)
    total_bytes: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_total(self) -> "ConnectionSnapshot":
        known = (self.upload_bytes, self.download_bytes, self.total_bytes)
        if None not in known:
            if self.total_bytes < self.upload_bytes or self.total_bytes < self.download_bytes:
                raise ValueError("total_bytes is smaller than upload or download bytes")
        return self

    @classmethod
    def unknown(cls) -> "ConnectionSnapshot":
        return cls()

    @property
    def is_unknown(self) -> bool:
        return all(
            v is None for v in (
                self.active_connections,
                self.upload_bytes,
                self.download_bytes,
                self.total_bytes,
            )
        )
