"""Client for the proxy's stats control-plane."""

import asyncio
import logging
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from shared.models import ConnectionSnapshot, DecoderName, StatsResponse
from reporter.core.exceptions import (
    ConnectFailed,
    DecodeFailed,
    StatsTimeout,
    WriteFailed,
)

logger = logging.getLogger(__name__)

# Turns a raw response payload into a snapshot. Raises DecodeFailed.
Decoder = Callable[[bytes], ConnectionSnapshot]

STAT_SEPARATOR = ">>>"
READ_CHUNK_SIZE = 4096


def build_command(service: str, method: str) -> bytes:
    """Encode a "<Service>\\n<Method>\\n" query command."""
    for part in (service, method):
        if not part or "\n" in part or "\r" in part:
            raise ValueError(f"Invalid command part: {part!r}")
    return f"{service}\n{method}\n".encode()


def stub_decoder(payload: bytes) -> ConnectionSnapshot:
    """Ignore the payload and report every counter as unknown."""
    return ConnectionSnapshot.unknown()


def json_decoder(payload: bytes) -> ConnectionSnapshot:
    """Decode a `{"stat": [{"name": ..., "value": ...}]}` response.

    Counter names follow the "<scope>>>><tag>>>><kind>>>><direction>" form,
    e.g. "inbound>>>vless-in>>>traffic>>>uplink". Traffic is summed over the
    inbound counters, or over every scope when no inbound counter exists.
    Active connections come from "...>>>online" counters, if any.
    """
    text = payload.strip()
    if not text:
        raise DecodeFailed("Empty stats response")

    try:
        response = StatsResponse.model_validate_json(text)
    except ValidationError as e:
        raise DecodeFailed(f"Malformed stats response: {e.error_count()} error(s)") from e

    traffic: Dict[str, Dict[str, int]] = {}
    online: Optional[int] = None

    for stat in response.stat:
        parts = stat.name.split(STAT_SEPARATOR)
        if parts[-1] == "online":
            online = (online or 0) + stat.value
            continue
        if len(parts) != 4 or parts[2] != "traffic" or parts[3] not in ("uplink", "downlink"):
            continue
        if stat.value < 0:
            raise DecodeFailed(f"Negative counter {stat.name}: {stat.value}")
        scope = traffic.setdefault(parts[0], {"uplink": 0, "downlink": 0})
        scope[parts[3]] += stat.value

    if "inbound" in traffic:
        upload = traffic["inbound"]["uplink"]
        download = traffic["inbound"]["downlink"]
    else:
        upload = sum(s["uplink"] for s in traffic.values())
        download = sum(s["downlink"] for s in traffic.values())

    try:
        return ConnectionSnapshot(
            active_connections=online,
            upload_bytes=upload,
            download_bytes=download,
            total_bytes=upload + download,
        )
    except ValidationError as e:
        raise DecodeFailed(f"Invalid counters in stats response: {e}") from e


DECODERS: Dict[str, Decoder] = {
    DecoderName.STUB.value: stub_decoder,
    DecoderName.JSON.value: json_decoder,
}


def get_decoder(name: str) -> Decoder:
    """Look up a built-in decoder by name."""
    key = name.value if isinstance(name, DecoderName) else name
    try:
        return DECODERS[key]
    except KeyError:
        raise ValueError(
            f"Unknown stats decoder {name!r} (available: {', '.join(sorted(DECODERS))})"
        ) from None


class StatsClient:
    """Queries the stats control-plane over a short-lived TCP connection."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 10085,
        timeout: float = 2.0,
        service: str = "StatsService",
        method: str = "QueryStats",
        decoder: Decoder = stub_decoder,
        max_response_bytes: int = 64 * 1024
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.command = build_command(service, method)
        self.decoder = decoder
        self.max_response_bytes = max_response_bytes

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    async def query(self) -> ConnectionSnapshot:
        """Run one query. Raises a StatsError subclass on failure.

        A reply still unterminated at the deadline is decoded as received;
        only a peer that sent nothing at all times out.
        """
        buffer = bytearray()
        try:
            await asyncio.wait_for(self._exchange(buffer), timeout=self.timeout)
        except asyncio.TimeoutError:
            if not buffer:
                raise StatsTimeout(
                    f"Stats query to {self.endpoint} timed out after {self.timeout}s"
                ) from None
            logger.debug(f"Deadline reached, decoding {len(buffer)} unterminated bytes")
        return self._decode(bytes(buffer))

    async def _exchange(self, buffer: bytearray):
        """Dial, send the command and read the response line into buffer."""
        try:
            reader, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            raise ConnectFailed(f"Failed to connect to stats API at {self.endpoint}: {e}") from e

        try:
            try:
                writer.write(self.command)
                await writer.drain()
            except OSError as e:
                raise WriteFailed(f"Failed to send request to {self.endpoint}: {e}") from e

            while True:
                try:
                    chunk = await reader.read(READ_CHUNK_SIZE)
                except OSError as e:
                    raise ConnectFailed(f"Connection to {self.endpoint} lost while reading: {e}") from e
                if not chunk:
                    break

                buffer.extend(chunk)
                newline = buffer.find(b"\n")
                end = newline + 1 if newline >= 0 else len(buffer)
                if end > self.max_response_bytes:
                    raise DecodeFailed(
                        f"Stats response exceeds {self.max_response_bytes} bytes"
                    )
                if newline >= 0:
                    del buffer[end:]
                    break

            logger.debug(f"Read {len(buffer)} bytes from stats API")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error closing stats connection: {e}")

    def _decode(self, payload: bytes) -> ConnectionSnapshot:
        try:
            snapshot = self.decoder(payload)
        except DecodeFailed:
            raise
        except Exception as e:
            raise DecodeFailed(
                f"Could not decode stats response ({type(e).__name__}): {e}"
            ) from e

        if not isinstance(snapshot, ConnectionSnapshot):
            raise DecodeFailed(f"Decoder returned {type(snapshot).__name__}, not a snapshot")
        return snapshot
