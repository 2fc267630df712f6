# src/memtop/sampler.py
"""TCP client for the memcached text-protocol `stats` command."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Iterable

from memtop.snapshot import Snapshot

STATS_COMMAND = b"stats\r\n"
STAT_MARKER = "STAT"
END_MARKER = "END"

DEFAULT_TIMEOUT = 2.0


class SampleError(ConnectionError):
    """Stats could not be fetched (connect, write, read or deadline failure)."""


def parse_number(value: str) -> float | None:
    """Parse a stat value as a finite decimal, or None if it isn't one."""
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_stats_lines(lines: Iterable[str]) -> tuple[dict[str, float], dict[str, str]]:
    """Parse `STAT <key> <value...>` lines up to the END terminator.

    Lines that are too short or lack the STAT marker are skipped. Multi-word
    values (e.g. version strings) are rejoined with single spaces.

    Returns:
        (values, raw): numeric values and original strings keyed by stat name
    """
    values: dict[str, float] = {}
    raw: dict[str, str] = {}

    for line in lines:
        if line.rstrip("\r\n") == END_MARKER:
            break
        tokens = line.split()
        if len(tokens) < 3 or tokens[0] != STAT_MARKER:
            continue
        key = tokens[1]
        value = " ".join(tokens[2:])
        raw[key] = value
        number = parse_number(value)
        if number is not None:
            values[key] = number

    return values, raw


class StatsClient:
    """Fetches one stats snapshot per call.

    Stateless: every sample() opens a fresh connection and closes it before
    returning. The whole exchange shares a single deadline.
    """

    def __init__(self, host: str, port: int, timeout: float = DEFAULT_TIMEOUT):
        self.host = host
        self.port = port
        self.timeout = timeout

    @property
    def address(self) -> str:
        """host:port string shown in the dashboard title."""
        return f"{self.host}:{self.port}"

    async def sample(self) -> Snapshot:
        """Request stats and return them as a Snapshot.

        Raises:
            SampleError: If the connection, write or read fails, or the
                exchange exceeds the timeout
        """
        try:
            return await asyncio.wait_for(self._exchange(), timeout=self.timeout)
        except TimeoutError as e:
            raise SampleError(f"timed out after {self.timeout:g}s talking to {self.address}") from e
        except (OSError, ValueError) as e:
            # ValueError covers over-long lines
            raise SampleError(f"{self.address}: {e}") from e

    async def _exchange(self) -> Snapshot:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(STATS_COMMAND)
            await writer.drain()
            lines = await self._read_lines(reader)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass  # Peer already gone; the socket is closed either way

        values, raw = parse_stats_lines(lines)
        return Snapshot.capture(values, raw)

    async def _read_lines(self, reader: asyncio.StreamReader) -> list[str]:
        """Read lines until END or EOF. Undecodable bytes become U+FFFD."""
        lines: list[str] = []
        while True:
            data = await reader.readline()
            if not data:
                break
            line = data.decode("utf-8", errors="replace")
            lines.append(line)
            if line.rstrip("\r\n") == END_MARKER:
                break
        return lines


async def fetch_stats(host: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> Snapshot:
    """Fetch a single snapshot from host:port."""
    return await StatsClient(host, port, timeout).sample()
