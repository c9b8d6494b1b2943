"""
Output capture for a single compile.

The engine opens one sink per artifact it writes. Only the primary artifact
(the unnamed ".js" stream) is kept; source maps, deferred chunks and anything
else go to a NullSink.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

PRIMARY_EXTENSION = "js"


@runtime_checkable
class OutputSink(Protocol):
    """Write-only text sink handed to the engine for one artifact."""

    def add(self, value: str) -> None: ...

    def add_error(self, error: object, stack_trace: Optional[object] = None) -> None: ...

    def close(self) -> None: ...


class NullSink:
    """A sink that drains into /dev/null."""

    def __init__(self, name: str):
        self.name = name

    def add(self, value: str) -> None:
        pass

    def add_error(self, error: object, stack_trace: Optional[object] = None) -> None:
        logger.debug(f"Discarded error written to {self.name}: {error}")

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"NullSink({self.name!r})"


class StringSink:
    """Appends written text to a shared buffer."""

    def __init__(self, buffer: list[str], name: str = ""):
        self._buffer = buffer
        self.name = name
        self.closed = False

    def add(self, value: str) -> None:
        self._buffer.append(value)

    def add_error(self, error: object, stack_trace: Optional[object] = None) -> None:
        logger.warning(f"Engine reported an error on the primary output: {error}")

    def close(self) -> None:
        self.closed = True


class OutputCollector:
    """Hands out sinks for engine artifacts and keeps the primary one."""

    def __init__(self, primary_extension: str = PRIMARY_EXTENSION):
        self.primary_extension = primary_extension
        self._buffer: Optional[list[str]] = None
        self.discarded: list[str] = []

    def is_primary(self, name: str, extension: str) -> bool:
        return not name and extension == self.primary_extension

    def open_output(self, name: str, extension: str) -> OutputSink:
        """Open a sink for an artifact.

        Every open of the primary artifact appends to the same buffer, so
        writes from several engine passes accumulate in call order.

        Args:
            name: Logical artifact name ("" for the main output)
            extension: Artifact extension without the dot

        Returns:
            A StringSink for the primary artifact, a NullSink otherwise
        """
        if self.is_primary(name, extension):
            if self._buffer is None:
                self._buffer = []
            logger.debug(f"Opened primary output (.{extension})")
            return StringSink(self._buffer, name=f"{name}.{extension}")

        artifact = f"{name}.{extension}"
        self.discarded.append(artifact)
        logger.debug(f"Discarding output artifact {artifact}")
        return NullSink(artifact)

    @property
    def output(self) -> Optional[str]:
        """Primary artifact text, or None if it was never opened."""
        if self._buffer is None:
            return None
        return "".join(self._buffer)
