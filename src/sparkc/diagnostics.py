"""
Diagnostic collection for a single compile.

The engine reports every problem it finds through DiagnosticSink.record().
Which severities are kept is an explicit retention policy; by default only
warnings and errors are retained, everything else is dropped.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger(__name__)


class Severity(Enum):
    """Severity of a compiler diagnostic.

    Values are the severity names used on the transport boundary.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE_INFO = "verbose info"
    HINT = "hint"
    CRASH = "crash"

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        """Convert a severity name to Severity, defaulting to ERROR if unknown."""
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR


DEFAULT_RETAINED = frozenset({Severity.WARNING, Severity.ERROR})


@dataclass(frozen=True)
class Problem:
    """A single diagnostic reported by the compiler.

    Attributes:
        message: Human-readable text
        severity: Diagnostic severity
        uri: Compilation unit the problem refers to; None if not source-anchored
        begin: Starting 0-based character offset; may be None
        end: Ending 0-based character offset; may be None
    """

    message: str
    severity: Severity
    uri: Optional[str] = None
    begin: Optional[int] = None
    end: Optional[int] = None

    def __post_init__(self) -> None:
        if self.begin is not None and self.begin < 0:
            raise ValueError(f"begin offset must be >= 0, got {self.begin}")
        if self.end is not None and self.end < 0:
            raise ValueError(f"end offset must be >= 0, got {self.end}")
        if self.begin is not None and self.end is not None and self.begin > self.end:
            raise ValueError(f"begin offset {self.begin} is after end offset {self.end}")

    @property
    def source_location(self) -> Optional[tuple[str, Optional[int], Optional[int]]]:
        """The (uri, begin, end) anchor, or None when not source-anchored."""
        if self.uri is None:
            return None
        return (self.uri, self.begin, self.end)

    @property
    def is_warning_or_error(self) -> bool:
        return self.severity in (Severity.WARNING, Severity.ERROR)

    def __str__(self) -> str:
        if self.uri is None:
            return f"[{self.severity.value}] {self.message}"
        return f"[{self.severity.value}] {self.message} ({self.uri})"


class DiagnosticSink:
    """Accumulates problems reported during one compile, in emission order."""

    def __init__(self, retain: frozenset[Severity] = DEFAULT_RETAINED):
        """Initialize diagnostic sink.

        Args:
            retain: Severities to keep; all others are dropped
        """
        self.retain = frozenset(retain)
        self._problems: list[Problem] = []
        self._dropped = 0

    def record(
        self,
        uri: Optional[str],
        begin: Optional[int],
        end: Optional[int],
        message: str,
        severity: Union[Severity, str],
    ) -> None:
        """Record a diagnostic reported by the engine.

        Args:
            uri: Source URI, or None
            begin: Starting character offset, or None
            end: Ending character offset, or None
            message: Diagnostic text
            severity: Severity, or a severity name

        Raises:
            ValueError: If the source span is invalid (negative or begin > end)
        """
        if isinstance(severity, str):
            severity = Severity.from_string(severity)

        if severity not in self.retain:
            self._dropped += 1
            logger.debug(f"Dropped {severity.value} diagnostic: {message}")
            return

        problem = Problem(message=message, severity=severity, uri=uri or None, begin=begin, end=end)
        self._problems.append(problem)
        logger.debug(f"Recorded {problem}")

    @property
    def problems(self) -> tuple[Problem, ...]:
        """Snapshot of retained problems in emission order."""
        return tuple(self._problems)

    @property
    def dropped_count(self) -> int:
        """Number of diagnostics discarded by the retention policy."""
        return self._dropped

    def succeeded(self) -> bool:
        """True if none of the retained problems is an error."""
        return not any(p.severity == Severity.ERROR for p in self._problems)

    def has_warnings(self) -> bool:
        return any(p.severity == Severity.WARNING for p in self._problems)

    def count_by_severity(self) -> dict[Severity, int]:
        """Count retained problems per severity (only severities that occur)."""
        counts: dict[Severity, int] = {}
        for problem in self._problems:
            counts[problem.severity] = counts.get(problem.severity, 0) + 1
        return counts
