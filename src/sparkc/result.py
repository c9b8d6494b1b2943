"""The outcome of one compile."""

from dataclasses import dataclass, field
from typing import Optional

from sparkc.diagnostics import Problem, Severity


@dataclass(frozen=True)
class CompileResult:
    """Result of a dart2js-style compile.

    A result is built once the engine finishes and is read-only afterwards.
    A compile that reported errors is still a normal result; check
    succeeded() to see whether it produced usable output.

    Attributes:
        problems: Retained problems in emission order
        output: Generated JavaScript, or None if no artifact was produced
        compile_time: Wall-clock duration of the compile in seconds
    """

    problems: tuple[Problem, ...] = field(default_factory=tuple)
    output: Optional[str] = None
    compile_time: float = 0.0

    @property
    def has_output(self) -> bool:
        return self.output is not None

    def succeeded(self) -> bool:
        """True if none of the reported problems were errors."""
        return not any(p.severity == Severity.ERROR for p in self.problems)

    @property
    def compile_milliseconds(self) -> int:
        """Duration truncated to whole milliseconds."""
        # Round first so 0.029 s does not truncate to 28 ms through float error
        return int(round(self.compile_time * 1000, 3))

    @property
    def errors(self) -> list[Problem]:
        return [p for p in self.problems if p.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Problem]:
        return [p for p in self.problems if p.severity == Severity.WARNING]
