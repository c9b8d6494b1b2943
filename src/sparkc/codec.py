"""
Transport codec for compile results.

A CompileResult crosses a process or worker boundary as a flat record made of
strings, numbers, lists and None only:

    {
        "compileMilliseconds": 412,
        "output": "...",            # or None
        "problems": [
            {"begin": 14, "end": 25, "message": "...", "uri": "resource:/main.dart", "kind": "error"},
        ],
    }

An empty "uri" means the problem is not source-anchored. The duration is
carried in whole milliseconds; sub-millisecond precision is lost. Unknown
"kind" names decode to ERROR; any other malformed field raises
RecordDecodeError.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from sparkc.diagnostics import Problem, Severity
from sparkc.errors import RecordDecodeError
from sparkc.result import CompileResult


def _require(data: dict[str, Any], key: str, types: tuple[type, ...], optional: bool = False) -> Any:
    if key not in data:
        if optional:
            return None
        raise RecordDecodeError(f"Missing field {key!r}")

    value = data[key]
    if value is None and optional:
        return None
    # bool is an int subclass but never a valid offset or duration
    if isinstance(value, bool) or not isinstance(value, types):
        raise RecordDecodeError(f"Field {key!r} has unexpected type {type(value).__name__}")
    return value


@dataclass
class ProblemRecord:
    """Flat form of a Problem.

    Attributes:
        begin: Starting character offset or None
        end: Ending character offset or None
        message: Diagnostic text
        uri: Source URI, "" when not source-anchored
        kind: Severity name
    """

    begin: Optional[int]
    end: Optional[int]
    message: str
    uri: str
    kind: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProblemRecord":
        """Create ProblemRecord from dictionary."""
        if not isinstance(data, dict):
            raise RecordDecodeError(f"Problem record must be a dict, got {type(data).__name__}")
        kind = _require(data, "kind", (str,), optional=True)
        return cls(
            begin=_require(data, "begin", (int,), optional=True),
            end=_require(data, "end", (int,), optional=True),
            message=_require(data, "message", (str,)),
            uri=_require(data, "uri", (str,), optional=True) or "",
            kind=kind if kind is not None else Severity.ERROR.value,
        )

    @classmethod
    def from_problem(cls, problem: Problem) -> "ProblemRecord":
        return cls(
            begin=problem.begin,
            end=problem.end,
            message=problem.message,
            uri=problem.uri or "",
            kind=problem.severity.value,
        )

    def to_problem(self) -> Problem:
        try:
            return Problem(
                message=self.message,
                severity=Severity.from_string(self.kind),
                uri=self.uri or None,
                begin=self.begin,
                end=self.end,
            )
        except ValueError as e:
            raise RecordDecodeError(f"Invalid problem record: {e}") from e


@dataclass
class CompileResultRecord:
    """Flat form of a CompileResult.

    Attributes:
        compile_milliseconds: Compile duration in whole milliseconds
        output: Generated output or None
        problems: Problem records in emission order
    """

    compile_milliseconds: int
    output: Optional[str] = None
    problems: list[ProblemRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "compileMilliseconds": self.compile_milliseconds,
            "output": self.output,
            "problems": [p.to_dict() for p in self.problems],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompileResultRecord":
        """Create CompileResultRecord from dictionary."""
        if not isinstance(data, dict):
            raise RecordDecodeError(f"Compile result record must be a dict, got {type(data).__name__}")
        milliseconds = _require(data, "compileMilliseconds", (int,))
        if milliseconds < 0:
            raise RecordDecodeError(f"compileMilliseconds must be >= 0, got {milliseconds}")
        return cls(
            compile_milliseconds=milliseconds,
            output=_require(data, "output", (str,), optional=True),
            problems=[ProblemRecord.from_dict(p) for p in _require(data, "problems", (list,))],
        )


class ResultCodec:
    """Converts CompileResult to and from its flat transport record."""

    @staticmethod
    def to_record(result: CompileResult) -> CompileResultRecord:
        return CompileResultRecord(
            compile_milliseconds=result.compile_milliseconds,
            output=result.output,
            problems=[ProblemRecord.from_problem(p) for p in result.problems],
        )

    @staticmethod
    def from_record(record: CompileResultRecord) -> CompileResult:
        return CompileResult(
            problems=tuple(p.to_problem() for p in record.problems),
            output=record.output,
            compile_time=record.compile_milliseconds / 1000.0,
        )

    @classmethod
    def encode(cls, result: CompileResult) -> dict[str, Any]:
        """Encode a result into its flat record."""
        return cls.to_record(result).to_dict()

    @classmethod
    def decode(cls, data: dict[str, Any]) -> CompileResult:
        """Decode a flat record back into a CompileResult.

        Raises:
            RecordDecodeError: If the record is malformed
        """
        return cls.from_record(CompileResultRecord.from_dict(data))

    @classmethod
    def to_json(cls, result: CompileResult) -> str:
        return json.dumps(cls.encode(result))

    @classmethod
    def from_json(cls, text: str) -> CompileResult:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RecordDecodeError(f"Invalid JSON record: {e}") from e
        return cls.decode(data)
