"""
sparkc - compile-session driver for a dart2js-style compiler.

Wraps a source-to-source compiler engine: resolves input sources through
scheme-dispatched backends, collects diagnostics and the generated
JavaScript for one compile at a time, and encodes results into a flat record
that can cross a process or worker boundary.
"""

from sparkc.codec import CompileResultRecord, ProblemRecord, ResultCodec
from sparkc.config import CompilerConfig, setup_logging
from sparkc.diagnostics import DEFAULT_RETAINED, DiagnosticSink, Problem, Severity
from sparkc.driver import CompilerDriver, DriverState
from sparkc.engine import CompilerEngine
from sparkc.errors import (
    CompileCancelledError,
    DriverBusyError,
    EngineError,
    RecordDecodeError,
    ResolutionError,
    ResolutionFailure,
    SessionAlreadyUsedError,
    SparkcError,
)
from sparkc.output_collector import NullSink, OutputCollector, StringSink
from sparkc.resolver import ENTRY_URI, ResourceResolver
from sparkc.result import CompileResult
from sparkc.sdk import DartSdk
from sparkc.session import CompileSession

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_RETAINED",
    "ENTRY_URI",
    "CompileCancelledError",
    "CompileResult",
    "CompileResultRecord",
    "CompileSession",
    "CompilerConfig",
    "CompilerDriver",
    "CompilerEngine",
    "DartSdk",
    "DiagnosticSink",
    "DriverBusyError",
    "DriverState",
    "EngineError",
    "NullSink",
    "OutputCollector",
    "Problem",
    "ProblemRecord",
    "RecordDecodeError",
    "ResolutionError",
    "ResolutionFailure",
    "ResourceResolver",
    "ResultCodec",
    "SessionAlreadyUsedError",
    "Severity",
    "SparkcError",
    "StringSink",
    "setup_logging",
]
