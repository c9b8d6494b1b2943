"""
dart2js engine backed by the `dart compile js` command.

The entry source is pulled through the session's provider and written into a
working directory that belongs to the engine (and therefore to the driver),
so the toolchain's own caches in that directory survive between compiles.
Compiler messages are parsed back into diagnostics with character offsets:

    main.dart:1:15:
    Error: Method not found: 'undefinedFn'.
    void main() { undefinedFn(); }
                  ^^^^^^^^^^^

Imports other than the entry file are resolved by the toolchain itself.
"""

import asyncio
import logging
import re
import shutil
import subprocess
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from sparkc.diagnostics import Severity
from sparkc.engine import DiagnosticHandler, OutputProvider, SourceProvider

logger = logging.getLogger(__name__)

ENTRY_FILE_NAME = "main.dart"
OUTPUT_FILE_NAME = "out.js"

_LOCATION_RE = re.compile(r"^(?P<path>.+?):(?P<line>\d+):(?P<column>\d+):\s*$")
_MESSAGE_RE = re.compile(r"^(?P<kind>Error|Warning|Info|Hint|Context): (?P<message>.*)$")
_CARET_RE = re.compile(r"^\s*(?P<carets>\^+)\s*$")

_KINDS = {
    "Error": Severity.ERROR,
    "Warning": Severity.WARNING,
    "Info": Severity.INFO,
    "Hint": Severity.HINT,
    "Context": Severity.INFO,
}


@dataclass
class CompilerMessage:
    """One message parsed from compiler output."""

    severity: Severity
    message: str
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    length: Optional[int] = None


def parse_compiler_output(text: str) -> list[CompilerMessage]:
    """Parse `dart compile js` output into messages, in output order.

    Args:
        text: Combined stdout/stderr of the compiler

    Returns:
        Parsed messages; lines that are not part of a message are ignored
    """
    messages: list[CompilerMessage] = []
    location: Optional[re.Match[str]] = None
    current: Optional[CompilerMessage] = None

    for line in text.splitlines():
        match = _MESSAGE_RE.match(line)
        if match:
            current = CompilerMessage(severity=_KINDS[match["kind"]], message=match["message"].strip())
            if location is not None:
                current.path = location["path"]
                current.line = int(location["line"])
                current.column = int(location["column"])
            messages.append(current)
            location = None
            continue

        match = _LOCATION_RE.match(line)
        if match:
            location = match
            continue

        match = _CARET_RE.match(line)
        if match and current is not None and current.line is not None and current.length is None:
            current.length = len(match["carets"])

    return messages


def _line_starts(text: str) -> list[int]:
    starts = [0]
    for index, char in enumerate(text):
        if char == "\n":
            starts.append(index + 1)
    return starts


def _subprocess_creation_flags() -> int:
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


class Dart2jsEngine:
    """Runs dart2js out of process in a driver-scoped working directory."""

    def __init__(self, dart_executable: str = "dart", work_root: Optional[Path] = None):
        """Initialize dart2js engine.

        Args:
            dart_executable: Command used to run the dart toolchain
            work_root: Directory under which the engine creates its working directory
        """
        self.dart_executable = dart_executable
        self.work_root = work_root or Path.home() / ".sparkc" / "work"
        self._work_dir: Optional[Path] = None

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            self._work_dir = self.work_root / f"engine_{uuid.uuid4().hex[:8]}"
            self._work_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created engine working directory {self._work_dir}")
        return self._work_dir

    async def compile(
        self,
        entry_uri: str,
        library_root: str,
        package_root: Optional[str],
        provider: SourceProvider,
        handler: DiagnosticHandler,
        options: list[str],
        output_provider: OutputProvider,
    ) -> Any:
        source = await provider(entry_uri)

        work_dir = self.work_dir
        entry_file = work_dir / ENTRY_FILE_NAME
        output_file = work_dir / OUTPUT_FILE_NAME
        entry_file.write_text(source, encoding="utf-8")
        for stale in work_dir.glob(f"{OUTPUT_FILE_NAME}*"):
            stale.unlink()

        cmd = [self.dart_executable, "compile", "js", "-o", OUTPUT_FILE_NAME, *options]
        if package_root:
            cmd.append(f"--packages={package_root}")
        cmd.append(ENTRY_FILE_NAME)
        logger.debug(f"Running {' '.join(cmd)} in {work_dir}")

        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=work_dir,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            creationflags=_subprocess_creation_flags(),
        )
        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            # The work directory is shared by every compile on this engine
            logger.warning(f"Compile cancelled; killing dart2js (pid {process.pid})")
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise
        text = stdout.decode("utf-8", errors="replace")

        saw_error = self._report(parse_compiler_output(text), entry_uri, source, handler)
        if process.returncode != 0 and not saw_error:
            handler(None, None, None, f"dart2js exited with code {process.returncode}", Severity.ERROR)

        if process.returncode == 0 and output_file.exists():
            self._emit(output_file, output_provider)
        return process.returncode

    def _report(self, messages: list[CompilerMessage], entry_uri: str, source: str, handler: DiagnosticHandler) -> bool:
        starts = _line_starts(source)
        saw_error = False
        for msg in messages:
            saw_error = saw_error or msg.severity == Severity.ERROR
            if msg.path is None:
                handler(None, None, None, msg.message, msg.severity)
                continue

            if Path(msg.path).name != ENTRY_FILE_NAME:
                uri = Path(msg.path).as_uri() if Path(msg.path).is_absolute() else msg.path
                handler(uri, None, None, msg.message, msg.severity)
                continue

            begin = end = None
            if msg.line is not None and msg.column is not None and msg.line <= len(starts):
                begin = min(starts[msg.line - 1] + msg.column - 1, len(source))
                end = min(begin + (msg.length or 0), len(source))
            handler(entry_uri, begin, end, msg.message, msg.severity)
        return saw_error

    def _emit(self, output_file: Path, output_provider: OutputProvider) -> None:
        sink = output_provider("", "js")
        sink.add(output_file.read_text(encoding="utf-8"))
        sink.close()

        for extra in sorted(output_file.parent.glob(f"{OUTPUT_FILE_NAME}?*")):
            # out.js.map -> ("", "js.map"), alongside the primary ("", "js")
            extension = extra.name.partition(".")[2]
            extra_sink = output_provider("", extension)
            extra_sink.add(extra.read_text(encoding="utf-8", errors="replace"))
            extra_sink.close()

    def close(self) -> None:
        if self._work_dir is not None:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            logger.debug(f"Removed engine working directory {self._work_dir}")
            self._work_dir = None
