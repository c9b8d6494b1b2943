"""Compiler engine stand-in used by the sparkc unit tests.

The real compiler engine is an external toolchain, so tests run against
ScriptedEngine: a small stand-in that honours the engine callback protocol
(pulls sources through the provider, reports problems to the handler, writes
artifacts to sinks) and understands just enough of the language to flag
unbalanced brackets and calls to undeclared functions.
"""

import asyncio
import re
from typing import Any, Optional

from sparkc.diagnostics import Severity

_IMPORT_RE = re.compile(r"import\s+'(?P<uri>[^']+)'\s*;")
_DECLARATION_RE = re.compile(r"\b(?:void|int|String|bool|double|dynamic|var)\s+(?P<name>[A-Za-z_]\w*)\s*\(")
_CALL_RE = re.compile(r"\b(?P<name>[A-Za-z_]\w*)\s*\(")
_BUILTINS = {"print", "if", "for", "while", "switch", "catch", "return", "assert"}
_PAIRS = {")": "(", "}": "{", "]": "["}


def check_source(source: str) -> list[tuple[Severity, int, int, str]]:
    """Return (severity, begin, end, message) problems for source."""
    problems: list[tuple[Severity, int, int, str]] = []

    stack: list[tuple[str, int]] = []
    for index, char in enumerate(source):
        if char in "({[":
            stack.append((char, index))
        elif char in _PAIRS:
            if not stack or stack[-1][0] != _PAIRS[char]:
                problems.append((Severity.ERROR, index, index + 1, f"Unexpected token '{char}'."))
            else:
                stack.pop()
    for char, index in stack:
        problems.append((Severity.ERROR, index, index + 1, f"Can't find the closing pair for '{char}'."))

    declared = {m["name"]: m.start("name") for m in _DECLARATION_RE.finditer(source)}
    declaration_sites = set(declared.values())
    for match in _CALL_RE.finditer(source):
        name = match["name"]
        if match.start("name") in declaration_sites or name in declared or name in _BUILTINS:
            continue
        problems.append((Severity.ERROR, match.start("name"), match.end("name"), f"Method not found: '{name}'."))

    if "dynamic " in source:
        index = source.index("dynamic ")
        problems.append((Severity.WARNING, index, index + 7, "Avoid using 'dynamic'."))
    return problems


class ScriptedEngine:
    """Engine stand-in for tests.

    Args:
        gate: If given, every compile waits for this event before doing work
        failure: If given, compile raises this exception
    """

    def __init__(self, gate: Optional[asyncio.Event] = None, failure: Optional[BaseException] = None):
        self.gate = gate
        self.failure = failure
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.finished = 0
        self.closed = False
        self.parsed_sources: dict[str, str] = {}
        self.last_arguments: Optional[dict[str, Any]] = None

    async def compile(self, entry_uri, library_root, package_root, provider, handler, options, output_provider):
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.last_arguments = {
            "entry_uri": entry_uri,
            "library_root": library_root,
            "package_root": package_root,
            "options": list(options),
        }
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.failure is not None:
                raise self.failure

            source = await provider(entry_uri)
            for match in _IMPORT_RE.finditer(source):
                uri = match["uri"]
                if uri not in self.parsed_sources:
                    self.parsed_sources[uri] = await provider(uri)

            handler(None, None, None, f"Compiling {entry_uri}", Severity.VERBOSE_INFO)
            problems = check_source(source)
            for severity, begin, end, message in problems:
                handler(entry_uri, begin, end, message, severity)
            handler(entry_uri, 0, 0, "Consider adding a library directive.", Severity.HINT)

            if any(severity == Severity.ERROR for severity, *_ in problems):
                return False

            sink = output_provider("", "js")
            sink.add("// Generated by ScriptedEngine\n")
            sink.add("function main() {}\n")
            sink.close()

            source_map = output_provider("", "js.map")
            source_map.add('{"version": 3}')
            source_map.close()
            return True
        finally:
            self.active -= 1
            self.finished += 1

    def close(self) -> None:
        self.closed = True


def run(coro):
    """Helper to run an async coroutine in a new event loop."""
    return asyncio.run(coro)
