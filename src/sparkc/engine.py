"""Interface of the wrapped compiler engine.

The engine is an opaque collaborator. Everything useful it produces reaches
the driver through the callbacks it is given: source text is pulled through
the provider, problems are pushed to the diagnostic handler and artifacts are
written to sinks obtained from the output provider. Its return value is
ignored.
"""

from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from sparkc.diagnostics import Severity
from sparkc.output_collector import OutputSink

SourceProvider = Callable[[str], Awaitable[str]]
DiagnosticHandler = Callable[[Optional[str], Optional[int], Optional[int], str, Union[Severity, str]], None]
OutputProvider = Callable[[str, str], OutputSink]


@runtime_checkable
class CompilerEngine(Protocol):
    """A stateful, non re-entrant source-to-source compiler."""

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
        """Compile the program rooted at entry_uri.

        Args:
            entry_uri: URI of the main compilation unit
            library_root: URI of the SDK library root
            package_root: URI of the package root, or None
            provider: Async callback returning source text for a URI
            handler: Callback receiving (uri, begin, end, message, severity)
            options: Extra engine options
            output_provider: Callback returning a sink for (name, extension)
        """
        ...

    def close(self) -> None:
        """Release engine resources (scratch directories, caches)."""
        ...
