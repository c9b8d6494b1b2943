"""
Compile Session - one bounded compile and its accumulated result.

A session wires its own resolver, diagnostic sink and output collector into
the driver's engine, runs exactly one compile and returns a frozen
CompileResult. Sessions are cheap; create a new one for every compile.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Optional

from sparkc.diagnostics import DEFAULT_RETAINED, DiagnosticSink, Severity
from sparkc.errors import CompileCancelledError, EngineError, ResolutionError, SessionAlreadyUsedError
from sparkc.output_collector import OutputCollector
from sparkc.resolver import ENTRY_URI, InMemoryBackend, ResourceResolver
from sparkc.result import CompileResult

if TYPE_CHECKING:
    from sparkc.driver import CompilerDriver

logger = logging.getLogger(__name__)

LIBRARY_ROOT_URI = "sdk:/"


def _consume_abandoned(task: asyncio.Future[Any]) -> None:
    """Retrieve the outcome of an engine call nobody is waiting for anymore."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Abandoned compile finished with an error: {exc}")
    else:
        logger.info("Abandoned compile finished; result discarded")


class CompileSession:
    """A single-use compile against a CompilerDriver."""

    def __init__(
        self,
        driver: CompilerDriver,
        entry_uri: str = ENTRY_URI,
        retain: frozenset[Severity] = DEFAULT_RETAINED,
    ):
        """Initialize compile session.

        Args:
            driver: Driver whose SDK and engine this session uses
            entry_uri: Well-known URI the source text is served under
            retain: Severities the diagnostic sink keeps
        """
        self.driver = driver
        self.entry_uri = entry_uri
        self._entry = InMemoryBackend(entry_uri)
        self.resolver = ResourceResolver.for_session(
            driver.sdk,
            self._entry,
            fetch_timeout=driver.config.fetch_timeout,
            transport=driver.transport,
        )
        self.diagnostics = DiagnosticSink(retain=retain)
        self.outputs = OutputCollector()
        self.result: Optional[CompileResult] = None
        self._used = False
        self._engine_call: Optional[asyncio.Future[Any]] = None

    @property
    def used(self) -> bool:
        return self._used

    async def compile(
        self,
        source_text: str,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompileResult:
        """Compile the given string and return the resulting CompileResult.

        A compile that reports errors returns normally; check
        CompileResult.succeeded(). Cancellation is best-effort: the session
        stops waiting, but the engine call keeps running to completion in the
        background and the driver stays busy until it does.

        Args:
            source_text: Program text served under the entry URI
            timeout: Seconds to wait for the engine before giving up
            cancel_event: Event that abandons the compile when set

        Returns:
            The frozen compile result

        Raises:
            SessionAlreadyUsedError: If this session already compiled
            DriverBusyError: If the driver is running another compile
            ResolutionError: If a source the engine needed could not be resolved
            EngineError: If the engine raised instead of reporting diagnostics
            CompileCancelledError: If the timeout expired or cancel_event was set
        """
        if self._used:
            raise SessionAlreadyUsedError(f"Session for {self.entry_uri} has already compiled")

        ticket = self.driver._acquire()
        self._used = True
        self._entry.bind(source_text)

        start_time = time.perf_counter()
        try:
            engine_call = asyncio.ensure_future(
                self.driver.engine.compile(
                    self.entry_uri,
                    LIBRARY_ROOT_URI,
                    None,
                    self.resolver.resolve,
                    self.diagnostics.record,
                    [],
                    self.outputs.open_output,
                )
            )
        except Exception as e:
            self.driver._release(ticket)
            raise EngineError(f"Compiler engine could not be started: {e}") from e
        engine_call.add_done_callback(lambda _: self.driver._release(ticket))
        self._engine_call = engine_call

        await self._wait(engine_call, timeout, cancel_event)
        elapsed = time.perf_counter() - start_time

        try:
            engine_call.result()
        except ResolutionError as e:
            logger.error(f"Compile of {self.entry_uri} aborted: {e}")
            raise
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Compiler engine failed on {self.entry_uri}: {e}", exc_info=True)
            raise EngineError(f"Compiler engine failed: {e}") from e

        self.result = CompileResult(
            problems=self.diagnostics.problems,
            output=self.outputs.output,
            compile_time=elapsed,
        )
        self.driver._record_compile(self.result)
        return self.result

    async def abort(self) -> None:
        """Stop an abandoned engine call and wait until it has finished.

        After a timeout or cancel the engine call keeps running and the driver
        stays busy. abort() cancels it outright and returns once the engine
        has unwound and the driver has been released. Does nothing if the
        engine call already finished or never started.
        """
        engine_call = self._engine_call
        if engine_call is None or engine_call.done():
            return
        logger.info(f"Aborting abandoned compile of {self.entry_uri}")
        engine_call.cancel()
        await asyncio.wait({engine_call})

    async def _wait(
        self,
        engine_call: asyncio.Future[Any],
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        waiters: set[asyncio.Future[Any]] = {engine_call}
        cancel_waiter: Optional[asyncio.Future[Any]] = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            # asyncio.wait never cancels what it waits on, so the engine call
            # survives a timeout or a cancellation of the caller
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            engine_call.add_done_callback(_consume_abandoned)
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if engine_call in done:
            return

        engine_call.add_done_callback(_consume_abandoned)
        if cancel_waiter is not None and cancel_waiter in done:
            logger.warning(f"Compile of {self.entry_uri} cancelled; engine left to finish in the background")
            raise CompileCancelledError(f"Compile of {self.entry_uri} was cancelled")

        logger.warning(f"Compile of {self.entry_uri} timed out after {timeout}s; engine left to finish in the background")
        raise CompileCancelledError(f"Compile of {self.entry_uri} timed out after {timeout}s")
