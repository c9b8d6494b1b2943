"""
Compiler Driver - long-lived handle over a loaded SDK and compiler engine.

Drivers are heavy-weight objects. The engine keeps internal caches for the
lifetime of the driver, so the first compile is slow and subsequent ones are
noticeably faster (on the order of a 2x speedup). Reuse one driver for many
sessions instead of creating a new one per compile.

The engine is not re-entrant: a driver runs one compile at a time. Starting
a compile while another is in flight raises DriverBusyError.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

import httpx

from sparkc.config import CompilerConfig
from sparkc.diagnostics import DEFAULT_RETAINED, Severity
from sparkc.engine import CompilerEngine
from sparkc.errors import DriverBusyError
from sparkc.resolver import ENTRY_URI
from sparkc.result import CompileResult
from sparkc.sdk import DartSdk
from sparkc.session import CompileSession

logger = logging.getLogger(__name__)


class DriverState(Enum):
    """Driver state enumeration."""

    IDLE = "idle"
    COMPILING = "compiling"


class CompilerDriver:
    """Factory for compile sessions sharing one SDK and one engine."""

    def __init__(
        self,
        sdk: DartSdk,
        engine: CompilerEngine,
        config: Optional[CompilerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize compiler driver.

        Args:
            sdk: Loaded SDK source table
            engine: Compiler engine owned by this driver
            config: Driver configuration (defaults to CompilerConfig())
            transport: Optional httpx transport for the network resolver
        """
        self.sdk = sdk
        self.engine = engine
        self.config = config or CompilerConfig()
        self.transport = transport

        self._state = DriverState.IDLE
        self._state_lock = threading.Lock()
        self._ticket = 0
        self._closed = False

        self.compile_count = 0
        self.last_result: Optional[CompileResult] = None

        logger.info(f"CompilerDriver created ({len(sdk)} SDK sources, engine={type(engine).__name__})")

    @classmethod
    def create(
        cls,
        sdk: DartSdk,
        engine: Optional[CompilerEngine] = None,
        config: Optional[CompilerConfig] = None,
    ) -> CompilerDriver:
        """Create a driver from a pre-loaded SDK.

        Args:
            sdk: Loaded SDK source table
            engine: Engine to wrap; defaults to a Dart2jsEngine built from config
            config: Driver configuration

        Returns:
            A new CompilerDriver
        """
        config = config or CompilerConfig()
        if engine is None:
            from sparkc.engines.dart2js import Dart2jsEngine

            engine = Dart2jsEngine(config.dart_executable, work_root=config.work_dir)
        return cls(sdk, engine, config=config)

    @classmethod
    def from_config(cls, config: Optional[CompilerConfig] = None) -> CompilerDriver:
        """Create a driver entirely from configuration (environment by default)."""
        config = config or CompilerConfig.from_env()
        sdk = DartSdk.from_directory(config.sdk_dir) if config.sdk_dir else DartSdk.empty()
        return cls.create(sdk, config=config)

    @property
    def state(self) -> DriverState:
        with self._state_lock:
            return self._state

    @property
    def is_busy(self) -> bool:
        return self.state == DriverState.COMPILING

    def create_session(
        self,
        entry_uri: str = ENTRY_URI,
        retain: frozenset[Severity] = DEFAULT_RETAINED,
    ) -> CompileSession:
        """Create a new single-use compile session. Sessions are cheap."""
        if self._closed:
            raise RuntimeError("CompilerDriver is closed")
        return CompileSession(self, entry_uri=entry_uri, retain=retain)

    async def compile_string(self, source_text: str, **kwargs) -> CompileResult:
        """Compile the given string in a fresh session."""
        return await self.create_session().compile(source_text, **kwargs)

    def _acquire(self) -> int:
        with self._state_lock:
            if self._closed:
                raise RuntimeError("CompilerDriver is closed")
            if self._state == DriverState.COMPILING:
                raise DriverBusyError("CompilerDriver is already running a compile")
            self._state = DriverState.COMPILING
            self._ticket += 1
            ticket = self._ticket
        if self.compile_count == 0:
            logger.info("First compile on this driver; engine caches are cold")
        logger.debug(f"Driver acquired for compile #{ticket}")
        return ticket

    def _release(self, ticket: int) -> None:
        with self._state_lock:
            # A stale ticket belongs to a compile that was already released
            if ticket != self._ticket or self._state == DriverState.IDLE:
                return
            self._state = DriverState.IDLE
        logger.debug(f"Driver released after compile #{ticket}")

    def _record_compile(self, result: CompileResult) -> None:
        self.compile_count += 1
        self.last_result = result
        logger.info(
            f"Compile #{self.compile_count} finished in {result.compile_milliseconds} ms "
            f"({len(result.problems)} problems, succeeded={result.succeeded()})"
        )

    def close(self) -> None:
        """Release engine resources. The driver cannot be used afterwards."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        close = getattr(self.engine, "close", None)
        if callable(close):
            close()
        logger.info("CompilerDriver closed")

    def __enter__(self) -> CompilerDriver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
