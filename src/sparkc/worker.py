"""
Out-of-process compiles.

WorkerCompiler moves the compile into a single worker (a separate process by
default). The worker builds one CompilerDriver when it starts, so the engine's
caches persist across every compile it runs. Results cross the boundary as the
flat record produced by ResultCodec and are decoded back on the caller's side.

With one worker, compiles submitted concurrently are queued and run one after
another.
"""

import asyncio
import logging
import uuid
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Optional

from sparkc.codec import ResultCodec
from sparkc.config import CompilerConfig
from sparkc.driver import CompilerDriver
from sparkc.engine import CompilerEngine
from sparkc.errors import CompileCancelledError
from sparkc.result import CompileResult
from sparkc.sdk import DartSdk

logger = logging.getLogger(__name__)

# Drivers living inside the worker, keyed by the WorkerCompiler that owns them.
# Thread workers of several compilers share this process.
_worker_drivers: dict[str, CompilerDriver] = {}


def _init_worker(key: str, sdk_sources: dict[str, str], engine: Optional[CompilerEngine], config: CompilerConfig) -> None:
    _worker_drivers[key] = CompilerDriver.create(DartSdk(sdk_sources), engine=engine, config=config)
    logger.info(f"Compile worker {key} ready ({len(sdk_sources)} SDK sources)")


async def _compile_and_settle(driver: CompilerDriver, source_text: str, timeout: Optional[float]) -> CompileResult:
    session = driver.create_session()
    try:
        return await session.compile(source_text, timeout=timeout)
    except CompileCancelledError:
        # The event loop closes when this returns; the engine must be gone first
        await session.abort()
        raise


def _compile_in_worker(key: str, source_text: str, timeout: Optional[float]) -> dict[str, Any]:
    driver = _worker_drivers.get(key)
    if driver is None:
        raise RuntimeError("Compile worker was not initialized")
    result = asyncio.run(_compile_and_settle(driver, source_text, timeout))
    return ResultCodec.encode(result)


def _shutdown_worker(key: str) -> None:
    driver = _worker_drivers.pop(key, None)
    if driver is not None:
        driver.close()


class WorkerCompiler:
    """Runs compiles in a dedicated worker and decodes the results."""

    def __init__(
        self,
        sdk: DartSdk,
        engine: Optional[CompilerEngine] = None,
        config: Optional[CompilerConfig] = None,
        use_processes: bool = True,
    ):
        """Initialize worker compiler.

        Args:
            sdk: SDK shipped to the worker
            engine: Engine for the worker's driver (must be picklable with
                    use_processes); defaults to a Dart2jsEngine
            config: Driver configuration
            use_processes: Run in a child process; False runs in a thread
        """
        self.config = config or CompilerConfig()
        self.key = uuid.uuid4().hex
        initargs = (self.key, sdk.as_dict(), engine, self.config)
        self._executor: Executor
        if use_processes:
            self._executor = ProcessPoolExecutor(max_workers=1, initializer=_init_worker, initargs=initargs)
        else:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="CompileWorker", initializer=_init_worker, initargs=initargs
            )
        self.use_processes = use_processes
        self._closed = False
        logger.info(f"WorkerCompiler started (processes={use_processes})")

    async def compile(self, source_text: str, timeout: Optional[float] = None) -> CompileResult:
        """Compile source_text in the worker.

        Args:
            source_text: Program text
            timeout: Per-compile timeout applied inside the worker. On expiry
                     the engine is stopped before the worker takes the next compile

        Returns:
            The decoded compile result

        Raises:
            ResolutionError, EngineError, CompileCancelledError: As raised in the worker
            RecordDecodeError: If the worker returned a malformed record
        """
        if self._closed:
            raise RuntimeError("WorkerCompiler is closed")
        loop = asyncio.get_running_loop()
        record = await loop.run_in_executor(self._executor, _compile_in_worker, self.key, source_text, timeout)
        return ResultCodec.decode(record)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Single worker, so this runs where the driver lives
        self._executor.submit(_shutdown_worker, self.key).result()
        self._executor.shutdown(wait=True)
        logger.info("WorkerCompiler stopped")

    def __enter__(self) -> "WorkerCompiler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
