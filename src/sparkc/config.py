"""
Compiler driver configuration.

Configuration is read from the environment, mirroring how the rest of the
tooling locates its state:

- SPARKC_DART: dart executable used by the subprocess engine (default: "dart")
- SPARKC_SDK_DIR: directory holding the SDK library sources (optional)
- SPARKC_FETCH_TIMEOUT: timeout in seconds for network resolution (default: 30)
- SPARKC_WORK_DIR: root for engine working directories (default: ~/.sparkc/work)
- SPARKC_DEV_MODE=1: development mode, enables debug logging
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

DEFAULT_DART_EXECUTABLE = "dart"
DEFAULT_FETCH_TIMEOUT = 30.0


def is_dev_mode(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if development mode is enabled."""
    env = os.environ if environ is None else environ
    return env.get("SPARKC_DEV_MODE") == "1"


@dataclass(frozen=True)
class CompilerConfig:
    """Settings used to build a CompilerDriver.

    Attributes:
        dart_executable: Command used to run the dart toolchain
        sdk_dir: Directory of SDK library sources, or None for an empty table
        fetch_timeout: Timeout in seconds for the network fallback resolver
        work_dir: Root directory for engine scratch files
        dev_mode: Whether development mode (debug logging) is enabled
    """

    dart_executable: str = DEFAULT_DART_EXECUTABLE
    sdk_dir: Optional[Path] = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    work_dir: Path = Path.home() / ".sparkc" / "work"
    dev_mode: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CompilerConfig":
        """Create a CompilerConfig from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Populated configuration

        Raises:
            ValueError: If SPARKC_FETCH_TIMEOUT is not a positive number
        """
        env = os.environ if environ is None else environ

        sdk_dir = env.get("SPARKC_SDK_DIR")
        work_dir = env.get("SPARKC_WORK_DIR")

        raw_timeout = env.get("SPARKC_FETCH_TIMEOUT")
        fetch_timeout = DEFAULT_FETCH_TIMEOUT
        if raw_timeout:
            try:
                fetch_timeout = float(raw_timeout)
            except ValueError as e:
                raise ValueError(f"SPARKC_FETCH_TIMEOUT must be a number, got {raw_timeout!r}") from e
            if fetch_timeout <= 0:
                raise ValueError(f"SPARKC_FETCH_TIMEOUT must be positive, got {fetch_timeout}")

        return cls(
            dart_executable=env.get("SPARKC_DART") or DEFAULT_DART_EXECUTABLE,
            sdk_dir=Path(sdk_dir) if sdk_dir else None,
            fetch_timeout=fetch_timeout,
            work_dir=Path(work_dir) if work_dir else Path.home() / ".sparkc" / "work",
            dev_mode=is_dev_mode(env),
        )


def setup_logging(verbose: bool = False) -> None:
    """Install a console handler on the sparkc logger.

    Args:
        verbose: Log at DEBUG level instead of INFO
    """
    logger = logging.getLogger("sparkc")
    level = logging.DEBUG if verbose or is_dev_mode() else logging.INFO
    logger.setLevel(level)

    # Avoid stacking handlers when called more than once
    for handler in logger.handlers:
        if getattr(handler, "_sparkc_console", False):
            handler.setLevel(level)
            return

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    console_handler._sparkc_console = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)
