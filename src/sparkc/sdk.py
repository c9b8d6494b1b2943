"""SDK source table.

The compiler asks for SDK libraries through "sdk:" URIs. DartSdk is the
lookup those requests are answered from: a read-only table mapping a path
relative to the library root (e.g. "core/core.dart") to its source text.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Mapping, Optional

logger = logging.getLogger(__name__)


class DartSdk:
    """Read-only table of SDK library sources keyed by relative path."""

    def __init__(self, sources: Mapping[str, str], version: Optional[str] = None):
        self._sources = dict(sources)
        self.version = version

    @classmethod
    def from_directory(cls, root: Path, pattern: str = "**/*.dart") -> DartSdk:
        """Load every library source below a directory.

        Args:
            root: SDK "lib" directory
            pattern: Glob of files to include

        Returns:
            DartSdk keyed by POSIX paths relative to root

        Raises:
            FileNotFoundError: If root does not exist
        """
        if not root.is_dir():
            raise FileNotFoundError(f"SDK directory not found: {root}")

        sources: dict[str, str] = {}
        for path in sorted(root.glob(pattern)):
            if path.is_file():
                sources[path.relative_to(root).as_posix()] = path.read_text(encoding="utf-8")

        version = None
        version_file = root.parent / "version"
        if version_file.is_file():
            version = version_file.read_text(encoding="utf-8").strip()

        logger.info(f"Loaded SDK with {len(sources)} sources from {root}")
        return cls(sources, version=version)

    @classmethod
    def empty(cls) -> DartSdk:
        return cls({})

    def get_source_for_path(self, path: str) -> Optional[str]:
        """Return the source for a library-relative path, or None."""
        return self._sources.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def as_dict(self) -> dict[str, str]:
        """Copy of the table, used to ship the SDK to a worker process."""
        return dict(self._sources)
