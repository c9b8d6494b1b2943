"""
Resource resolution for the compiler engine.

The engine asks for the text of every URI it needs (the entry file, each
import, SDK libraries). ResourceResolver dispatches each request on the URI
scheme to a backend:

- resource: the single in-memory document the caller handed to the session
- sdk: library sources from the loaded DartSdk
- file, dart, package: not supported, always fail with unhandled-scheme
- anything else: fetched over HTTP

New schemes are supported by registering another backend; the dispatcher
itself never changes.
"""

import logging
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import SplitResult, urlsplit

import httpx

from sparkc.config import DEFAULT_FETCH_TIMEOUT
from sparkc.errors import ResolutionError, ResolutionFailure
from sparkc.sdk import DartSdk

logger = logging.getLogger(__name__)

ENTRY_URI = "resource:/main.dart"
LIBRARY_ROOT_PREFIX = "/lib/"
UNSUPPORTED_SCHEMES = ("file", "dart", "package")


@runtime_checkable
class ResolverBackend(Protocol):
    """Scheme-specific source lookup."""

    async def resolve(self, uri: SplitResult) -> str:
        """Return the text for uri or raise ResolutionError."""
        ...


class InMemoryBackend:
    """Serves the one document the caller supplied as a string."""

    def __init__(self, entry_uri: str = ENTRY_URI):
        # Compared against parsed URIs, so "resource:///x" matches "resource:/x"
        self.entry_uri = urlsplit(entry_uri).geturl()
        self._text: Optional[str] = None

    def bind(self, text: str) -> None:
        self._text = text

    async def resolve(self, uri: SplitResult) -> str:
        if uri.geturl() != self.entry_uri or self._text is None:
            raise ResolutionError(ResolutionFailure.UNHANDLED_SCHEME, uri.geturl())
        return self._text


class SdkBackend:
    """Serves SDK library sources, stripping the library root prefix."""

    def __init__(self, sdk: DartSdk, prefix: str = LIBRARY_ROOT_PREFIX):
        self.sdk = sdk
        self.prefix = prefix

    async def resolve(self, uri: SplitResult) -> str:
        path = uri.path
        if path.startswith(self.prefix):
            path = path[len(self.prefix) :]

        contents = self.sdk.get_source_for_path(path)
        if contents is None:
            raise ResolutionError(ResolutionFailure.NOT_FOUND, uri.geturl(), detail="file not found")
        return contents


class UnsupportedSchemeBackend:
    """Placeholder for schemes that have no backend yet."""

    async def resolve(self, uri: SplitResult) -> str:
        raise ResolutionError(ResolutionFailure.UNHANDLED_SCHEME, uri.geturl())


class HttpFetchBackend:
    """Fetches source text over HTTP(S)."""

    def __init__(self, timeout: float = DEFAULT_FETCH_TIMEOUT, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize HTTP backend.

        Args:
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to stub the network)
        """
        self.timeout = timeout
        self._transport = transport

    async def resolve(self, uri: SplitResult) -> str:
        url = uri.geturl()
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ResolutionError(
                ResolutionFailure.FETCH_FAILED, url, detail=f"HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ResolutionError(ResolutionFailure.FETCH_FAILED, url, detail=str(e) or type(e).__name__) from e

        return response.text


class ResourceResolver:
    """Dispatches resolution requests to backends by URI scheme.

    Successful resolutions are memoized for the lifetime of the resolver,
    so a URI resolves to the same text for the whole session.
    """

    def __init__(self, backends: dict[str, ResolverBackend], fallback: Optional[ResolverBackend] = None):
        self._backends = dict(backends)
        self._fallback = fallback
        self._cache: dict[str, str] = {}
        self.request_count = 0

    @classmethod
    def for_session(
        cls,
        sdk: DartSdk,
        entry: InMemoryBackend,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ResourceResolver":
        """Build the standard backend set used by a compile session."""
        unsupported = UnsupportedSchemeBackend()
        backends: dict[str, ResolverBackend] = {
            "resource": entry,
            "sdk": SdkBackend(sdk),
        }
        for scheme in UNSUPPORTED_SCHEMES:
            backends[scheme] = unsupported
        return cls(backends, fallback=HttpFetchBackend(timeout=fetch_timeout, transport=transport))

    def register(self, scheme: str, backend: ResolverBackend) -> None:
        """Install or replace the backend for a scheme."""
        self._backends[scheme] = backend

    def backend_for(self, scheme: str) -> Optional[ResolverBackend]:
        return self._backends.get(scheme, self._fallback)

    async def resolve(self, uri: str) -> str:
        """Return the source text for uri.

        Args:
            uri: URI requested by the engine

        Returns:
            Source text

        Raises:
            ResolutionError: If no backend can provide the text
        """
        self.request_count += 1
        cached = self._cache.get(uri)
        if cached is not None:
            logger.debug(f"Resolved {uri} from session cache")
            return cached

        parsed = urlsplit(uri)
        backend = self.backend_for(parsed.scheme)
        if backend is None:
            raise ResolutionError(ResolutionFailure.UNHANDLED_SCHEME, uri)

        try:
            text = await backend.resolve(parsed)
        except ResolutionError as e:
            logger.debug(f"Failed to resolve {uri}: {e}")
            raise

        self._cache[uri] = text
        logger.debug(f"Resolved {uri} ({len(text)} chars) via {type(backend).__name__}")
        return text
