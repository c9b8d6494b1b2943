"""Unit tests for ResourceResolver and its backends."""

from urllib.parse import urlsplit

import httpx
import pytest

from engine_stub import run
from sparkc.errors import ResolutionError, ResolutionFailure
from sparkc.resolver import (
    ENTRY_URI,
    HttpFetchBackend,
    InMemoryBackend,
    ResolverBackend,
    ResourceResolver,
    SdkBackend,
)


def _resolver(sdk, text="void main() {}", transport=None):
    entry = InMemoryBackend()
    entry.bind(text)
    return ResourceResolver.for_session(sdk, entry, transport=transport)


def _failure(resolver, uri):
    with pytest.raises(ResolutionError) as exc_info:
        run(resolver.resolve(uri))
    return exc_info.value


class TestResourceScheme:
    def test_entry_uri_returns_bound_text(self, sdk):
        resolver = _resolver(sdk, text="void main() { print('hi'); }")
        assert run(resolver.resolve(ENTRY_URI)) == "void main() { print('hi'); }"

    def test_other_resource_uri_is_unhandled(self, sdk):
        error = _failure(_resolver(sdk), "resource:/other.dart")
        assert error.reason == ResolutionFailure.UNHANDLED_SCHEME
        assert error.uri == "resource:/other.dart"

    def test_unbound_entry_is_unhandled(self, sdk):
        resolver = ResourceResolver.for_session(sdk, InMemoryBackend())
        assert _failure(resolver, ENTRY_URI).reason == ResolutionFailure.UNHANDLED_SCHEME

    def test_triple_slash_entry_uri_matches(self, sdk):
        entry = InMemoryBackend("resource:///main.dart")
        entry.bind("void main() {}")
        resolver = ResourceResolver.for_session(sdk, entry)

        assert run(resolver.resolve("resource:///main.dart")) == "void main() {}"
        assert run(resolver.resolve(ENTRY_URI)) == "void main() {}"


class TestSdkScheme:
    def test_library_prefix_is_stripped(self, sdk):
        resolver = _resolver(sdk)
        assert run(resolver.resolve("sdk:/lib/core/core.dart")) == sdk.get_source_for_path("core/core.dart")

    def test_path_without_prefix_is_looked_up_as_is(self, sdk):
        resolver = _resolver(sdk)
        assert run(resolver.resolve("sdk:async/async.dart")) == "library dart.async;\n"

    def test_missing_library_is_not_found(self, sdk):
        error = _failure(_resolver(sdk), "sdk:/lib/core.dart")
        assert error.reason == ResolutionFailure.NOT_FOUND
        assert "not-found" in str(error)

    def test_backend_directly(self, sdk):
        backend = SdkBackend(sdk)
        assert run(backend.resolve(urlsplit("sdk:/lib/html/dartium/html_dartium.dart"))) == "library dart.html;\n"


class TestReservedSchemes:
    @pytest.mark.parametrize("uri", ["file:///tmp/a.dart", "dart:core", "package:foo/foo.dart"])
    def test_reserved_schemes_are_unhandled(self, sdk, uri):
        assert _failure(_resolver(sdk), uri).reason == ResolutionFailure.UNHANDLED_SCHEME


class TestNetworkFallback:
    def test_fetches_unknown_scheme_over_http(self, sdk):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text="library remote;")

        resolver = _resolver(sdk, transport=httpx.MockTransport(handler))
        assert run(resolver.resolve("https://example.com/lib/remote.dart")) == "library remote;"
        assert requested == ["https://example.com/lib/remote.dart"]

    def test_http_error_status_is_fetch_failed(self, sdk):
        resolver = _resolver(sdk, transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        error = _failure(resolver, "https://example.com/missing.dart")
        assert error.reason == ResolutionFailure.FETCH_FAILED
        assert error.detail == "HTTP 404"

    def test_transport_error_is_fetch_failed(self, sdk):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        resolver = _resolver(sdk, transport=httpx.MockTransport(handler))
        error = _failure(resolver, "http://localhost:1/a.dart")
        assert error.reason == ResolutionFailure.FETCH_FAILED
        assert isinstance(error.__cause__, httpx.ConnectError)

    def test_backend_timeout_setting(self):
        assert HttpFetchBackend(timeout=2.5).timeout == 2.5


class TestDispatcher:
    def test_same_uri_resolves_once_per_session(self, sdk):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text=f"version {len(calls)}")

        resolver = _resolver(sdk, transport=httpx.MockTransport(handler))

        async def resolve_twice():
            first = await resolver.resolve("https://example.com/a.dart")
            second = await resolver.resolve("https://example.com/a.dart")
            return first, second

        assert run(resolve_twice()) == ("version 1", "version 1")
        assert len(calls) == 1
        assert resolver.request_count == 2

    def test_failures_are_not_cached(self, sdk):
        resolver = _resolver(sdk)
        _failure(resolver, "sdk:/lib/missing.dart")
        _failure(resolver, "sdk:/lib/missing.dart")
        assert resolver.request_count == 2

    def test_register_adds_backend_without_touching_dispatch(self, sdk):
        class PackageBackend:
            async def resolve(self, uri):
                return f"// package {uri.path}"

        resolver = _resolver(sdk)
        backend = PackageBackend()
        assert isinstance(backend, ResolverBackend)
        resolver.register("package", backend)

        assert run(resolver.resolve("package:foo/foo.dart")) == "// package foo/foo.dart"

    def test_no_fallback_is_unhandled(self, sdk):
        resolver = ResourceResolver({"sdk": SdkBackend(sdk)})
        assert _failure(resolver, "https://example.com/a.dart").reason == ResolutionFailure.UNHANDLED_SCHEME
