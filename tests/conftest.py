"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import AsyncGenerator

import pytest

from phishlens.config import Config

# Keep a developer's .env from changing test behavior.
for _var in (
    "SAFE_BROWSING_API_KEY",
    "VIRUSTOTAL_API_KEY",
    "PHISHTANK_API_KEY",
    "CLASSIFIER_ENDPOINT",
    "PHISHLENS_ENABLED_PROVIDERS",
):
    os.environ.pop(_var, None)


@pytest.fixture(scope="session")
def event_loop() -> AsyncGenerator[asyncio.AbstractEventLoop, None]:
    """Provide a shared event loop for async tests and fixtures."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        yield loop
    finally:
        loop.close()


def _get_loop(request: pytest.FixtureRequest) -> asyncio.AbstractEventLoop:
    try:
        loop = request.getfixturevalue("event_loop")
    except pytest.FixtureLookupError:
        loop = asyncio.new_event_loop()
    if loop.is_closed():
        loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return loop


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        loop = testargs.get("event_loop") or asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        loop.run_until_complete(pyfuncitem.obj(**testargs))
        return True
    return None


@pytest.hookimpl(tryfirst=True)
def pytest_fixture_setup(fixturedef, request):  # type: ignore[override]
    func = fixturedef.func
    if inspect.iscoroutinefunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        return loop.run_until_complete(func(**kwargs))

    if inspect.isasyncgenfunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        agen = func(**kwargs)
        value = loop.run_until_complete(agen.__anext__())

        def finalize() -> None:
            try:
                loop.run_until_complete(agen.__anext__())
            except StopAsyncIteration:
                pass

        request.addfinalizer(finalize)
        return value

    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")


@pytest.fixture
def config() -> Config:
    """Default detection configuration."""
    return Config()


class FakeResponse:
    """Stand-in for an aiohttp response context manager."""

    def __init__(self, status: int = 200, payload=None, body: bytes = b""):
        self.status = status
        self._payload = payload
        self._body = body

    async def json(self):
        if not isinstance(self._payload, dict):
            raise TypeError("Response payload is not JSON")
        return self._payload

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stand-in for aiohttp.ClientSession routing requests to a handler."""

    def __init__(self, handler):
        self._handler = handler
        self.calls: list[tuple[str, str, dict]] = []

    def _request(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        result = self._handler(method, url, kwargs)
        if isinstance(result, BaseException):
            raise result
        return result

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def fake_aiohttp(monkeypatch):
    """Install a handler-driven fake aiohttp.ClientSession.

    Usage: ``sessions = fake_aiohttp(lambda method, url, kwargs: FakeResponse(...))``.
    Returns the list of sessions created so tests can inspect calls.
    """
    import aiohttp

    def install(handler):
        sessions: list[FakeSession] = []

        def factory(*args, **kwargs):
            session = FakeSession(handler)
            sessions.append(session)
            return session

        monkeypatch.setattr(aiohttp, "ClientSession", factory)
        return sessions

    return install


@pytest.fixture
def fake_response():
    return FakeResponse
