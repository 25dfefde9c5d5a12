"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any, Callable

import inspect

import pytest


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse`` used as ``async with``."""

    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        *,
        text: str | None = None,
        delay: float = 0.0,
        raises: BaseException | None = None,
    ):
        self.status = status
        self._payload = payload
        self._text = text
        self.delay = delay
        self.raises = raises
        self.cancelled = False

    async def __aenter__(self) -> "FakeResponse":
        if self.raises is not None:
            raise self.raises
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return self

    async def __aexit__(self, *exc) -> bool:
        return False

    async def text(self) -> str:
        if self._text is not None:
            return self._text
        return json.dumps(self._payload)

    async def json(self, **kwargs) -> Any:
        if self._text is not None:
            return json.loads(self._text)
        return self._payload


class FakeHttpSession:
    """Routes ``(METHOD, path)`` to canned responses; records every call."""

    closed = False

    def __init__(self, routes: dict[tuple[str, str], FakeResponse | Callable[..., FakeResponse]] | None = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, dict]] = []

    def _dispatch(self, method: str, url: str, kwargs: dict) -> FakeResponse:
        path = url.split("/client/v4", 1)[-1] if "/client/v4" in url else url
        self.calls.append((method, path, kwargs))
        route = self.routes.get((method, path))
        if route is None:
            return FakeResponse(404, text="not found")
        return route(**kwargs) if callable(route) else route

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        return self._dispatch(method.upper(), url, kwargs)

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self._dispatch("GET", url, kwargs)


def cf_ok(result: Any) -> FakeResponse:
    return FakeResponse(200, {"success": True, "errors": [], "result": result})


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
        loop = _get_loop(pyfuncitem._request)
        loop.run_until_complete(pyfuncitem.obj(**testargs))
        return True
    return None


@pytest.hookimpl(tryfirst=True)
def pytest_fixture_setup(fixturedef, request):  # type: ignore[override]
    func = fixturedef.func
    if inspect.iscoroutinefunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        value = loop.run_until_complete(func(**kwargs))
        fixturedef.cached_result = (value, fixturedef.cache_key(request), None)
        return value

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
        fixturedef.cached_result = (value, fixturedef.cache_key(request), None)
        return value

    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")
