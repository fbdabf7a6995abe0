"""Tests for SessionRegistry — session/page lifecycle over fake Playwright."""
import asyncio
from unittest.mock import MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from agentic_browser.browser.registry import DEFAULT_PAGE_ID, SessionRegistry
from agentic_browser.config import FingerprintConfig, SessionOptions
from agentic_browser.errors import ProvisioningError, SessionNotFoundError

from fakes import FakePlaywright


def _registry(**chromium_kwargs):
    return SessionRegistry(FakePlaywright(**chromium_kwargs))


def test_create_registers_session_with_default_page():
    async def scenario():
        registry = _registry()
        sid = await registry.create(options=SessionOptions(default_timeout=5000))
        session = registry.get(sid)
        page = await registry.get_page(sid)
        return session, page

    session, page = asyncio.run(scenario())
    assert session is not None
    assert list(session.pages) == [DEFAULT_PAGE_ID]
    assert page is session.pages[DEFAULT_PAGE_ID]
    assert page.default_timeout == 5000
    assert page.viewport == (1920, 1080)
    assert DEFAULT_PAGE_ID in session.cdp_sessions


def test_concurrent_creates_get_distinct_ids():
    async def scenario():
        registry = _registry()
        ids = await asyncio.gather(*(registry.create() for _ in range(5)))
        return registry, ids

    registry, ids = asyncio.run(scenario())
    assert len(set(ids)) == 5
    for sid in ids:
        assert registry.get(sid) is not None
    assert {s["sessionId"] for s in registry.list_sessions()} == set(ids)


def test_fingerprint_applies_to_every_page():
    async def scenario():
        registry = _registry()
        sid = await registry.create(fingerprint=FingerprintConfig(user_agent="UA/9", viewport=(800, 600)))
        first = await registry.get_page(sid)
        second = await registry.get_page(sid, "second")
        return registry.get(sid), first, second

    session, first, second = asyncio.run(scenario())
    assert first.viewport == second.viewport == (800, 600)
    for cdp in session.cdp_sessions.values():
        assert ("Network.setUserAgentOverride", {"userAgent": "UA/9"}) in cdp.sent


def test_close_is_idempotent():
    async def scenario():
        registry = _registry()
        sid = await registry.create()
        browser = registry.get(sid).handle.browser
        await registry.close(sid)
        await registry.close(sid)
        await registry.close("never-existed")
        return registry, sid, browser

    registry, sid, browser = asyncio.run(scenario())
    assert registry.get(sid) is None
    assert browser.closed
    assert registry.list_sessions() == []


def test_get_page_after_close_raises():
    async def scenario():
        registry = _registry()
        sid = await registry.create()
        await registry.close(sid)
        await registry.get_page(sid)

    with pytest.raises(SessionNotFoundError):
        asyncio.run(scenario())


def test_lazy_page_is_stable():
    async def scenario():
        registry = _registry()
        sid = await registry.create()
        a = await registry.get_page(sid, "tab2")
        b = await registry.get_page(sid, "tab2")
        return registry, sid, a, b

    registry, sid, a, b = asyncio.run(scenario())
    assert a is b
    assert registry.page_ids(sid) == [DEFAULT_PAGE_ID, "tab2"]


def test_concurrent_lazy_page_creation_keeps_one_page():
    async def scenario():
        registry = _registry(context_kwargs={"yield_on_new_page": True})
        sid = await registry.create()
        a, b = await asyncio.gather(registry.get_page(sid, "race"), registry.get_page(sid, "race"))
        context = registry.get(sid).handle.context
        return a, b, context

    a, b, context = asyncio.run(scenario())
    assert a is b
    assert not a.closed
    # default page + winner + discarded loser
    assert len(context.pages) == 3
    assert sum(1 for p in context.pages if p.closed) == 1


def test_page_opened_for_closed_session_is_discarded():
    async def scenario():
        registry = _registry()
        sid = await registry.create()
        session = registry.get(sid)
        await registry.close(sid)
        with pytest.raises(SessionNotFoundError):
            await registry._open_page(session, "late", lazy=True)
        return session

    session = asyncio.run(scenario())
    late = session.handle.context.pages[-1]
    assert late.closed
    assert session.pages == {}


def test_create_page_and_close_page():
    async def scenario():
        registry = _registry()
        sid = await registry.create()
        generated = await registry.create_page(sid)
        named = await registry.create_page(sid, "named")
        again = await registry.create_page(sid, "named")
        page = await registry.get_page(sid, "named")
        await registry.close_page(sid, "named")
        await registry.close_page(sid, "named")
        await registry.close_page("missing", "named")
        return registry, sid, generated, named, again, page

    registry, sid, generated, named, again, page = asyncio.run(scenario())
    assert generated and generated != DEFAULT_PAGE_ID
    assert named == again == "named"
    assert page.closed
    assert "named" not in registry.page_ids(sid)


def test_close_continues_past_page_failure():
    logger = MagicMock()

    async def scenario():
        registry = SessionRegistry(FakePlaywright(), event_logger=logger)
        sid = await registry.create()
        await registry.get_page(sid, "second")
        registry.get(sid).pages[DEFAULT_PAGE_ID].close_error = PlaywrightError("Target crashed")
        browser = registry.get(sid).handle.browser
        await registry.close(sid)
        return registry, sid, browser

    registry, sid, browser = asyncio.run(scenario())
    assert registry.get(sid) is None
    assert browser.closed
    args = logger.log_session_closed.call_args[0]
    assert args[0] == sid
    assert args[1] == 1   # pages closed
    assert args[2] == 1   # page errors
    assert args[3] is None


def test_close_all():
    async def scenario():
        registry = _registry()
        ids = [await registry.create() for _ in range(3)]
        browsers = [registry.get(sid).handle.browser for sid in ids]
        await registry.close_all()
        return registry, browsers

    registry, browsers = asyncio.run(scenario())
    assert registry.list_sessions() == []
    assert all(b.closed for b in browsers)


def test_launch_failure_registers_nothing():
    registry = _registry(launch_error=RuntimeError("no chromium"))
    with pytest.raises(ProvisioningError) as info:
        asyncio.run(registry.create())
    assert info.value.mode == "local"
    assert registry.list_sessions() == []


def test_page_setup_failure_releases_browser():
    registry = _registry(context_kwargs={"new_page_fails": True})
    with pytest.raises(ProvisioningError) as info:
        asyncio.run(registry.create())
    assert "default page setup failed" in str(info.value)
    assert registry.list_sessions() == []
    assert registry._playwright.chromium.browsers[0].closed


def test_events_logged():
    logger = MagicMock()

    async def scenario():
        registry = SessionRegistry(FakePlaywright(), event_logger=logger)
        sid = await registry.create()
        await registry.get_page(sid, "lazy")
        await registry.create_page(sid, "explicit")
        return sid

    sid = asyncio.run(scenario())
    assert logger.log_session_created.call_args[0][0] == sid
    assert logger.log_session_created.call_args[0][1] == "local"
    lazy_flags = [c[0][2] for c in logger.log_page_created.call_args_list]
    assert lazy_flags == [True, False]


def test_storage_helpers_route_through_page():
    async def scenario():
        registry = _registry()
        sid = await registry.create()
        await registry.set_cookies(sid, [{"name": "k", "value": "v", "url": "https://example.com"}])
        return await registry.get_cookies(sid)

    assert asyncio.run(scenario()) == [{"name": "k", "value": "v", "url": "https://example.com"}]


def test_rejected_fingerprint_override_fails_create():
    registry = _registry(context_kwargs={"cdp_fail_on": "Emulation.setTimezoneOverride"})
    config = FingerprintConfig(user_agent="UA/1", timezone="Mars/Olympus", locale="de-DE")
    with pytest.raises(ProvisioningError) as info:
        asyncio.run(registry.create(fingerprint=config))
    assert "Invalid parameters" in str(info.value)
    assert registry.list_sessions() == []
    assert registry._playwright.chromium.browsers[0].closed
