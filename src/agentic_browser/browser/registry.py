"""Session registry: the single owner of every browser and page handle.

Each session id maps to one provisioned browser plus a map of named pages.
The map itself is the only shared mutable state; an ``asyncio.Lock`` guards
its mutations and is never held across browser I/O.

The registry is constructed explicitly and shut down with ``close_all()``;
``open_registry()`` wraps that lifecycle together with Playwright start/stop.
"""
import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import async_playwright

from ..config import ConnectionConfig, FingerprintConfig, SessionOptions
from ..errors import ProvisioningError, SessionNotFoundError, translate_errors
from .connection import BrowserHandle, open_browser
from .stealth import Fingerprint, apply_fingerprint, resolve_fingerprint
from .storage import (
    get_cookies,
    get_local_storage,
    load_storage_state,
    set_cookies,
    set_local_storage,
)

log = logging.getLogger(__name__)

DEFAULT_PAGE_ID = "default"


@dataclass
class Session:
    session_id: str
    handle: BrowserHandle
    fingerprint: Fingerprint
    created_at: int                                   # epoch milliseconds
    user_data_dir: str = ""
    default_timeout: int = 30000
    pages: dict[str, Any] = field(default_factory=dict)          # page_id -> page
    cdp_sessions: dict[str, Any] = field(default_factory=dict)   # page_id -> CDP session

    @property
    def mode(self) -> str:
        return self.handle.mode

    def summary(self) -> dict:
        return {
            "sessionId": self.session_id,
            "createdAt": self.created_at,
            "pageCount": len(self.pages),
        }


class SessionRegistry:
    """Create, look up and tear down browser sessions.

    *playwright* is a started ``playwright.async_api.Playwright`` owned by the
    caller. *event_logger* is an optional ``SessionEventLogger``.
    """

    def __init__(self, playwright: Any, *, event_logger: Any = None):
        self._playwright = playwright
        self._event_logger = event_logger
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    @property
    def event_logger(self):
        return self._event_logger

    # ── Sessions ────────────────────────────────────────────────────────────

    async def create(
        self,
        connection: ConnectionConfig | None = None,
        fingerprint: FingerprintConfig | None = None,
        options: SessionOptions | None = None,
    ) -> str:
        """Provision a browser and register it under a fresh session id.

        Raises ``ProvisioningError`` if the browser cannot be launched or
        connected, or if the default page cannot be prepared; nothing is
        registered in that case.
        """
        connection = connection or ConnectionConfig()
        options = options or SessionOptions()
        t0 = time.monotonic()

        handle = await open_browser(self._playwright, connection, options)
        resolved = resolve_fingerprint(fingerprint, options)
        try:
            if options.storage_state_path:
                n = await load_storage_state(handle.context, options.storage_state_path)
                log.info("Imported %d cookies from %s", n, options.storage_state_path)
            existing = handle.pages()
            page = existing[0] if existing else await handle.new_page()
            cdp = await self._prepare_page(page, handle, resolved, options.default_timeout)
        except Exception as e:
            try:
                await handle.close()
            except Exception as close_err:
                log.warning("Failed to release browser after setup error: %s", close_err)
            raise ProvisioningError(
                f"Browser provisioned but default page setup failed: {e}", mode=connection.mode
            ) from e

        async with self._lock:
            session_id = uuid.uuid4().hex
            while session_id in self._sessions:
                session_id = uuid.uuid4().hex
            session = Session(
                session_id=session_id,
                handle=handle,
                fingerprint=resolved,
                created_at=int(time.time() * 1000),
                user_data_dir=options.user_data_dir,
                default_timeout=options.default_timeout,
            )
            session.pages[DEFAULT_PAGE_ID] = page
            if cdp is not None:
                session.cdp_sessions[DEFAULT_PAGE_ID] = cdp
            self._sessions[session_id] = session

        duration = time.monotonic() - t0
        log.info("Session %s created (%s, %.1fs)", session_id, connection.mode, duration)
        if self._event_logger is not None:
            self._event_logger.log_session_created(
                session_id, connection.mode, resolved.viewport, resolved.user_agent,
                bool(options.user_data_dir), duration,
            )
        return session_id

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[dict]:
        return [s.summary() for s in list(self._sessions.values())]

    async def close(self, session_id: str) -> None:
        """Tear down a session; unknown ids are a no-op.

        The entry leaves the registry before any resource is released, so a
        concurrent lookup sees either the live session or nothing. Page and
        browser close failures are logged, never raised.
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return

        pages_closed = 0
        page_errors = 0
        for page_id, page in list(session.pages.items()):
            try:
                await page.close()
                pages_closed += 1
            except Exception as e:
                page_errors += 1
                log.warning("Error closing page %s of session %s: %s", page_id, session_id, e)
        session.pages.clear()
        session.cdp_sessions.clear()

        browser_error = None
        try:
            await session.handle.close()
        except Exception as e:
            browser_error = str(e)
            log.warning("Error closing browser of session %s: %s", session_id, e)

        age = time.time() - session.created_at / 1000
        log.info("Session %s closed (%d pages)", session_id, pages_closed)
        if self._event_logger is not None:
            self._event_logger.log_session_closed(session_id, pages_closed, page_errors, browser_error, age)

    async def close_all(self) -> None:
        """Close every registered session concurrently."""
        async with self._lock:
            session_ids = list(self._sessions)
        if not session_ids:
            return
        results = await asyncio.gather(
            *(self.close(sid) for sid in session_ids), return_exceptions=True
        )
        for sid, result in zip(session_ids, results):
            if isinstance(result, BaseException):
                log.warning("close_all: session %s raised during close: %s", sid, result)

    # ── Pages ───────────────────────────────────────────────────────────────

    def _require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def page_ids(self, session_id: str) -> list[str]:
        return list(self._require(session_id).pages)

    async def get_page(self, session_id: str, page_id: str = DEFAULT_PAGE_ID):
        """Return the named page, creating it on first reference."""
        session = self._require(session_id)
        page = session.pages.get(page_id)
        if page is not None:
            return page
        return await self._open_page(session, page_id, lazy=True)

    async def create_page(self, session_id: str, page_id: str | None = None) -> str:
        """Explicitly open a page; generates an id when none is given."""
        session = self._require(session_id)
        page_id = page_id or uuid.uuid4().hex
        if page_id not in session.pages:
            await self._open_page(session, page_id, lazy=False)
        return page_id

    async def close_page(self, session_id: str, page_id: str) -> None:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            page = session.pages.pop(page_id, None)
            session.cdp_sessions.pop(page_id, None)
        if page is not None:
            with translate_errors("close page"):
                await page.close()

    async def _open_page(self, session: Session, page_id: str, *, lazy: bool):
        page = await session.handle.new_page()
        try:
            cdp = await self._prepare_page(page, session.handle, session.fingerprint, session.default_timeout)
        except Exception:
            await self._discard(page)
            raise

        async with self._lock:
            live = self._sessions.get(session.session_id)
            winner = live.pages.get(page_id) if live is session else None
            if live is session and winner is None:
                session.pages[page_id] = page
                if cdp is not None:
                    session.cdp_sessions[page_id] = cdp
        if live is not session:
            # Session closed while the page was being opened
            await self._discard(page)
            raise SessionNotFoundError(session.session_id)
        if winner is not None:
            # A concurrent caller registered this page id first
            await self._discard(page)
            return winner

        log.debug("Page %s opened in session %s", page_id, session.session_id)
        if self._event_logger is not None:
            self._event_logger.log_page_created(session.session_id, page_id, lazy)
        return page

    @staticmethod
    async def _prepare_page(page, handle: BrowserHandle, fingerprint: Fingerprint, default_timeout: int):
        page.set_default_timeout(default_timeout)
        return await apply_fingerprint(page, handle.context, fingerprint)

    @staticmethod
    async def _discard(page) -> None:
        try:
            await page.close()
        except Exception as e:
            log.warning("Failed to close discarded page: %s", e)

    # ── Storage ─────────────────────────────────────────────────────────────

    async def get_cookies(self, session_id: str, page_id: str = DEFAULT_PAGE_ID) -> list[dict]:
        return await get_cookies(await self.get_page(session_id, page_id))

    async def set_cookies(self, session_id: str, cookies: list[dict], page_id: str = DEFAULT_PAGE_ID) -> None:
        await set_cookies(await self.get_page(session_id, page_id), cookies)

    async def get_local_storage(self, session_id: str, page_id: str = DEFAULT_PAGE_ID) -> dict[str, str]:
        return await get_local_storage(await self.get_page(session_id, page_id))

    async def set_local_storage(self, session_id: str, items: dict[str, str],
                                page_id: str = DEFAULT_PAGE_ID) -> None:
        await set_local_storage(await self.get_page(session_id, page_id), items)


@asynccontextmanager
async def open_registry(*, event_logger: Any = None):
    """Start Playwright, yield a registry, and tear everything down on exit."""
    playwright = await async_playwright().start()
    registry = SessionRegistry(playwright, event_logger=event_logger)
    try:
        yield registry
    finally:
        try:
            await registry.close_all()
        finally:
            await playwright.stop()
