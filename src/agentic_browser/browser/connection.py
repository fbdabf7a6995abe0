"""Browser provisioning: local launch or connection to a remote endpoint.

Local launches assume a containerized host, so the Chromium sandbox is
disabled. Remote modes never spawn a process; they attach over CDP to a
browser someone else runs.
"""
import logging
import os
from typing import Any
from urllib.parse import quote

from ..config import ConnectionConfig, SessionOptions
from ..errors import ProvisioningError

log = logging.getLogger(__name__)

BROWSERBASE_URL = "wss://connect.browserbase.com?apiKey={api_key}"

_CONTAINER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
)


class BrowserHandle:
    """One provisioned browser: a Playwright browser, a context, or both.

    Persistent (user-data-dir) launches only yield a context; CDP
    connections yield a browser whose default context is reused.
    """

    def __init__(self, mode: str, browser: Any = None, context: Any = None, *, owns_context: bool = True):
        self.mode = mode
        self.browser = browser
        self.context = context
        self.owns_context = owns_context

    def pages(self) -> list:
        return list(self.context.pages) if self.context is not None else []

    async def new_page(self):
        return await self.context.new_page()

    async def close(self) -> None:
        """Close the context, then the browser (disconnects remote ones)."""
        if self.context is not None and self.browser is None:
            await self.context.close()
            return
        if self.context is not None and self.owns_context:
            try:
                await self.context.close()
            except Exception as e:
                log.warning("Failed to close browser context cleanly: %s", e)
        if self.browser is not None:
            await self.browser.close()


def build_launch_args(options: SessionOptions | None = None) -> list[str]:
    """Chromium flags for a local launch inside a container."""
    options = options or SessionOptions()
    args = list(_CONTAINER_ARGS)
    args.append("--disable-blink-features=AutomationControlled")
    args.append(f"--window-size={options.window_width},{options.window_height}")
    return args


def resolve_endpoint(connection: ConnectionConfig) -> str:
    """Return the CDP endpoint URL for a remote connection mode."""
    mode = connection.mode
    if mode == "browserbase":
        if not connection.api_key:
            raise ProvisioningError("Browserbase connection requires an API key", mode=mode)
        return BROWSERBASE_URL.format(api_key=quote(connection.api_key, safe=""))
    if mode in ("remote", "browserless"):
        if not connection.endpoint:
            raise ProvisioningError(f"Connection mode {mode!r} requires a remote browser URL", mode=mode)
        endpoint = connection.endpoint
        if mode == "browserless" and connection.api_key and "token=" not in endpoint:
            sep = "&" if "?" in endpoint else "?"
            endpoint = f"{endpoint}{sep}token={quote(connection.api_key, safe='')}"
        return endpoint
    raise ProvisioningError(f"Connection mode {mode!r} has no remote endpoint", mode=mode)


async def _launch_local(playwright, connection: ConnectionConfig, options: SessionOptions) -> BrowserHandle:
    launch_kwargs: dict[str, Any] = {
        "headless": options.headless,
        "args": build_launch_args(options),
        "ignore_default_args": ["--enable-automation"],
    }
    if connection.proxy is not None:
        launch_kwargs["proxy"] = connection.proxy.to_playwright()

    if options.user_data_dir:
        os.makedirs(options.user_data_dir, exist_ok=True)
        log.info("Launching persistent Chromium (user data: %s)", options.user_data_dir)
        context = await playwright.chromium.launch_persistent_context(
            options.user_data_dir,
            **launch_kwargs,
        )
        return BrowserHandle("local", context=context)

    log.info("Launching Chromium (headless=%s)", options.headless)
    browser = await playwright.chromium.launch(**launch_kwargs)
    try:
        context = await browser.new_context()
    except Exception:
        await browser.close()
        raise
    return BrowserHandle("local", browser=browser, context=context)


async def _connect_remote(playwright, connection: ConnectionConfig) -> BrowserHandle:
    endpoint = resolve_endpoint(connection)
    log.info("Connecting to remote browser (%s)", connection.mode)
    browser = await playwright.chromium.connect_over_cdp(endpoint)
    # Managed services expect the default context to be reused.
    owns_context = not browser.contexts
    try:
        context = browser.contexts[0] if browser.contexts else await browser.new_context()
    except Exception:
        await browser.close()
        raise
    log.info("Connected to remote browser (%s)", connection.mode)
    return BrowserHandle(connection.mode, browser=browser, context=context, owns_context=owns_context)


async def open_browser(
    playwright,
    connection: ConnectionConfig | None = None,
    options: SessionOptions | None = None,
) -> BrowserHandle:
    """Provision a browser per *connection*; no fallback between modes.

    Any failure surfaces as ``ProvisioningError`` with the attempted mode.
    """
    connection = connection or ConnectionConfig()
    options = options or SessionOptions()
    try:
        if connection.mode == "local":
            return await _launch_local(playwright, connection, options)
        return await _connect_remote(playwright, connection)
    except ProvisioningError:
        raise
    except Exception as e:
        raise ProvisioningError(
            f"Could not provision {connection.mode} browser: {e}", mode=connection.mode
        ) from e
