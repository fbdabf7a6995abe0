"""In-memory stand-ins for the Playwright async objects the engine drives.

Pages record every action in ``actions`` as tuples so tests can assert on
call order. ``wait_for_timeout`` records instead of sleeping.
"""
import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeResponse:
    def __init__(self, status=200):
        self.status = status


class FakeKeyboard:
    def __init__(self, page):
        self._page = page

    async def type(self, text, delay=0):
        self._page.actions.append(("key", text))


class FakeMouse:
    def __init__(self, page):
        self._page = page

    async def move(self, x, y, steps=1):
        self._page.actions.append(("move", x, y, steps))


class FakeElement:
    def __init__(self, box):
        self._box = box

    async def bounding_box(self):
        return self._box


class FakeCDP:
    def __init__(self, fail_on=None):
        self.sent = []
        self.fail_on = fail_on

    async def send(self, method, params=None):
        if method == self.fail_on:
            raise PlaywrightError(f"Protocol error ({method}): Invalid parameters")
        self.sent.append((method, params))


class FakePage:
    """A page whose DOM is a mapping of selector -> list of element texts.

    ``streaming`` maps an indicator selector to the seconds it stays visible
    before hiding.
    """

    def __init__(self, context=None, present=None, streaming=None):
        self.context = context
        self.present = dict(present or {})
        self.streaming = dict(streaming or {})
        self.boxes = {}
        self.url = "about:blank"
        self.body_text = ""
        self.actions = []
        self.init_scripts = []
        self.viewport = None
        self.headers = {}
        self.default_timeout = None
        self.screenshot_kwargs = None
        self.click_kwargs = None
        self.closed = False
        self.close_error = None
        self.keyboard = FakeKeyboard(self)
        self.mouse = FakeMouse(self)

    @property
    def waits(self):
        return [a[1] for a in self.actions if a[0] == "wait"]

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    async def set_viewport_size(self, size):
        self.viewport = (size["width"], size["height"])

    async def set_extra_http_headers(self, headers):
        self.headers.update(headers)

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def close(self):
        if self.close_error is not None:
            raise self.close_error
        self.closed = True

    def _require(self, selector):
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")

    async def goto(self, url, wait_until="load", timeout=None):
        self.actions.append(("goto", url, wait_until))
        self.url = url
        return FakeResponse(200)

    async def reload(self, timeout=None):
        self.actions.append(("reload",))
        return FakeResponse(200)

    async def go_back(self, timeout=None):
        self.actions.append(("back",))
        return None

    async def go_forward(self, timeout=None):
        self.actions.append(("forward",))
        return None

    async def wait_for_selector(self, selector, state="visible", timeout=None):
        if selector in self.streaming:
            if state == "hidden":
                visible_ms = self.streaming[selector] * 1000
                if timeout is not None and visible_ms > timeout:
                    raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector} to hide")
                await asyncio.sleep(self.streaming[selector])
            return None
        if state == "hidden":
            return None
        self._require(selector)
        return FakeElement(self.boxes.get(selector))

    async def wait_for_timeout(self, timeout):
        self.actions.append(("wait", timeout))

    async def click(self, selector, **kwargs):
        self._require(selector)
        self.click_kwargs = kwargs
        self.actions.append(("click", selector))

    async def type(self, selector, text, delay=0):
        self._require(selector)
        self.actions.append(("type", selector, text))

    async def fill(self, selector, value):
        self._require(selector)
        self.actions.append(("fill", selector, value))

    async def hover(self, selector):
        self._require(selector)
        self.actions.append(("hover", selector))

    async def query_selector(self, selector):
        if selector not in self.present:
            return None
        return FakeElement(self.boxes.get(selector))

    async def evaluate(self, expression, arg=None):
        self.actions.append(("evaluate", expression, arg))
        if "innerText" in expression:
            return self.body_text
        return arg

    async def eval_on_selector(self, selector, expression, arg=None):
        self._require(selector)
        return self.present[selector][0]

    async def eval_on_selector_all(self, selector, expression, arg=None):
        return list(self.present.get(selector, []))

    async def content(self):
        return "<html><body></body></html>"

    async def screenshot(self, **kwargs):
        self.screenshot_kwargs = kwargs
        return b"\x89PNG fake"


class FakeContext:
    def __init__(self, *, cdp_fails=False, cdp_fail_on=None, new_page_fails=False, yield_on_new_page=False):
        self.pages = []
        self.cdp_fail_on = cdp_fail_on
        self.cdp_sessions = []
        self.cookie_jar = []
        self.cdp_fails = cdp_fails
        self.new_page_fails = new_page_fails
        self.yield_on_new_page = yield_on_new_page
        self.closed = False

    async def new_page(self):
        if self.yield_on_new_page:
            await asyncio.sleep(0)
        if self.new_page_fails:
            raise PlaywrightError("Target page, context or browser has been closed")
        page = FakePage(context=self)
        self.pages.append(page)
        return page

    async def new_cdp_session(self, page):
        if self.cdp_fails:
            raise PlaywrightError("CDP session is only available in Chromium")
        cdp = FakeCDP(fail_on=self.cdp_fail_on)
        self.cdp_sessions.append(cdp)
        return cdp

    async def cookies(self, urls=None):
        return list(self.cookie_jar)

    async def add_cookies(self, cookies):
        self.cookie_jar.extend(cookies)

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, contexts=None, context_kwargs=None):
        self.contexts = list(contexts or [])
        self.context_kwargs = context_kwargs or {}
        self.closed = False

    async def new_context(self, **kwargs):
        context = FakeContext(**self.context_kwargs)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, *, launch_error=None, remote_contexts=None, context_kwargs=None):
        self.launch_error = launch_error
        self.remote_contexts = remote_contexts
        self.context_kwargs = context_kwargs or {}
        self.calls = []
        self.browsers = []

    async def launch(self, **kwargs):
        self.calls.append(("launch", kwargs))
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser(context_kwargs=self.context_kwargs)
        self.browsers.append(browser)
        return browser

    async def launch_persistent_context(self, user_data_dir, **kwargs):
        self.calls.append(("launch_persistent_context", user_data_dir, kwargs))
        if self.launch_error is not None:
            raise self.launch_error
        return FakeContext(**self.context_kwargs)

    async def connect_over_cdp(self, endpoint):
        self.calls.append(("connect_over_cdp", endpoint))
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser(contexts=self.remote_contexts, context_kwargs=self.context_kwargs)
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, **chromium_kwargs):
        self.chromium = FakeChromium(**chromium_kwargs)
