"""One coroutine per resource/operation pair.

Each handler takes the registry and the flat parameter mapping for one input
item and returns an ``OperationResult``: a JSON payload carrying
``success: True`` plus, for screenshots, a named binary attachment. Failures
raise ``BrowserError`` subclasses; the router decides whether to abort or
record them.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from .browser.registry import DEFAULT_PAGE_ID, SessionRegistry
from .chat import DEFAULT_RESPONSE_TIMEOUT_MS, resolve_profile, send_message
from .config import (
    DEFAULT_TIMEOUT_MS,
    ConnectionConfig,
    FingerprintConfig,
    HumanBehaviorConfig,
    SessionOptions,
)
from .errors import InvalidArgumentsError, SessionNotFoundError, translate_errors
from .human.behavior import human_click, human_type

SCREENSHOT_FIELD = "screenshot"

_WAIT_UNTIL = {
    "load": "load",
    "domcontentloaded": "domcontentloaded",
    "networkidle": "networkidle",
    "networkidle0": "networkidle",
    "networkidle2": "networkidle",
    "commit": "commit",
}


@dataclass
class BinaryData:
    data: bytes
    mime_type: str
    file_name: str


@dataclass
class OperationResult:
    json: dict
    binary: dict[str, BinaryData] = field(default_factory=dict)


# ── Parameter helpers ──────────────────────────────────────────────────────

def _required(params: Mapping[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None or value == "":
        raise InvalidArgumentsError(f"Missing required parameter {key!r}")
    return value


def _int_param(params: Mapping[str, Any], key: str, default: int) -> int:
    value = params.get(key, default)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentsError(f"Parameter {key!r} must be an integer, got {value!r}") from None


def _page_id(params: Mapping[str, Any]) -> str:
    return params.get("pageId") or DEFAULT_PAGE_ID


async def _page(registry: SessionRegistry, params: Mapping[str, Any]):
    session_id = _required(params, "sessionId")
    page_id = _page_id(params)
    with translate_errors("open page"):
        page = await registry.get_page(session_id, page_id)
    return session_id, page_id, page


def parse_script_args(raw: Any) -> list:
    """Parse the JSON argument array for script execution."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str):
        raise InvalidArgumentsError(f"Script arguments must be a JSON array, got {type(raw).__name__}")
    try:
        args = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidArgumentsError(f"Invalid JSON in arguments: {e}") from e
    if not isinstance(args, list):
        raise InvalidArgumentsError("Script arguments must be a JSON array")
    return args


def build_script(body: str) -> str:
    """Wrap a script body so it runs as a function of the ``args`` array."""
    return f"async (args) => {{\n{body}\n}}"


# ── session ────────────────────────────────────────────────────────────────

async def session_create(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    options = SessionOptions.from_params(params)
    connection = ConnectionConfig.from_params(params)
    fingerprint = FingerprintConfig.from_params(params)
    session_id = await registry.create(connection, fingerprint, options)
    return OperationResult({
        "sessionId": session_id,
        "connectionType": connection.mode,
        "headless": options.headless,
        "windowWidth": options.window_width,
        "windowHeight": options.window_height,
        "success": True,
    })


async def session_get(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    session_id = _required(params, "sessionId")
    session = registry.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    data = {
        "sessionId": session.session_id,
        "createdAt": session.created_at,
        "connectionType": session.mode,
        "pageCount": len(session.pages),
        "pageIds": list(session.pages),
        "success": True,
    }
    if params.get("includeCookies"):
        with translate_errors("read cookies"):
            data["cookies"] = await registry.get_cookies(session_id)
    if params.get("includeLocalStorage"):
        with translate_errors("read localStorage"):
            data["localStorage"] = await registry.get_local_storage(session_id)
    return OperationResult(data)


async def session_close(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    session_id = _required(params, "sessionId")
    await registry.close(session_id)
    return OperationResult({"sessionId": session_id, "closed": True, "success": True})


async def session_list(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    sessions = registry.list_sessions()
    return OperationResult({"sessions": sessions, "count": len(sessions), "success": True})


# ── navigation ─────────────────────────────────────────────────────────────

async def navigation_goto(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    url = _required(params, "url")
    wait_until = params.get("waitUntil") or "load"
    if wait_until not in _WAIT_UNTIL:
        raise InvalidArgumentsError(f"Unsupported waitUntil value {wait_until!r}")
    timeout = _int_param(params, "timeout", DEFAULT_TIMEOUT_MS)
    session_id, page_id, page = await _page(registry, params)
    with translate_errors(f"navigate to {url}"):
        response = await page.goto(url, wait_until=_WAIT_UNTIL[wait_until], timeout=timeout)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "url": url,
        "status": response.status if response is not None else None,
        "success": True,
    })


async def _history(registry: SessionRegistry, params: Mapping[str, Any], action: str) -> OperationResult:
    timeout = _int_param(params, "timeout", DEFAULT_TIMEOUT_MS)
    session_id, page_id, page = await _page(registry, params)
    with translate_errors(action):
        if action == "reload":
            response = await page.reload(timeout=timeout)
        elif action == "back":
            response = await page.go_back(timeout=timeout)
        else:
            response = await page.go_forward(timeout=timeout)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "url": page.url,
        "status": response.status if response is not None else None,
        "success": True,
    })


async def navigation_reload(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    return await _history(registry, params, "reload")


async def navigation_back(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    return await _history(registry, params, "back")


async def navigation_forward(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    return await _history(registry, params, "forward")


async def navigation_wait_for_selector(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = _required(params, "selector")
    timeout = _int_param(params, "timeout", DEFAULT_TIMEOUT_MS)
    state = "visible" if params.get("visible") else "attached"
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("wait for selector", selector, timeout):
        await page.wait_for_selector(selector, state=state, timeout=timeout)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "found": True,
        "success": True,
    })


# ── interaction ────────────────────────────────────────────────────────────

async def interaction_click(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = _required(params, "selector")
    click_count = _int_param(params, "clickCount", 1)
    delay = _int_param(params, "delay", 0)
    human = HumanBehaviorConfig.from_params(params)
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("click", selector):
        await human_click(page, selector, human, click_count=click_count, delay=delay)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "clicked": True,
        "success": True,
    })


async def interaction_type(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = _required(params, "selector")
    text = params.get("text")
    if text is None:
        raise InvalidArgumentsError("Missing required parameter 'text'")
    text = str(text)
    delay = _int_param(params, "delay", 0)
    human = HumanBehaviorConfig.from_params(params)
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("type", selector):
        if params.get("clearFirst"):
            await page.fill(selector, "")
        if human.enabled:
            await human_type(page, selector, text, human)
        else:
            await page.type(selector, text, delay=delay)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "text": text,
        "typed": True,
        "success": True,
    })


async def interaction_hover(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = _required(params, "selector")
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("hover", selector):
        await page.hover(selector)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "hovered": True,
        "success": True,
    })


# ── extraction ─────────────────────────────────────────────────────────────

async def extraction_get_text(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = params.get("selector") or ""
    multiple = bool(params.get("multiple"))
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("get text"):
        if not selector:
            text = await page.evaluate("() => document.body.innerText")
        elif multiple:
            text = await page.eval_on_selector_all(selector, "els => els.map(el => el.textContent ?? '')")
        else:
            text = await page.eval_on_selector(selector, "el => el.textContent ?? ''")
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "text": text,
        "success": True,
    })


async def extraction_get_html(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = params.get("selector") or ""
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("get html"):
        if selector:
            html = await page.eval_on_selector(selector, "el => el.outerHTML")
        else:
            html = await page.content()
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "html": html,
        "success": True,
    })


async def extraction_get_attribute(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    selector = _required(params, "selector")
    attribute = _required(params, "attribute")
    multiple = bool(params.get("multiple"))
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("get attribute"):
        if multiple:
            value = await page.eval_on_selector_all(
                selector, "(els, name) => els.map(el => el.getAttribute(name))", attribute
            )
        else:
            value = await page.eval_on_selector(selector, "(el, name) => el.getAttribute(name)", attribute)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "selector": selector,
        "attribute": attribute,
        "value": value,
        "success": True,
    })


async def extraction_screenshot(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    image_type = params.get("type") or "png"
    if image_type not in ("png", "jpeg"):
        raise InvalidArgumentsError(f"Unsupported screenshot type {image_type!r}")
    full_page = bool(params.get("fullPage"))
    kwargs: dict[str, Any] = {"type": image_type, "full_page": full_page}
    if image_type == "jpeg":
        quality = _int_param(params, "quality", 80)
        if not 0 <= quality <= 100:
            raise InvalidArgumentsError(f"Screenshot quality must be within 0-100, got {quality}")
        kwargs["quality"] = quality
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("screenshot"):
        data = await page.screenshot(**kwargs)
    return OperationResult(
        {"sessionId": session_id, "pageId": page_id, "success": True},
        binary={
            SCREENSHOT_FIELD: BinaryData(
                data=data,
                mime_type=f"image/{image_type}",
                file_name=f"screenshot.{image_type}",
            )
        },
    )


# ── script ─────────────────────────────────────────────────────────────────

async def script_execute(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    script = _required(params, "script")
    args = parse_script_args(params.get("args"))
    session_id, page_id, page = await _page(registry, params)
    with translate_errors("script execution"):
        result = await page.evaluate(build_script(script), args)
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "result": result,
        "success": True,
    })


# ── chat ───────────────────────────────────────────────────────────────────

async def chat_send_message(registry: SessionRegistry, params: Mapping[str, Any]) -> OperationResult:
    provider = params.get("provider") or "chatgpt"
    message = _required(params, "message")
    profile = resolve_profile(provider, {
        "input": params.get("inputSelector"),
        "submit": params.get("submitSelector"),
        "response": params.get("responseSelector"),
        "streaming": params.get("streamingSelector"),
    })
    wait_for_response = params.get("waitForResponse", True) is not False
    timeout = _int_param(params, "timeout", DEFAULT_RESPONSE_TIMEOUT_MS)
    human = HumanBehaviorConfig.from_params(params)

    session_id, page_id, page = await _page(registry, params)
    result = await send_message(
        page, message, profile,
        wait_for_response=wait_for_response,
        timeout=timeout,
        human=human,
    )
    if registry.event_logger is not None:
        registry.event_logger.log_chat_completed(
            session_id, page_id, provider, result.state.value, result.streaming_observed,
            result.timed_out, len(result.response), result.elapsed_ms,
        )
    return OperationResult({
        "sessionId": session_id,
        "pageId": page_id,
        "provider": provider,
        "message": message,
        "response": result.response,
        "messageSent": True,
        "streamingObserved": result.streaming_observed,
        "timedOut": result.timed_out,
        "success": True,
    })


Handler = Callable[[SessionRegistry, Mapping[str, Any]], Any]

OPERATIONS: dict[str, dict[str, Handler]] = {
    "session": {
        "create": session_create,
        "get": session_get,
        "close": session_close,
        "list": session_list,
    },
    "navigation": {
        "goto": navigation_goto,
        "reload": navigation_reload,
        "back": navigation_back,
        "forward": navigation_forward,
        "waitForSelector": navigation_wait_for_selector,
    },
    "interaction": {
        "click": interaction_click,
        "type": interaction_type,
        "hover": interaction_hover,
    },
    "extraction": {
        "getText": extraction_get_text,
        "getHtml": extraction_get_html,
        "getAttribute": extraction_get_attribute,
        "screenshot": extraction_screenshot,
    },
    "script": {
        "execute": script_execute,
    },
    "chat": {
        "sendMessage": chat_send_message,
    },
}
