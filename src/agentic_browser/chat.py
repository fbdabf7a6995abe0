"""Drive a web chat UI: send a message, wait out the streaming reply, extract it.

The interaction runs through a fixed sequence of states::

    IDLE -> INPUT_READY -> SUBMITTED -> STREAMING | NO_STREAMING_SIGNAL -> COMPLETE

Only a missing input field is fatal. A streaming indicator that never shows
up means the reply was short; one that never goes away, or a response
selector that never matches, yields whatever could be extracted with
``timed_out`` set, because the page is still usable.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import HumanBehaviorConfig
from .errors import InvalidArgumentsError, translate_errors
from .human.behavior import await_reading, human_click, human_type

log = logging.getLogger(__name__)

DISCOVERY_TIMEOUT_MS = 30000    # input field must appear within this
STREAMING_GRACE_MS = 5000       # indicator must appear within this to count
SETTLE_DELAY_MS = 2000          # fixed wait when there is no streaming signal
DEFAULT_RESPONSE_TIMEOUT_MS = 120000
TYPING_KEY_DELAY_MS = 10

_ALL_TEXT = "els => els.map(el => el.textContent || '')"


class ChatState(Enum):
    IDLE = "idle"
    INPUT_READY = "input_ready"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    NO_STREAMING_SIGNAL = "no_streaming_signal"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProviderProfile:
    input: str
    submit: str
    response: str = ""
    streaming: str = ""


PROVIDERS: dict[str, ProviderProfile] = {
    "chatgpt": ProviderProfile(
        input="#prompt-textarea",
        submit='button[data-testid="send-button"]',
        response='[data-message-author-role="assistant"]',
        streaming='button[data-testid="stop-button"]',
    ),
    "claude": ProviderProfile(
        input='div[contenteditable="true"]',
        submit='button[aria-label="Send Message"]',
        response=".font-claude-message",
        streaming='button[aria-label="Stop"]',
    ),
    "gemini": ProviderProfile(
        input="rich-textarea",
        submit='button[aria-label="Send message"]',
        response=".model-response-text",
        streaming=".loading-indicator",
    ),
}


def resolve_profile(provider: str, custom: Mapping[str, Any] | None = None) -> ProviderProfile:
    """Return the selector profile for *provider*.

    Named providers ignore *custom*, except that a non-empty ``streaming``
    entry overrides the named indicator. ``custom`` requires ``input`` and
    ``submit`` selectors.
    """
    custom = custom or {}
    if provider == "custom":
        input_sel = custom.get("input") or ""
        submit_sel = custom.get("submit") or ""
        if not input_sel or not submit_sel:
            raise InvalidArgumentsError("Custom provider requires input and submit selectors")
        return ProviderProfile(
            input=input_sel,
            submit=submit_sel,
            response=custom.get("response") or "",
            streaming=custom.get("streaming") or "",
        )
    profile = PROVIDERS.get(provider)
    if profile is None:
        raise InvalidArgumentsError(
            f"Unknown chat provider {provider!r}; expected one of {', '.join([*PROVIDERS, 'custom'])}"
        )
    if custom.get("streaming"):
        profile = ProviderProfile(profile.input, profile.submit, profile.response, custom["streaming"])
    return profile


@dataclass
class ChatResult:
    response: str = ""
    state: ChatState = ChatState.IDLE
    streaming_observed: bool = False
    timed_out: bool = False
    elapsed_ms: float = 0.0


async def _wait_streaming(page, selector: str, timeout: int, result: ChatResult) -> None:
    try:
        await page.wait_for_selector(selector, state="visible", timeout=STREAMING_GRACE_MS)
    except PlaywrightTimeoutError:
        result.state = ChatState.NO_STREAMING_SIGNAL
        log.debug("Streaming indicator %r not seen; assuming short reply", selector)
        return

    result.state = ChatState.STREAMING
    result.streaming_observed = True
    try:
        await page.wait_for_selector(selector, state="hidden", timeout=timeout)
    except PlaywrightTimeoutError:
        result.timed_out = True
        log.warning("Streaming still in progress after %dms; extracting partial reply", timeout)


async def _extract_last(page, selector: str, timeout: int, result: ChatResult) -> str:
    try:
        await page.wait_for_selector(selector, state="attached", timeout=timeout)
    except PlaywrightTimeoutError:
        result.timed_out = True
        log.warning("No response matched %r within %dms", selector, timeout)
        return ""
    # Chat UIs append turns, so the newest reply is the last match
    texts = await page.eval_on_selector_all(selector, _ALL_TEXT)
    return (texts[-1] if texts else "").strip()


async def send_message(
    page,
    message: str,
    profile: ProviderProfile,
    *,
    wait_for_response: bool = True,
    timeout: int = DEFAULT_RESPONSE_TIMEOUT_MS,
    human: HumanBehaviorConfig | None = None,
) -> ChatResult:
    """Send *message* through the chat UI on *page* and collect the reply.

    Raises ``SelectorTimeoutError`` when the input field never appears and
    ``InteractionError`` for driver failures while typing or submitting.
    """
    t0 = time.monotonic()
    result = ChatResult()

    with translate_errors("find chat input", profile.input, DISCOVERY_TIMEOUT_MS):
        await page.wait_for_selector(profile.input, timeout=DISCOVERY_TIMEOUT_MS)
    result.state = ChatState.INPUT_READY

    humanized = human is not None and human.enabled
    with translate_errors("type message", profile.input):
        if humanized:
            await human_type(page, profile.input, message, human)
        else:
            await page.click(profile.input)
            await page.type(profile.input, message, delay=TYPING_KEY_DELAY_MS)
    with translate_errors("submit message", profile.submit):
        if humanized:
            await human_click(page, profile.submit, human)
        else:
            await page.click(profile.submit)
    result.state = ChatState.SUBMITTED

    if wait_for_response:
        with translate_errors("await response"):
            if profile.streaming:
                await _wait_streaming(page, profile.streaming, timeout, result)
            else:
                result.state = ChatState.NO_STREAMING_SIGNAL
                await page.wait_for_timeout(SETTLE_DELAY_MS)

            await await_reading(page, human)
            if profile.response:
                result.response = await _extract_last(page, profile.response, timeout, result)
    result.state = ChatState.COMPLETE

    result.elapsed_ms = (time.monotonic() - t0) * 1000
    log.info(
        "Chat message sent (%d chars), reply %d chars%s [%.0fms]",
        len(message), len(result.response), " (timed out)" if result.timed_out else "", result.elapsed_ms,
    )
    return result
