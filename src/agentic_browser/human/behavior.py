"""Human-like timing for click/type primitives.

Reshapes the timing profile of Playwright actions: per-keystroke jitter,
a pause before committing to a click, and an optional reading wait. Keeps no
state between calls; every delay is drawn fresh from the config passed in.
"""

import logging
import math
import random
import time

from ..config import HumanBehaviorConfig

log = logging.getLogger(__name__)


def _safe_float(val, default: float) -> float:
    try:
        f = float(val)
        if math.isfinite(f):
            return f
    except (TypeError, ValueError):
        pass
    return default


def random_delay(low: int, high: int) -> int:
    """Uniform integer delay in [low, high] milliseconds (bounds may be swapped)."""
    low = max(0, int(_safe_float(low, 0)))
    high = max(0, int(_safe_float(high, low)))
    if high < low:
        low, high = high, low
    return random.randint(low, high)


def _enabled(config: HumanBehaviorConfig | None) -> bool:
    return config is not None and config.enabled


async def human_type(page, selector: str, text: str, config: HumanBehaviorConfig | None = None) -> None:
    """Type *text* into *selector*.

    Disabled: one atomic ``page.type``. Enabled: focus the field with a click,
    then one key press per character, each preceded by an independently
    drawn delay.
    """
    if not _enabled(config):
        await page.type(selector, text)
        return
    t0 = time.monotonic()
    await page.click(selector)
    for char in text:
        await page.wait_for_timeout(random_delay(config.typing_delay_min, config.typing_delay_max))
        await page.keyboard.type(char)
    elapsed = time.monotonic() - t0
    log.debug(f"    typed {len(text)} chars [{elapsed:.1f}s]")


async def _move_to_center(page, selector: str) -> bool:
    element = await page.query_selector(selector)
    if element is None:
        return False
    box = await element.bounding_box()
    if not box:
        return False
    bw = _safe_float(box.get("width"), 0.0)
    bh = _safe_float(box.get("height"), 0.0)
    if bw <= 0 or bh <= 0:
        return False
    x = _safe_float(box.get("x"), 0.0) + bw / 2
    y = _safe_float(box.get("y"), 0.0) + bh / 2
    # Several intermediate mouse events instead of a teleport
    await page.mouse.move(x, y, steps=random.randint(8, 20))
    return True


async def human_click(page, selector: str, config: HumanBehaviorConfig | None = None, *,
                      click_count: int = 1, delay: int = 0) -> None:
    """Click *selector*, optionally after pointer travel and a pre-click pause.

    *click_count* and *delay* (ms between mousedown and mouseup) go to the
    final ``page.click`` either way.
    """
    if not _enabled(config):
        await page.click(selector, click_count=click_count, delay=delay)
        return
    t0 = time.monotonic()
    moved = False
    if config.mouse_movement:
        moved = await _move_to_center(page, selector)
    pause = random_delay(config.click_delay_min, config.click_delay_max)
    await page.wait_for_timeout(pause)
    await page.click(selector, click_count=click_count, delay=delay)
    elapsed = time.monotonic() - t0
    log.debug(f"    click {selector!r} after {pause}ms{' +move' if moved else ''} [{elapsed:.1f}s]")


async def await_reading(page, config: HumanBehaviorConfig | None = None) -> None:
    """Pause for the configured reading time before extracting content."""
    if not _enabled(config) or not config.reading_time:
        return
    await page.wait_for_timeout(config.reading_time)
