"""Cookie and localStorage access for live pages."""
import json
import logging
import os

log = logging.getLogger(__name__)

_READ_LOCAL_STORAGE = """() => {
    const items = {};
    for (let i = 0; i < localStorage.length; i++) {
        const key = localStorage.key(i);
        if (key) {
            items[key] = localStorage.getItem(key) ?? '';
        }
    }
    return items;
}"""

_WRITE_LOCAL_STORAGE = """(items) => {
    for (const [key, value] of Object.entries(items)) {
        localStorage.setItem(key, value);
    }
}"""


async def get_cookies(page) -> list[dict]:
    """Cookies visible to the page's current URL."""
    if page.url and page.url.startswith("http"):
        return await page.context.cookies([page.url])
    return await page.context.cookies()


async def set_cookies(page, cookies: list[dict]) -> None:
    await page.context.add_cookies(cookies)


async def get_local_storage(page) -> dict[str, str]:
    return await page.evaluate(_READ_LOCAL_STORAGE)


async def set_local_storage(page, items: dict[str, str]) -> None:
    await page.evaluate(_WRITE_LOCAL_STORAGE, {str(k): str(v) for k, v in items.items()})


async def load_storage_state(context, state_path: str) -> int:
    """Import cookies from a Playwright storage-state JSON file into *context*.

    Returns the number of cookies imported; a missing or unreadable file
    yields 0.
    """
    if not state_path or not os.path.isfile(state_path):
        return 0
    try:
        with open(state_path, "r", encoding="utf-8") as f:
            state = json.load(f)
        cookies = state.get("cookies", [])
        if cookies:
            await context.add_cookies(cookies)
            return len(cookies)
        return 0
    except Exception as e:
        log.warning("Could not import storage state from %s: %s", state_path, e)
        return 0
