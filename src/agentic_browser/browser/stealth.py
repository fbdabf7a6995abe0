"""Per-session fingerprint resolution and automation-marker suppression.

The shim hides the common automation tells (``navigator.webdriver``, a
missing ``window.chrome``, inconsistent notification permissions). It is
obfuscation against generic detection scripts only; a targeted detector can
still tell the browser is automated.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any

from ..config import FingerprintConfig, SessionOptions
from .ua import random_user_agent, random_viewport

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    """Concrete identity applied to every page of one session."""
    viewport: tuple[int, int]
    user_agent: str = ""
    timezone: str = ""
    locale: str = ""


def resolve_fingerprint(
    config: FingerprintConfig | None,
    options: SessionOptions | None = None,
) -> Fingerprint:
    """Draw the session's fingerprint once; explicit values beat random ones."""
    config = config or FingerprintConfig()
    options = options or SessionOptions()

    if config.viewport:
        viewport = tuple(config.viewport)
    elif config.randomize_viewport:
        viewport = random_viewport()
    else:
        viewport = (options.window_width, options.window_height)

    if config.user_agent:
        user_agent = config.user_agent
    elif config.randomize:
        user_agent = random_user_agent()
    else:
        user_agent = options.user_agent

    return Fingerprint(
        viewport=viewport,
        user_agent=user_agent,
        timezone=config.timezone,
        locale=config.locale,
    )


def _languages_for(locale: str) -> list[str]:
    if not locale:
        return []
    langs = [locale]
    base = locale.split("-")[0]
    if base != locale:
        langs.append(base)
    if base != "en":
        langs.extend(["en-US", "en"])
    return langs


def build_stealth_shim(
    *,
    locale: str = "",
    hardware_concurrency: int = 8,
    device_memory: int = 8,
    plugin_count: int = 3,
) -> str:
    """Build the JS that runs before any page script on every new document."""
    languages_js = json.dumps(_languages_for(locale))
    return f"""
    (() => {{
        // -- navigator.webdriver --
        Object.defineProperty(navigator, 'webdriver', {{
            get: () => false, configurable: true,
        }});

        // -- window.chrome (absent under automation) --
        if (!window.chrome) {{
            window.chrome = {{}};
        }}
        if (!window.chrome.runtime) {{
            window.chrome.runtime = {{}};
        }}
        if (!window.chrome.loadTimes) {{
            window.chrome.loadTimes = function() {{
                return {{ requestTime: Date.now() / 1000, wasFetchedViaSpdy: true }};
            }};
        }}
        if (!window.chrome.csi) {{
            window.chrome.csi = function() {{
                return {{ onloadT: Date.now(), startE: Date.now(), pageT: 0, tran: 15 }};
            }};
        }}

        // -- navigator.permissions (notifications inconsistency) --
        if (navigator.permissions && navigator.permissions.query) {{
            const _origQuery = navigator.permissions.query.bind(navigator.permissions);
            navigator.permissions.query = function(desc) {{
                if (desc && desc.name === 'notifications') {{
                    return Promise.resolve({{
                        state: Notification.permission === 'default'
                            ? 'prompt' : Notification.permission,
                        onchange: null,
                    }});
                }}
                return _origQuery(desc);
            }};
        }}

        // -- navigator.languages --
        const languages = {languages_js};
        if (languages.length) {{
            Object.defineProperty(navigator, 'languages', {{
                get: () => languages, configurable: true,
            }});
            Object.defineProperty(navigator, 'language', {{
                get: () => languages[0], configurable: true,
            }});
        }}

        // -- navigator.plugins (empty in headless) --
        if (!navigator.plugins || navigator.plugins.length === 0) {{
            const plugins = Array.from({{ length: {plugin_count} }}, (_, i) => ({{
                name: 'Chrome PDF Plugin ' + i, filename: 'internal-pdf-viewer',
            }}));
            Object.defineProperty(navigator, 'plugins', {{
                get: () => plugins, configurable: true,
            }});
        }}

        // -- hardware --
        Object.defineProperty(navigator, 'hardwareConcurrency', {{
            get: () => {hardware_concurrency}, configurable: true,
        }});
        Object.defineProperty(navigator, 'deviceMemory', {{
            get: () => {device_memory}, configurable: true,
        }});
    }})();
    """


async def apply_fingerprint(page: Any, context: Any, fingerprint: Fingerprint, **shim_kwargs) -> Any:
    """Apply viewport, identity overrides and the stealth shim to *page*.

    Must run before the page's first navigation. Returns the CDP session
    carrying the overrides (it must stay attached; detaching drops them), or
    ``None`` when CDP is unavailable and the shim was installed through
    ``add_init_script`` instead.
    """
    width, height = fingerprint.viewport
    await page.set_viewport_size({"width": width, "height": height})
    if fingerprint.locale:
        await page.set_extra_http_headers({"Accept-Language": fingerprint.locale})

    source = build_stealth_shim(locale=fingerprint.locale, **shim_kwargs)
    try:
        cdp = await context.new_cdp_session(page)
    except Exception as e:
        log.warning("CDP unavailable (%s); falling back to add_init_script", e)
        await page.add_init_script(source)
        return None

    # Explicit overrides must all land; a failed send propagates
    if fingerprint.user_agent:
        params = {"userAgent": fingerprint.user_agent}
        if fingerprint.locale:
            params["acceptLanguage"] = fingerprint.locale
        await cdp.send("Network.setUserAgentOverride", params)
    if fingerprint.timezone:
        await cdp.send("Emulation.setTimezoneOverride", {"timezoneId": fingerprint.timezone})
    if fingerprint.locale:
        await cdp.send("Emulation.setLocaleOverride", {"locale": fingerprint.locale})
    await cdp.send("Page.addScriptToEvaluateOnNewDocument", {"source": source})
    log.debug("CDP fingerprint installed (pre-navigation)")
    return cdp
