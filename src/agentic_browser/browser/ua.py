"""User-Agent and viewport catalogs for fingerprint randomization."""
import random

_CHROME_TEMPLATE = (
    "Mozilla/5.0 ({platform}) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/{version} Safari/537.36"
)

USER_AGENTS: tuple[str, ...] = (
    _CHROME_TEMPLATE.format(platform="Windows NT 10.0; Win64; x64", version="120.0.0.0"),
    _CHROME_TEMPLATE.format(platform="Macintosh; Intel Mac OS X 10_15_7", version="120.0.0.0"),
    _CHROME_TEMPLATE.format(platform="Windows NT 10.0; Win64; x64", version="119.0.0.0"),
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    _CHROME_TEMPLATE.format(platform="X11; Linux x86_64", version="120.0.0.0"),
)

# Common desktop screen sizes (width, height).
VIEWPORTS: tuple[tuple[int, int], ...] = (
    (1920, 1080),
    (1366, 768),
    (1536, 864),
    (1440, 900),
    (1280, 720),
)


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def random_viewport() -> tuple[int, int]:
    return random.choice(VIEWPORTS)

