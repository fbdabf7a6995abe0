"""Value objects describing how sessions are provisioned and driven.

All configs are frozen once built. ``from_params`` builders read the flat
camelCase parameter names the workflow layer passes in; missing keys fall
back to the dataclass defaults.
"""
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import InvalidArgumentsError

CONNECTION_MODES = ("local", "remote", "browserless", "browserbase")

DEFAULT_TIMEOUT_MS = 30000


def _get(params: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value = params.get(key, default)
    return default if value is None else value


def _int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentsError(f"Parameter {name!r} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class ProxyConfig:
    server: str
    username: str = ""
    password: str = ""

    def to_playwright(self) -> dict:
        proxy = {"server": self.server}
        if self.username:
            proxy["username"] = self.username
        if self.password:
            proxy["password"] = self.password
        return proxy


@dataclass(frozen=True)
class ConnectionConfig:
    """How to obtain a browser handle.

    ``remote`` is a custom CDP/WebSocket endpoint; ``browserless`` and
    ``browserbase`` are the managed services.
    """
    mode: str = "local"
    endpoint: str = ""
    api_key: str = ""
    proxy: ProxyConfig | None = None

    def __post_init__(self):
        if self.mode not in CONNECTION_MODES:
            raise InvalidArgumentsError(
                f"Unknown connection mode {self.mode!r}; expected one of {', '.join(CONNECTION_MODES)}"
            )

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ConnectionConfig":
        proxy = None
        server = _get(params, "proxyServer", "") or _get(params, "proxy", "")
        if server:
            proxy = ProxyConfig(
                server=server,
                username=_get(params, "proxyUsername", ""),
                password=_get(params, "proxyPassword", ""),
            )
        return cls(
            mode=_get(params, "connectionType", "local"),
            endpoint=_get(params, "remoteBrowserUrl", ""),
            api_key=_get(params, "apiKey", ""),
            proxy=proxy,
        )


@dataclass(frozen=True)
class FingerprintConfig:
    randomize: bool = False
    randomize_viewport: bool = False
    user_agent: str = ""
    viewport: tuple[int, int] | None = None
    timezone: str = ""
    locale: str = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FingerprintConfig":
        return cls(
            randomize=bool(_get(params, "fingerprintRandomize", False)),
            randomize_viewport=bool(_get(params, "viewportRandomize", False)),
            timezone=_get(params, "timezone", ""),
            locale=_get(params, "locale", ""),
        )


@dataclass(frozen=True)
class HumanBehaviorConfig:
    """Delay ranges for humanized input, all in milliseconds."""
    enabled: bool = False
    typing_delay_min: int = 50
    typing_delay_max: int = 150
    click_delay_min: int = 500
    click_delay_max: int = 2000
    mouse_movement: bool = False
    reading_time: int = 0

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "HumanBehaviorConfig":
        return cls(
            enabled=bool(_get(params, "humanBehavior", False)),
            typing_delay_min=_int(_get(params, "typingDelayMin", 50), "typingDelayMin"),
            typing_delay_max=_int(_get(params, "typingDelayMax", 150), "typingDelayMax"),
            click_delay_min=_int(_get(params, "clickDelayMin", 500), "clickDelayMin"),
            click_delay_max=_int(_get(params, "clickDelayMax", 2000), "clickDelayMax"),
            mouse_movement=bool(_get(params, "mouseMovement", False)),
            reading_time=_int(_get(params, "readingTime", 0), "readingTime"),
        )


@dataclass(frozen=True)
class SessionOptions:
    headless: bool = True
    user_data_dir: str = ""
    window_width: int = 1920
    window_height: int = 1080
    user_agent: str = ""
    storage_state_path: str = ""
    default_timeout: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "SessionOptions":
        return cls(
            headless=bool(_get(params, "headless", True)),
            user_data_dir=_get(params, "userDataDir", ""),
            window_width=_int(_get(params, "windowWidth", 1920), "windowWidth"),
            window_height=_int(_get(params, "windowHeight", 1080), "windowHeight"),
            user_agent=_get(params, "userAgent", ""),
            storage_state_path=_get(params, "storageStatePath", ""),
            default_timeout=_int(_get(params, "defaultTimeout", DEFAULT_TIMEOUT_MS), "defaultTimeout"),
        )
