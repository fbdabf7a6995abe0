"""agentic-browser — session & interaction engine for remote browser automation.

Owns browser/page lifecycle across many logical sessions, applies
fingerprint overrides, humanizes input timing, and drives web chat UIs
through a send → wait-for-streaming → extract protocol.
"""
from .browser.registry import SessionRegistry, open_registry  # noqa: F401
from .chat import ChatResult, ChatState, ProviderProfile, resolve_profile, send_message  # noqa: F401
from .config import ConnectionConfig, FingerprintConfig, HumanBehaviorConfig, ProxyConfig, SessionOptions  # noqa: F401
from .errors import (  # noqa: F401
    BrowserError,
    ErrorKind,
    InteractionError,
    InvalidArgumentsError,
    ProvisioningError,
    SelectorTimeoutError,
    SessionNotFoundError,
    UnsupportedOperationError,
)
from .router import run  # noqa: F401
