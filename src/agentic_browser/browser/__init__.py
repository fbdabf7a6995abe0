"""browser — Playwright browser provisioning, fingerprinting and session ownership.

Zero workflow-specific dependencies. All handles stay owned by the registry.
"""
from .connection import BrowserHandle, build_launch_args, open_browser, resolve_endpoint  # noqa: F401
from .registry import DEFAULT_PAGE_ID, Session, SessionRegistry, open_registry  # noqa: F401
from .stealth import Fingerprint, apply_fingerprint, build_stealth_shim, resolve_fingerprint  # noqa: F401
from .storage import get_cookies, get_local_storage, load_storage_state, set_cookies, set_local_storage  # noqa: F401
from .ua import USER_AGENTS, VIEWPORTS, random_user_agent, random_viewport  # noqa: F401
