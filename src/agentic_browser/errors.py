"""Normalized error kinds for the session & interaction engine.

Driver-level exceptions (Playwright ``TimeoutError`` / ``Error``) are mapped
into these classes at the operation boundary so callers only ever handle one
taxonomy.
"""
from contextlib import contextmanager
from enum import Enum

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class ErrorKind(Enum):
    """Error kinds every failure surfaced by the engine maps into."""
    PROVISIONING = "provisioning"            # browser could not be launched/connected
    SESSION_NOT_FOUND = "session_not_found"  # unknown session id
    SELECTOR_TIMEOUT = "selector_timeout"    # awaited element never appeared
    INVALID_ARGUMENTS = "invalid_arguments"  # malformed caller input
    INTERACTION = "interaction"              # any other remote-protocol failure
    UNSUPPORTED = "unsupported"              # unknown resource/operation


class BrowserError(Exception):
    """Exception carrying a normalized ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str = ""):
        self.kind = kind
        super().__init__(message or kind.value)


class ProvisioningError(BrowserError):
    def __init__(self, message: str = "", *, mode: str = ""):
        self.mode = mode
        super().__init__(ErrorKind.PROVISIONING, message)


class SessionNotFoundError(BrowserError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(ErrorKind.SESSION_NOT_FOUND, f"Session {session_id} not found")


class SelectorTimeoutError(BrowserError):
    def __init__(self, selector: str, timeout: float | None = None, message: str = ""):
        self.selector = selector
        self.timeout = timeout
        if not message:
            message = f"Timed out waiting for selector {selector!r}"
            if timeout is not None:
                message += f" after {int(timeout)}ms"
        super().__init__(ErrorKind.SELECTOR_TIMEOUT, message)


class InvalidArgumentsError(BrowserError):
    def __init__(self, message: str = ""):
        super().__init__(ErrorKind.INVALID_ARGUMENTS, message)


class InteractionError(BrowserError):
    def __init__(self, message: str = ""):
        super().__init__(ErrorKind.INTERACTION, message)


class UnsupportedOperationError(BrowserError):
    def __init__(self, message: str = ""):
        super().__init__(ErrorKind.UNSUPPORTED, message)


@contextmanager
def translate_errors(action: str, selector: str = "", timeout: float | None = None):
    """Map Playwright exceptions raised inside the block into the taxonomy.

    Engine errors pass through untouched. A driver timeout becomes
    ``SelectorTimeoutError`` when a selector is involved, otherwise an
    ``InteractionError``.
    """
    try:
        yield
    except BrowserError:
        raise
    except PlaywrightTimeoutError as e:
        if selector:
            raise SelectorTimeoutError(selector, timeout) from e
        raise InteractionError(f"{action} timed out: {e}") from e
    except PlaywrightError as e:
        raise InteractionError(f"{action} failed: {e}") from e
