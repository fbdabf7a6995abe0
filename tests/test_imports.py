"""Smoke tests: public modules are importable."""


def test_browser_imports():
    from agentic_browser.browser import (
        SessionRegistry,
        apply_fingerprint,
        build_launch_args,
        build_stealth_shim,
        load_storage_state,
        open_browser,
        open_registry,
        random_user_agent,
        resolve_endpoint,
        resolve_fingerprint,
    )
    assert callable(SessionRegistry)
    assert callable(apply_fingerprint)
    assert callable(build_launch_args)
    assert callable(build_stealth_shim)
    assert callable(load_storage_state)
    assert callable(open_browser)
    assert callable(open_registry)
    assert callable(random_user_agent)
    assert callable(resolve_endpoint)
    assert callable(resolve_fingerprint)


def test_human_imports():
    from agentic_browser.human import await_reading, human_click, human_type, random_delay
    assert callable(await_reading)
    assert callable(human_click)
    assert callable(human_type)
    assert callable(random_delay)


def test_telemetry_imports():
    from agentic_browser.telemetry import SessionEventLogger
    assert callable(SessionEventLogger)


def test_top_level_imports():
    from agentic_browser import BrowserError, ErrorKind, SessionNotFoundError, open_registry, run, send_message
    assert ErrorKind.SESSION_NOT_FOUND.value == "session_not_found"
    assert issubclass(SessionNotFoundError, BrowserError)
    assert callable(open_registry)
    assert callable(run)
    assert callable(send_message)
