"""Structured JSONL event logging for browser sessions."""
import json
import logging
import os
import time

log = logging.getLogger(__name__)


class SessionEventLogger:
    """Writes one JSON line per session/operation event to a JSONL file.

    Best-effort: no method ever raises.
    Supports context-manager protocol for automatic close.
    """

    def __init__(self, run_id: str, name: str = "sessions", log_dir: str = "data/logs/browser_events"):
        self._run_id = run_id
        self._f = None
        try:
            os.makedirs(log_dir, exist_ok=True)
            safe_name = name.replace("/", "_").replace("\\", "_")
            path = os.path.join(log_dir, f"{safe_name}_{run_id}.jsonl")
            self._f = open(path, "a", encoding="utf-8")
        except Exception as e:
            log.warning(f"SessionEventLogger: failed to open log file: {e}")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _write(self, event: dict):
        if self._f is None:
            return
        try:
            event["ts"] = time.time()
            event["run_id"] = self._run_id
            self._f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
            self._f.flush()
        except Exception as e:
            log.warning(f"SessionEventLogger: write failed: {e}")

    def log_session_created(self, session_id: str, mode: str, viewport: tuple[int, int],
                            user_agent: str, persistent: bool, duration: float):
        self._write({
            "event": "session_created",
            "session_id": session_id,
            "mode": mode,
            "viewport": list(viewport),
            "user_agent": user_agent,
            "persistent": persistent,
            "duration": duration,
        })

    def log_session_closed(self, session_id: str, pages_closed: int, page_errors: int,
                           browser_error: str | None, age: float):
        """Log the teardown of one session.

        ``page_errors`` counts pages that failed to close; ``browser_error``
        is the message from a failed browser close, or ``None``.
        """
        self._write({
            "event": "session_closed",
            "session_id": session_id,
            "pages_closed": pages_closed,
            "page_errors": page_errors,
            "browser_error": browser_error,
            "age": age,
        })

    def log_page_created(self, session_id: str, page_id: str, lazy: bool):
        self._write({
            "event": "page_created",
            "session_id": session_id,
            "page_id": page_id,
            "lazy": lazy,
        })

    def log_chat_completed(self, session_id: str, page_id: str, provider: str, state: str,
                           streaming_observed: bool, timed_out: bool, response_len: int,
                           elapsed_ms: float):
        self._write({
            "event": "chat_completed",
            "session_id": session_id,
            "page_id": page_id,
            "provider": provider,
            "state": state,
            "streaming_observed": streaming_observed,
            "timed_out": timed_out,
            "response_len": response_len,
            "elapsed_ms": elapsed_ms,
        })

    def log_operation_failed(self, resource: str, operation: str, item_index: int,
                             error_kind: str, message: str, continued: bool):
        self._write({
            "event": "operation_failed",
            "resource": resource,
            "operation": operation,
            "item_index": item_index,
            "error_kind": error_kind,
            "message": message,
            "continued": continued,
        })

    def close(self):
        if self._f is not None:
            try:
                self._f.flush()
                self._f.close()
            except Exception:
                pass
            self._f = None
