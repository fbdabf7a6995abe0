"""telemetry — structured event logging for sessions and operations."""
from .logger import SessionEventLogger  # noqa: F401
