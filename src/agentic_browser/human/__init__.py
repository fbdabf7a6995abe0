"""human — human-like timing for browser interactions."""
from .behavior import (  # noqa: F401
    random_delay,
    human_type,
    human_click,
    await_reading,
)
