# galaxy/events.py
import logging
from typing import Dict, Optional

logger = logging.getLogger("galaxy.events")

# ANSI colors
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
MAGENTA = "\033[95m"
RED = "\033[91m"
RESET = "\033[0m"

_EVENT_COLORS = {
    "SOLVE": GREEN,
    "CLUSTER": CYAN,
    "CACHE": YELLOW,
    "CENTRAL": MAGENTA,
    "ERROR": RED,
}


def log_event(event_type: str, message: str, details: Optional[Dict] = None):
    """Emit a streaming log event."""
    color = _EVENT_COLORS.get(event_type, RESET)
    level = logging.WARNING if event_type == "ERROR" else logging.INFO

    logger.log(level, f"{color}[{event_type}] {message}{RESET}")
    if details:
        logger.log(level, f"{color}      └─ {details}{RESET}")
