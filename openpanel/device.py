"""Best-effort user agent for the ``user-agent`` request header."""

import logging
import platform

from openpanel.version import SDK_VERSION


logger = logging.getLogger(__name__)


def get_user_agent() -> str:
    base = f"OpenPanelPython/{SDK_VERSION}"
    try:
        system = platform.system() or "Unknown"
        release = platform.release()
        machine = platform.machine()
        details = " ".join(part for part in (system, release) if part)
        if machine:
            details = f"{details}; {machine}"
        return f"{base} ({details}) Python/{platform.python_version()}"
    except Exception as e:
        logger.debug("Falling back to bare user agent: %s", e)
        return base
