from __future__ import annotations

import logging

from hireflow.config import get_settings

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "openai", "urllib3")

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install the root handler once; an explicit ``level`` later only adjusts the hireflow loggers."""
    global _configured
    if _configured and level is None:
        return
    settings = get_settings()
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    if not _configured:
        logging.basicConfig(
            level=resolved,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
        _configured = True

    logging.getLogger("hireflow").setLevel(resolved)
