from __future__ import annotations

import logging
import threading

from plyer import notification as plyer_notification  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

APP_NAME = "FocusLedger"


def notify(title: str, message: str, timeout: int = 5) -> threading.Thread:
    """Send a desktop notification in a non-blocking way."""
    def _do() -> None:
        try:
            notify_func = getattr(plyer_notification, "notify", None)
            if callable(notify_func):
                notify_func(title=title, message=message, timeout=timeout, app_name=APP_NAME)  # type: ignore[no-untyped-call]
            else:
                logger.info("%s: %s - %s", APP_NAME, title, message)
        except Exception:
            # Platforms without a notification backend raise here
            logger.warning("Desktop notification failed: %s", title, exc_info=True)

    t = threading.Thread(target=_do, name="FocusLedger-Notify", daemon=True)
    t.start()
    return t
