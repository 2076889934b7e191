"""Best-effort webhook notifications for dashboard queries."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from threading import BoundedSemaphore
from typing import Any, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

PROVIDER_NONE = "none"

_PAYLOAD_BUILDERS: Dict[str, Callable[[str], Dict[str, Any]]] = {
    "discord": lambda message: {"content": message},
    "slack": lambda message: {"text": message},
    "generic": lambda message: {"message": message},
}


def build_payload(provider: str, message: str) -> Optional[Dict[str, Any]]:
    """Return the webhook body for ``provider``, or ``None`` if it is unknown."""
    builder = _PAYLOAD_BUILDERS.get(provider)
    if builder is None:
        return None
    return builder(message)


class WebhookNotifier:
    """Posts query notifications to a webhook without blocking the caller."""

    def __init__(
        self,
        provider: str = PROVIDER_NONE,
        webhook_url: Optional[str] = None,
        timeout: float = 5.0,
        workers: int = 2,
        max_pending: int = 100,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.provider = provider.lower()
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="notifier"
        )
        self._pending = BoundedSemaphore(max_pending)

    @property
    def enabled(self) -> bool:
        return self.provider != PROVIDER_NONE and bool(self.webhook_url)

    def notify(self, message: str) -> Optional[Future[bool]]:
        """Schedule delivery of ``message``; returns the pending delivery, if any."""
        if not self.enabled:
            logger.info(
                "Notification skipped: provider set to none or webhook URL not provided",
                extra={"provider": self.provider},
            )
            return None

        payload = build_payload(self.provider, message)
        if payload is None:
            logger.warning(
                "Unknown notification provider: %s",
                self.provider,
                extra={"provider": self.provider},
            )
            return None

        if not self._pending.acquire(blocking=False):
            logger.warning(
                "Notification dropped: too many deliveries pending",
                extra={"provider": self.provider},
            )
            return None

        try:
            future = self.executor.submit(self._deliver, payload)
        except RuntimeError:
            self._pending.release()
            logger.warning(
                "Notification dropped after shutdown", extra={"provider": self.provider}
            )
            return None
        future.add_done_callback(lambda _f: self._pending.release())
        return future

    def shutdown(self) -> None:
        """Drop queued notifications and wait for in-flight posts to finish."""
        self.executor.shutdown(wait=True, cancel_futures=True)
        if self._owns_client:
            self._client.close()

    def _deliver(self, payload: Dict[str, Any]) -> bool:
        if not self.webhook_url:
            return False
        try:
            response = self._client.post(
                self.webhook_url, json=payload, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Error sending %s notification",
                self.provider,
                extra={"provider": self.provider, "status_code": exc.response.status_code},
            )
            return False
        except httpx.HTTPError as exc:
            logger.error(
                "Error sending %s notification: %s",
                self.provider,
                exc,
                extra={"provider": self.provider},
            )
            return False
        except Exception:  # noqa: BLE001 - delivery failures never reach the caller
            logger.exception(
                "Error sending %s notification",
                self.provider,
                extra={"provider": self.provider},
            )
            return False

        logger.info(
            "%s notification sent successfully",
            self.provider,
            extra={"provider": self.provider, "status_code": response.status_code},
        )
        return True
