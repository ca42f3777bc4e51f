"""
workflow_kernel.services.notification_dispatcher -- Bounded notification delivery.

Responsibility:
    Wraps the injected Notifier so that a slow or failing mail collaborator
    can never block or undo a committed workflow transition.  Delivery runs
    on a worker thread pool; the caller waits at most ``timeout_seconds``.

Architecture position:
    Kernel > Services.  May import from domain/ports.py, exceptions,
    logging_config.

Failure modes:
    None raised.  Every failure (refusal, NotificationDeliveryError, any
    other notifier exception, timeout, missing address) is returned as a
    NotificationResult with status FAILED or SKIPPED.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from workflow_kernel.domain.ports import Notifier
from workflow_kernel.exceptions import NotificationDeliveryError
from workflow_kernel.logging_config import get_logger

logger = get_logger("services.notification_dispatcher")

RECIPIENT_UNAVAILABLE = "recipient address unavailable"
TIMED_OUT = "notification timed out"
REFUSED = "notifier refused the message"


class NotificationStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one delivery attempt."""

    template_key: str
    to_address: str | None
    status: NotificationStatus
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status == NotificationStatus.SENT


class NotificationDispatcher:
    """Deliver templated messages through a Notifier with a bounded wait."""

    def __init__(
        self,
        notifier: Notifier,
        timeout_seconds: float = 5.0,
        max_workers: int = 4,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._notifier = notifier
        self._timeout = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="workflow-notify",
        )

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def dispatch(
        self,
        template_key: str,
        to_address: str | None,
        variables: Mapping[str, Any],
    ) -> NotificationResult:
        if not to_address:
            logger.info(
                "notification_skipped",
                extra={"template_key": template_key, "reason": RECIPIENT_UNAVAILABLE},
            )
            return NotificationResult(
                template_key, None, NotificationStatus.SKIPPED, RECIPIENT_UNAVAILABLE,
            )

        future = self._executor.submit(
            self._notifier.send, template_key, to_address, dict(variables),
        )
        try:
            delivered = future.result(timeout=self._timeout)
        except FutureTimeoutError:
            future.cancel()
            return self._failed(template_key, to_address, TIMED_OUT)
        except NotificationDeliveryError as exc:
            return self._failed(template_key, to_address, exc.reason)
        except Exception as exc:
            logger.warning(
                "notifier_raised",
                extra={"template_key": template_key},
                exc_info=True,
            )
            return self._failed(template_key, to_address, f"notifier error: {type(exc).__name__}")

        if not delivered:
            return self._failed(template_key, to_address, REFUSED)

        logger.info(
            "notification_sent",
            extra={"template_key": template_key, "to_address": to_address},
        )
        return NotificationResult(template_key, to_address, NotificationStatus.SENT)

    def _failed(self, template_key: str, to_address: str, reason: str) -> NotificationResult:
        logger.warning(
            "notification_failed",
            extra={"template_key": template_key, "to_address": to_address, "reason": reason},
        )
        return NotificationResult(template_key, to_address, NotificationStatus.FAILED, reason)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)
