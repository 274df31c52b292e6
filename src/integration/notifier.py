from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Literal

import httpx

logger = logging.getLogger(__name__)

Permission = Literal["granted", "denied"]

NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "").strip()
NOTIFY_TIMEOUT_S = float(os.getenv("NOTIFY_TIMEOUT_S", "5"))


class Notifier(ABC):
    """Best-effort delivery of user-visible alerts."""

    @abstractmethod
    def request_permission(self) -> Permission:
        raise NotImplementedError

    @abstractmethod
    def fire(self, title: str, body: str) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    def request_permission(self) -> Permission:
        return "granted"

    def fire(self, title: str, body: str) -> None:
        logger.info(f"[notification] {title}: {body}")


class WebhookNotifier(Notifier):
    """POSTs ``{"title", "body"}`` to a webhook; failures are logged, never raised."""

    def __init__(self, url: str, timeout_s: float = NOTIFY_TIMEOUT_S):
        self.url = url
        self.timeout_s = timeout_s

    def request_permission(self) -> Permission:
        return "granted" if self.url else "denied"

    def fire(self, title: str, body: str) -> None:
        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                r = client.post(self.url, json={"title": title, "body": body})
                r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Notification webhook failed: {e}")


def build_notifier() -> Notifier:
    if NOTIFY_WEBHOOK_URL:
        return WebhookNotifier(NOTIFY_WEBHOOK_URL)
    return LoggingNotifier()
