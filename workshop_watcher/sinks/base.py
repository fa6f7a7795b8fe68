"""Notification sink interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import NotificationMessage


class BaseSink(ABC):
    """Uniform delivery contract so the notifier stays transport agnostic."""

    @abstractmethod
    def deliver(self, message: NotificationMessage) -> None:
        """Send one message, raising ``DeliveryError`` on failure."""

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseSink"]
