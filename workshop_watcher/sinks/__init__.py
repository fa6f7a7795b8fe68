"""Notification sink SPI and implementations."""

from .base import BaseSink
from .discord import DiscordWebhookSink
from .log_sink import LogSink

__all__ = ["BaseSink", "DiscordWebhookSink", "LogSink"]
