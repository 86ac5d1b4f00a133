"""Notification channel interface (port)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from kavalan.core.rendering import RenderedMessage


class NotificationChannel(Protocol):
    """Port: deliver one rendered payload to one target.

    Returns the provider's reference for the attempt. Any failure is
    raised as an exception (usually ``NotificationChannelException``);
    the caller decides what to do with it.
    """

    name: str

    async def send(self, target: str, message: RenderedMessage) -> str: ...
