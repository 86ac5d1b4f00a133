"""Notification channel that only writes the payload to the log.

Used in development and wherever no SMS or mail provider is configured.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from kavalan.core.rendering import RenderedMessage

log = structlog.get_logger()


class LogChannel:
    def __init__(self, name: str) -> None:
        self.name = name

    async def send(self, target: str, message: RenderedMessage) -> str:
        ref = f"log-{uuid.uuid4().hex[:12]}"
        log.info("notification_logged", channel=self.name, target=target,
                 kind=message.kind, subject=message.subject, ref=ref,
                 body_chars=len(message.body))
        return ref
