"""SMS delivery through the Twilio REST API.

One request per attempt and no retry: a failed SMS is recorded in the
case's audit trail by the caller and not sent again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog

from kavalan.core.errors import NotificationChannelException

if TYPE_CHECKING:
    from kavalan.core.rendering import RenderedMessage

log = structlog.get_logger()

TWILIO_BASE_URL = "https://api.twilio.com/2010-04-01"


class TwilioSMSChannel:
    name = "sms"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        base_url: str = TWILIO_BASE_URL,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._account_sid = account_sid
        self._auth = (account_sid, auth_token)
        self._from = from_number
        self._base_url = base_url
        self._timeout = timeout_s
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def send(self, target: str, message: RenderedMessage) -> str:
        client = await self._get_client()
        path = f"/Accounts/{self._account_sid}/Messages.json"
        try:
            response = await client.post(
                path,
                auth=self._auth,
                data={"To": target, "From": self._from, "Body": message.body},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationChannelException(
                f"twilio returned {exc.response.status_code} for {target}",
            ) from exc
        except httpx.RequestError as exc:
            raise NotificationChannelException(f"twilio request failed: {exc}") from exc

        sid = response.json().get("sid", "")
        log.info("sms_sent", target=target, sid=sid)
        return sid

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
