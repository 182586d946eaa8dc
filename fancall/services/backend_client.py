"""Managed backend client (REST + RPC + edge functions).

Implements the session backend used by the handoff protocol and the presence
sender used by the heartbeat.

Usage:
    client = BackendClient(base_url, api_key=key, access_token=get_token)
    session_id = await client.start_session(queue_entry_id)
"""

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from loguru import logger

from fancall.app_config import get_app_environ_config
from fancall.domain.live.handoff.readiness import (
    fan_not_ready_error,
    is_fan_not_ready,
    parse_fan_not_ready,
)
from fancall.schemas import InviteStatus, SessionInvite
from fancall.utils.app_errors import AppError, AppErrorCode, SessionStartError

AccessTokenProvider = Callable[[], Awaitable[str | None]]

START_SESSION_RPC = "/rest/v1/rpc/start_session"
SESSION_INVITES_TABLE = "/rest/v1/session_invites"
PRESENCE_FUNCTION = "/functions/v1/creator-heartbeat"


class BackendClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        access_token: AccessTokenProvider | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        cfg = get_app_environ_config()
        base_url = base_url or cfg.BACKEND_BASE_URL
        if not base_url:
            raise AppError(
                "Backend URL must be configured. Set BACKEND_BASE_URL in env.local or the environment.",
                errcode=AppErrorCode.E_INVALID_REQUEST,
            )
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key if api_key is not None else cfg.BACKEND_API_KEY
        self._access_token = access_token
        self._timeout = timeout if timeout is not None else cfg.BACKEND_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self._timeout, transport=self._transport
        )

    async def _build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["apikey"] = self.api_key
        token = await self._get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _get_token(self) -> str | None:
        if self._access_token is None:
            return None
        return await self._access_token()

    # ==================== SESSIONS ====================

    async def start_session(self, queue_entry_id: str) -> str:
        """Call the atomic session-creation RPC for a queue entry.

        Raises:
            PreconditionError: If the server reports the fan is not ready
            SessionStartError: For transport failures and any other server error
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    START_SESSION_RPC,
                    json={"p_queue_entry": queue_entry_id},
                    headers=await self._build_headers(),
                )
        except httpx.HTTPError as e:
            logger.warning("start_session request failed for {}: {}", queue_entry_id, e)
            raise SessionStartError("Could not reach the server. Please try again.") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "start_session RPC error: status={} entry={} message={}",
                response.status_code,
                queue_entry_id,
                message,
            )
            if is_fan_not_ready(message):
                raise fan_not_ready_error(parse_fan_not_ready(message))
            raise SessionStartError("Could not start session. Please try again.")

        session_id = _session_id_from(response)
        if not session_id:
            logger.error("start_session RPC returned no session id for {}", queue_entry_id)
            raise SessionStartError("No session was created. Please try again.")
        return session_id

    # ==================== INVITES ====================

    async def fetch_pending_invite(self, invitee_id: str) -> SessionInvite | None:
        """Most recent pending invite for ``invitee_id``, if any."""
        async with self._client() as client:
            response = await client.get(
                SESSION_INVITES_TABLE,
                params={
                    "invitee_id": f"eq.{invitee_id}",
                    "status": f"eq.{InviteStatus.PENDING}",
                    "order": "created_at.desc",
                    "limit": "1",
                },
                headers=await self._build_headers(),
            )
            response.raise_for_status()
            rows = response.json()

        if not rows:
            return None
        return SessionInvite.model_validate(rows[0])

    async def mark_invite_accepted(self, invite_id: str) -> None:
        async with self._client() as client:
            response = await client.patch(
                SESSION_INVITES_TABLE,
                params={"id": f"eq.{invite_id}"},
                json={"status": str(InviteStatus.ACCEPTED)},
                headers=await self._build_headers({"Prefer": "return=minimal"}),
            )
            response.raise_for_status()
        logger.debug("Invite {} marked accepted", invite_id)

    # ==================== PRESENCE ====================

    async def send_presence(self, is_online: bool) -> None:
        """Authenticated presence update. Skipped when no access token is available."""
        token = await self._get_token()
        if not token:
            logger.warning("No auth token for heartbeat, skipping")
            return

        async with self._client() as client:
            response = await client.post(
                PRESENCE_FUNCTION,
                json={"isOnline": is_online},
                headers=await self._build_headers(),
            )
            response.raise_for_status()


def _error_message(response: httpx.Response) -> str:
    try:
        data: Any = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data.get("details") or data)
    return str(data)


def _session_id_from(response: httpx.Response) -> str | None:
    try:
        data: Any = response.json()
    except ValueError:
        return response.text.strip().strip('"') or None
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        value = data.get("session_id") or data.get("id")
        return str(value) if value else None
    return None
