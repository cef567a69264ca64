"""
Meeting Provisioner - Zoom Server-to-Server OAuth integration

Creates and deletes scheduled Zoom meetings for lesson sessions. Every failure
is raised as MeetingProvisioningError; the approval workflow treats that error
channel as a soft failure and schedules the session without a meeting.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import httpx

from app import config
from app.errors import MeetingProvisioningError
from app.schemas import Meeting, ensure_utc

logger = logging.getLogger(__name__)

ZOOM_OAUTH_URL = "https://zoom.us/oauth/token"
ZOOM_API_URL = "https://api.zoom.us/v2"

# Refresh the cached token when fewer than 5 minutes of validity remain
TOKEN_REFRESH_MARGIN_SECONDS = 300

SCHEDULED_MEETING = 2

MEETING_SETTINGS = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": False,
    "mute_upon_entry": True,
    "waiting_room": True,
    "auto_recording": "none",
}


class MeetingProvisioner(ABC):
    """Interface for services that create joinable video meetings"""

    @abstractmethod
    async def create_meeting(self, topic: str, start_time: datetime, duration_minutes: int) -> Meeting:
        """Create a meeting; raises MeetingProvisioningError on failure"""

    @abstractmethod
    async def delete_meeting(self, meeting_id: str) -> None:
        """Delete a meeting; raises MeetingProvisioningError on failure"""

    async def aclose(self) -> None:
        """Release network resources held by the provisioner"""


class NullMeetingProvisioner(MeetingProvisioner):
    """Used when meetings are disabled; sessions are scheduled without one"""

    async def create_meeting(self, topic, start_time, duration_minutes):
        raise MeetingProvisioningError("Meeting provisioning is disabled")

    async def delete_meeting(self, meeting_id):
        raise MeetingProvisioningError("Meeting provisioning is disabled")


class ZoomMeetingProvisioner(MeetingProvisioner):
    """
    Zoom meetings via the account-credentials grant.

    The access token is cached per instance. Refresh is single-flight: the
    lock is held across the token exchange and the expiry is re-checked after
    acquiring it, so concurrent callers share one refresh.
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        user_id: Optional[str] = None,
        timezone: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock=time.monotonic,
    ):
        self.account_id = account_id if account_id is not None else config.ZOOM_ACCOUNT_ID
        self.client_id = client_id if client_id is not None else config.ZOOM_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else config.ZOOM_CLIENT_SECRET
        self.user_id = user_id or config.ZOOM_USER_ID
        self.timezone = timezone or config.ZOOM_TIMEZONE
        self._client = client
        self._clock = clock

        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self.account_id and self.client_id and self.client_secret)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS)
        return self._client

    def _token_is_fresh(self) -> bool:
        return self._token is not None and self._clock() < self._token_expires_at

    async def get_access_token(self) -> str:
        if self._token_is_fresh():
            return self._token

        async with self._token_lock:
            # Another caller may have refreshed while we waited
            if self._token_is_fresh():
                return self._token

            if not self.is_configured:
                raise MeetingProvisioningError(
                    "Zoom credentials not configured. "
                    "Set ZOOM_ACCOUNT_ID, ZOOM_CLIENT_ID, and ZOOM_CLIENT_SECRET."
                )

            try:
                response = await self._get_client().post(
                    ZOOM_OAUTH_URL,
                    auth=(self.client_id, self.client_secret),
                    data={"grant_type": "account_credentials", "account_id": self.account_id},
                )
                response.raise_for_status()
                payload = response.json()
                token = payload["access_token"]
                expires_in = int(payload.get("expires_in", 3600))
            except (httpx.HTTPError, ValueError, KeyError) as e:
                raise MeetingProvisioningError(f"Zoom token request failed: {e}") from e

            self._token = token
            self._token_expires_at = self._clock() + expires_in - TOKEN_REFRESH_MARGIN_SECONDS
            logger.info("Zoom access token refreshed")
            return self._token

    async def create_meeting(self, topic: str, start_time: datetime, duration_minutes: int) -> Meeting:
        """
        Create a scheduled meeting.

        Args:
            topic: Meeting title shown to participants
            start_time: Session start (aware datetimes are sent as UTC)
            duration_minutes: Planned meeting length

        Returns:
            Meeting with id, join URL and host start URL

        Raises:
            MeetingProvisioningError: On missing credentials or any API failure
        """
        token = await self.get_access_token()
        body = {
            "topic": topic,
            "type": SCHEDULED_MEETING,
            "start_time": ensure_utc(start_time).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": duration_minutes,
            "timezone": self.timezone,
            "settings": MEETING_SETTINGS,
        }

        try:
            response = await self._get_client().post(
                f"{ZOOM_API_URL}/users/{self.user_id}/meetings",
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            payload = response.json()
            return Meeting(
                meeting_id=str(payload["id"]),
                join_url=payload["join_url"],
                start_url=payload["start_url"],
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise MeetingProvisioningError(f"Zoom meeting creation failed: {e}") from e

    async def delete_meeting(self, meeting_id: str) -> None:
        token = await self.get_access_token()
        try:
            response = await self._get_client().delete(
                f"{ZOOM_API_URL}/meetings/{meeting_id}",
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise MeetingProvisioningError(f"Zoom meeting deletion failed: {e}") from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
