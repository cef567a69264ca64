"""
Unit tests for the Zoom meeting provisioner

The Zoom API is replaced with httpx.MockTransport; a fake clock drives token
expiry.
"""
import asyncio
import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from app.errors import MeetingProvisioningError
from app.services.zoom_client import (
    TOKEN_REFRESH_MARGIN_SECONDS,
    ZOOM_API_URL,
    ZOOM_OAUTH_URL,
    MeetingProvisioner,
    NullMeetingProvisioner,
    ZoomMeetingProvisioner,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class ZoomApi:
    """Records requests and answers like the Zoom API"""

    def __init__(self, meeting_status=201, token_status=200):
        self.requests = []
        self.meeting_status = meeting_status
        self.token_status = token_status
        self.tokens_issued = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == ZOOM_OAUTH_URL:
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"reason": "Invalid client"})
            self.tokens_issued += 1
            return httpx.Response(200, json={"access_token": f"token-{self.tokens_issued}", "expires_in": 3600})

        if request.method == "DELETE":
            return httpx.Response(204)

        if self.meeting_status != 201:
            return httpx.Response(self.meeting_status, json={"message": "User does not exist"})
        return httpx.Response(
            201,
            json={
                "id": 81234567890,
                "join_url": "https://zoom.us/j/81234567890",
                "start_url": "https://zoom.us/s/81234567890",
            },
        )

    def meeting_requests(self):
        return [r for r in self.requests if str(r.url) != ZOOM_OAUTH_URL]


def make_provisioner(api, clock=None, **overrides):
    credentials = {"account_id": "acct", "client_id": "client", "client_secret": "secret", "user_id": "me"}
    credentials.update(overrides)
    return ZoomMeetingProvisioner(
        client=httpx.AsyncClient(transport=httpx.MockTransport(api)),
        clock=clock or FakeClock(),
        timezone="Asia/Riyadh",
        **credentials,
    )


class TestAccessToken:

    @pytest.mark.asyncio
    async def test_token_request_uses_account_credentials_grant(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        token = await provisioner.get_access_token()

        assert token == "token-1"
        request = api.requests[0]
        assert request.method == "POST"
        expected = base64.b64encode(b"client:secret").decode()
        assert request.headers["authorization"] == f"Basic {expected}"
        assert b"grant_type=account_credentials" in request.content
        assert b"account_id=acct" in request.content

    @pytest.mark.asyncio
    async def test_token_is_cached(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        await provisioner.get_access_token()
        await provisioner.get_access_token()

        assert api.tokens_issued == 1

    @pytest.mark.asyncio
    async def test_token_refreshed_inside_margin(self):
        api = ZoomApi()
        clock = FakeClock()
        provisioner = make_provisioner(api, clock=clock)

        await provisioner.get_access_token()
        clock.now += 3600 - TOKEN_REFRESH_MARGIN_SECONDS - 1
        assert await provisioner.get_access_token() == "token-1"

        clock.now += 2
        assert await provisioner.get_access_token() == "token-2"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        tokens = await asyncio.gather(*(provisioner.get_access_token() for _ in range(5)))

        assert set(tokens) == {"token-1"}
        assert api.tokens_issued == 1

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        api = ZoomApi()
        provisioner = make_provisioner(api, client_secret="")

        assert not provisioner.is_configured
        with pytest.raises(MeetingProvisioningError, match="credentials not configured"):
            await provisioner.get_access_token()
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_rejected_credentials(self):
        provisioner = make_provisioner(ZoomApi(token_status=401))

        with pytest.raises(MeetingProvisioningError, match="token request failed"):
            await provisioner.get_access_token()


class TestCreateMeeting:

    @pytest.mark.asyncio
    async def test_creates_scheduled_meeting(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        meeting = await provisioner.create_meeting(
            topic="Physics - Session",
            start_time=datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc),
            duration_minutes=45,
        )

        assert meeting.meeting_id == "81234567890"
        assert meeting.join_url == "https://zoom.us/j/81234567890"
        assert meeting.start_url == "https://zoom.us/s/81234567890"

        request = api.meeting_requests()[0]
        assert str(request.url) == f"{ZOOM_API_URL}/users/me/meetings"
        assert request.headers["authorization"] == "Bearer token-1"
        body = json.loads(request.content)
        assert body["type"] == 2
        assert body["topic"] == "Physics - Session"
        assert body["start_time"] == "2026-03-02T15:00:00Z"
        assert body["duration"] == 45
        assert body["timezone"] == "Asia/Riyadh"
        assert body["settings"]["waiting_room"] is True

    @pytest.mark.asyncio
    async def test_naive_start_time_is_sent_as_utc(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        await provisioner.create_meeting("Lesson", datetime(2026, 3, 2, 9, 30), 60)

        body = json.loads(api.meeting_requests()[0].content)
        assert body["start_time"] == "2026-03-02T09:30:00Z"

    @pytest.mark.asyncio
    async def test_api_error_becomes_provisioning_error(self):
        provisioner = make_provisioner(ZoomApi(meeting_status=404))

        with pytest.raises(MeetingProvisioningError, match="meeting creation failed"):
            await provisioner.create_meeting("Lesson", datetime(2026, 3, 2, 9, 30), 60)

    @pytest.mark.asyncio
    async def test_meetings_reuse_the_cached_token(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        for _ in range(3):
            await provisioner.create_meeting("Lesson", datetime(2026, 3, 2, 9, 30), 60)

        assert api.tokens_issued == 1
        assert len(api.meeting_requests()) == 3

    @pytest.mark.asyncio
    async def test_delete_meeting(self):
        api = ZoomApi()
        provisioner = make_provisioner(api)

        await provisioner.delete_meeting("81234567890")

        request = api.meeting_requests()[0]
        assert request.method == "DELETE"
        assert str(request.url) == f"{ZOOM_API_URL}/meetings/81234567890"


class TestNullProvisioner:

    @pytest.mark.asyncio
    async def test_always_fails_softly(self):
        with pytest.raises(MeetingProvisioningError):
            await NullMeetingProvisioner().create_meeting("Lesson", datetime(2026, 3, 2), 60)


class TestProvisionerInterface:

    def test_interface_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            MeetingProvisioner()

    def test_implementations_must_delete_meetings(self):
        class CreateOnly(MeetingProvisioner):
            async def create_meeting(self, topic, start_time, duration_minutes):
                raise MeetingProvisioningError("unused")

        with pytest.raises(TypeError):
            CreateOnly()
