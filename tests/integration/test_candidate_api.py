"""Integration tests for candidate self-service and staff candidate endpoints"""

import pytest
from unittest.mock import patch

from fastapi import status
from sqlalchemy.orm.exc import StaleDataError

from backend.app.models.user import Region, UserRole
from backend.app.services.pipeline_service import PipelineService

pytestmark = pytest.mark.integration

API = "/api/v1/candidates"


class TestSelfService:

    @pytest.mark.asyncio
    async def test_update_profile(self, client, candidate_user, auth_headers):
        response = await client.put(
            f"{API}/me", headers=auth_headers(candidate_user), json={"phone": "555-0100", "region": "west"}
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["phone"] == "555-0100"
        assert body["region"] == "west"
        assert body["status"] == "profile_created"

    @pytest.mark.asyncio
    async def test_concurrent_update_is_a_conflict(self, client, candidate_user, auth_headers):
        stale = StaleDataError("expected to update 1 row(s); 0 were matched.")
        headers = auth_headers(candidate_user)

        with patch.object(PipelineService, "update_profile", side_effect=stale):
            response = await client.put(f"{API}/me", headers=headers, json={"phone": "555-0100"})

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert set(body) == {"error", "details", "request_id"}
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_upload_rejects_wrong_type(self, client, candidate_user, auth_headers, s3_client):
        response = await client.post(
            f"{API}/me/assets/resume",
            headers=auth_headers(candidate_user),
            files={"file": ("cv.exe", b"MZ", "application/octet-stream")},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"]["extension"] == ".exe"
        s3_client.upload_fileobj.assert_not_called()

    @pytest.mark.asyncio
    async def test_training_video_is_not_a_candidate_asset(self, client, candidate_user, auth_headers):
        response = await client.post(
            f"{API}/me/assets/training_video",
            headers=auth_headers(candidate_user),
            files={"file": ("intro.mp4", b"video", "video/mp4")},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_asset_url(self, client, candidate_user, auth_headers):
        headers = auth_headers(candidate_user)

        missing = await client.get(f"{API}/me/assets/resume/url", headers=headers)
        assert missing.status_code == status.HTTP_404_NOT_FOUND

        await client.post(
            f"{API}/me/assets/resume", headers=headers, files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")}
        )
        response = await client.get(f"{API}/me/assets/resume/url", headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["url"] == "https://s3.test/signed"

    @pytest.mark.asyncio
    async def test_staff_have_no_profile(self, client, hr_user, auth_headers):
        response = await client.get(f"{API}/me", headers=auth_headers(hr_user))

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestStaffAccess:

    @pytest.mark.asyncio
    async def test_search(self, client, hr_user, candidate_user, make_user, auth_headers):
        await make_user(UserRole.CANDIDATE, Region.SOUTH, name="Dana South")

        response = await client.get(API, headers=auth_headers(hr_user), params={"region": "south"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 1
        assert body["candidates"][0]["name"] == "Dana South"

    @pytest.mark.asyncio
    async def test_manager_sees_own_region(self, client, manager_user, candidate_user, make_user, auth_headers):
        outsider = await make_user(UserRole.CANDIDATE, Region.SOUTH)
        headers = auth_headers(manager_user)

        listing = await client.get(API, headers=headers)
        assert [c["id"] for c in listing.json()["candidates"]] == [str(candidate_user.id)]

        response = await client.get(f"{API}/{outsider.id}", headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_assigned_candidate_is_visible_outside_region(
        self, client, hr_user, manager_user, make_user, auth_headers
    ):
        outsider = await make_user(UserRole.CANDIDATE, Region.SOUTH)

        response = await client.put(
            f"{API}/{outsider.id}/manager", headers=auth_headers(hr_user), json={"manager_id": str(manager_user.id)}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["assigned_manager"]["id"] == str(manager_user.id)

        response = await client.get(f"{API}/{outsider.id}/hiring-state", headers=auth_headers(manager_user))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["current_step"] == 1

    @pytest.mark.asyncio
    async def test_only_managers_can_be_assigned(self, client, hr_user, candidate_user, auth_headers):
        response = await client.put(
            f"{API}/{candidate_user.id}/manager", headers=auth_headers(hr_user), json={"manager_id": str(hr_user.id)}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_pending(self, client, hr_user, candidate_user, auth_headers):
        response = await client.get(f"{API}/pending", headers=auth_headers(hr_user))

        assert response.status_code == status.HTTP_200_OK
        assert [c["id"] for c in response.json()] == [str(candidate_user.id)]

    @pytest.mark.asyncio
    async def test_candidates_cannot_search(self, client, candidate_user, auth_headers):
        response = await client.get(API, headers=auth_headers(candidate_user))

        assert response.status_code == status.HTTP_403_FORBIDDEN
