"""Integration test walking one candidate through the whole hiring pipeline"""

import pytest
from datetime import datetime, timedelta, timezone

pytestmark = pytest.mark.integration

API = "/api/v1"


async def upload(client, headers, kind, filename, content_type):
    response = await client.post(
        f"{API}/candidates/me/assets/{kind}",
        headers=headers,
        files={"file": (filename, b"binary-content", content_type)},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def move(client, headers, application_id, status, **extra):
    return await client.post(
        f"{API}/applications/{application_id}/status",
        headers=headers,
        json={"status": status, **extra},
    )


@pytest.fixture
async def training_module(client, admin_user, auth_headers):
    """One module with two videos, created through the API"""
    headers = auth_headers(admin_user)
    response = await client.post(
        f"{API}/training/modules",
        headers=headers,
        json={"title": "Product Knowledge", "module": "product"},
    )
    assert response.status_code == 201, response.text
    module = response.json()

    for index in range(2):
        response = await client.post(
            f"{API}/training/modules/{module['id']}/videos",
            headers=headers,
            json={"title": f"Part {index + 1}", "url": f"training_video/product/part{index + 1}.mp4"},
        )
        assert response.status_code == 201, response.text

    response = await client.get(f"{API}/training/modules/{module['id']}", headers=headers)
    return response.json()


@pytest.fixture
async def job(client, hr_user, auth_headers, training_module):
    response = await client.post(
        f"{API}/jobs",
        headers=auth_headers(hr_user),
        json={
            "title": "Solar Sales Representative",
            "description": "Meet homeowners and explain solar savings.",
            "location": "Austin, TX",
            "training_module_ids": [training_module["id"]],
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestCandidateJourney:

    @pytest.mark.asyncio
    async def test_register_login_and_profile(self, client):
        response = await client.post(f"{API}/auth/register", json={
            "username": "sam_sells",
            "email": "sam@example.com",
            "password": "SecurePass123!",
            "name": "Sam Rivera",
            "region": "south",
        })
        assert response.status_code == 201, response.text
        assert response.json()["role"] == "candidate"

        response = await client.post(f"{API}/auth/login", json={"username": "sam_sells", "password": "SecurePass123!"})
        assert response.status_code == 200
        tokens = response.json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        response = await client.get(f"{API}/candidates/me", headers=headers)
        assert response.status_code == 200
        profile = response.json()
        assert profile["status"] == "profile_created"
        assert profile["region"] == "south"

        response = await client.get(f"{API}/candidates/me/hiring-state", headers=headers)
        state = response.json()
        assert state["current_step"] == 1
        assert state["badge"]["label"] == "Submit Application"
        assert set(state["missing_fields"]) == {"resume", "about_me_video", "sales_pitch_video", "phone", "location"}

        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200

        # Refresh tokens are not access tokens
        response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_incomplete_application_is_rejected(self, client, candidate_user, auth_headers, job):
        headers = auth_headers(candidate_user)
        await upload(client, headers, "resume", "cv.pdf", "application/pdf")

        response = await client.post(f"{API}/jobs/{job['id']}/apply", headers=headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Application is incomplete"
        assert "about_me_video" in body["details"]["missing_fields"]

    @pytest.mark.asyncio
    async def test_full_pipeline(
        self, client, candidate_user, hr_user, manager_user, admin_user, auth_headers, job, training_module,
        s3_client,
    ):
        me = auth_headers(candidate_user)
        hr = auth_headers(hr_user)
        manager = auth_headers(manager_user)

        # Step 1: application
        first = await upload(client, me, "resume", "cv.pdf", "application/pdf")
        assert first["status"] == "application_in_progress"
        await upload(client, me, "about_me_video", "me.mp4", "video/mp4")
        await upload(client, me, "sales_pitch_video", "pitch.mp4", "video/mp4")
        assert s3_client.upload_fileobj.call_count == 3

        response = await client.put(f"{API}/candidates/me", headers=me, json={"phone": "555-0100", "location": "Austin, TX"})
        assert response.status_code == 200

        state = (await client.get(f"{API}/candidates/me/hiring-state", headers=me)).json()
        assert state["application_complete"]
        assert state["current_step"] == 1

        response = await client.post(f"{API}/jobs/{job['id']}/apply", headers=me)
        assert response.status_code == 201, response.text
        application = response.json()
        assert application["status"] == "applied"

        # Step 2: review
        state = (await client.get(f"{API}/candidates/me/hiring-state", headers=me)).json()
        assert state["current_step"] == 2
        assert not state["can_access_training"]

        response = await client.get(f"{API}/training/me/modules/{training_module['id']}", headers=me)
        assert response.status_code == 403

        response = await client.get(f"{API}/applications/{application['id']}/transitions", headers=hr)
        assert response.json() == ["archived", "hr_review", "rejected"]

        for status in ("hr_review", "hr_approved", "training"):
            response = await move(client, hr, application["id"], status)
            assert response.status_code == 200, response.text

        # Step 3: training
        modules = (await client.get(f"{API}/training/me/modules", headers=me)).json()
        assert [m["status"] for m in modules] == ["in_progress"]

        response = await client.get(f"{API}/training/me/modules/{training_module['id']}", headers=me)
        assert response.status_code == 200
        assert all(video["url"].startswith("https://") for video in response.json()["module"]["videos"])

        response = await move(client, hr, application["id"], "manager_interview")
        assert response.status_code == 409
        assert "training is not complete" in response.json()["error"]

        for video in training_module["videos"]:
            response = await client.post(
                f"{API}/training/me/videos/{video['id']}/progress", headers=me, json={"completed": True, "time_spent": 90}
            )
            assert response.status_code == 200, response.text

        state = (await client.get(f"{API}/candidates/me/hiring-state", headers=me)).json()
        assert state["training"]["complete"]
        assert state["ready_for_interview"]
        assert state["badge"]["label"] == "Training Complete"

        report = (await client.get(f"{API}/jobs/{job['id']}/training-report", headers=hr)).json()
        assert report[0]["overall_progress"] == 100
        assert report[0]["modules"][0]["time_spent"] == 180

        # Step 4: interview
        response = await move(client, hr, application["id"], "manager_interview")
        assert response.status_code == 200, response.text

        response = await client.post(f"{API}/interviews", headers=hr, json={
            "candidate_id": str(candidate_user.id),
            "manager_id": str(manager_user.id),
            "scheduled_at": (datetime.now(timezone.utc) + timedelta(days=2)).isoformat(),
        })
        assert response.status_code == 201, response.text
        interview = response.json()

        mine = (await client.get(f"{API}/interviews", headers=me)).json()
        assert [i["id"] for i in mine] == [interview["id"]]

        response = await client.put(
            f"{API}/interviews/{interview['id']}", headers=manager, json={"decision": "pass", "feedback": "Strong closer"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        # Step 5: paid project, then hired
        for status in ("paid_project", "hired"):
            response = await move(client, manager, application["id"], status)
            assert response.status_code == 200, response.text

        state = (await client.get(f"{API}/candidates/me/hiring-state", headers=me)).json()
        assert state["outcome"] == "hired"
        assert state["journey_percent"] == 100
        assert all(step["state"] == "completed" for step in state["steps"])

        history = (await client.get(f"{API}/applications/{application['id']}/history", headers=me)).json()
        assert [h["to_status"] for h in history] == [
            "applied", "hr_review", "hr_approved", "training", "manager_interview", "paid_project", "hired",
        ]

        response = await client.post(f"{API}/jobs/{job['id']}/apply", headers=me)
        assert response.status_code == 409
