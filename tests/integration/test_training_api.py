"""Integration tests for training content management and candidate progress"""

import pytest
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select

from backend.app.models.base import utcnow
from backend.app.models.candidate import Candidate, CandidateStatus
from backend.app.models.training import VideoProgress

pytestmark = pytest.mark.integration

API = "/api/v1/training"

QUIZ = {
    "title": "Safety Quiz",
    "sections": [
        {
            "title": "Ladders",
            "questions": [
                {"text": "Three points of contact?", "options": ["Yes", "No"], "correct_answer": 0},
                {"text": "Climb in the rain?", "options": ["Yes", "No"], "correct_answer": 1},
            ],
        }
    ],
}


@pytest.fixture
async def quiz(client, hr_user, auth_headers):
    response = await client.post("/api/v1/assessments", headers=auth_headers(hr_user), json=QUIZ)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


@pytest.fixture
def create_module(client, admin_user, auth_headers):
    """``await create_module(slug, videos=1, **fields)`` creates a module with external videos"""
    headers = auth_headers(admin_user)

    async def _create(slug, videos=1, **fields):
        response = await client.post(
            f"{API}/modules", headers=headers, json={"title": slug.title(), "module": slug, **fields}
        )
        assert response.status_code == status.HTTP_201_CREATED, response.text
        module = response.json()
        for index in range(videos):
            await client.post(
                f"{API}/modules/{module['id']}/videos",
                headers=headers,
                json={"title": f"{slug} {index}", "url": f"https://videos.example.com/{slug}/{index}.mp4"},
            )
        return (await client.get(f"{API}/modules/{module['id']}", headers=headers)).json()

    return _create


@pytest.fixture
async def trainee(db_session, candidate_user):
    """Candidate already approved into the training stage"""
    candidate = await db_session.get(Candidate, candidate_user.id)
    candidate.phone = "555-0100"
    candidate.location = "Austin, TX"
    candidate.resume = "resume/c/cv.pdf"
    candidate.about_me_video = "about_me_video/c/me.mp4"
    candidate.sales_pitch_video = "sales_pitch_video/c/pitch.mp4"
    candidate.status = CandidateStatus.TRAINING
    await db_session.commit()
    return candidate_user


async def watch(client, headers, module):
    for video in module["videos"]:
        response = await client.post(
            f"{API}/me/videos/{video['id']}/progress", headers=headers, json={"completed": True, "time_spent": 30}
        )
        assert response.status_code == status.HTTP_200_OK, response.text


class TestContentManagement:

    @pytest.mark.asyncio
    async def test_modules_are_appended_in_order(self, create_module):
        first = await create_module("intro", videos=0)
        second = await create_module("product", videos=0)

        assert (first["position"], second["position"]) == (0, 1)

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, client, admin_user, auth_headers, create_module):
        await create_module("intro", videos=0)

        response = await client.post(
            f"{API}/modules", headers=auth_headers(admin_user), json={"title": "Again", "module": "intro"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_invalid_slug(self, client, admin_user, auth_headers):
        response = await client.post(
            f"{API}/modules", headers=auth_headers(admin_user), json={"title": "Bad", "module": "Not A Slug"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_hr_cannot_manage_modules(self, client, hr_user, auth_headers):
        response = await client.post(f"{API}/modules", headers=auth_headers(hr_user), json={"title": "X", "module": "x"})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_upload_and_delete_video(self, client, admin_user, auth_headers, create_module, s3_client):
        headers = auth_headers(admin_user)
        module = await create_module("uploads", videos=0)

        response = await client.post(
            f"{API}/modules/{module['id']}/videos/upload",
            headers=headers,
            data={"title": "Knocking on the first door"},
            files={"file": ("door.mp4", b"video-bytes", "video/mp4")},
        )

        assert response.status_code == status.HTTP_201_CREATED, response.text
        video = response.json()
        assert video["url"].startswith(f"training_video/{module['id']}/")
        s3_client.upload_fileobj.assert_called_once()

        response = await client.delete(f"{API}/videos/{video['id']}", headers=headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        s3_client.delete_object.assert_called_once()
        assert s3_client.delete_object.call_args.kwargs["Key"] == video["url"]

    @pytest.mark.asyncio
    async def test_archive_video(self, client, admin_user, auth_headers, create_module):
        headers = auth_headers(admin_user)
        module = await create_module("archiving", videos=2)

        response = await client.put(
            f"{API}/videos/{module['videos'][0]['id']}", headers=headers, json={"archived": True}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["archived"] is True

    @pytest.mark.asyncio
    async def test_unknown_quiz(self, client, admin_user, auth_headers):
        response = await client.post(
            f"{API}/modules",
            headers=auth_headers(admin_user),
            json={"title": "Q", "module": "q", "quiz_assessment_id": "00000000-0000-0000-0000-000000000000"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


    @pytest.mark.asyncio
    async def test_moved_video_keeps_its_progress(
        self, client, admin_user, hr_user, trainee, auth_headers, create_module, db_session
    ):
        source = await create_module("intro", videos=1)
        target = await create_module("product", videos=1)
        moved = source["videos"][0]

        job = await client.post(
            "/api/v1/jobs",
            headers=auth_headers(hr_user),
            json={
                "title": "Field Sales Representative",
                "description": "Door-to-door sales of home services.",
                "training_module_ids": [target["id"]],
            },
        )
        job_id = job.json()["id"]
        application = await client.post(f"/api/v1/jobs/{job_id}/apply", headers=auth_headers(trainee))
        assert application.status_code == status.HTTP_201_CREATED, application.text

        db_session.add(VideoProgress(
            user_id=trainee.id, video_id=UUID(moved["id"]), module_id=UUID(source["id"]),
            completed=True, completed_at=utcnow(), time_spent=45,
        ))
        await db_session.commit()

        response = await client.put(
            f"{API}/videos/{moved['id']}", headers=auth_headers(admin_user), json={"module_id": target["id"]}
        )
        assert response.status_code == status.HTTP_200_OK

        report = (await client.get(f"/api/v1/jobs/{job_id}/training-report", headers=auth_headers(hr_user))).json()
        module = report[0]["modules"][0]
        assert (module["videos_watched"], module["total_videos"], module["time_spent"]) == (1, 2, 45)

        response = await client.delete(
            f"/api/v1/applications/{application.json()['id']}", headers=auth_headers(trainee)
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT

        remaining = await db_session.scalar(
            select(func.count()).select_from(VideoProgress).where(VideoProgress.user_id == trainee.id)
        )
        assert remaining == 0


class TestCandidateTraining:

    @pytest.mark.asyncio
    async def test_training_closed_before_approval(self, client, candidate_user, auth_headers, create_module):
        module = await create_module("intro")

        response = await client.get(f"{API}/me/modules/{module['id']}", headers=auth_headers(candidate_user))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_modules_unlock_in_order(self, client, trainee, auth_headers, create_module):
        headers = auth_headers(trainee)
        first = await create_module("intro", videos=2)
        second = await create_module("product", videos=1)

        modules = (await client.get(f"{API}/me/modules", headers=headers)).json()
        assert [(m["status"], m["locked"]) for m in modules] == [("in_progress", False), ("locked", True)]

        response = await client.get(f"{API}/me/modules/{second['id']}", headers=headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

        await watch(client, headers, first)

        modules = (await client.get(f"{API}/me/modules", headers=headers)).json()
        assert modules[0]["status"] == "completed"
        assert modules[0]["progress"] == 100
        assert modules[1]["locked"] is False

        response = await client.get(f"{API}/me/modules/{second['id']}", headers=headers)
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_progress_is_idempotent(self, client, trainee, auth_headers, create_module):
        headers = auth_headers(trainee)
        module = await create_module("intro", videos=1)
        video_id = module["videos"][0]["id"]

        await client.post(f"{API}/me/videos/{video_id}/progress", headers=headers, json={"completed": True, "time_spent": 40})
        response = await client.post(
            f"{API}/me/videos/{video_id}/progress", headers=headers, json={"completed": False, "time_spent": 20}
        )

        assert response.json()["completed"] is True
        assert response.json()["time_spent"] == 60

    @pytest.mark.asyncio
    async def test_quiz_gates_module(self, client, trainee, auth_headers, create_module, quiz):
        headers = auth_headers(trainee)
        module = await create_module("safety", videos=1, quiz_assessment_id=quiz["id"])
        await watch(client, headers, module)

        modules = (await client.get(f"{API}/me/modules", headers=headers)).json()
        assert modules[0]["status"] == "in_progress"
        assert modules[0]["progress"] == 80

        questions = (await client.get(f"{API}/me/modules/{module['id']}/quiz", headers=headers)).json()
        assert all("correct_answer" not in q for q in questions)
        key = {q["text"]: q["id"] for q in questions}

        failed = await client.post(
            f"{API}/me/modules/{module['id']}/quiz",
            headers=headers,
            json={"answers": {key["Three points of contact?"]: 0, key["Climb in the rain?"]: 0}},
        )
        assert failed.status_code == status.HTTP_201_CREATED
        assert (failed.json()["score"], failed.json()["passed"]) == (50, False)

        passed = await client.post(
            f"{API}/me/modules/{module['id']}/quiz",
            headers=headers,
            json={"answers": {key["Three points of contact?"]: 0, key["Climb in the rain?"]: 1}},
        )
        assert (passed.json()["score"], passed.json()["passed"]) == (100, True)

        results = (await client.get(f"{API}/me/quiz-results", headers=headers)).json()
        assert len(results) == 2

        state = (await client.get("/api/v1/candidates/me/hiring-state", headers=headers)).json()
        assert state["training"]["complete"]
        assert state["ready_for_interview"]

    @pytest.mark.asyncio
    async def test_module_without_quiz(self, client, trainee, auth_headers, create_module):
        module = await create_module("intro")

        response = await client.get(f"{API}/me/modules/{module['id']}/quiz", headers=auth_headers(trainee))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
