"""Unit tests for the hiring-progression state model"""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from backend.app.core.exceptions import InvalidTransitionException
from backend.app.models.candidate import CandidateStatus
from backend.app.services.progression import (
    ApplicationProfile,
    ModuleContent,
    ModuleStatus,
    Outcome,
    StepState,
    TrainingSummary,
    allowed_targets,
    build_module_report,
    build_training_report,
    compute_module_progress,
    derive_hiring_state,
    is_module_unlocked,
    module_progress_percent,
    round_half_up,
    status_badge,
    step_for_status,
    step_states,
    summarize_training,
    validate_transition,
)

S = CandidateStatus

COMPLETE_PROFILE = ApplicationProfile(
    resume="resume/c1/cv.pdf",
    about_me_video="about_me_video/c1/me.mp4",
    sales_pitch_video="sales_pitch_video/c1/pitch.mp4",
    phone="555-0100",
    location="Austin, TX",
)


def module(module_id, videos=2, has_quiz=False):
    return ModuleContent(
        module_id=module_id,
        slug=f"module-{module_id}",
        title=f"Module {module_id}",
        video_ids=tuple(f"{module_id}-v{i}" for i in range(videos)),
        has_quiz=has_quiz,
    )


class TestRounding:

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (66.666, 67), (33.333, 33), (49.5, 50)])
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected


class TestApplicationProfile:

    def test_complete_profile_has_no_missing_fields(self):
        assert COMPLETE_PROFILE.missing_fields() == []

    def test_blank_strings_count_as_missing(self):
        profile = ApplicationProfile(resume="key", about_me_video="  ", sales_pitch_video="key", phone="", location=None)
        assert profile.missing_fields() == ["about_me_video", "phone", "location"]

    def test_from_candidate_reads_candidate_fields(self):
        candidate = SimpleNamespace(
            resume="r", about_me_video="a", sales_pitch_video="s", phone="p", location="l", status=S.APPLIED
        )
        assert ApplicationProfile.from_candidate(candidate).missing_fields() == []


class TestModuleProgress:

    def test_video_only_module_counts_watched_share(self):
        assert module_progress_percent(3, 1, has_quiz=False, quiz_passed=False) == 33
        assert module_progress_percent(3, 2, has_quiz=False, quiz_passed=False) == 67
        assert module_progress_percent(3, 3, has_quiz=False, quiz_passed=False) == 100

    def test_quiz_carries_twenty_percent(self):
        assert module_progress_percent(2, 2, has_quiz=True, quiz_passed=False) == 80
        assert module_progress_percent(2, 1, has_quiz=True, quiz_passed=True) == 60
        assert module_progress_percent(2, 2, has_quiz=True, quiz_passed=True) == 100

    def test_module_without_videos(self):
        assert module_progress_percent(0, 0, has_quiz=False, quiz_passed=False) == 100
        assert module_progress_percent(0, 0, has_quiz=True, quiz_passed=False) == 0
        assert module_progress_percent(0, 0, has_quiz=True, quiz_passed=True) == 100

    def test_watched_count_is_capped(self):
        assert module_progress_percent(2, 5, has_quiz=False, quiz_passed=False) == 100

    def test_first_module_is_always_unlocked(self):
        progress = compute_module_progress([module("a"), module("b")], [], [])

        assert not progress[0].locked
        assert progress[0].status == ModuleStatus.IN_PROGRESS
        assert progress[1].locked
        assert progress[1].status == ModuleStatus.LOCKED

    def test_completing_a_module_unlocks_the_next(self):
        progress = compute_module_progress([module("a"), module("b"), module("c")], ["a-v0", "a-v1"], [])

        assert progress[0].status == ModuleStatus.COMPLETED
        assert progress[1].status == ModuleStatus.IN_PROGRESS
        assert progress[2].status == ModuleStatus.LOCKED

    def test_later_progress_does_not_unlock_past_a_gap(self):
        # Videos of module c watched while b is unfinished
        progress = compute_module_progress(
            [module("a"), module("b"), module("c")], ["a-v0", "a-v1", "c-v0", "c-v1"], []
        )

        assert progress[1].status == ModuleStatus.IN_PROGRESS
        assert progress[2].locked
        assert progress[2].progress == 100

    def test_quiz_gate(self):
        modules = [module("a", has_quiz=True), module("b")]

        watched_only = compute_module_progress(modules, ["a-v0", "a-v1"], [])
        assert watched_only[0].progress == 80
        assert watched_only[1].locked

        passed = compute_module_progress(modules, ["a-v0", "a-v1"], ["a"])
        assert passed[0].completed
        assert not passed[1].locked

    def test_summary(self):
        progress = compute_module_progress([module("a"), module("b")], ["a-v0", "a-v1", "b-v0"], [])
        summary = summarize_training(progress)

        assert summary.overall == 75
        assert summary.by_module == {"module-a": 100, "module-b": 50}
        assert not summary.complete
        assert summary.next_module.module_id == "b"
        assert is_module_unlocked(summary, "b")
        assert not is_module_unlocked(summary, "missing")

    def test_empty_training_is_complete(self):
        summary = summarize_training([])
        assert summary.complete
        assert summary.overall == 0
        assert summary.next_module is None


class TestHiringSteps:

    @pytest.mark.parametrize("status,step", [
        (S.PROFILE_CREATED, 1),
        (S.APPLICATION_IN_PROGRESS, 1),
        (S.APPLIED, 2),
        (S.HR_REVIEW, 2),
        (S.HR_APPROVED, 3),
        (S.TRAINING, 3),
        (S.MANAGER_INTERVIEW, 4),
        (S.PAID_PROJECT, 5),
        (S.HIRED, 5),
    ])
    def test_step_for_status(self, status, step):
        assert step_for_status(status, application_complete=True) == step

    def test_incomplete_application_stays_on_step_one(self):
        assert step_for_status(S.APPLIED, application_complete=False) == 1
        assert step_for_status(S.HR_REVIEW, application_complete=False) == 1

    def test_terminal_statuses_freeze_the_step(self):
        assert step_for_status(S.REJECTED, True, previous_step=3) == 3
        assert step_for_status(S.ARCHIVED, True, previous_step=4) == 4
        assert step_for_status(S.REJECTED, True, previous_step=None) == 1
        assert step_for_status(S.ARCHIVED, True, previous_step=9) == 5

    def test_step_states_in_progress(self):
        states = [view.state for view in step_states(3)]
        assert states == [
            StepState.COMPLETED, StepState.COMPLETED, StepState.CURRENT, StepState.PENDING, StepState.LOCKED
        ]

    def test_step_states_hired(self):
        assert all(view.completed for view in step_states(5, Outcome.HIRED))

    def test_step_states_rejected(self):
        states = [view.state for view in step_states(3, Outcome.REJECTED)]
        assert states == [
            StepState.COMPLETED, StepState.COMPLETED, StepState.LOCKED, StepState.LOCKED, StepState.LOCKED
        ]

    def test_exactly_one_current_step_while_in_progress(self):
        for step in range(1, 6):
            assert sum(1 for view in step_states(step) if view.active) == 1


class TestDeriveHiringState:

    def test_new_candidate(self):
        state = derive_hiring_state(S.PROFILE_CREATED, ApplicationProfile())

        assert state.current_step == 1
        assert state.outcome == Outcome.IN_PROGRESS
        assert not state.application_complete
        assert "resume" in state.missing_fields
        assert not state.can_access_training
        assert state.badge.label == "Submit Application"
        assert state.journey_percent == 20

    def test_under_review(self):
        state = derive_hiring_state(S.HR_REVIEW, COMPLETE_PROFILE)

        assert state.current_step == 2
        assert state.badge.label == "Under Review"

    def test_approved_candidate_can_train(self):
        training = summarize_training(compute_module_progress([module("a")], [], []))
        state = derive_hiring_state(S.HR_APPROVED, COMPLETE_PROFILE, training)

        assert state.current_step == 3
        assert state.can_access_training
        assert not state.ready_for_interview
        assert state.badge.label == "Training Phase"

    def test_finished_training_is_ready_for_interview(self):
        training = summarize_training(compute_module_progress([module("a")], ["a-v0", "a-v1"], []))
        state = derive_hiring_state(S.TRAINING, COMPLETE_PROFILE, training)

        assert state.ready_for_interview
        assert state.badge.label == "Training Complete"

    def test_hired(self):
        state = derive_hiring_state(S.HIRED, COMPLETE_PROFILE, previous_step=5)

        assert state.outcome == Outcome.HIRED
        assert state.journey_percent == 100
        assert state.badge.label == "Hired"
        assert not state.ready_for_interview

    def test_rejected_keeps_step(self):
        state = derive_hiring_state(S.REJECTED, COMPLETE_PROFILE, TrainingSummary(), previous_step=3)

        assert state.current_step == 3
        assert state.outcome == Outcome.REJECTED
        assert state.badge.label == "Not Selected"
        assert not state.can_access_training

    def test_badge_for_approved_but_not_training(self):
        assert status_badge(S.APPLIED, 2).label == "Complete Assessment"
        assert status_badge(S.MANAGER_INTERVIEW, 4).label == "Interview Phase"
        assert status_badge(S.PAID_PROJECT, 5).label == "Paid Project"


class TestTransitions:

    def test_forward_path(self):
        path = [S.APPLIED, S.HR_REVIEW, S.HR_APPROVED, S.TRAINING, S.MANAGER_INTERVIEW, S.PAID_PROJECT, S.HIRED]
        for current, target in zip(path, path[1:]):
            validate_transition(current, target)

    def test_skipping_a_stage_is_rejected(self):
        with pytest.raises(InvalidTransitionException) as exc:
            validate_transition(S.APPLIED, S.HIRED)

        assert exc.value.status_code == 409
        assert exc.value.details == {"current_status": "applied", "target_status": "hired"}

    def test_same_status_is_rejected(self):
        with pytest.raises(InvalidTransitionException, match="unchanged"):
            validate_transition(S.TRAINING, S.TRAINING)

    def test_hired_is_terminal(self):
        assert allowed_targets(S.HIRED) == frozenset()
        with pytest.raises(InvalidTransitionException):
            validate_transition(S.HIRED, S.ARCHIVED)

    def test_archived_can_be_reopened_for_review(self):
        validate_transition(S.ARCHIVED, S.HR_REVIEW)
        with pytest.raises(InvalidTransitionException):
            validate_transition(S.ARCHIVED, S.TRAINING)

    def test_any_open_status_can_be_archived(self):
        for status in S:
            if status not in (S.HIRED, S.ARCHIVED):
                assert S.ARCHIVED in allowed_targets(status)

    def test_interview_requires_training(self):
        with pytest.raises(InvalidTransitionException, match="training is not complete"):
            validate_transition(S.TRAINING, S.MANAGER_INTERVIEW, training_complete=False)

    def test_force_skips_training_gate_only(self):
        validate_transition(S.TRAINING, S.MANAGER_INTERVIEW, training_complete=False, force=True)
        with pytest.raises(InvalidTransitionException):
            validate_transition(S.APPLIED, S.MANAGER_INTERVIEW, training_complete=False, force=True)


class TestTrainingReport:

    def _video_row(self, video_id, completed, started, finished=None, time_spent=60):
        return SimpleNamespace(
            video_id=video_id, completed=completed, started_at=started, completed_at=finished, time_spent=time_spent
        )

    def test_items_weigh_equally(self):
        start = datetime(2024, 5, 1, tzinfo=timezone.utc)
        content = module("a", videos=3, has_quiz=True)
        rows = [self._video_row("a-v0", True, start, start + timedelta(minutes=5))]

        report = build_module_report(content, rows, [])

        assert report.progress == 25
        assert report.videos_watched == 1
        assert report.time_spent == 60
        assert report.started_at == start
        assert report.completed_at is None

    def test_completed_module_takes_latest_finish(self):
        start = datetime(2024, 5, 1, tzinfo=timezone.utc)
        content = module("a", videos=1, has_quiz=True)
        rows = [self._video_row("a-v0", True, start, start + timedelta(minutes=5))]
        quiz = [SimpleNamespace(module_id="a", passed=True, completed_at=start + timedelta(hours=1))]

        report = build_module_report(content, rows, quiz)

        assert report.progress == 100
        assert report.quiz_passed
        assert report.completed_at == start + timedelta(hours=1)

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = datetime(2024, 5, 1, 12, 0)
        rows = [self._video_row("a-v0", True, naive, naive)]

        report = build_module_report(module("a", videos=1), rows, [])

        assert report.started_at.tzinfo is not None

    def test_candidate_report(self):
        start = datetime(2024, 5, 1, tzinfo=timezone.utc)
        rows = [
            self._video_row("a-v0", True, start, start),
            self._video_row("a-v1", True, start, start),
            self._video_row("b-v0", False, start + timedelta(days=1)),
        ]

        report = build_training_report("c1", "Casey", [module("a"), module("b")], rows, [])

        assert report.overall_progress == 50
        assert [m.progress for m in report.modules] == [100, 0]
        assert report.started_at == start
        assert report.completed_at is None

    def test_report_without_modules(self):
        report = build_training_report("c1", None, [], [], [])
        assert report.overall_progress == 0
        assert report.modules == []
