"""Property-based tests for the hiring-progression state model

Covers step derivation, module locking and the transition table.
"""

import pytest
from hypothesis import given, strategies as st
from hypothesis import settings as hypothesis_settings

from backend.app.core.exceptions import InvalidTransitionException
from backend.app.models.candidate import CandidateStatus
from backend.app.services.progression import (
    ALLOWED_TRANSITIONS,
    LAST_STEP,
    ApplicationProfile,
    ModuleContent,
    ModuleStatus,
    Outcome,
    StepState,
    compute_module_progress,
    derive_hiring_state,
    module_progress_percent,
    summarize_training,
    validate_transition,
)

pytestmark = pytest.mark.property

statuses = st.sampled_from(list(CandidateStatus))
optional_text = st.one_of(st.none(), st.just(""), st.text(min_size=1, max_size=20))

profiles = st.builds(
    ApplicationProfile,
    resume=optional_text,
    about_me_video=optional_text,
    sales_pitch_video=optional_text,
    phone=optional_text,
    location=optional_text,
)


@st.composite
def training_inputs(draw):
    """Modules plus a random subset of watched videos and passed quizzes"""
    count = draw(st.integers(min_value=0, max_value=6))
    modules = []
    for index in range(count):
        videos = draw(st.integers(min_value=0, max_value=4))
        modules.append(ModuleContent(
            module_id=f"m{index}",
            slug=f"module-{index}",
            title=f"Module {index}",
            video_ids=tuple(f"m{index}-v{i}" for i in range(videos)),
            has_quiz=draw(st.booleans()),
        ))

    all_videos = [video_id for module in modules for video_id in module.video_ids]
    watched = draw(st.lists(st.sampled_from(all_videos), unique=True)) if all_videos else []
    passed = draw(st.lists(st.sampled_from([m.module_id for m in modules]), unique=True)) if modules else []
    return modules, watched, passed


class TestModuleLockingProperties:

    @hypothesis_settings(max_examples=200)
    @given(inputs=training_inputs())
    def test_modules_unlock_in_order(self, inputs):
        """A module is unlocked exactly when every module before it is completed"""
        modules, watched, passed = inputs

        progress = compute_module_progress(modules, watched, passed)

        for index, module in enumerate(progress):
            earlier_done = all(p.completed for p in progress[:index])
            assert module.locked == (not earlier_done)
            assert 0 <= module.progress <= 100
            if module.locked:
                assert module.status == ModuleStatus.LOCKED

    @hypothesis_settings(max_examples=200)
    @given(inputs=training_inputs())
    def test_at_most_one_module_in_progress(self, inputs):
        modules, watched, passed = inputs

        progress = compute_module_progress(modules, watched, passed)

        assert sum(1 for p in progress if p.status == ModuleStatus.IN_PROGRESS) <= 1

    @hypothesis_settings(max_examples=200)
    @given(inputs=training_inputs())
    def test_summary_is_complete_only_when_every_module_is(self, inputs):
        modules, watched, passed = inputs

        summary = summarize_training(compute_module_progress(modules, watched, passed))

        assert summary.complete == all(p.progress == 100 for p in summary.modules)
        assert 0 <= summary.overall <= 100
        if summary.complete and modules:
            assert summary.overall == 100

    @given(
        total=st.integers(min_value=0, max_value=50),
        watched=st.integers(min_value=0, max_value=60),
        has_quiz=st.booleans(),
        quiz_passed=st.booleans(),
    )
    def test_progress_never_decreases_with_more_watching(self, total, watched, has_quiz, quiz_passed):
        before = module_progress_percent(total, watched, has_quiz, quiz_passed)
        after = module_progress_percent(total, watched + 1, has_quiz, quiz_passed)

        assert 0 <= before <= after <= 100


class TestHiringStateProperties:

    @hypothesis_settings(max_examples=200)
    @given(
        status=statuses,
        profile=profiles,
        previous_step=st.one_of(st.none(), st.integers(min_value=-3, max_value=9)),
        inputs=training_inputs(),
    )
    def test_state_is_consistent(self, status, profile, previous_step, inputs):
        modules, watched, passed = inputs
        training = summarize_training(compute_module_progress(modules, watched, passed))

        state = derive_hiring_state(status, profile, training, previous_step)

        assert 1 <= state.current_step <= LAST_STEP
        assert len(state.steps) == LAST_STEP
        assert state.missing_fields == profile.missing_fields()

        current = [view for view in state.steps if view.state == StepState.CURRENT]
        if state.outcome == Outcome.IN_PROGRESS:
            assert [view.number for view in current] == [state.current_step]
        else:
            assert current == []

        if state.ready_for_interview:
            assert state.can_access_training
            assert training.complete

    @given(status=st.sampled_from([
        CandidateStatus.APPLIED, CandidateStatus.HR_REVIEW,
    ]), profile=profiles)
    def test_review_requires_complete_application(self, status, profile):
        state = derive_hiring_state(status, profile)

        assert state.current_step == (2 if not profile.missing_fields() else 1)


class TestTransitionProperties:

    @hypothesis_settings(max_examples=300)
    @given(current=statuses, target=statuses, training_complete=st.booleans(), force=st.booleans())
    def test_validation_matches_table(self, current, target, training_complete, force):
        allowed = target != current and target in ALLOWED_TRANSITIONS[current]
        gated = target == CandidateStatus.MANAGER_INTERVIEW and not training_complete and not force

        try:
            validate_transition(current, target, training_complete, force)
            accepted = True
        except InvalidTransitionException as e:
            accepted = False
            assert e.status_code == 409

        assert accepted == (allowed and not gated)

    @given(target=statuses)
    def test_hired_is_final(self, target):
        with pytest.raises(InvalidTransitionException):
            validate_transition(CandidateStatus.HIRED, target, force=True)
