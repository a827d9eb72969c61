import pytest

from renshu.models import Dialogue, RequestState, Scenario
from renshu.services.session_service import (
    FEEDBACK_COMPLETE,
    FEEDBACK_CORRECT,
    FEEDBACK_WRONG,
    SessionService,
)

LESSONS = (
    Scenario(1, "挨拶", (
        Dialogue("A", "おはよう。元気？", "早上好。你好吗？"),
        Dialogue("B", "元気です", "我很好"),
    )),
    Scenario(2, "買い物", (
        Dialogue("A", "これをください。", "请给我这个。"),
    )),
)


@pytest.fixture
def service():
    return SessionService(LESSONS)


@pytest.fixture
def state(service):
    return service.get_state("s1")


def answer(service, state):
    service.set_inputs(state, list(service.segmentation(state).segments))
    return service.check_answers(state)


def test_new_session_has_one_slot_per_segment(service, state):
    assert state.scenario_idx == 0
    assert state.dialogue_idx == 0
    assert state.user_inputs == ["", ""]
    assert service.get_state("s1") is state


def test_correct_answer_records_history_and_advances(service, state):
    gen = state.generation
    result = answer(service, state)
    assert result == {"correct": True, "advanced": True, "finished": False}
    assert state.chat_history == [LESSONS[0].dialogues[0]]
    assert state.dialogue_idx == 1
    assert state.user_inputs == [""]
    assert state.feedback == FEEDBACK_CORRECT
    assert state.generation == gen + 1


def test_wrong_answer_keeps_position(service, state):
    service.set_inputs(state, ["おはよう", "元気です"])
    result = service.check_answers(state)
    assert result["correct"] is False
    assert state.dialogue_idx == 0
    assert state.chat_history == []
    assert state.feedback == FEEDBACK_WRONG


def test_whitespace_in_inputs_is_ignored(service, state):
    service.set_inputs(state, [" おは よう ", "元気　"])
    assert service.check_answers(state)["correct"] is True


def test_last_dialogue_finishes_scenario(service, state):
    answer(service, state)
    result = answer(service, state)
    assert result == {"correct": True, "advanced": False, "finished": True}
    assert state.finished
    assert state.feedback == FEEDBACK_COMPLETE
    assert len(state.chat_history) == 2


def test_repeated_check_does_not_duplicate_history(service, state):
    answer(service, state)
    answer(service, state)
    service.check_answers(state)
    service.check_answers(state)
    assert len(state.chat_history) == 2


def test_repeated_check_after_advance_is_not_counted(service, state):
    inputs = list(service.segmentation(state).segments)
    service.set_inputs(state, inputs)
    service.check_answers(state)
    # inputs were reset for the new dialogue, so the same check fails there
    assert service.check_answers(state)["correct"] is False
    assert len(state.chat_history) == 1


def test_select_scenario_resets_progress(service, state):
    answer(service, state)
    service.select_scenario(state, 1)
    assert state.scenario_idx == 1
    assert state.dialogue_idx == 0
    assert state.chat_history == []
    assert state.user_inputs == [""]
    assert not state.finished


@pytest.mark.parametrize("idx", [-1, 2, None, "1", True])
def test_select_scenario_rejects_bad_index(service, state, idx):
    with pytest.raises(ValueError):
        service.select_scenario(state, idx)


def test_set_input_bounds(service, state):
    service.set_input(state, 1, "元気")
    assert state.user_inputs == ["", "元気"]
    with pytest.raises(ValueError):
        service.set_input(state, 2, "x")
    with pytest.raises(ValueError):
        service.set_inputs(state, ["only one"])


def test_show_answer_hint_fills_segments(service, state):
    service.show_answer_hint(state)
    assert state.user_inputs == ["おはよう", "元気"]


def test_explanation_busy_flag(service, state):
    token = service.begin_explanation(state)
    assert token is not None
    assert state.explain_state is RequestState.PENDING
    assert service.begin_explanation(state) is None
    assert service.finish_explanation(state, token, "解説")
    assert state.explanation == "解説"
    assert state.explain_state is RequestState.IDLE


def test_stale_explanation_is_discarded(service, state):
    token = service.begin_explanation(state)
    answer(service, state)
    assert state.explain_state is RequestState.IDLE
    assert not service.finish_explanation(state, token, "古い解説")
    assert state.explanation == ""


def test_speech_busy_flag_and_reset(service, state):
    token = service.begin_speech(state)
    assert service.begin_speech(state) is None
    assert service.finish_speech(state, token)
    assert state.speech_state is RequestState.IDLE
    assert service.begin_speech(state) is not None


def test_stale_speech_finish_is_ignored(service, state):
    old = service.begin_speech(state)
    service.select_scenario(state, 1)
    new = service.begin_speech(state)
    assert not service.finish_speech(state, old)
    assert state.speech_state is RequestState.PENDING
    assert service.finish_speech(state, new)


def test_view_exposes_prompt_and_punctuation(service, state):
    view = service.view(state)
    assert view["prompt"] == "早上好。你好吗？"
    assert view["segment_lengths"] == [4, 2]
    assert view["punctuations"] == ["。", "？"]
    assert view["total"] == 2
    assert view["explaining"] is False


def test_service_requires_scenarios():
    with pytest.raises(ValueError):
        SessionService(())


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_idle_sessions_expire():
    clock = FakeClock()
    service = SessionService(LESSONS, ttl_s=60, clock=clock)
    old = service.get_state("old")
    service.select_scenario(old, 1)
    clock.now = 61
    service.get_state("other")
    assert len(service) == 1
    assert service.get_state("old").scenario_idx == 0


def test_touching_a_session_keeps_it_alive():
    clock = FakeClock()
    service = SessionService(LESSONS, ttl_s=60, clock=clock)
    service.select_scenario(service.get_state("s1"), 1)
    for t in (30, 60, 90):
        clock.now = t
        assert service.get_state("s1").scenario_idx == 1


def test_least_recently_used_session_goes_first():
    clock = FakeClock()
    service = SessionService(LESSONS, max_sessions=2, clock=clock)
    service.get_state("a")
    service.get_state("b")
    service.get_state("a")
    service.get_state("c")
    assert len(service) == 2
    assert set(service._sessions) == {"a", "c"}
    assert "b" not in service._locks
