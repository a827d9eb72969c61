import logging
import threading
import time
import uuid
from collections import OrderedDict
from renshu.models import Feedback, RequestState, SessionState
from renshu.utils.helpers import Segmentation, check_answers, parse_sentence

logger = logging.getLogger(__name__)

FEEDBACK_CORRECT = Feedback("完全正确！✨", "good")
FEEDBACK_WRONG = Feedback("有些地方还没写对哦，加油！", "warn")
FEEDBACK_COMPLETE = Feedback("本章节练习完成！🎉", "done")

class SessionService:
    """In-memory practice sessions, one per browser.

    State is only touched while holding that session's lock; AI calls run
    outside it and report back with the generation they were issued for.
    Sessions idle for ``ttl_s`` seconds are dropped, and past
    ``max_sessions`` the least recently used one goes first.
    """

    def __init__(self, scenarios, ttl_s=3600, max_sessions=1000, clock=time.monotonic):
        if not scenarios:
            raise ValueError("at least one scenario is required")
        self.scenarios = tuple(scenarios)
        self.ttl_s = ttl_s
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions = {}
        self._locks = {}
        self._expiry = OrderedDict()  # least recently used first
        self._global_lock = threading.Lock()

    def __len__(self):
        return len(self._sessions)

    def new_session_id(self):
        return uuid.uuid4().hex

    def lock(self, session_id):
        with self._global_lock:
            if session_id not in self._locks:
                self._locks[session_id] = threading.Lock()
            return self._locks[session_id]

    def get_state(self, session_id):
        now = self._clock()
        with self._global_lock:
            self._evict(now, session_id)
            state = self._sessions.get(session_id)
            if state is None:
                state = SessionState()
                self._reset_dialogue(state)
                self._sessions[session_id] = state
            self._expiry[session_id] = now + self.ttl_s
            self._expiry.move_to_end(session_id)
            return state

    def _drop(self, session_id, keep_lock=False):
        self._sessions.pop(session_id, None)
        self._expiry.pop(session_id, None)
        if not keep_lock:
            self._locks.pop(session_id, None)

    def _evict(self, now, incoming):
        while self._expiry:
            sid, expires = next(iter(self._expiry.items()))
            if expires <= now:
                reason = "expired"
            elif incoming not in self._sessions and len(self._sessions) >= self.max_sessions:
                reason = "over capacity"
            else:
                break
            logger.info("Dropping session %s (%s)", sid[:8], reason)
            # the caller already holds the incoming session's lock
            self._drop(sid, keep_lock=(sid == incoming))

    # Derived views
    def scenario(self, state):
        return self.scenarios[state.scenario_idx]

    def current_dialogue(self, state):
        dialogues = self.scenario(state).dialogues
        if 0 <= state.dialogue_idx < len(dialogues):
            return dialogues[state.dialogue_idx]
        return None

    def segmentation(self, state):
        dialogue = self.current_dialogue(state)
        if dialogue is None:
            return Segmentation([], [])
        return parse_sentence(dialogue.jp)

    def _reset_dialogue(self, state):
        seg = self.segmentation(state)
        state.user_inputs = [""] * len(seg.segments)
        state.explanation = ""
        state.feedback = Feedback()
        state.explain_state = RequestState.IDLE
        state.speech_state = RequestState.IDLE
        state.generation += 1

    # User events
    def select_scenario(self, state, idx):
        if not isinstance(idx, int) or isinstance(idx, bool) or not (0 <= idx < len(self.scenarios)):
            raise ValueError(f"scenario index out of range: {idx!r}")
        state.scenario_idx = idx
        state.dialogue_idx = 0
        state.chat_history = []
        state.finished = False
        self._reset_dialogue(state)
        logger.info("Selected scenario %s", self.scenarios[idx].title)

    def set_input(self, state, index, value):
        if not isinstance(index, int) or isinstance(index, bool) or not (0 <= index < len(state.user_inputs)):
            raise ValueError(f"input index out of range: {index!r}")
        state.user_inputs[index] = str(value or "")

    def set_inputs(self, state, values):
        if not isinstance(values, list) or len(values) != len(state.user_inputs):
            raise ValueError("inputs must be a list with one entry per segment")
        state.user_inputs = [str(v or "") for v in values]

    def show_answer_hint(self, state):
        state.user_inputs = list(self.segmentation(state).segments)

    def clear_feedback(self, state):
        state.feedback = Feedback()

    def check_answers(self, state):
        """Validate the inputs; on success record the turn and advance.

        Returns a dict with ``correct``, ``advanced`` and ``finished``.
        """
        dialogue = self.current_dialogue(state)
        if state.finished or dialogue is None:
            state.feedback = FEEDBACK_COMPLETE
            return {"correct": True, "advanced": False, "finished": True}

        segments = self.segmentation(state).segments
        if not segments or not check_answers(state.user_inputs, segments):
            state.feedback = FEEDBACK_WRONG
            return {"correct": False, "advanced": False, "finished": False}

        state.chat_history.append(dialogue)
        next_idx = state.dialogue_idx + 1
        if next_idx < len(self.scenario(state).dialogues):
            state.dialogue_idx = next_idx
            self._reset_dialogue(state)
            state.feedback = FEEDBACK_CORRECT
            return {"correct": True, "advanced": True, "finished": False}

        state.finished = True
        state.feedback = FEEDBACK_COMPLETE
        logger.info("Finished scenario %s", self.scenario(state).title)
        return {"correct": True, "advanced": False, "finished": True}

    # Busy flags; begin_* returns the generation token or None when busy
    def begin_explanation(self, state):
        if state.explain_state is RequestState.PENDING or self.current_dialogue(state) is None:
            return None
        state.explain_state = RequestState.PENDING
        state.explanation = ""
        return state.generation

    def finish_explanation(self, state, token, text):
        if token != state.generation:
            logger.info("Discarding stale explanation (generation %s != %s)", token, state.generation)
            return False
        state.explanation = text
        state.explain_state = RequestState.IDLE
        return True

    def begin_speech(self, state):
        if state.speech_state is RequestState.PENDING or self.current_dialogue(state) is None:
            return None
        state.speech_state = RequestState.PENDING
        return state.generation

    def finish_speech(self, state, token=None):
        if token is not None and token != state.generation:
            return False
        state.speech_state = RequestState.IDLE
        return True

    def view(self, state):
        scenario = self.scenario(state)
        dialogue = self.current_dialogue(state)
        seg = self.segmentation(state)
        return {
            "scenario_idx": state.scenario_idx,
            "scenario_title": scenario.title,
            "dialogue_idx": state.dialogue_idx,
            "total": len(scenario.dialogues),
            "speaker": dialogue.speaker if dialogue else "",
            "prompt": dialogue.zh if dialogue else "",
            "segment_lengths": [len(s) for s in seg.segments],
            "punctuations": seg.punctuations,
            "inputs": list(state.user_inputs),
            "history": [d.to_dict() for d in state.chat_history],
            "feedback": {"text": state.feedback.text, "color": state.feedback.color},
            "explanation": state.explanation,
            "explaining": state.explain_state is RequestState.PENDING,
            "speaking": state.speech_state is RequestState.PENDING,
            "finished": state.finished,
        }
