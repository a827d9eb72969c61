from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

import numpy as np


@dataclass(frozen=True)
class Dialogue:
    speaker: str
    jp: str
    zh: str

    def to_dict(self):
        return {"speaker": self.speaker, "jp": self.jp, "zh": self.zh}


@dataclass(frozen=True)
class Scenario:
    id: int
    title: str
    dialogues: Tuple[Dialogue, ...]


@dataclass
class Feedback:
    text: str = ""
    color: str = ""


class RequestState(Enum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass
class SessionState:
    scenario_idx: int = 0
    dialogue_idx: int = 0
    user_inputs: List[str] = field(default_factory=list)
    chat_history: List[Dialogue] = field(default_factory=list)
    feedback: Feedback = field(default_factory=Feedback)
    explanation: str = ""
    explain_state: RequestState = RequestState.IDLE
    speech_state: RequestState = RequestState.IDLE
    # bumped whenever the active dialogue changes; in-flight results carry the old value
    generation: int = 0
    finished: bool = False


@dataclass
class AudioBuffer:
    sample_rate: int
    channels: np.ndarray  # float32, shape (num_channels, frame_count)

    @property
    def num_channels(self) -> int:
        return int(self.channels.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration(self) -> float:
        return self.frame_count / float(self.sample_rate)
