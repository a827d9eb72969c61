import re
from typing import List, NamedTuple

PUNCTUATION = "。、？?！!"
_PUNCT_RE = re.compile("[" + re.escape(PUNCTUATION) + "]")
_WS_RE = re.compile(r"\s+")


class Segmentation(NamedTuple):
    segments: List[str]
    punctuations: List[str]


def parse_sentence(sentence):
    """Split a Japanese sentence into answer segments at punctuation.

    Empty pieces are dropped, but every mark is kept in ``punctuations`` so
    mark ``i`` is shown after segment ``i`` by position.
    """
    if not sentence:
        return Segmentation([], [])
    punctuations = _PUNCT_RE.findall(sentence)
    segments = [p for p in _PUNCT_RE.split(sentence) if p]
    return Segmentation(segments, punctuations)


def normalize_answer(text):
    # \s covers the ideographic space U+3000 for str patterns
    return _WS_RE.sub("", (text or "").strip())


def check_answers(user_inputs, segments):
    if len(user_inputs) != len(segments):
        return False
    return all(normalize_answer(u) == normalize_answer(s) for u, s in zip(user_inputs, segments))


def input_width_rem(segment):
    return max(len(segment) * 1.8, 4)
