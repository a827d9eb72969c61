import json
import logging
import os

from renshu.models import Dialogue, Scenario

logger = logging.getLogger(__name__)


def _scenario(sid, title, turns):
    return Scenario(id=sid, title=title, dialogues=tuple(Dialogue(*t) for t in turns))


SCENARIOS = (
    _scenario(1, "初次见面", [
        ("A", "はじめまして。田中です。", "初次见面，我是田中。"),
        ("B", "はじめまして、王です。どうぞよろしく。", "初次见面，我姓王。请多关照。"),
        ("A", "王さんはどこから来ましたか？", "王先生是从哪里来的？"),
        ("B", "中国の上海から来ました。", "我是从中国上海来的。"),
        ("A", "そうですか。日本は初めてですか？", "是吗。第一次来日本吗？"),
        ("B", "いいえ、二回目です。", "不，是第二次。"),
    ]),
    _scenario(2, "在便利店", [
        ("A", "いらっしゃいませ。", "欢迎光临。"),
        ("B", "すみません、お茶はどこですか？", "不好意思，茶在哪里？"),
        ("A", "あちらの冷蔵庫にあります。", "在那边的冰箱里。"),
        ("B", "ありがとうございます。これをください。", "谢谢。请给我这个。"),
        ("A", "百五十円です。袋はいりますか？", "一百五十日元。需要袋子吗？"),
        ("B", "いいえ、大丈夫です。", "不用了，没关系。"),
    ]),
    _scenario(3, "在餐厅", [
        ("A", "何名様ですか？", "请问几位？"),
        ("B", "二人です。", "两个人。"),
        ("A", "こちらへどうぞ。ご注文はお決まりですか？", "这边请。您决定点什么了吗？"),
        ("B", "ラーメンを二つお願いします。", "请给我们两碗拉面。"),
        ("A", "かしこまりました。少々お待ちください。", "好的。请稍等。"),
        ("B", "おいしかったです！ごちそうさまでした。", "很好吃！多谢款待。"),
    ]),
    _scenario(4, "问路", [
        ("A", "すみません、駅はどこですか？", "不好意思，车站在哪里？"),
        ("B", "この道をまっすぐ行って、二つ目の角を右に曲がってください。", "沿着这条路直走，在第二个路口右转。"),
        ("A", "歩いて何分ぐらいかかりますか？", "走路大概要几分钟？"),
        ("B", "十分ぐらいです。", "大概十分钟。"),
        ("A", "わかりました。ありがとうございました！", "明白了。谢谢您！"),
    ]),
)


def _parse_scenarios(raw):
    if not isinstance(raw, list) or not raw:
        raise ValueError("scenario file must contain a non-empty JSON list")
    out = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"scenario #{i} is not an object")
        turns = item.get("dialogues")
        if not isinstance(turns, list) or not turns:
            raise ValueError(f"scenario #{i} has no dialogues")
        dialogues = []
        for d in turns:
            if not isinstance(d, dict):
                raise ValueError(f"scenario #{i} has a malformed dialogue")
            dialogues.append(Dialogue(
                speaker=str(d.get("speaker", "")).strip(),
                jp=str(d.get("jp", "")).strip(),
                zh=str(d.get("zh", "")).strip(),
            ))
        out.append(Scenario(
            id=int(item.get("id", i + 1)),
            title=str(item.get("title", "")).strip() or f"Scenario {i + 1}",
            dialogues=tuple(dialogues),
        ))
    return tuple(out)


def load_scenarios(path=None):
    if not path:
        return SCENARIOS
    if not os.path.exists(path):
        raise ValueError(f"scenario file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    scenarios = _parse_scenarios(raw)
    logger.info("Loaded %d scenarios from %s", len(scenarios), path)
    return scenarios
