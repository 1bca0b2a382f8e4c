"""
原生 JSON 编解码（唯一无损格式）。

线上结构（与既有存量文档兼容）：
  {
    "title": "...", "style": "kinko", "composer"?: "...", "tempo"?: "...", "key"?: "...",
    "notes": [
      {"pitch": {"step": "ro", "octave": 0}, "duration": 1, "meri"?: true, "chu_meri"?: true,
       "dai_meri"?: true, "dotted"?: true},
      {"rest": true, "duration": 2}
    ]
  }

约束：
- 降音三档分别对应 meri / chu_meri / dai_meri，三者至多一个为 true（否则 ValidationError）。
- 结构解码交给 pydantic；结构错误 → StructuralError，其后一律走 ScoreModel 构造期校验。
- duration：整数 → int，二进制分数 → float，其它有理数 → "n/d" 字符串，保证往返精确。
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ..utils.durations import as_fraction, duration_to_json
from .errors import StructuralError, ValidationError
from .score import DEFAULT_TITLE, Pitch, ScoreModel, ScoreNote


FLAG_TO_ALTERATION = {"meri": "half", "chu_meri": "quarter", "dai_meri": "whole"}
ALTERATION_TO_FLAG = {v: k for k, v in FLAG_TO_ALTERATION.items()}


class PitchWire(BaseModel):
    model_config = ConfigDict(extra="forbid")

    step: StrictStr
    octave: StrictInt


class NoteWire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pitch: PitchWire | None = None
    duration: StrictInt | StrictFloat | StrictStr
    rest: StrictBool = False
    meri: StrictBool = False
    chu_meri: StrictBool = False
    dai_meri: StrictBool = False
    dotted: StrictBool = False


class ScoreWire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: StrictStr | None = None
    style: StrictStr = "kinko"
    composer: StrictStr | None = None
    tempo: StrictStr | StrictInt | StrictFloat | None = None
    key: StrictStr | None = None
    notes: list[NoteWire]


def _note_index_from_loc(loc: tuple[Any, ...]) -> int | None:
    if len(loc) >= 2 and loc[0] == "notes" and isinstance(loc[1], int):
        return loc[1]
    return None


def _note_from_wire(w: NoteWire, index: int) -> ScoreNote:
    flags = [name for name in FLAG_TO_ALTERATION if getattr(w, name)]
    if len(flags) > 1:
        raise ValidationError(f"降音标记互斥，但同时出现：{flags}", note_index=index)
    alteration = FLAG_TO_ALTERATION[flags[0]] if flags else "none"

    try:
        duration = as_fraction(w.duration)
    except ValueError as e:
        raise ValidationError(str(e), note_index=index) from e

    pitch = Pitch(step=w.pitch.step, octave=w.pitch.octave) if w.pitch is not None else None
    return ScoreNote(pitch=pitch, rest=w.rest, duration=duration, alteration=alteration, dotted=w.dotted)


def score_from_dict(raw: Any) -> ScoreModel:
    """dict（已 json.loads）→ ScoreModel。"""

    if not isinstance(raw, dict):
        raise StructuralError(f"顶层必须是 JSON object，实际为 {type(raw).__name__}")
    try:
        wire = ScoreWire.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = tuple(first.get("loc", ()))
        where = ".".join(str(x) for x in loc) or "<root>"
        raise StructuralError(f"{where}: {first.get('msg')}", note_index=_note_index_from_loc(loc)) from e

    if not wire.notes:
        raise StructuralError("notes 为空（至少 1 个音符）")

    notes = tuple(_note_from_wire(n, i) for i, n in enumerate(wire.notes))
    title = wire.title if wire.title and wire.title.strip() else DEFAULT_TITLE
    tempo = str(wire.tempo) if wire.tempo is not None else None
    return ScoreModel(
        title=title,
        notes=notes,
        composer=wire.composer,
        tempo=tempo,
        key=wire.key,
        style=wire.style,
    )


def parse_native_json(text: str) -> ScoreModel:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise StructuralError(f"JSON 语法错误：line={e.lineno} col={e.colno} {e.msg}") from e
    return score_from_dict(raw)


def note_to_dict(note: ScoreNote) -> dict[str, Any]:
    d: dict[str, Any] = {}
    if note.rest:
        d["rest"] = True
    elif note.pitch is not None:
        d["pitch"] = {"step": note.pitch.step, "octave": note.pitch.octave}
    else:
        raise ValidationError("非休止符缺少 pitch")
    d["duration"] = duration_to_json(as_fraction(note.duration))
    flag = ALTERATION_TO_FLAG.get(note.alteration)
    if flag is not None:
        d[flag] = True
    if note.dotted:
        d["dotted"] = True
    return d


def score_to_dict(score: ScoreModel) -> dict[str, Any]:
    d: dict[str, Any] = {"title": score.title, "style": score.style}
    if score.composer is not None:
        d["composer"] = score.composer
    if score.tempo is not None:
        d["tempo"] = score.tempo
    if score.key is not None:
        d["key"] = score.key
    d["notes"] = [note_to_dict(n) for n in score.notes]
    return d


def serialize_native_json(score: ScoreModel) -> str:
    return json.dumps(score_to_dict(score), ensure_ascii=False, indent=2) + "\n"
