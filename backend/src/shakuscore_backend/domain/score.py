"""
统一乐谱模型（ScoreModel）与构造期校验。

定位：
- 三种格式编解码器与布局引擎共同依赖的数据契约；每次解析/转换产出一个新的不可变值。
- 构造即校验：`ScoreModel(...)` 失败时抛 `ValidationError`（带音符下标），不存在“半合法”的模型。

约定：
- 音名（step）：ro / tsu / re / chi / ri / u / hi（琴古流七个基本指法）。
- 音区（octave/register）：0 = 乙（otsu），1 = 甲（kan），2 = 大甲（daikan）。
- 降音（alteration）：none / half（メリ）/ quarter（中メリ）/ whole（大メリ）；只对非休止符有意义。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction
from typing import Literal

from ..utils.durations import as_fraction
from .errors import ValidationError


PitchStep = Literal["ro", "tsu", "re", "chi", "ri", "u", "hi"]
Alteration = Literal["none", "half", "quarter", "whole"]
Style = Literal["kinko", "tozan"]

PITCH_STEPS: tuple[str, ...] = ("ro", "tsu", "re", "chi", "ri", "u", "hi")
ALTERATIONS: tuple[str, ...] = ("none", "half", "quarter", "whole")
REGISTERS: tuple[int, ...] = (0, 1, 2)
STYLES: tuple[str, ...] = ("kinko", "tozan")

DEFAULT_TITLE = "Untitled"

STEP_KANA = {
    "ro": "ロ",
    "tsu": "ツ",
    "re": "レ",
    "chi": "チ",
    "ri": "リ",
    "u": "ウ",
    "hi": "ヒ",
}

REGISTER_NAMES = {0: "otsu", 1: "kan", 2: "daikan"}

ALTERATION_GLYPH = {"half": "メ", "quarter": "中", "whole": "大"}
ALTERATION_NAMES = {"none": "", "half": "meri", "quarter": "chu-meri", "whole": "dai-meri"}


@dataclass(frozen=True)
class Pitch:
    step: PitchStep
    octave: int = 0

    @property
    def kana(self) -> str:
        return STEP_KANA.get(self.step, "?")

    @property
    def register_name(self) -> str:
        return REGISTER_NAMES.get(self.octave, "?")


@dataclass(frozen=True)
class ScoreNote:
    """单个音符或休止符。

    `duration` 以拍为单位（1 = 四分音符），不包含附点；附点由 `dotted` 单独表示。
    构造时接受 int / float / "n/d"，一律存为 Fraction。
    """

    pitch: Pitch | None = None
    rest: bool = False
    duration: Fraction = Fraction(1)
    alteration: Alteration = "none"
    dotted: bool = False

    def __post_init__(self) -> None:
        # 统一存为 Fraction：0.1 / "1/2" 与其 JSON 往返结果逐值相等
        if not isinstance(self.duration, Fraction):
            try:
                object.__setattr__(self, "duration", as_fraction(self.duration))
            except ValueError as e:
                raise ValidationError(str(e)) from e

    @classmethod
    def sounding(
        cls,
        step: str,
        octave: int = 0,
        duration: Fraction | int | float | str = 1,
        *,
        alteration: str = "none",
        dotted: bool = False,
    ) -> "ScoreNote":
        return cls(pitch=Pitch(step=step, octave=octave), duration=duration, alteration=alteration, dotted=dotted)

    @classmethod
    def silent(cls, duration: Fraction | int | float | str = 1, *, dotted: bool = False) -> "ScoreNote":
        return cls(pitch=None, rest=True, duration=duration, dotted=dotted)


@dataclass(frozen=True)
class ScoreModel:
    title: str
    notes: tuple[ScoreNote, ...]
    composer: str | None = None
    tempo: str | None = None
    key: str | None = None
    style: Style = "kinko"

    def __post_init__(self) -> None:
        # 接受 list 输入，但保存为 tuple，保证模型整体不可变
        if not isinstance(self.notes, tuple):
            if isinstance(self.notes, (str, bytes)) or not isinstance(self.notes, Sequence):
                raise ValidationError(f"notes 必须是序列，实际为 {type(self.notes).__name__}")
            object.__setattr__(self, "notes", tuple(self.notes))
        validate_score(self)


def _validate_note(note: object, index: int) -> None:
    if not isinstance(note, ScoreNote):
        raise ValidationError(f"音符类型错误：{type(note).__name__}", note_index=index)
    if not isinstance(note.rest, bool):
        raise ValidationError(f"rest 必须是 bool：{note.rest!r}", note_index=index)
    if not isinstance(note.dotted, bool):
        raise ValidationError(f"dotted 必须是 bool：{note.dotted!r}", note_index=index)

    if note.rest:
        if note.pitch is not None:
            raise ValidationError("休止符不能同时带 pitch", note_index=index)
        if note.alteration != "none":
            raise ValidationError(f"休止符不能带降音：{note.alteration!r}", note_index=index)
    else:
        if note.pitch is None:
            raise ValidationError("非休止符缺少 pitch", note_index=index)
        if not isinstance(note.pitch, Pitch):
            raise ValidationError(f"pitch 类型错误：{type(note.pitch).__name__}", note_index=index)
        if note.pitch.step not in PITCH_STEPS:
            raise ValidationError(f"未知 step：{note.pitch.step!r}", note_index=index)
        octave = note.pitch.octave
        if isinstance(octave, bool) or not isinstance(octave, int) or octave not in REGISTERS:
            raise ValidationError(f"octave 必须是 0/1/2：{octave!r}", note_index=index)
        if note.alteration not in ALTERATIONS:
            raise ValidationError(f"未知 alteration：{note.alteration!r}", note_index=index)

    try:
        d = as_fraction(note.duration)
    except ValueError as e:
        raise ValidationError(str(e), note_index=index) from e
    if d <= 0:
        raise ValidationError(f"duration 必须为正：{note.duration!r}", note_index=index)


def validate_score(score: ScoreModel) -> None:
    """校验 ScoreModel 不变量；失败抛 ValidationError。"""

    if not isinstance(score.title, str) or not score.title.strip():
        raise ValidationError("title 不能为空")
    for name in ("composer", "tempo", "key"):
        v = getattr(score, name)
        if v is not None and not isinstance(v, str):
            raise ValidationError(f"{name} 必须是字符串或 None：{v!r}")
    if score.style not in STYLES:
        raise ValidationError(f"未知 style：{score.style!r}")
    if not score.notes:
        raise ValidationError("notes 不能为空（至少 1 个音符）")
    for i, note in enumerate(score.notes):
        _validate_note(note, i)
