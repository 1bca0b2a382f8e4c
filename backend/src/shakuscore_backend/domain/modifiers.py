"""
修饰符解析（ModifierResolver）：为每个音符决定挂哪些记号、挂在哪里。

规则：
- 八度记号：按“就近音区”规则推断默认音区。该 step 在表内可用的各音区中，本音与上一个
  *发声* 音符实际音高（半音）距离最近者为默认（等距取低音区）；实际音区不同于默认时挂记号。
  首音默认乙音区（0）。休止符不更新、不重置这一上下文。
- 降音记号：alteration != none 时挂，参数为降音档位（メ / 中 / 大）。
- 附点：dotted 时挂，与时值无关；它是唯一“占额外竖向空间”的记号。
- 时值线：时值 >= 2（二分音符及以上）不挂；更短的时值每减半多一条线（最多 4 条）。
  连续带线的发声音符组成一个连线段：段内除最后一个外都连到下一个音（is_terminal=False）。
  休止符打断连线段，自身的时值线独立、不连接。

本模块纯函数、无 I/O；同样的输入永远得到同样的输出。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction
from typing import Literal, Union

from ..render_options import RenderOptions
from ..utils.durations import as_fraction
from .pitch_table import PitchTable, kinko_pitch_table
from .score import ALTERATION_GLYPH, ALTERATION_NAMES, ScoreNote


Anchor = Literal["above", "below", "left", "right"]
DecorationKind = Literal["octave_mark", "alteration_mark", "duration_dot", "duration_line_run"]

MAX_DURATION_LINES = 4
NO_LINE_THRESHOLD = Fraction(2)

# (anchor, offset_x, offset_y)
OCTAVE_MARK_PLACEMENT: dict[int, tuple[Anchor, float, float]] = {
    0: ("below", -12, 12),
    1: ("above", -12, -20),
    2: ("above", -12, -25),
}
OCTAVE_STROKE_LENGTH = 6
OCTAVE_STROKE_SPACING = 6
OCTAVE_STROKE_WIDTH = 1.5

ALTERATION_PLACEMENT: tuple[Anchor, float, float] = ("left", -22, 0)
DURATION_DOT_PLACEMENT: tuple[Anchor, float, float] = ("below", 0, 12)
DURATION_DOT_RADIUS = 2.5
DURATION_LINE_PLACEMENT: tuple[Anchor, float, float] = ("right", 12, 0)
DURATION_LINE_LENGTH = 15
DURATION_LINE_SPACING = 3
DURATION_LINE_WIDTH = 1.5


@dataclass(frozen=True)
class OctaveMark:
    register: int
    anchor: Anchor
    offset_x: float
    offset_y: float
    stroke_count: int
    font_size: float = 12
    font_weight: int = 500
    stroke_length: float = OCTAVE_STROKE_LENGTH
    stroke_spacing: float = OCTAVE_STROKE_SPACING
    stroke_width: float = OCTAVE_STROKE_WIDTH
    kind: Literal["octave_mark"] = "octave_mark"


@dataclass(frozen=True)
class AlterationMark:
    level: str
    glyph: str
    anchor: Anchor
    offset_x: float
    offset_y: float
    font_size: float = 14
    font_weight: int = 500
    color: str = "#000"
    kind: Literal["alteration_mark"] = "alteration_mark"


@dataclass(frozen=True)
class DurationDot:
    anchor: Anchor
    offset_x: float
    offset_y: float
    radius: float = DURATION_DOT_RADIUS
    kind: Literal["duration_dot"] = "duration_dot"


@dataclass(frozen=True)
class DurationLineRun:
    line_count: int
    is_terminal: bool
    anchor: Anchor
    offset_x: float
    offset_y: float
    line_length: float = DURATION_LINE_LENGTH
    line_spacing: float = DURATION_LINE_SPACING
    line_width: float = DURATION_LINE_WIDTH
    kind: Literal["duration_line_run"] = "duration_line_run"


Decoration = Union[OctaveMark, AlterationMark, DurationDot, DurationLineRun]


@dataclass(frozen=True)
class DecoratedNote:
    index: int
    note: ScoreNote
    decorations: tuple[Decoration, ...]
    debug_label: str | None = None

    def of_kind(self, kind: DecorationKind) -> tuple[Decoration, ...]:
        return tuple(d for d in self.decorations if d.kind == kind)

    @property
    def has_extra_footprint(self) -> bool:
        return any(isinstance(d, DurationDot) for d in self.decorations)

    @property
    def has_octave_mark(self) -> bool:
        return any(isinstance(d, OctaveMark) for d in self.decorations)

    @property
    def has_alteration_mark(self) -> bool:
        return any(isinstance(d, AlterationMark) for d in self.decorations)


def duration_line_count(duration: object) -> int:
    """二分音符及以上 0 条；[1, 2) 1 条；[1/2, 1) 2 条；[1/4, 1/2) 3 条；更短 4 条。"""

    d = as_fraction(duration)
    if d >= NO_LINE_THRESHOLD:
        return 0
    count = 1
    threshold = Fraction(1)
    while d < threshold and count < MAX_DURATION_LINES:
        count += 1
        threshold /= 2
    return count


def expected_register(step: str, previous_midi: int | None, table: PitchTable) -> int:
    """就近音区：没有上一个发声音符时为 0。"""

    if previous_midi is None:
        return 0
    candidates = table.registers_for(step)
    if not candidates:
        return 0
    return min(candidates, key=lambda r: (abs(table.natural_midi(step, r) - previous_midi), r))


def _octave_mark(register: int, options: RenderOptions) -> OctaveMark:
    anchor, dx, dy = OCTAVE_MARK_PLACEMENT[register]
    return OctaveMark(
        register=register,
        anchor=anchor,
        offset_x=dx,
        offset_y=dy,
        stroke_count=max(1, register),
        font_size=options.octave_mark.font_size,
        font_weight=options.octave_mark.font_weight,
    )


def _alteration_mark(level: str, options: RenderOptions) -> AlterationMark:
    anchor, dx, dy = ALTERATION_PLACEMENT
    return AlterationMark(
        level=level,
        glyph=ALTERATION_GLYPH[level],
        anchor=anchor,
        offset_x=dx,
        offset_y=dy,
        font_size=options.alteration_mark.font_size,
        font_weight=options.alteration_mark.font_weight,
        color=options.note_color,
    )


def _duration_line(count: int, is_terminal: bool) -> DurationLineRun:
    anchor, dx, dy = DURATION_LINE_PLACEMENT
    return DurationLineRun(line_count=count, is_terminal=is_terminal, anchor=anchor, offset_x=dx, offset_y=dy)


def debug_label(index: int, note: ScoreNote, decorations: Sequence[Decoration]) -> str:
    """形如 "3 ro (1) meri" 的调试标签（序号从 1 开始）。"""

    name = "rest" if note.rest or note.pitch is None else note.pitch.step
    octave = ""
    level = ""
    for d in decorations:
        if isinstance(d, OctaveMark):
            octave = f"({d.register})"
        elif isinstance(d, AlterationMark):
            level = ALTERATION_NAMES.get(d.level, d.level)
    return " ".join(p for p in (str(index + 1), name, octave, level) if p)


def resolve_modifiers(
    notes: Sequence[ScoreNote],
    options: RenderOptions | None = None,
    *,
    table: PitchTable | None = None,
) -> list[DecoratedNote]:
    """按顺序为每个音符解析修饰符（顺序折叠，不可并行/重排）。"""

    options = options or RenderOptions()
    table = table or kinko_pitch_table()
    line_counts = [duration_line_count(n.duration) for n in notes]

    def continues_run(i: int) -> bool:
        return i < len(notes) and not notes[i].rest and line_counts[i] > 0

    out: list[DecoratedNote] = []
    previous_midi: int | None = None

    for i, note in enumerate(notes):
        decorations: list[Decoration] = []

        if note.rest or note.pitch is None:
            if note.dotted:
                anchor, dx, dy = DURATION_DOT_PLACEMENT
                decorations.append(DurationDot(anchor=anchor, offset_x=dx, offset_y=dy))
            if line_counts[i] > 0:
                decorations.append(_duration_line(line_counts[i], True))
        else:
            pitch = note.pitch
            default_register = expected_register(pitch.step, previous_midi, table)
            if pitch.octave != default_register and options.show_octave_marks:
                decorations.append(_octave_mark(pitch.octave, options))
            previous_midi = table.sounding_midi(pitch, note.alteration)

            if note.alteration != "none":
                decorations.append(_alteration_mark(note.alteration, options))
            if note.dotted:
                anchor, dx, dy = DURATION_DOT_PLACEMENT
                decorations.append(DurationDot(anchor=anchor, offset_x=dx, offset_y=dy))
            if line_counts[i] > 0:
                decorations.append(_duration_line(line_counts[i], not continues_run(i + 1)))

        label = debug_label(i, note, decorations) if options.show_debug_labels else None
        out.append(DecoratedNote(index=i, note=note, decorations=tuple(decorations), debug_label=label))
    return out
