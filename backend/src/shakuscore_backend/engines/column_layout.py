"""
竖排分列布局引擎（NoteLayoutEngine）。

定位：
- 输入：已挂载修饰符的音符序列（每个音符只需要“是否占用额外竖向空间”这一事实）、视口宽高、间距配置。
- 输出：列数、每列 x、每个音符的 y；供外部绘制后端直接使用。

规则（数值必须逐位复现）：
- 每列容量：显式 notes_per_column 优先；否则 floor((H - top_margin) / note_spacing)，至少为 1。
- 列按音符顺序依次填满；第 0 列（最早的音符）放在居中块的最右侧，之后每列左移 column_width + column_spacing，
  对应传统的自右向左阅读顺序。
- 列内 y：首音 = top_margin；之后每个音 = 上一个 y + note_spacing（上一个音占额外空间时再加 extra_spacing）。
  额外空间只影响 y 累加，不影响容量与分列。
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol


# 单列固有尺寸估算（与既有前端组件一致）
ALTERATION_LEFT_EXTENT = 35  # |offset_x| 22 + 字宽约 13
OCTAVE_RIGHT_EXTENT = 28  # offset_x 18 + 字宽约 10
GLYPH_WIDTH_RATIO = 0.8
HORIZONTAL_PADDING = 10
BOTTOM_PADDING = 20


class FootprintNote(Protocol):
    @property
    def has_extra_footprint(self) -> bool: ...


class MarkedNote(FootprintNote, Protocol):
    @property
    def has_octave_mark(self) -> bool: ...

    @property
    def has_alteration_mark(self) -> bool: ...


@dataclass(frozen=True)
class LayoutOptions:
    top_margin: float = 34
    note_spacing: float = 44
    extra_spacing: float = 12
    column_width: float = 100
    column_spacing: float = 35
    notes_per_column: int | None = None

    def __post_init__(self) -> None:
        if self.note_spacing <= 0:
            raise ValueError(f"note_spacing 必须为正：{self.note_spacing}")
        npc = self.notes_per_column
        if npc is not None and (isinstance(npc, bool) or not isinstance(npc, int) or npc < 1):
            raise ValueError(f"notes_per_column 必须是 >= 1 的整数或 None：{npc!r}")


@dataclass(frozen=True)
class NotePosition:
    note_index: int
    y: float


@dataclass(frozen=True)
class ColumnInfo:
    index: int
    x_position: float
    note_start: int
    note_end: int
    note_positions: tuple[NotePosition, ...]

    @property
    def note_range(self) -> tuple[int, int]:
        """[start, end)"""

        return (self.note_start, self.note_end)


@dataclass(frozen=True)
class ColumnLayout:
    total_columns: int
    capacity: int
    column_width: float
    column_spacing: float
    start_x: float
    start_y: float
    columns: tuple[ColumnInfo, ...]

    def position_of(self, note_index: int) -> tuple[float, float]:
        """返回某个音符的 (x, y)。"""

        for col in self.columns:
            if col.note_start <= note_index < col.note_end:
                return col.x_position, col.note_positions[note_index - col.note_start].y
        raise IndexError(f"note_index 越界：{note_index}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_columns": self.total_columns,
            "capacity": self.capacity,
            "column_width": self.column_width,
            "column_spacing": self.column_spacing,
            "start_x": self.start_x,
            "start_y": self.start_y,
            "columns": [
                {
                    "index": c.index,
                    "x_position": c.x_position,
                    "note_range": [c.note_start, c.note_end],
                    "note_positions": [{"note_index": p.note_index, "y": p.y} for p in c.note_positions],
                }
                for c in self.columns
            ],
        }


def column_capacity(height: float, options: LayoutOptions) -> int:
    if options.notes_per_column is not None:
        return options.notes_per_column
    return max(1, math.floor((height - options.top_margin) / options.note_spacing))


def layout_footprints(
    footprints: Sequence[bool], width: float, height: float, options: LayoutOptions | None = None
) -> ColumnLayout:
    """按“每个音是否占额外竖向空间”的序列计算分列布局。"""

    options = options or LayoutOptions()
    n = len(footprints)
    capacity = column_capacity(height, options)
    total_columns = math.ceil(n / capacity) if n else 0

    cw, cs = options.column_width, options.column_spacing
    occupied = total_columns * cw + max(0, total_columns - 1) * cs
    start_x = (width - occupied) / 2 + cw / 2

    columns: list[ColumnInfo] = []
    for col in range(total_columns):
        note_start = col * capacity
        note_end = min(note_start + capacity, n)
        x = start_x + (total_columns - 1 - col) * (cw + cs)

        positions: list[NotePosition] = []
        y = options.top_margin
        for i in range(note_start, note_end):
            if i > note_start:
                y += options.note_spacing
                if footprints[i - 1]:
                    y += options.extra_spacing
            positions.append(NotePosition(note_index=i, y=y))

        columns.append(
            ColumnInfo(index=col, x_position=x, note_start=note_start, note_end=note_end, note_positions=tuple(positions))
        )

    return ColumnLayout(
        total_columns=total_columns,
        capacity=capacity,
        column_width=cw,
        column_spacing=cs,
        start_x=start_x,
        start_y=options.top_margin,
        columns=tuple(columns),
    )


def layout_columns(
    notes: Sequence[FootprintNote], width: float, height: float, options: LayoutOptions | None = None
) -> ColumnLayout:
    return layout_footprints([bool(n.has_extra_footprint) for n in notes], width, height, options)


def intrinsic_size(
    notes: Sequence[MarkedNote], options: LayoutOptions | None = None, *, note_font_size: float = 28
) -> tuple[int, int]:
    """单列模式下无需外部指定宽高时的固有尺寸 (width, height)。"""

    options = options or LayoutOptions()
    left = ALTERATION_LEFT_EXTENT if any(n.has_alteration_mark for n in notes) else 0
    right = OCTAVE_RIGHT_EXTENT if any(n.has_octave_mark for n in notes) else 0
    width = left + note_font_size * GLYPH_WIDTH_RATIO + right + HORIZONTAL_PADDING * 2

    height = options.top_margin
    for n in notes:
        height += options.note_spacing + (options.extra_spacing if n.has_extra_footprint else 0)
    height += BOTTOM_PADDING
    return math.ceil(width), math.ceil(height)
