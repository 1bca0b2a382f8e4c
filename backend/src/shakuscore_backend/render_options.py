"""
渲染配置（RenderOptions）。

定位：
- 修饰符解析（是否显示八度记号、字号字重）与分列布局（边距、行距、列宽）共用的纯配置记录。
- 默认值与既有前端渲染器保持一致；`from_dict` 把局部配置合并到默认值之上（未知 key 直接失败）。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any

from .engines.column_layout import LayoutOptions


@dataclass(frozen=True)
class OctaveMarkStyle:
    font_size: float = 12
    font_weight: int = 500


@dataclass(frozen=True)
class AlterationMarkStyle:
    font_size: float = 14
    font_weight: int = 500


@dataclass(frozen=True)
class DebugLabelStyle:
    font_size: float = 7
    offset_x: float = 25
    offset_y: float = -6
    font_family: str = "monospace"
    color: str = "#999"


_NESTED = {
    "octave_mark": OctaveMarkStyle,
    "alteration_mark": AlterationMarkStyle,
    "debug_label": DebugLabelStyle,
}


@dataclass(frozen=True)
class RenderOptions:
    show_octave_marks: bool = True
    show_debug_labels: bool = False
    # None = 按视口高度推算每列容量
    notes_per_column: int | None = None
    column_spacing: float = 35
    column_width: float = 100
    top_margin: float = 34
    note_font_size: float = 28
    note_font_weight: int = 400
    note_vertical_spacing: float = 44
    note_font_family: str = "Noto Sans JP, sans-serif"
    note_color: str = "#000"
    duration_dot_extra_spacing: float = 12
    octave_mark: OctaveMarkStyle = field(default_factory=OctaveMarkStyle)
    alteration_mark: AlterationMarkStyle = field(default_factory=AlterationMarkStyle)
    debug_label: DebugLabelStyle = field(default_factory=DebugLabelStyle)

    def __post_init__(self) -> None:
        for name in ("show_octave_marks", "show_debug_labels"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"RenderOptions.{name} 必须是 bool")
        npc = self.notes_per_column
        if npc is not None and (isinstance(npc, bool) or not isinstance(npc, int) or npc < 1):
            raise ValueError(f"RenderOptions.notes_per_column 必须是 >= 1 的整数或 None：{npc!r}")
        for name in ("column_width", "note_vertical_spacing", "note_font_size"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, (int, float)) or v <= 0:
                raise ValueError(f"RenderOptions.{name} 必须为正数：{v!r}")
        for name in ("column_spacing", "top_margin", "duration_dot_extra_spacing"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, (int, float)) or v < 0:
                raise ValueError(f"RenderOptions.{name} 必须为非负数：{v!r}")

    def layout_options(self) -> LayoutOptions:
        return LayoutOptions(
            top_margin=self.top_margin,
            note_spacing=self.note_vertical_spacing,
            extra_spacing=self.duration_dot_extra_spacing,
            column_width=self.column_width,
            column_spacing=self.column_spacing,
            notes_per_column=self.notes_per_column,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "RenderOptions":
        """把局部配置合并到默认值之上。"""

        if not d:
            return cls()
        if not isinstance(d, dict):
            raise ValueError("RenderOptions 必须是 dict")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"RenderOptions 含未知字段：{unknown}")

        base = cls()
        changes: dict[str, Any] = {}
        for k, v in d.items():
            if k in _NESTED:
                if not isinstance(v, dict):
                    raise ValueError(f"RenderOptions.{k} 必须是 dict")
                style_cls = _NESTED[k]
                style_known = {f.name for f in fields(style_cls)}
                bad = sorted(set(v) - style_known)
                if bad:
                    raise ValueError(f"RenderOptions.{k} 含未知字段：{bad}")
                changes[k] = replace(getattr(base, k), **v)
            else:
                changes[k] = v
        return replace(base, **changes)
