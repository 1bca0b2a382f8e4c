"""
乐谱解析/序列化错误分类。

定位：
- 所有核心错误都是 `ValueError` 子类，因此沿用“except ValueError → 失败”的调用约定不受影响。
- 错误携带结构化字段（kind / note_index / token / message），便于 API 层直接回传。

分类：
- structural：输入结构错误（缺字段、零音符、无法分词等），总是致命。
- mapping：音高/时值在目标词表中无法表示；MusicXML 导入时可恢复（跳过 + 警告），ABC 中致命。
- validation：ScoreModel 不变量被破坏，总是致命，并指出音符下标。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal


ErrorKind = Literal["structural", "mapping", "validation"]


class NotationError(ValueError):
    """核心错误基类。"""

    kind: ErrorKind = "structural"

    def __init__(self, message: str, *, note_index: int | None = None, token: str | None = None) -> None:
        self.message = message
        self.note_index = note_index
        self.token = token
        super().__init__(self._render())

    def _render(self) -> str:
        parts: list[str] = [f"[{self.kind}]"]
        if self.note_index is not None:
            parts.append(f"note[{self.note_index}]")
        if self.token is not None:
            parts.append(f"token={self.token!r}")
        parts.append(self.message)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "note_index": self.note_index,
            "token": self.token,
            "message": self.message,
        }


class StructuralError(NotationError):
    kind: ErrorKind = "structural"


class MappingError(NotationError):
    kind: ErrorKind = "mapping"


class ValidationError(NotationError):
    kind: ErrorKind = "validation"


@dataclass(frozen=True)
class ParseWarning:
    """可恢复问题（目前只有 MusicXML 导入时被跳过的音符）。"""

    kind: ErrorKind
    message: str
    note_index: int | None = None
    token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "note_index": self.note_index,
            "token": self.token,
            "message": self.message,
        }
