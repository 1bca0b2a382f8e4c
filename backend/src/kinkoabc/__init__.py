"""
ShakuScore 的 ABC 文本谱语法层。

定位：
- 只负责“文本 → token”与“token → 文本”：header 字段扫描、音符 token 分词、时值后缀读写。
- 不认识尺八指法；音高映射（西洋拼写 → 指法）由 `shakuscore_backend.domain.abc_codec` 通过 PitchTable 完成。
- 手写谱视为作者输入：任何无法分词的片段都必须显式失败，并指出行号与片段。
"""

from .abc_text import (
    AbcDocument,
    AbcHeader,
    AbcNoteToken,
    AbcSyntaxError,
    format_duration_suffix,
    parse_abc_text,
    parse_duration_suffix,
    spell_note_token,
)

__all__ = [
    "AbcDocument",
    "AbcHeader",
    "AbcNoteToken",
    "AbcSyntaxError",
    "format_duration_suffix",
    "parse_abc_text",
    "parse_duration_suffix",
    "spell_note_token",
]
