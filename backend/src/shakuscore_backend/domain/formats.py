"""
格式互转入口：parse / serialize / convert。

格式：
- json：原生 JSON（无损）
- musicxml：MusicXML partwise（导入尽力而为，可能产生 warnings）
- abc：ABC 文本谱（严格）

convert(text, from, to)：from == to 时原样返回输入（不做解析/规范化）；否则 serialize(parse(text, from), to)。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .abc_codec import parse_abc, serialize_abc
from .errors import ParseWarning
from .musicxml_codec import parse_musicxml, serialize_musicxml
from .native_json import parse_native_json, serialize_native_json
from .score import ScoreModel


logger = logging.getLogger(__name__)

Format = Literal["json", "musicxml", "abc"]
FORMATS: tuple[str, ...] = ("json", "musicxml", "abc")


@dataclass(frozen=True)
class ParseResult:
    score: ScoreModel
    warnings: tuple[ParseWarning, ...] = ()


def _check_format(fmt: str) -> None:
    if fmt not in FORMATS:
        raise ValueError(f"不支持的格式：{fmt!r}（可选：{', '.join(FORMATS)}）")


def parse_with_warnings(text: str, fmt: str) -> ParseResult:
    _check_format(fmt)
    if fmt == "json":
        return ParseResult(score=parse_native_json(text))
    if fmt == "musicxml":
        score, warnings = parse_musicxml(text)
        return ParseResult(score=score, warnings=tuple(warnings))
    return ParseResult(score=parse_abc(text))


def parse(text: str, fmt: str) -> ScoreModel:
    return parse_with_warnings(text, fmt).score


def serialize(score: ScoreModel, fmt: str) -> str:
    _check_format(fmt)
    if fmt == "json":
        return serialize_native_json(score)
    if fmt == "musicxml":
        return serialize_musicxml(score)
    return serialize_abc(score)


def convert_with_warnings(text: str, from_format: str, to_format: str) -> tuple[str, tuple[ParseWarning, ...]]:
    _check_format(from_format)
    _check_format(to_format)
    if from_format == to_format:
        return text, ()
    result = parse_with_warnings(text, from_format)
    logger.debug(
        "convert %s → %s：%d notes，%d warnings", from_format, to_format, len(result.score.notes), len(result.warnings)
    )
    return serialize(result.score, to_format), result.warnings


def convert(text: str, from_format: str, to_format: str) -> str:
    return convert_with_warnings(text, from_format, to_format)[0]
