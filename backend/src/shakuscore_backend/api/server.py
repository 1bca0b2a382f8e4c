"""
ShakuScore 后端 API（FastAPI）。

约定：
- 服务端口：7140
- 无状态：不做持久化与鉴权；乐谱文本随请求提交，结果随响应返回。

API 设计原则：
- 严格校验，宁可失败，不做静默降级；唯一例外是 MusicXML 导入的“跳过 + 警告”策略，警告随响应返回。
- 核心错误（NotationError）以结构化 detail（kind / note_index / token / message）返回 400。
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..domain.errors import NotationError
from ..domain.formats import FORMATS, convert_with_warnings, parse_with_warnings, serialize
from ..domain.modifiers import DecoratedNote, resolve_modifiers
from ..domain.native_json import note_to_dict, score_from_dict, score_to_dict
from ..engines.column_layout import intrinsic_size, layout_columns
from ..render_options import RenderOptions


logger = logging.getLogger(__name__)

FORMAT_PATTERN = "^(json|musicxml|abc)$"

app = FastAPI(title="ShakuScore Backend", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ParseRequest(BaseModel):
    text: str = Field(min_length=1)
    format: str = Field(pattern=FORMAT_PATTERN)


class ConvertRequest(BaseModel):
    text: str = Field(min_length=1)
    from_format: str = Field(pattern=FORMAT_PATTERN)
    to_format: str = Field(pattern=FORMAT_PATTERN)


class SerializeRequest(BaseModel):
    score: dict[str, Any]
    format: str = Field(pattern=FORMAT_PATTERN)


class LayoutRequest(BaseModel):
    text: str = Field(min_length=1)
    format: str = Field(default="json", pattern=FORMAT_PATTERN)
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    options: dict[str, Any] | None = None


def _bad_request(e: ValueError) -> HTTPException:
    if isinstance(e, NotationError):
        return HTTPException(status_code=400, detail=e.to_dict())
    return HTTPException(status_code=400, detail=str(e))


def _decorated_to_dict(d: DecoratedNote) -> dict[str, Any]:
    pitch = d.note.pitch
    return {
        "index": d.index,
        "note": note_to_dict(d.note),
        "kana": pitch.kana if pitch is not None else None,
        "register_name": pitch.register_name if pitch is not None else None,
        "decorations": [asdict(x) for x in d.decorations],
        "has_extra_footprint": d.has_extra_footprint,
        "debug_label": d.debug_label,
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/formats")
def api_formats() -> list[str]:
    return list(FORMATS)


@app.post("/parse")
def api_parse(req: ParseRequest) -> dict[str, Any]:
    try:
        result = parse_with_warnings(req.text, req.format)
    except ValueError as e:
        raise _bad_request(e) from e
    return {"score": score_to_dict(result.score), "warnings": [w.to_dict() for w in result.warnings]}


@app.post("/serialize")
def api_serialize(req: SerializeRequest) -> dict[str, Any]:
    try:
        score = score_from_dict(req.score)
        text = serialize(score, req.format)
    except ValueError as e:
        raise _bad_request(e) from e
    return {"text": text}


@app.post("/convert")
def api_convert(req: ConvertRequest) -> dict[str, Any]:
    try:
        text, warnings = convert_with_warnings(req.text, req.from_format, req.to_format)
    except ValueError as e:
        raise _bad_request(e) from e
    return {"text": text, "warnings": [w.to_dict() for w in warnings]}


@app.post("/layout")
def api_layout(req: LayoutRequest) -> dict[str, Any]:
    try:
        options = RenderOptions.from_dict(req.options)
        result = parse_with_warnings(req.text, req.format)
    except ValueError as e:
        raise _bad_request(e) from e

    decorated = resolve_modifiers(result.score.notes, options)
    layout_opts = options.layout_options()
    layout = layout_columns(decorated, req.width, req.height, layout_opts)
    width, height = intrinsic_size(decorated, layout_opts, note_font_size=options.note_font_size)
    logger.debug("layout：%d notes → %d columns", len(decorated), layout.total_columns)
    return {
        "score": score_to_dict(result.score),
        "warnings": [w.to_dict() for w in result.warnings],
        "notes": [_decorated_to_dict(d) for d in decorated],
        "layout": layout.to_dict(),
        "intrinsic_size": {"width": width, "height": height},
    }
