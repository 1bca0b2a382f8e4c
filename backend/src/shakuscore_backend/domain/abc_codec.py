"""
ABC 文本谱编解码（严格模式）。

定位：
- ABC 视为手写输入：语法错误、未知字母、畸形时值后缀 → StructuralError；
  音域外/表外音高 → MappingError；二者都致命并指出出错 token。
- 字母大小写与八度号决定西洋八度（大写 = 4，小写 = 5，`'` +1，`,` -1），
  再经 PitchTable 映射到指法/音区/降音；调号（K:）不作用于字母。
- 时值后缀以“拍”为单位（1 = 四分音符），与 L: 字段无关；导出时写 `L:1/4` 以保持语义一致。

导出：
- 每个（指法, 降音）组合取最短 token 拼写（启动时构建一次反查表；等长时 natural > sharp > flat）。
- header 字段值原样写出（内部空白保留）；首尾带空白或跨行的值读回时无法还原，直接抛 MappingError。
"""

from __future__ import annotations

from functools import lru_cache

from kinkoabc import AbcSyntaxError, parse_abc_text, spell_note_token

from ..utils.durations import as_fraction
from .errors import MappingError, StructuralError
from .pitch_table import ALTER_PREFERENCE, PitchTable, kinko_pitch_table
from .score import DEFAULT_TITLE, Pitch, ScoreModel, ScoreNote


DEFAULT_KEY = "D"


def parse_abc(text: str, *, table: PitchTable | None = None) -> ScoreModel:
    table = table or kinko_pitch_table()
    try:
        doc = parse_abc_text(text)
    except AbcSyntaxError as e:
        raise StructuralError(e.message, token=e.fragment) from e

    notes: list[ScoreNote] = []
    for i, tok in enumerate(doc.tokens):
        if tok.is_rest:
            notes.append(ScoreNote.silent(tok.duration, dotted=tok.dotted))
            continue
        hit = table.lookup_by_western(tok.letter, tok.alter, tok.western_octave)
        if hit is None:
            raise MappingError(
                f"音高不在尺八音域/对照表内（line={tok.line_no}）", note_index=i, token=tok.text
            )
        pitch, alteration = hit
        notes.append(ScoreNote(pitch=pitch, duration=tok.duration, alteration=alteration, dotted=tok.dotted))

    if not notes:
        raise StructuralError("K: 字段之后没有任何音符")

    h = doc.header
    return ScoreModel(
        title=h.title or DEFAULT_TITLE,
        notes=tuple(notes),
        composer=h.composer,
        tempo=h.tempo,
        key=h.key or None,
    )


def _token_rank(token: str, alter: int) -> tuple[int, int]:
    return (len(token), ALTER_PREFERENCE.get(alter, 99))


@lru_cache(maxsize=8)
def _reverse_spellings(table: PitchTable) -> dict[tuple[Pitch, str], tuple[str, int, int]]:
    """(Pitch, alteration) → (letter, alter, octave)，取最短 ABC 拼写。"""

    best: dict[tuple[Pitch, str], tuple[str, int, int]] = {}
    ranks: dict[tuple[Pitch, str], tuple[int, int]] = {}
    for (letter, alter, octave), fingering in table.by_western.items():
        token = spell_note_token(alter=alter, letter=letter, octave=octave, duration=as_fraction(1), dotted=False)
        rank = _token_rank(token, alter)
        if fingering not in ranks or rank < ranks[fingering]:
            ranks[fingering] = rank
            best[fingering] = (letter, alter, octave)
    return best


def _header_value(field: str, value: str) -> str:
    if value != value.strip() or len(value.splitlines()) > 1:
        raise MappingError(f"{field}: 字段值首尾带空白或跨行，ABC header 无法原样保存：{value!r}", token=field)
    return value


def serialize_abc(score: ScoreModel, *, table: PitchTable | None = None) -> str:
    table = table or kinko_pitch_table()
    reverse = _reverse_spellings(table)

    tokens: list[str] = []
    for i, note in enumerate(score.notes):
        d = as_fraction(note.duration)
        if note.rest or note.pitch is None:
            tokens.append(spell_note_token(alter=0, letter="z", octave=4, duration=d, dotted=note.dotted))
            continue
        spelled = reverse.get((note.pitch, note.alteration))
        if spelled is None:
            raise MappingError(
                f"该指法/降音组合没有 ABC 拼写（alteration={note.alteration}）",
                note_index=i,
                token=f"{note.pitch.step}{note.pitch.octave}",
            )
        letter, alter, octave = spelled
        tokens.append(spell_note_token(alter=alter, letter=letter, octave=octave, duration=d, dotted=note.dotted))

    lines = ["X:1", f"T:{_header_value('T', score.title)}"]
    if score.composer:
        lines.append(f"C:{_header_value('C', score.composer)}")
    lines += ["M:4/4", "L:1/4"]
    if score.tempo:
        lines.append(f"Q:{_header_value('Q', score.tempo)}")
    lines.append(f"K:{_header_value('K', score.key) if score.key else DEFAULT_KEY}")
    lines.append("")
    lines.append(" ".join(tokens))
    return "\n".join(lines) + "\n"
