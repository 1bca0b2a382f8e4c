"""
MusicXML（score-partwise 3.1）编解码。

定位：
- 西洋五线谱交换格式；来源多为未经整理的外部文件，因此导入采用“尽力而为”策略：
  音域外/无法映射的音符跳过并记录警告（ParseWarning + logger.warning），不中断整体解析。
- 结构性问题（XML 语法错误、根元素不是 score-partwise、缺 part、缺 octave、零音符）仍然致命。

时值：
- 只看 `<duration>` 的 tick 数：>= 4 → 4，>= 2 → 2，其余 → 1；`<type>` 与 `<divisions>` 不参与判定，
  更细的细分不区分。附点只来自 `<dot/>`。
- 导出固定 divisions=1，tick 数 = 时值档位（4 / 2 / 1，不含附点），再读回时落在同一档位；
  `<type>` 仍按实际时值大小写出（eighth 等）。

导出：
- 拼写来自 PitchTable 反查（最简拼写）；表内没有该降音组合时，退而使用同一指法的其它降音拼写
  （降音方向保留、幅度有损）；同一指法完全没有拼写时抛 MappingError。
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from fractions import Fraction
from xml.sax.saxutils import escape

from ..utils.durations import as_fraction
from .errors import MappingError, ParseWarning, StructuralError
from .pitch_table import PitchTable, WesternPitch, kinko_pitch_table
from .score import DEFAULT_TITLE, Pitch, ScoreModel, ScoreNote


logger = logging.getLogger(__name__)

DIVISIONS = 1
DEFAULT_FIFTHS = 2
PART_NAME = "Shakuhachi"

MAJOR_KEY_BY_FIFTHS = {
    -7: "Cb",
    -6: "Gb",
    -5: "Db",
    -4: "Ab",
    -3: "Eb",
    -2: "Bb",
    -1: "F",
    0: "C",
    1: "G",
    2: "D",
    3: "A",
    4: "E",
    5: "B",
    6: "F#",
    7: "C#",
}
FIFTHS_BY_MAJOR_KEY = {v: k for k, v in MAJOR_KEY_BY_FIFTHS.items()}

# 表内没有该降音组合时，依次尝试的同指法降音拼写
FALLBACK_ALTERATIONS = ("half", "quarter", "whole")

_NUMERIC_TEMPO_RE = re.compile(r"^\d+(\.\d+)?$")

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
DOCTYPE = (
    '<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 3.1 Partwise//EN" '
    '"http://www.musicxml.org/dtds/partwise.dtd">'
)


def _strip(text: str | None) -> str:
    return (text or "").strip()


def _escape(text: str) -> str:
    return escape(text, {'"': "&quot;", "'": "&apos;"})


def _ticks_to_duration(ticks: float | Fraction) -> Fraction:
    if ticks >= 4:
        return Fraction(4)
    if ticks >= 2:
        return Fraction(2)
    return Fraction(1)


def _note_duration(note: ET.Element, index: int) -> Fraction:
    text = _strip(note.findtext("duration"))
    if not text:
        raise StructuralError("note 缺少 <duration>", note_index=index)
    try:
        ticks = float(text)
    except ValueError as e:
        raise StructuralError(f"<duration> 不是数值：{text!r}", note_index=index) from e
    return _ticks_to_duration(ticks)


def _parse_int(text: str, *, what: str, index: int) -> int:
    try:
        return int(text)
    except ValueError as e:
        raise StructuralError(f"<{what}> 不是整数：{text!r}", note_index=index) from e


def _read_header(root: ET.Element) -> tuple[str, str | None]:
    title = _strip(root.findtext("./work/work-title")) or _strip(root.findtext("./movement-title"))
    composer = None
    for creator in root.findall("./identification/creator"):
        if creator.get("type") == "composer" and _strip(creator.text):
            composer = _strip(creator.text)
            break
    return title or DEFAULT_TITLE, composer


def _read_key_and_tempo(part: ET.Element) -> tuple[str | None, str | None]:
    key = None
    fifths = _strip(part.findtext("./measure/attributes/key/fifths"))
    if fifths:
        try:
            key = MAJOR_KEY_BY_FIFTHS.get(int(fifths))
        except ValueError:
            key = None
    tempo = None
    for sound in part.iter("sound"):
        t = _strip(sound.get("tempo"))
        if t:
            tempo = t
            break
    return key, tempo


def parse_musicxml(
    data: str | bytes, *, table: PitchTable | None = None
) -> tuple[ScoreModel, list[ParseWarning]]:
    """MusicXML → (ScoreModel, warnings)。"""

    table = table or kinko_pitch_table()
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise StructuralError(f"XML 语法错误：{e}") from e
    if root.tag != "score-partwise":
        raise StructuralError(f"只支持 score-partwise，实际根元素为 <{root.tag}>")

    part = root.find("./part")
    if part is None:
        raise StructuralError("缺少 <part>")

    title, composer = _read_header(root)
    key, tempo = _read_key_and_tempo(part)

    notes: list[ScoreNote] = []
    warnings: list[ParseWarning] = []

    def skip(index: int, message: str, token: str | None = None) -> None:
        w = ParseWarning(kind="mapping", message=message, note_index=index, token=token)
        warnings.append(w)
        logger.warning("MusicXML: 跳过 note[%d]%s：%s", index, f" {token}" if token else "", message)

    index = -1
    for measure in part.findall("./measure"):
        for note in measure.findall("./note"):
            index += 1
            if note.find("./grace") is not None:
                skip(index, "装饰音（grace）不参与记谱")
                continue
            if note.find("./chord") is not None:
                skip(index, "和弦音（仅支持单声部）")
                continue

            dotted = note.find("./dot") is not None
            duration = _note_duration(note, index)

            if note.find("./rest") is not None:
                notes.append(ScoreNote.silent(duration, dotted=dotted))
                continue

            pitch_el = note.find("./pitch")
            if pitch_el is None:
                skip(index, "既无 <pitch> 也无 <rest>（如 unpitched）")
                continue

            step = _strip(pitch_el.findtext("step")).upper()
            octave_text = _strip(pitch_el.findtext("octave"))
            if not step or not octave_text:
                raise StructuralError("<pitch> 缺少 <step> 或 <octave>", note_index=index)
            octave = _parse_int(octave_text, what="octave", index=index)
            alter_text = _strip(pitch_el.findtext("alter")) or "0"
            try:
                alter_f = float(alter_text)
            except ValueError as e:
                raise StructuralError(f"<alter> 不是数值：{alter_text!r}", note_index=index) from e
            if not alter_f.is_integer():
                skip(index, f"微分音 alter={alter_text} 无法映射", token=f"{step}{octave}")
                continue
            alter = int(alter_f)

            token = WesternPitch(letter=step, octave=octave, alter=alter).spelling
            hit = table.lookup_by_western(step, alter, octave)
            if hit is None:
                skip(index, "音高不在尺八音域/对照表内", token=token)
                continue
            pitch, alteration = hit
            notes.append(ScoreNote(pitch=pitch, duration=duration, alteration=alteration, dotted=dotted))

    if not notes:
        raise StructuralError("没有可用音符（零音符）")

    score = ScoreModel(title=title, notes=tuple(notes), composer=composer, tempo=tempo, key=key)
    return score, warnings


def _written_pitch(note: ScoreNote, index: int, table: PitchTable) -> WesternPitch:
    pitch: Pitch | None = note.pitch
    if pitch is None:
        raise MappingError("非休止符缺少 pitch", note_index=index)
    w = table.lookup_by_fingering(pitch, note.alteration)
    if w is not None:
        return w
    if note.alteration != "none":
        # 同一指法的其它降音拼写：保住“降”的方向，幅度有损
        for level in FALLBACK_ALTERATIONS:
            w = table.lookup_by_fingering(pitch, level)
            if w is not None:
                return w
    raise MappingError(
        f"该指法在对照表中没有西洋拼写（alteration={note.alteration}）",
        note_index=index,
        token=f"{pitch.step}{pitch.octave}",
    )


def _note_type(d: Fraction) -> str:
    if d >= 4:
        return "whole"
    if d >= 2:
        return "half"
    if d >= 1:
        return "quarter"
    if d >= Fraction(1, 2):
        return "eighth"
    if d >= Fraction(1, 4):
        return "16th"
    return "32nd"


def _note_ticks(d: Fraction) -> int:
    return int(_ticks_to_duration(d * DIVISIONS))


def _note_lines(note: ScoreNote, index: int, table: PitchTable) -> list[str]:
    d = as_fraction(note.duration)
    out = ["      <note>"]
    if note.rest:
        out.append("        <rest/>")
    else:
        w = _written_pitch(note, index, table)
        out.append("        <pitch>")
        out.append(f"          <step>{w.letter}</step>")
        if w.alter != 0:
            out.append(f"          <alter>{w.alter}</alter>")
        out.append(f"          <octave>{w.octave}</octave>")
        out.append("        </pitch>")
    out.append(f"        <duration>{_note_ticks(d)}</duration>")
    out.append(f"        <type>{_note_type(d)}</type>")
    if note.dotted:
        out.append("        <dot/>")
    out.append("      </note>")
    return out


def serialize_musicxml(score: ScoreModel, *, table: PitchTable | None = None) -> str:
    """ScoreModel → MusicXML 文本（单声部、单小节）。"""

    table = table or kinko_pitch_table()
    fifths = FIFTHS_BY_MAJOR_KEY.get(_strip(score.key), DEFAULT_FIFTHS)

    lines = [
        XML_DECLARATION,
        DOCTYPE,
        '<score-partwise version="3.1">',
        "  <work>",
        f"    <work-title>{_escape(score.title)}</work-title>",
        "  </work>",
    ]
    if score.composer:
        lines += [
            "  <identification>",
            f'    <creator type="composer">{_escape(score.composer)}</creator>',
            "  </identification>",
        ]
    lines += [
        "  <part-list>",
        '    <score-part id="P1">',
        f"      <part-name>{_escape(PART_NAME)}</part-name>",
        "    </score-part>",
        "  </part-list>",
        '  <part id="P1">',
        '    <measure number="1">',
        "      <attributes>",
        f"        <divisions>{DIVISIONS}</divisions>",
        "        <key>",
        f"          <fifths>{fifths}</fifths>",
        "        </key>",
        "        <time>",
        "          <beats>4</beats>",
        "          <beat-type>4</beat-type>",
        "        </time>",
        "        <clef>",
        "          <sign>G</sign>",
        "          <line>2</line>",
        "        </clef>",
        "      </attributes>",
    ]
    if score.tempo and _NUMERIC_TEMPO_RE.match(score.tempo.strip()):
        lines += [
            '      <direction placement="above">',
            "        <direction-type>",
            "          <words/>",
            "        </direction-type>",
            f'        <sound tempo="{_escape(score.tempo.strip())}"/>',
            "      </direction>",
        ]
    for i, note in enumerate(score.notes):
        lines.extend(_note_lines(note, i, table))
    lines += [
        "    </measure>",
        "  </part>",
        "</score-partwise>",
    ]
    return "\n".join(lines) + "\n"
