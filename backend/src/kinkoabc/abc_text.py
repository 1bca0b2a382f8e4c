"""
ABC 文本谱：header 扫描与音符 token 分词。

语法（本仓库支持的子集）：
- header：`字母:值` 行，依次出现，直到 `K:` 行结束；`%` 开头为注释，空行忽略。
- 正文：空白分隔的 token 流；小节线（`|`、`||`、`|]`、`[|`、`|:`、`:|`、`::`）被忽略。
- 音符 token = 变音前缀（`^` `_` `=` `^^` `__`）? + 字母 + 八度号（`'` `,`）* + 时值后缀? + 附点标记（`>` 或 `<`）?
- 时值后缀：`n`、`/n`、`n/m`；空后缀 = 1 拍。
- 休止符使用保留字母 `z`，时值后缀语法相同。

约束：
- 无法分词的片段、未知字母、畸形时值后缀一律抛 `AbcSyntaxError`（ValueError 子类），不跳过。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction


REST_LETTER = "z"
NOTE_LETTERS = frozenset("ABCDEFGabcdefg")

ACCIDENTAL_TO_ALTER = {"": 0, "=": 0, "^": 1, "_": -1, "^^": 2, "__": -2}
ALTER_TO_ACCIDENTAL = {0: "", 1: "^", -1: "_", 2: "^^", -2: "__"}

# 最长优先
BAR_TOKENS = ["|]", "[|", "||", "|:", ":|", "::", "|"]

_FIELD_RE = re.compile(r"^([A-Za-z]):\s*(.*?)\s*$")
_NOTE_RE = re.compile(r"(\^\^|__|\^|_|=)?([A-Za-z])([',]*)([0-9/]*)([<>]?)")
_DURATION_RE = re.compile(r"(\d+)?(?:/(\d+))?")


class AbcSyntaxError(ValueError):
    """ABC 语法错误（带行号与出错片段）。"""

    def __init__(self, message: str, *, line_no: int | None = None, fragment: str | None = None) -> None:
        self.message = message
        self.line_no = line_no
        self.fragment = fragment
        where = f"line={line_no} " if line_no is not None else ""
        frag = f"片段={fragment!r} " if fragment is not None else ""
        super().__init__(f"{where}{frag}{message}".strip())


@dataclass(frozen=True)
class AbcHeader:
    key: str
    title: str | None = None
    composer: str | None = None
    tempo: str | None = None
    meter: str | None = None
    unit_length: str | None = None


@dataclass(frozen=True)
class AbcNoteToken:
    text: str
    accidental: str
    letter: str
    octave_marks: str
    duration: Fraction
    dotted: bool
    line_no: int

    @property
    def is_rest(self) -> bool:
        return self.letter == REST_LETTER

    @property
    def alter(self) -> int:
        return ACCIDENTAL_TO_ALTER[self.accidental]

    @property
    def western_octave(self) -> int:
        """大写字母 = 第 4 八度，小写 = 第 5 八度；每个 `'` 升一个八度，每个 `,` 降一个八度。"""

        base = 4 if self.letter.isupper() else 5
        return base + self.octave_marks.count("'") - self.octave_marks.count(",")


@dataclass(frozen=True)
class AbcDocument:
    header: AbcHeader
    tokens: tuple[AbcNoteToken, ...]


def parse_duration_suffix(suffix: str) -> Fraction:
    """解析时值后缀：'' → 1，'2' → 2，'/2' → 1/2，'3/2' → 3/2。"""

    if suffix == "":
        return Fraction(1)
    m = _DURATION_RE.fullmatch(suffix)
    if not m or (m.group(1) is None and m.group(2) is None):
        raise ValueError(f"畸形时值后缀：{suffix!r}")
    num = int(m.group(1)) if m.group(1) is not None else 1
    den = int(m.group(2)) if m.group(2) is not None else 1
    if num == 0 or den == 0:
        raise ValueError(f"时值后缀不能含 0：{suffix!r}")
    return Fraction(num, den)


def format_duration_suffix(d: Fraction) -> str:
    """时值 → 最短后缀；默认单位 1 折叠为空串。"""

    if d <= 0:
        raise ValueError(f"duration 必须为正：{d}")
    if d == 1:
        return ""
    if d.denominator == 1:
        return str(d.numerator)
    if d.numerator == 1:
        return f"/{d.denominator}"
    return f"{d.numerator}/{d.denominator}"


def _strip_comment(line: str) -> str:
    i = line.find("%")
    return line if i < 0 else line[:i]


def _tokenize_body_line(line: str, line_no: int) -> list[AbcNoteToken]:
    out: list[AbcNoteToken] = []
    i = 0
    n = len(line)
    while i < n:
        if line[i].isspace():
            i += 1
            continue

        bar = next((b for b in BAR_TOKENS if line.startswith(b, i)), None)
        if bar is not None:
            i += len(bar)
            continue

        m = _NOTE_RE.match(line, i)
        if m is None:
            raise AbcSyntaxError("无法分词", line_no=line_no, fragment=line[i : i + 8])
        text = m.group(0)
        accidental, letter, octave_marks, dur_text, dot = (g or "" for g in m.groups())

        if letter != REST_LETTER and letter not in NOTE_LETTERS:
            raise AbcSyntaxError(f"无法识别的字母：{letter!r}", line_no=line_no, fragment=text)
        if letter == REST_LETTER and (accidental or octave_marks):
            raise AbcSyntaxError("休止符不能带变音或八度号", line_no=line_no, fragment=text)
        try:
            duration = parse_duration_suffix(dur_text)
        except ValueError as e:
            raise AbcSyntaxError(str(e), line_no=line_no, fragment=text) from e

        out.append(
            AbcNoteToken(
                text=text,
                accidental=accidental,
                letter=letter,
                octave_marks=octave_marks,
                duration=duration,
                dotted=dot != "",
                line_no=line_no,
            )
        )
        i = m.end()
    return out


def parse_abc_text(text: str) -> AbcDocument:
    """两阶段扫描：header（直到 K:）→ 正文 token 流。

    注意：本函数不检查“零音符”，由上层决定（它是结构错误而非语法错误）。
    """

    lines = text.splitlines()
    fields: dict[str, str] = {}
    key: str | None = None
    body_start = len(lines)

    for idx, raw in enumerate(lines):
        line = raw.strip()
        if line == "" or line.startswith("%"):
            continue
        m = _FIELD_RE.match(line)
        if not m:
            raise AbcSyntaxError("header 中出现非字段行（缺少 K: 字段？）", line_no=idx + 1, fragment=line[:16])
        name, value = m.group(1), m.group(2)
        if name == "K":
            key = value
            body_start = idx + 1
            break
        # 同名字段只取第一次出现
        fields.setdefault(name, value)

    if key is None:
        raise AbcSyntaxError("缺少 K: 字段（header 必须以 K: 行结束）")

    tokens: list[AbcNoteToken] = []
    for idx in range(body_start, len(lines)):
        line = _strip_comment(lines[idx]).rstrip()
        if line.strip() == "":
            continue
        if _FIELD_RE.match(line.strip()):
            raise AbcSyntaxError("正文中不支持字段行", line_no=idx + 1, fragment=line.strip()[:16])
        tokens.extend(_tokenize_body_line(line, idx + 1))

    header = AbcHeader(
        key=key,
        title=fields.get("T") or None,
        composer=fields.get("C") or None,
        tempo=fields.get("Q") or None,
        meter=fields.get("M") or None,
        unit_length=fields.get("L") or None,
    )
    return AbcDocument(header=header, tokens=tuple(tokens))


def spell_note_token(*, alter: int, letter: str, octave: int, duration: Fraction, dotted: bool) -> str:
    """西洋拼写 + 时值 → ABC token（使用最短写法：本音不写 `=`）。"""

    if letter == REST_LETTER:
        return f"{REST_LETTER}{format_duration_suffix(duration)}{'>' if dotted else ''}"
    if alter not in ALTER_TO_ACCIDENTAL:
        raise ValueError(f"alter 超出 ABC 可表示范围：{alter}")
    base = letter.upper()
    if octave <= 4:
        body = base + "," * (4 - octave)
    else:
        body = base.lower() + "'" * (octave - 5)
    return f"{ALTER_TO_ACCIDENTAL[alter]}{body}{format_duration_suffix(duration)}{'>' if dotted else ''}"
