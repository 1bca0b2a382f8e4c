"""
西洋音高 ↔ 尺八指法对照表（PitchTable）。

定位：
- 三种格式编解码器与修饰符解析（就近音区规则）共用的静态只读数据。
- 数据来自包内 `data/kinko_pitch_map_d.yaml`，进程内只加载一次（lru_cache），可被并发只读访问。

约束：
- 表外音高返回 None（NotFound），不抛错；是否致命由调用方决定。
- 反查（指法 → 西洋拼写）存在多个等音拼写时，确定性地选最简拼写：
  先比拼写长度，再按 natural > sharp > flat 的固定偏好。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from .score import ALTERATIONS, PITCH_STEPS, REGISTERS, Pitch


STEP_TO_SEMITONE = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}

ACCIDENTAL_TO_ALTER = {"": 0, "#": 1, "b": -1}
ALTER_TO_ACCIDENTAL = {0: "", 1: "#", -1: "b", 2: "##", -2: "bb"}

# 反查的等音偏好：natural > sharp > flat（> 重升 > 重降）
ALTER_PREFERENCE = {0: 0, 1: 1, -1: 2, 2: 3, -2: 4}

# 表外（step, register, alteration）推算实际音高时使用的名义降音半音数
ALTERATION_SEMITONES = {"none": 0, "half": 1, "quarter": 1, "whole": 2}

_WESTERN_RE = re.compile(r"^([A-Ga-g])(#|b)?(-?\d)$")


@dataclass(frozen=True)
class WesternPitch:
    """西洋拼写三元组（letter/alter/octave），C4 为中央 C。"""

    letter: str
    octave: int
    alter: int = 0

    @property
    def spelling(self) -> str:
        return f"{self.letter}{ALTER_TO_ACCIDENTAL.get(self.alter, '?')}{self.octave}"

    def to_midi(self) -> int:
        letter = self.letter.strip().upper()
        if letter not in STEP_TO_SEMITONE:
            raise ValueError(f"未知 letter：{self.letter!r}")
        if not (-2 <= self.alter <= 2):
            raise ValueError(f"alter 超出常见范围（-2..2）：{self.alter}")
        # C4=60；MIDI 以 C-1=0，因此 midi = (octave+1)*12 + pc
        return int((self.octave + 1) * 12 + STEP_TO_SEMITONE[letter] + int(self.alter))


def parse_western(text: str) -> WesternPitch:
    """解析 "C#4" / "Bb5" / "D6" 之类的拼写。"""

    m = _WESTERN_RE.match(text.strip())
    if not m:
        raise ValueError(f"无法解析西洋音高拼写：{text!r}")
    letter, acc, octave = m.group(1).upper(), m.group(2) or "", int(m.group(3))
    return WesternPitch(letter=letter, octave=octave, alter=ACCIDENTAL_TO_ALTER[acc])


def _spelling_rank(w: WesternPitch) -> tuple[int, int]:
    return (len(w.spelling), ALTER_PREFERENCE.get(w.alter, 99))


@dataclass(frozen=True, eq=False)
class PitchTable:
    name: str
    by_western: dict[tuple[str, int, int], tuple[Pitch, str]]
    by_fingering: dict[tuple[Pitch, str], WesternPitch]

    def lookup_by_western(self, letter: str, alter: int, octave: int) -> tuple[Pitch, str] | None:
        """西洋拼写 → (Pitch, alteration)；表外返回 None。"""

        return self.by_western.get((letter.strip().upper(), int(alter), int(octave)))

    def lookup_by_fingering(self, pitch: Pitch, alteration: str = "none") -> WesternPitch | None:
        """(Pitch, alteration) → 最简西洋拼写；表外返回 None。"""

        return self.by_fingering.get((pitch, alteration))

    def registers_for(self, step: str) -> tuple[int, ...]:
        """该 step 在表内有“本音”（无降音）条目的音区。"""

        return tuple(r for r in REGISTERS if (Pitch(step, r), "none") in self.by_fingering)

    def natural_midi(self, step: str, register: int) -> int:
        """某指法本音的绝对音高（MIDI）。

        表内缺该音区时，从最近的表内音区按八度外推。
        """

        w = self.by_fingering.get((Pitch(step, register), "none"))
        if w is not None:
            return w.to_midi()
        available = self.registers_for(step)
        if not available:
            raise ValueError(f"PitchTable 中没有 step={step!r} 的任何本音条目")
        nearest = min(available, key=lambda r: (abs(r - register), r))
        return self.natural_midi(step, nearest) + 12 * (register - nearest)

    def sounding_midi(self, pitch: Pitch, alteration: str = "none") -> int:
        """指法 + 降音的实际音高（MIDI），表外组合按名义半音数推算。"""

        w = self.lookup_by_fingering(pitch, alteration)
        if w is not None:
            return w.to_midi()
        return self.natural_midi(pitch.step, pitch.octave) - ALTERATION_SEMITONES[alteration]


def build_pitch_table(name: str, entries: list[dict[str, Any]]) -> PitchTable:
    by_western: dict[tuple[str, int, int], tuple[Pitch, str]] = {}
    by_fingering: dict[tuple[Pitch, str], WesternPitch] = {}

    for i, e in enumerate(entries):
        if not isinstance(e, dict):
            raise ValueError(f"PitchTable: entries[{i}] 必须是 dict")
        w = parse_western(str(e.get("western", "")))
        step = e.get("step")
        register = e.get("register")
        alteration = e.get("alteration", "none")
        if step not in PITCH_STEPS:
            raise ValueError(f"PitchTable: entries[{i}] 未知 step：{step!r}")
        if register not in REGISTERS:
            raise ValueError(f"PitchTable: entries[{i}] register 必须是 0/1/2：{register!r}")
        if alteration not in ALTERATIONS:
            raise ValueError(f"PitchTable: entries[{i}] 未知 alteration：{alteration!r}")

        key = (w.letter, w.alter, w.octave)
        if key in by_western:
            raise ValueError(f"PitchTable: 重复的西洋拼写：{w.spelling}")
        pitch = Pitch(step=step, octave=register)
        by_western[key] = (pitch, alteration)

        existing = by_fingering.get((pitch, alteration))
        if existing is None or _spelling_rank(w) < _spelling_rank(existing):
            by_fingering[(pitch, alteration)] = w

    return PitchTable(name=name, by_western=by_western, by_fingering=by_fingering)


def load_pitch_table(path: Path) -> PitchTable:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("PitchTable: 顶层必须是 dict")
    entries = raw.get("entries")
    if not isinstance(entries, list) or not entries:
        raise ValueError("PitchTable: 缺少非空 entries list")
    return build_pitch_table(str(raw.get("instrument", path.stem)), entries)


@lru_cache(maxsize=1)
def kinko_pitch_table() -> PitchTable:
    """默认对照表（琴古流 D 管）。"""

    path = Path(__file__).resolve().parent.parent / "data" / "kinko_pitch_map_d.yaml"
    if not path.exists():
        raise FileNotFoundError(f"缺少 PitchTable 数据文件：{path}")
    return load_pitch_table(path)
