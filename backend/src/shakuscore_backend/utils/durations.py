"""
时值（duration）有理数工具。

约定：
- ScoreNote.duration 以“拍”为单位：1 = 四分音符，2 = 二分，4 = 全音符，1/2 = 八分。
- 内部统一使用 `fractions.Fraction`，避免 0.1 之类的浮点误差进入格式互转。
"""

from __future__ import annotations

import math
import re
from fractions import Fraction
from numbers import Rational


_RATIO_RE = re.compile(r"^\s*(\d+)\s*/\s*(\d+)\s*$")


def as_fraction(value: object) -> Fraction:
    """把 int / Fraction / float / "n/d" 字符串转换为 Fraction。"""

    if isinstance(value, bool):
        raise ValueError(f"duration 不能是 bool：{value!r}")
    if isinstance(value, Fraction):
        return value
    if isinstance(value, (int, Rational)):
        return Fraction(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"duration 必须是有限数：{value!r}")
        # 走 repr 而不是二进制展开：0.1 → 1/10
        return Fraction(repr(value))
    if isinstance(value, str):
        m = _RATIO_RE.match(value)
        if m:
            den = int(m.group(2))
            if den == 0:
                raise ValueError(f"duration 分母为 0：{value!r}")
            return Fraction(int(m.group(1)), den)
        try:
            return Fraction(value.strip())
        except (ValueError, ZeroDivisionError) as e:
            raise ValueError(f"无法解析 duration：{value!r}") from e
    raise ValueError(f"不支持的 duration 类型：{type(value).__name__}")


def is_binary_fraction(d: Fraction) -> bool:
    """分母是否为 2 的幂（即 float 可精确表示）。"""

    den = d.denominator
    return den & (den - 1) == 0


def duration_to_json(d: Fraction) -> int | float | str:
    """JSON 编码：整数 → int；二进制分数 → float；其它有理数 → "n/d"。"""

    if d.denominator == 1:
        return int(d.numerator)
    if is_binary_fraction(d):
        return float(d)
    return f"{d.numerator}/{d.denominator}"
