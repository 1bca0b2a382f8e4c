"""
格式互转 + 分列布局演示脚本（开发期）。

目标：
- 读取一个示例乐谱（默认 docs/data/examples/tsuru_excerpt.abc）
- 转成另外两种格式并写到 temp/out_convert/
- 解析修饰符并按给定视口计算分列布局，打印每列的音符范围与 y 序列

运行：
  python scripts/backend_convert_try.py
  python scripts/backend_convert_try.py docs/data/examples/out_of_range_input.musicxml --from musicxml --height 300
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from shakuscore_backend.domain.formats import FORMATS, convert_with_warnings, parse_with_warnings
from shakuscore_backend.domain.modifiers import resolve_modifiers
from shakuscore_backend.engines.column_layout import layout_columns
from shakuscore_backend.render_options import RenderOptions
from shakuscore_backend.utils.paths import examples_dir, find_repo_root


SUFFIX = {"json": ".json", "musicxml": ".musicxml", "abc": ".abc"}


def _guess_format(path: Path) -> str:
    for fmt, suffix in SUFFIX.items():
        if path.suffix == suffix:
            return fmt
    raise SystemExit(f"无法从扩展名推断格式：{path.name}（请使用 --from）")


def main() -> None:
    parser = argparse.ArgumentParser(add_help=True)
    parser.add_argument("input", nargs="?", default=str(examples_dir() / "tsuru_excerpt.abc"))
    parser.add_argument("--from", dest="from_format", choices=FORMATS, default=None)
    parser.add_argument("--width", type=float, default=400)
    parser.add_argument("--height", type=float, default=600)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    src = Path(args.input)
    from_format = args.from_format or _guess_format(src)
    text = src.read_text(encoding="utf-8")

    out_dir = find_repo_root() / "temp" / "out_convert"
    out_dir.mkdir(parents=True, exist_ok=True)
    for to_format in FORMATS:
        if to_format == from_format:
            continue
        converted, warnings = convert_with_warnings(text, from_format, to_format)
        out = out_dir / f"{src.stem}{SUFFIX[to_format]}"
        out.write_text(converted, encoding="utf-8")
        print(f"[OK] {from_format} → {to_format}: {out} (warnings={len(warnings)})")

    result = parse_with_warnings(text, from_format)
    options = RenderOptions()
    decorated = resolve_modifiers(result.score.notes, options)
    layout = layout_columns(decorated, args.width, args.height, options.layout_options())
    print(f"title={result.score.title!r} notes={len(decorated)} columns={layout.total_columns} capacity={layout.capacity}")
    for col in layout.columns:
        ys = [p.y for p in col.note_positions]
        print(f"  col {col.index}: x={col.x_position:.1f} notes=[{col.note_start},{col.note_end}) y={ys}")


if __name__ == "__main__":
    main()
