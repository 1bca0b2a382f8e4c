"""
路径与仓库定位工具。

定位：
- 手动脚本（scripts/*_try.py）与测试需要读取仓库内 `docs/data/examples/` 的示例乐谱。
- 包内数据（PitchTable YAML）随包安装，不经过这里。
"""

from __future__ import annotations

from pathlib import Path


def find_repo_root(start: Path | None = None) -> Path:
    """向上搜索仓库根目录（基于目录特征）。"""

    cur = (start or Path(__file__)).resolve()
    if cur.is_file():
        cur = cur.parent

    for _ in range(20):
        if (cur / "backend").exists() and (cur / "docs").exists() and (cur / "pyproject.toml").exists():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    raise RuntimeError("无法定位仓库根目录（未找到 backend/docs/pyproject.toml）")


def docs_data_dir() -> Path:
    return find_repo_root() / "docs" / "data"


def examples_dir() -> Path:
    return docs_data_dir() / "examples"
