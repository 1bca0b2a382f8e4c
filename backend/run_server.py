"""
ShakuScore 后端开发服务器启动脚本。

定位：
- 包通过仓库根目录的 pyproject.toml 安装（`pip install -e .`），这里只负责解析参数并启动 uvicorn。
- 约定后端端口为 7140。

用法：
  python backend/run_server.py

可选参数（透传给 uvicorn）：
  python backend/run_server.py --reload
  python backend/run_server.py --host 0.0.0.0 --port 7140 --log-level debug
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn


def main() -> None:
    backend_dir = Path(__file__).resolve().parent
    src_dir = backend_dir / "src"

    parser = argparse.ArgumentParser(add_help=True)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=7140)
    parser.add_argument("--reload", action="store_true", default=False)
    parser.add_argument("--log-level", default="info")
    args, unknown = parser.parse_known_args(sys.argv[1:])
    if unknown:
        raise SystemExit(f"不支持的参数：{unknown!r}")

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # --reload 只 watch 后端源码目录，避免仓库内其它文件触发重载
    reload_dirs = [str(src_dir)] if args.reload else None

    uvicorn.run(
        "shakuscore_backend.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=reload_dirs,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
