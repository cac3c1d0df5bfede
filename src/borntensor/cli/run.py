#!/usr/bin/env python3
"""YAML 场景入口（CLI）

使用示例::

    python -m borntensor.cli.run -c examples/lj_fcc.yaml

说明
----
- 本入口只负责 YAML 解析与场景调度；具体实现见 ``pipelines/*`` 模块。
"""

from __future__ import annotations

import argparse
import logging

from borntensor.core.config import ConfigManager
from borntensor.utils.utils import setup_logging

from .pipelines.born import run_born_pipeline


def main(argv: list[str] | None = None) -> int:
    """解析 YAML 并调度对应场景。"""
    ap = argparse.ArgumentParser(description="borntensor: YAML 驱动运行入口")
    ap.add_argument("-c", "--config", required=True, help="YAML配置文件路径")
    ap.add_argument(
        "-v", "--verbose", action="store_true", help="控制台输出 DEBUG 级别日志"
    )
    args = ap.parse_args(argv)

    cfg = ConfigManager(files=[args.config])

    name = cfg.get("run.name", cfg.get("scenario", "born"))
    outdir = cfg.make_output_dir(name)
    setup_logging(outdir, level=logging.DEBUG if args.verbose else logging.INFO)
    cfg.snapshot(outdir)
    log = logging.getLogger(__name__)

    scenario = str(cfg.get("scenario", "born")).lower()
    log.info(f"场景: {scenario} | 配置: {args.config}")

    if scenario in ("born", "born_matrix"):
        run_born_pipeline(cfg, outdir)
    else:
        raise ValueError(f"未知场景类型 scenario: {scenario}")

    log.info(f"完成。输出目录: {outdir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
