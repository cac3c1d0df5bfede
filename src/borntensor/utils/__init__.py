"""
工具模块 - 邻居列表、日志、记录与绘图
"""

from .utils import EV_TO_GPA, NEIGHMASK, SBBITS, NeighborList, sbmask, setup_logging

__all__ = [
    "EV_TO_GPA",
    "NEIGHMASK",
    "SBBITS",
    "NeighborList",
    "sbmask",
    "setup_logging",
]
