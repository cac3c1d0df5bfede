"""
borntensor - Born 弹性刚度张量计算

由对势、键、键角与二面角相互作用的解析应变二阶导数，计算体系 Born 张量的
21 个独立 Voigt 分量，并在多个工作进程间求和归约。
"""

__version__ = "1.0.0"
__author__ = "Gilbert"

from . import core, elastic, potentials, utils

__all__ = ["core", "elastic", "potentials", "utils"]
