#!/usr/bin/env python3
"""
borntensor - 相互作用风格模块

提供 Born 计算所需的对势、键、键角、二面角风格以及力场容器。
采用延迟导入模式以避免循环依赖并提高加载性能。

.. moduleauthor:: Gilbert Young
"""

# 1. 定义公开接口
__all__ = [
    "PairStyle",
    "BondStyle",
    "AngleStyle",
    "DihedralStyle",
    "ImproperStyle",
    "LennardJonesPair",
    "HarmonicBond",
    "MorseBond",
    "HarmonicAngle",
    "CosineSquaredAngle",
    "HarmonicDihedral",
    "HarmonicImproper",
    "ForceField",
    "make_style",
]

_BASE = {"PairStyle", "BondStyle", "AngleStyle", "DihedralStyle", "ImproperStyle"}
_BONDED = {
    "HarmonicBond",
    "MorseBond",
    "HarmonicAngle",
    "CosineSquaredAngle",
    "HarmonicDihedral",
    "HarmonicImproper",
}


# 2. 使用 __getattr__ 实现延迟加载
def __getattr__(name):
    if name in _BASE:
        from . import base

        return getattr(base, name)
    elif name == "LennardJonesPair":
        from .lennard_jones import LennardJonesPair

        return LennardJonesPair
    elif name in _BONDED:
        from . import bonded

        return getattr(bonded, name)
    elif name in ("ForceField", "make_style"):
        from . import force_field

        return getattr(force_field, name)
    else:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
