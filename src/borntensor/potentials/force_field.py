#!/usr/bin/env python3
"""
borntensor - 力场容器模块

``ForceField`` 汇总一个体系的全部相互作用风格与全局设置（特殊近邻缩放因子、
newton 标志），是 Born 计算与有限差分校验共同的输入。

.. moduleauthor:: Gilbert Young
"""

import logging
from dataclasses import dataclass, field

from .base import AngleStyle, BondStyle, DihedralStyle, ImproperStyle, PairStyle
from .bonded import (
    CosineSquaredAngle,
    HarmonicAngle,
    HarmonicBond,
    HarmonicDihedral,
    HarmonicImproper,
    MorseBond,
)
from .lennard_jones import LennardJonesPair

logger = logging.getLogger(__name__)

STYLE_REGISTRY = {
    "pair": {"lj/cut": LennardJonesPair},
    "bond": {"harmonic": HarmonicBond, "morse": MorseBond},
    "angle": {"harmonic": HarmonicAngle, "cosine/squared": CosineSquaredAngle},
    "dihedral": {"harmonic": HarmonicDihedral},
    "improper": {"harmonic": HarmonicImproper},
}


def make_style(kind: str, name: str, params: dict):
    """按类别与名称创建风格对象

    Parameters
    ----------
    kind : str
        ``pair``、``bond``、``angle``、``dihedral`` 或 ``improper``
    name : str
        风格名称，如 ``lj/cut``、``harmonic``
    params : dict
        传给风格构造函数的关键字参数

    Raises
    ------
    KeyError
        未知的类别或风格名称
    """
    try:
        registry = STYLE_REGISTRY[kind]
    except KeyError as e:
        raise KeyError(f"未知的相互作用类别: {kind}") from e
    try:
        cls = registry[name]
    except KeyError as e:
        raise KeyError(
            f"未知的 {kind} 风格: {name}，可用: {sorted(registry)}"
        ) from e
    return cls(**params)


def _check_factors(values, label):
    values = tuple(float(v) for v in values)
    if len(values) != 4:
        raise ValueError(f"{label} 需要 4 个元素（下标 0 为普通近邻），得到 {len(values)}")
    return values


@dataclass
class ForceField:
    """体系的相互作用集合

    Attributes
    ----------
    pair : PairStyle or None
    bond : BondStyle or None
    angle : AngleStyle or None
    dihedral : DihedralStyle or None
    improper : ImproperStyle or None
    special_lj, special_coul : tuple of float
        特殊近邻缩放因子，下标 0 为普通近邻（恒为 1），1/2/3 为 1-2/1-3/1-4
    newton_pair, newton_bond : bool
        归属规则标志
    """

    pair: PairStyle | None = None
    bond: BondStyle | None = None
    angle: AngleStyle | None = None
    dihedral: DihedralStyle | None = None
    improper: ImproperStyle | None = None
    special_lj: tuple = field(default=(1.0, 0.0, 0.0, 0.0))
    special_coul: tuple = field(default=(1.0, 0.0, 0.0, 0.0))
    newton_pair: bool = True
    newton_bond: bool = True

    def __post_init__(self):
        self.special_lj = _check_factors(self.special_lj, "special_lj")
        self.special_coul = _check_factors(self.special_coul, "special_coul")
        for attr, base in (
            ("pair", PairStyle),
            ("bond", BondStyle),
            ("angle", AngleStyle),
            ("dihedral", DihedralStyle),
            ("improper", ImproperStyle),
        ):
            style = getattr(self, attr)
            if style is not None and not isinstance(style, base):
                raise ValueError(f"{attr} 风格类型错误: {type(style).__name__}")

    @classmethod
    def from_config(cls, config: dict) -> "ForceField":
        """由配置字典创建

        配置示例::

            pair: {style: lj/cut, cutoff: 2.5, coeffs: {"1 1": {epsilon: 1.0, sigma: 1.0}}}
            bond: {style: harmonic, coeffs: {1: {k: 100.0, r0: 1.0}}}
            special_lj: [1.0, 0.0, 0.0, 0.5]
            newton_pair: true
        """
        styles = {}
        for kind in STYLE_REGISTRY:
            section = config.get(kind)
            if not section:
                continue
            section = dict(section)
            name = section.pop("style")
            if kind == "pair" and "coeffs" in section:
                section["coeffs"] = {
                    _pair_key(key): value for key, value in section["coeffs"].items()
                }
            styles[kind] = make_style(kind, name, section)
            logger.debug(f"Configured {kind} style '{name}'")

        return cls(
            **styles,
            special_lj=config.get("special_lj", (1.0, 0.0, 0.0, 0.0)),
            special_coul=config.get("special_coul", (1.0, 0.0, 0.0, 0.0)),
            newton_pair=bool(config.get("newton_pair", True)),
            newton_bond=bool(config.get("newton_bond", True)),
        )


def _pair_key(key):
    """``"1 2"``、``"1,2"`` 或 ``[1, 2]`` → ``(1, 2)``"""
    if isinstance(key, str):
        parts = key.replace(",", " ").split()
    else:
        parts = list(key)
    if len(parts) != 2:
        raise ValueError(f"对势系数键必须包含两个类型，得到 {key!r}")
    return int(parts[0]), int(parts[1])
