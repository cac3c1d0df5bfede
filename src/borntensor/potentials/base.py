#!/usr/bin/env python3
"""
borntensor - 相互作用风格基类模块

每类相互作用（对势、键、键角、二面角、非正常二面角）一个抽象基类，
约定 Born 计算所需的导数接口与有限差分校验所需的能量接口。

.. moduleauthor:: Gilbert Young
"""

import math
from abc import ABC, abstractmethod

import numpy as np


def _type_table(coeffs: dict, name: str, ntypes: int | None = None) -> dict:
    """将 ``{type: params}`` 规范化为整数键，并检查类型编号为正"""
    table = {}
    for key, params in coeffs.items():
        t = int(key)
        if t <= 0:
            raise ValueError(f"{name} 类型编号必须为正整数，得到 {key}")
        if ntypes is not None and t > ntypes:
            raise ValueError(f"{name} 类型编号 {t} 超出类型数 {ntypes}")
        table[t] = params
    return table


class Style(ABC):
    """相互作用风格的公共部分

    Attributes
    ----------
    name : str
        风格名称（如 ``"lj/cut"``、``"harmonic"``）
    born_enable : bool
        是否提供 Born 导数
    """

    name = "none"
    born_enable = True

    def coeff(self, itype: int, table: dict, kind: str):
        try:
            return table[int(itype)]
        except KeyError as e:
            raise KeyError(f"{self.name} {kind} 类型 {itype} 缺少系数") from e

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r}, born_enable={self.born_enable})"


class PairStyle(Style):
    """对势风格

    Attributes
    ----------
    cutsq : numpy.ndarray
        ``cutsq[itype, jtype]`` 截断半径平方，形状 (ntypes+1, ntypes+1)
    cutoff : float
        最大截断半径
    """

    cutsq: np.ndarray
    cutoff: float

    @abstractmethod
    def born(self, i, j, itype, jtype, rsq, factor_coul, factor_lj):
        """返回 ``(du, du2)``：能量对间距 r 的一阶、二阶导数（已乘缩放因子）"""
        raise NotImplementedError

    @abstractmethod
    def energy(self, itype, jtype, rsq, factor_coul=1.0, factor_lj=1.0) -> float:
        raise NotImplementedError


class BondStyle(Style):
    @abstractmethod
    def born(self, btype, rsq, atom1, atom2):
        """返回 ``(du, du2)``：能量对键长的一阶、二阶导数"""
        raise NotImplementedError

    @abstractmethod
    def energy(self, btype, rsq) -> float:
        raise NotImplementedError


class AngularStyle(Style):
    """以余弦为自变量的键角/二面角风格基类

    子类只需实现 :meth:`derivatives` 与 :meth:`energy`，几何量由 :meth:`cosine`
    从晶胞中计算。
    """

    @abstractmethod
    def derivatives(self, itype: int, c: float) -> tuple[float, float]:
        """返回 ``(dU/dcos, d2U/dcos2)``"""
        raise NotImplementedError

    @abstractmethod
    def energy(self, itype: int, c: float) -> float:
        raise NotImplementedError


class AngleStyle(AngularStyle):
    def cosine(self, cell, atom1, atom2, atom3) -> float:
        from borntensor.elastic.born.angles import angle_cosine

        return angle_cosine(cell, atom1, atom2, atom3)

    def born(self, cell, atype, atom1, atom2, atom3):
        """返回 ``(dU/dcosθ, d²U/dcos²θ)``，θ 以 atom2 为顶点"""
        return self.derivatives(atype, self.cosine(cell, atom1, atom2, atom3))


class DihedralStyle(AngularStyle):
    def cosine(self, cell, atom1, atom2, atom3, atom4) -> float:
        from borntensor.elastic.born.dihedrals import dihedral_angle

        return dihedral_angle(cell, atom1, atom2, atom3, atom4)[0]

    def born(self, cell, dtype, atom1, atom2, atom3, atom4):
        """返回 ``(dU/dcosφ, d²U/dcos²φ)``"""
        return self.derivatives(dtype, self.cosine(cell, atom1, atom2, atom3, atom4))


class ImproperStyle(Style):
    """非正常二面角风格；Born 计算从不使用"""

    born_enable = False

    @abstractmethod
    def energy(self, itype: int, chi: float) -> float:
        raise NotImplementedError


def theta_to_cos_derivatives(dtheta: float, d2theta: float, c: float):
    r"""将对角度的导数换算为对余弦的导数

    .. math::
        \frac{dU}{dc} = -\frac{U'(\theta)}{s},\qquad
        \frac{d^2U}{dc^2} = \frac{U''(\theta)}{s^2} - \frac{U'(\theta)\,c}{s^3}

    其中 :math:`s = \sin\theta`；:math:`s` 极小时按 0.001 截断。
    """
    s = math.sqrt(max(1.0 - c * c, 0.0))
    s = max(s, 0.001)
    return -dtheta / s, d2theta / (s * s) - dtheta * c / (s * s * s)
