#!/usr/bin/env python3
r"""
borntensor - 成键相互作用风格模块

.. moduleauthor:: Gilbert Young

提供以下成键风格：

==========================  ==================================================
风格                        能量形式
==========================  ==================================================
``bond harmonic``           :math:`K (r - r_0)^2`
``bond morse``              :math:`D\,[1 - e^{-\alpha (r - r_0)}]^2`
``angle harmonic``          :math:`K (\theta - \theta_0)^2`
``angle cosine/squared``    :math:`K (\cos\theta - \cos\theta_0)^2`
``dihedral harmonic``       :math:`K\,[1 + d\cos(n\phi)]`，:math:`d=\pm1`
``improper harmonic``       :math:`K (\chi - \chi_0)^2`（不提供 Born 导数）
==========================  ==================================================

角度参数以度为单位给出。
"""

import logging
import math

from numpy.polynomial import chebyshev

from .base import (
    AngleStyle,
    BondStyle,
    DihedralStyle,
    ImproperStyle,
    _type_table,
    theta_to_cos_derivatives,
)

logger = logging.getLogger(__name__)


class HarmonicBond(BondStyle):
    """谐振键 ``K (r - r0)^2``

    Parameters
    ----------
    coeffs : dict
        ``{btype: {"k": K, "r0": r0}}``
    """

    name = "harmonic"

    def __init__(self, coeffs: dict):
        self.coeffs = _type_table(coeffs, "bond harmonic")

    def born(self, btype, rsq, atom1, atom2):
        p = self.coeff(btype, self.coeffs, "bond")
        dr = math.sqrt(rsq) - p["r0"]
        return 2.0 * p["k"] * dr, 2.0 * p["k"]

    def energy(self, btype, rsq) -> float:
        p = self.coeff(btype, self.coeffs, "bond")
        dr = math.sqrt(rsq) - p["r0"]
        return p["k"] * dr * dr


class MorseBond(BondStyle):
    r"""Morse 键 :math:`D [1 - e^{-\alpha(r-r_0)}]^2`

    Parameters
    ----------
    coeffs : dict
        ``{btype: {"d0": D, "alpha": alpha, "r0": r0}}``
    """

    name = "morse"

    def __init__(self, coeffs: dict):
        self.coeffs = _type_table(coeffs, "bond morse")

    def born(self, btype, rsq, atom1, atom2):
        p = self.coeff(btype, self.coeffs, "bond")
        e = math.exp(-p["alpha"] * (math.sqrt(rsq) - p["r0"]))
        du = 2.0 * p["d0"] * p["alpha"] * e * (1.0 - e)
        du2 = 2.0 * p["d0"] * p["alpha"] ** 2 * e * (2.0 * e - 1.0)
        return du, du2

    def energy(self, btype, rsq) -> float:
        p = self.coeff(btype, self.coeffs, "bond")
        e = math.exp(-p["alpha"] * (math.sqrt(rsq) - p["r0"]))
        return p["d0"] * (1.0 - e) ** 2


class HarmonicAngle(AngleStyle):
    """谐振键角 ``K (theta - theta0)^2``

    Parameters
    ----------
    coeffs : dict
        ``{atype: {"k": K, "theta0": 度}}``
    """

    name = "harmonic"

    def __init__(self, coeffs: dict):
        self.coeffs = {
            t: {"k": float(p["k"]), "theta0": math.radians(p["theta0"])}
            for t, p in _type_table(coeffs, "angle harmonic").items()
        }

    def derivatives(self, itype, c):
        p = self.coeff(itype, self.coeffs, "angle")
        dtheta = math.acos(min(max(c, -1.0), 1.0)) - p["theta0"]
        return theta_to_cos_derivatives(2.0 * p["k"] * dtheta, 2.0 * p["k"], c)

    def energy(self, itype, c) -> float:
        p = self.coeff(itype, self.coeffs, "angle")
        dtheta = math.acos(min(max(c, -1.0), 1.0)) - p["theta0"]
        return p["k"] * dtheta * dtheta


class CosineSquaredAngle(AngleStyle):
    """余弦平方键角 ``K (cos(theta) - cos(theta0))^2``"""

    name = "cosine/squared"

    def __init__(self, coeffs: dict):
        self.coeffs = {
            t: {"k": float(p["k"]), "c0": math.cos(math.radians(p["theta0"]))}
            for t, p in _type_table(coeffs, "angle cosine/squared").items()
        }

    def derivatives(self, itype, c):
        p = self.coeff(itype, self.coeffs, "angle")
        return 2.0 * p["k"] * (c - p["c0"]), 2.0 * p["k"]

    def energy(self, itype, c) -> float:
        p = self.coeff(itype, self.coeffs, "angle")
        return p["k"] * (c - p["c0"]) ** 2


class HarmonicDihedral(DihedralStyle):
    r"""谐振二面角 :math:`K[1 + d\cos(n\phi)]`

    利用 :math:`\cos(n\phi) = T_n(\cos\phi)`（第一类 Chebyshev 多项式），
    能量及其对余弦的导数均为 :math:`\cos\phi` 的多项式。

    Parameters
    ----------
    coeffs : dict
        ``{dtype: {"k": K, "d": ±1, "n": n >= 0}}``
    """

    name = "harmonic"

    def __init__(self, coeffs: dict):
        self.coeffs = {}
        for t, p in _type_table(coeffs, "dihedral harmonic").items():
            d = int(p["d"])
            n = int(p["n"])
            if d not in (-1, 1):
                raise ValueError(f"dihedral harmonic 的 d 必须为 ±1，得到 {d}")
            if n < 0:
                raise ValueError(f"dihedral harmonic 的 n 必须非负，得到 {n}")
            series = [0.0] * n + [1.0]
            self.coeffs[t] = {
                "k": float(p["k"]),
                "d": d,
                "t": series,
                "dt": chebyshev.chebder(series, 1),
                "d2t": chebyshev.chebder(series, 2),
            }

    def derivatives(self, itype, c):
        p = self.coeff(itype, self.coeffs, "dihedral")
        scale = p["k"] * p["d"]
        return (
            float(scale * chebyshev.chebval(c, p["dt"])),
            float(scale * chebyshev.chebval(c, p["d2t"])),
        )

    def energy(self, itype, c) -> float:
        p = self.coeff(itype, self.coeffs, "dihedral")
        return float(p["k"] * (1.0 + p["d"] * chebyshev.chebval(c, p["t"])))


class HarmonicImproper(ImproperStyle):
    """谐振非正常二面角；只用于演示不受支持风格的降级路径"""

    name = "harmonic"

    def __init__(self, coeffs: dict):
        self.coeffs = {
            t: {"k": float(p["k"]), "chi0": math.radians(p["chi0"])}
            for t, p in _type_table(coeffs, "improper harmonic").items()
        }

    def energy(self, itype, chi) -> float:
        p = self.coeff(itype, self.coeffs, "improper")
        return p["k"] * (chi - p["chi0"]) ** 2
