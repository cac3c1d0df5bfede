#!/usr/bin/env python3
r"""
borntensor - Lennard-Jones 对势模块

.. moduleauthor:: Gilbert Young

Lennard–Jones (12–6) 势用于近似描述惰性原子间的范德华作用：

.. math::
   V(r) = 4\,\varepsilon\Big[\Big(\frac{\sigma}{r}\Big)^{12} - \Big(\frac{\sigma}{r}\Big)^6\Big]

其中 :math:`\varepsilon` 为势阱深度（eV），:math:`\sigma` 为零势能点对应长度（Å）。
Born 计算所需的导数：

.. math::
   V'(r) = 4\varepsilon\Big(-12\frac{\sigma^{12}}{r^{13}} + 6\frac{\sigma^{6}}{r^{7}}\Big),\qquad
   V''(r) = 4\varepsilon\Big(156\frac{\sigma^{12}}{r^{14}} - 42\frac{\sigma^{6}}{r^{8}}\Big)

References
----------
- J. E. Jones (1924), On the Determination of Molecular Fields.
  I. From the Variation of the Viscosity of a Gas with Temperature.
  Proceedings of the Royal Society A, 106(738), 441–462. doi:10.1098/rspa.1924.0081
"""

import logging

import numpy as np
from numba import jit

from .base import PairStyle

logger = logging.getLogger(__name__)


@jit(nopython=True)
def _lj_derivatives(rsq, epsilon, sigma):
    r2inv = 1.0 / rsq
    rinv = np.sqrt(r2inv)
    sr6 = (sigma * sigma * r2inv) ** 3
    sr12 = sr6 * sr6
    du = 4.0 * epsilon * (-12.0 * sr12 + 6.0 * sr6) * rinv
    du2 = 4.0 * epsilon * (156.0 * sr12 - 42.0 * sr6) * r2inv
    return du, du2


class LennardJonesPair(PairStyle):
    r"""Lennard–Jones (12–6) 截断对势 ``lj/cut``

    Parameters
    ----------
    coeffs : dict
        ``{(itype, jtype): {"epsilon": ..., "sigma": ..., "cutoff": ...}}``；
        ``cutoff`` 缺省时使用全局截断
    cutoff : float
        全局截断距离（Å）
    ntypes : int, optional
        原子类型数；缺省取系数中出现的最大类型

    Notes
    -----
    未显式给出的异类参数按几何平均混合：
    :math:`\varepsilon_{ij} = \sqrt{\varepsilon_i\varepsilon_j}`，
    :math:`\sigma_{ij} = \sqrt{\sigma_i\sigma_j}`。
    """

    name = "lj/cut"

    def __init__(self, coeffs: dict, cutoff: float, ntypes: int | None = None):
        if cutoff <= 0:
            raise ValueError(f"截断距离必须为正数，得到 {cutoff}")
        pairs = {}
        for key, params in coeffs.items():
            itype, jtype = (int(k) for k in key)
            if itype <= 0 or jtype <= 0:
                raise ValueError(f"lj/cut 类型编号必须为正整数，得到 {key}")
            pairs[(min(itype, jtype), max(itype, jtype))] = dict(params)

        max_type = max(max(k) for k in pairs) if pairs else 0
        self.ntypes = int(ntypes) if ntypes is not None else max_type
        if max_type > self.ntypes:
            raise ValueError(f"lj/cut 系数中的类型 {max_type} 超出类型数 {self.ntypes}")

        n = self.ntypes + 1
        self.epsilon = np.zeros((n, n))
        self.sigma = np.zeros((n, n))
        self.cut = np.zeros((n, n))
        for i in range(1, n):
            for j in range(i, n):
                params = pairs.get((i, j))
                if params is None:
                    params = self._mix(pairs, i, j, cutoff)
                self.epsilon[i, j] = self.epsilon[j, i] = float(params["epsilon"])
                self.sigma[i, j] = self.sigma[j, i] = float(params["sigma"])
                self.cut[i, j] = self.cut[j, i] = float(params.get("cutoff", cutoff))

        self.cutsq = self.cut**2
        self.cutoff = float(self.cut.max())
        logger.debug(
            f"lj/cut initialized for {self.ntypes} types, max cutoff={self.cutoff}"
        )

    @staticmethod
    def _mix(pairs, i, j, cutoff):
        ii = pairs.get((i, i))
        jj = pairs.get((j, j))
        if ii is None or jj is None:
            raise KeyError(f"lj/cut 类型对 ({i}, {j}) 缺少系数且无法混合")
        return {
            "epsilon": np.sqrt(ii["epsilon"] * jj["epsilon"]),
            "sigma": np.sqrt(ii["sigma"] * jj["sigma"]),
            "cutoff": cutoff,
        }

    def born(self, i, j, itype, jtype, rsq, factor_coul, factor_lj):
        du, du2 = _lj_derivatives(
            rsq, self.epsilon[itype, jtype], self.sigma[itype, jtype]
        )
        return factor_lj * du, factor_lj * du2

    def energy(self, itype, jtype, rsq, factor_coul=1.0, factor_lj=1.0) -> float:
        sr6 = (self.sigma[itype, jtype] ** 2 / rsq) ** 3
        return float(factor_lj * 4.0 * self.epsilon[itype, jtype] * (sr6 * sr6 - sr6))
