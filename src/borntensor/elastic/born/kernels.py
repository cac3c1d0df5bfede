#!/usr/bin/env python3
r"""
Born 张量数值内核

所有计算引擎共享的 JIT 内核：点积的应变导数、余弦的一阶/二阶应变导数，
以及向 21 元素累加器的四次项累加。

理论基础
--------
Lagrange 应变 :math:`\eta` 下位移矢量变为 :math:`\mathbf{x}' = F\mathbf{x}`，
:math:`F^{\top}F = I + 2\eta`，故任意两矢量的点积对应变是线性的：

.. math::
    \frac{\partial (\mathbf{x}\cdot\mathbf{y})}{\partial \eta_{ab}}
    = x_a y_b + x_b y_a,\qquad
    \frac{\partial^2 (\mathbf{x}\cdot\mathbf{y})}{\partial \eta_{ab}\,\partial \eta_{cd}} = 0

对于形如 :math:`\cos = N\,(D_1 D_2)^{-1/2}` 的余弦（键角：
:math:`N=\mathbf{d}_1\cdot\mathbf{d}_2`；二面角：
:math:`N = \mathbf{a}\cdot\mathbf{b}`），记 :math:`f=(D_1D_2)^{-1/2}`，

.. math::
    g_i = -\tfrac12\Big(\frac{D_{1,i}}{D_1} + \frac{D_{2,i}}{D_2}\Big),\qquad
    g_{ij} = \tfrac12\Big(\frac{D_{1,i}D_{1,j}}{D_1^2} - \frac{D_{1,ij}}{D_1}
    + \frac{D_{2,i}D_{2,j}}{D_2^2} - \frac{D_{2,ij}}{D_2}\Big)

.. math::
    \cos_{,i} = f\,(N_{,i} + N g_i),\qquad
    \cos_{,ij} = f\,\big(N_{,ij} + N_{,i}g_j + N_{,j}g_i + N(g_ig_j + g_{ij})\big)

该形式与对数导数形式代数等价，但在 :math:`N = 0`（如 90° 键角）处保持有限。

.. moduleauthor:: Gilbert Young
"""

import numpy as np
from numba import jit

from borntensor.elastic.voigt import PAIR_INDEX, STRAIN_AXES, VOIGT_PAIRS


@jit(nopython=True)
def _dot_strain(x, y, axes):
    """点积 x·y 对 6 个应变分量的一阶导数"""
    s = np.zeros(6)
    for k in range(6):
        a = axes[k, 0]
        b = axes[k, 1]
        s[k] = x[a] * y[b] + x[b] * y[a]
    return s


@jit(nopython=True)
def _sym_outer(u, v):
    """对称外积 u_i v_j + u_j v_i"""
    out = np.empty((6, 6))
    for i in range(6):
        for j in range(6):
            out[i, j] = u[i] * v[j] + u[j] * v[i]
    return out


@jit(nopython=True)
def _ratio_derivatives(n, dn, d2n, p, dp, d2p, q, dq, d2q):
    """cos = n / sqrt(p q) 的一阶 (6,) 与二阶 (6, 6) 应变导数"""
    f = 1.0 / np.sqrt(p * q)
    g = np.empty(6)
    for i in range(6):
        g[i] = -0.5 * (dp[i] / p + dq[i] / q)

    dcos = np.empty(6)
    for i in range(6):
        dcos[i] = f * (dn[i] + n * g[i])

    d2cos = np.empty((6, 6))
    for i in range(6):
        for j in range(6):
            gij = 0.5 * (
                dp[i] * dp[j] / (p * p)
                - d2p[i, j] / p
                + dq[i] * dq[j] / (q * q)
                - d2q[i, j] / q
            )
            d2cos[i, j] = f * (
                d2n[i, j] + dn[i] * g[j] + dn[j] * g[i] + n * (g[i] * g[j] + gij)
            )
    return dcos, d2cos


@jit(nopython=True)
def _angle_cos_derivatives(d1, d2, axes):
    p = d1[0] * d1[0] + d1[1] * d1[1] + d1[2] * d1[2]
    q = d2[0] * d2[0] + d2[1] * d2[1] + d2[2] * d2[2]
    n = d1[0] * d2[0] + d1[1] * d2[1] + d1[2] * d2[2]
    zero = np.zeros((6, 6))
    if p <= 0.0 or q <= 0.0:
        return False, 0.0, np.zeros(6), zero
    dcos, d2cos = _ratio_derivatives(
        n,
        _dot_strain(d1, d2, axes),
        zero,
        p,
        _dot_strain(d1, d1, axes),
        zero,
        q,
        _dot_strain(d2, d2, axes),
        zero,
    )
    return True, n / np.sqrt(p * q), dcos, d2cos


@jit(nopython=True)
def _dihedral_cos_derivatives(b1, b2, b3, axes):
    b11 = b1[0] * b1[0] + b1[1] * b1[1] + b1[2] * b1[2]
    b22 = b2[0] * b2[0] + b2[1] * b2[1] + b2[2] * b2[2]
    b33 = b3[0] * b3[0] + b3[1] * b3[1] + b3[2] * b3[2]
    b12 = b1[0] * b2[0] + b1[1] * b2[1] + b1[2] * b2[2]
    b13 = b1[0] * b3[0] + b1[1] * b3[1] + b1[2] * b3[2]
    b23 = b2[0] * b3[0] + b2[1] * b3[1] + b2[2] * b3[2]

    # |m|^2, |n|^2 与 m·n，m = b1 x (-b2)，n = b3 x (-b2)
    aa = b11 * b22 - b12 * b12
    bb = b33 * b22 - b23 * b23
    ab = b13 * b22 - b12 * b23
    if aa <= 0.0 or bb <= 0.0:
        return False, 0.0, np.zeros(6), np.zeros((6, 6))

    s11 = _dot_strain(b1, b1, axes)
    s22 = _dot_strain(b2, b2, axes)
    s33 = _dot_strain(b3, b3, axes)
    s12 = _dot_strain(b1, b2, axes)
    s13 = _dot_strain(b1, b3, axes)
    s23 = _dot_strain(b2, b3, axes)

    daa = s11 * b22 + b11 * s22 - 2.0 * b12 * s12
    dbb = s33 * b22 + b33 * s22 - 2.0 * b23 * s23
    dab = s13 * b22 + b13 * s22 - s12 * b23 - b12 * s23

    d2aa = _sym_outer(s11, s22) - _sym_outer(s12, s12)
    d2bb = _sym_outer(s33, s22) - _sym_outer(s23, s23)
    d2ab = _sym_outer(s13, s22) - _sym_outer(s12, s23)

    dcos, d2cos = _ratio_derivatives(ab, dab, d2ab, aa, daa, d2aa, bb, dbb, d2bb)
    return True, ab / np.sqrt(aa * bb), dcos, d2cos


@jit(nopython=True)
def _accumulate_quartic(values, scale, r, pair_index):
    for k in range(pair_index.shape[0]):
        a = pair_index[k, 0]
        b = pair_index[k, 1]
        c = pair_index[k, 2]
        d = pair_index[k, 3]
        values[k] += scale * r[a] * r[b] * r[c] * r[d]


@jit(nopython=True)
def _accumulate_angular(values, du, du2, dcos, d2cos, voigt_pairs):
    for k in range(voigt_pairs.shape[0]):
        e = voigt_pairs[k, 0]
        f = voigt_pairs[k, 1]
        values[k] += du * d2cos[e, f] + du2 * dcos[e] * dcos[f]


def dot_strain_derivative(x, y) -> np.ndarray:
    """点积 x·y 对 6 个 Voigt 应变分量的一阶导数，形状 (6,)"""
    return _dot_strain(
        np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64), STRAIN_AXES
    )


def angle_cos_derivatives(delta1, delta2):
    """键角余弦及其应变导数

    Parameters
    ----------
    delta1, delta2 : numpy.ndarray
        中心原子指向两侧原子的（最小镜像）位移

    Returns
    -------
    valid : bool
        任一位移长度为零时为 False，此时不应累加
    cos : float
        未截断的余弦
    dcos : numpy.ndarray
        一阶导数 (6,)
    d2cos : numpy.ndarray
        二阶导数 (6, 6)，对称
    """
    return _angle_cos_derivatives(
        np.asarray(delta1, dtype=np.float64),
        np.asarray(delta2, dtype=np.float64),
        STRAIN_AXES,
    )


def dihedral_cos_derivatives(b1, b2, b3):
    r"""二面角余弦及其应变导数

    Parameters
    ----------
    b1, b2, b3 : numpy.ndarray
        :math:`x_1-x_2`、:math:`x_3-x_2`、:math:`x_4-x_3`（最小镜像）

    Returns
    -------
    valid : bool
        共线（任一平面法向为零）时为 False，贡献为零
    cos : float
    dcos : numpy.ndarray
    d2cos : numpy.ndarray
    """
    return _dihedral_cos_derivatives(
        np.asarray(b1, dtype=np.float64),
        np.asarray(b2, dtype=np.float64),
        np.asarray(b3, dtype=np.float64),
        STRAIN_AXES,
    )


def accumulate_quartic(values: np.ndarray, pref: float, rij, rsq: float) -> None:
    r"""累加 :math:`\mathrm{pref}\; r_a r_b r_c r_d / r^2` 到 21 个元素"""
    _accumulate_quartic(values, pref / rsq, np.asarray(rij, dtype=np.float64), PAIR_INDEX)


def accumulate_angular(values: np.ndarray, du: float, du2: float, dcos, d2cos) -> None:
    r"""累加 :math:`U'\cos_{,ef} + U''\cos_{,e}\cos_{,f}` 到 21 个元素"""
    _accumulate_angular(values, du, du2, dcos, d2cos, VOIGT_PAIRS)
