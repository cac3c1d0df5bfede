#!/usr/bin/env python3
r"""
二面角 Born 项累加

记 :math:`\mathbf{b}_1 = x_1 - x_2`，:math:`\mathbf{b}_2 = x_3 - x_2`，
:math:`\mathbf{b}_3 = x_4 - x_3`，两平面法向

.. math::
    \mathbf{m} = \mathbf{b}_1\times(-\mathbf{b}_2),\qquad
    \mathbf{n} = \mathbf{b}_3\times(-\mathbf{b}_2),\qquad
    \cos\phi = \frac{\mathbf{m}\cdot\mathbf{n}}{|\mathbf{m}||\mathbf{n}|}

:math:`|\mathbf{m}|^2`、:math:`|\mathbf{n}|^2`、:math:`\mathbf{m}\cdot\mathbf{n}`
均可写成 :math:`\mathbf{b}_1,\mathbf{b}_2,\mathbf{b}_3` 点积的二次式，
从而得到 :math:`\cos\phi` 的解析应变导数。共线构型贡献为零。

非正常二面角从不参与计算。

.. moduleauthor:: Gilbert Young
"""

import math
from collections.abc import Iterator

import numpy as np

from borntensor.core.topology import iter_dihedrals

from .kernels import accumulate_angular, dihedral_cos_derivatives


def dihedral_vectors(cell, j1: int, j2: int, j3: int, j4: int):
    """二面角的三个键矢量 (b1, b2, b3)，均取最小镜像"""
    x = [cell.atoms[j].position for j in (j1, j2, j3, j4)]
    b1 = cell.minimum_image(x[0] - x[1])
    b2 = cell.minimum_image(x[2] - x[1])
    b3 = cell.minimum_image(x[3] - x[2])
    # 中间键取反后再次回绕
    b2 = -cell.minimum_image(-b2)
    return b1, b2, b3


def cos_sin_from_vectors(b1, b2, b3) -> tuple[float, float] | None:
    """由三个键矢量计算 (cosφ, sinφ)；共线时返回 None"""
    c = -np.asarray(b2)
    m = np.cross(b1, c)
    n = np.cross(b3, c)
    mm = float(np.dot(m, m))
    nn = float(np.dot(n, n))
    if mm == 0.0 or nn == 0.0:
        return None
    rabinv = 1.0 / math.sqrt(mm * nn)
    co = float(np.dot(m, n)) * rabinv
    si = math.sqrt(float(np.dot(c, c))) * float(np.dot(m, b3)) * rabinv
    return min(max(co, -1.0), 1.0), si


def dihedral_angle(cell, j1: int, j2: int, j3: int, j4: int) -> tuple[float, float]:
    """二面角的余弦与带符号角度

    Returns
    -------
    cos : float
        截断到 [-1, 1] 的余弦；共线构型返回 1.0
    phi : float
        ``atan2(sin, cos)``，弧度
    """
    frame = cos_sin_from_vectors(*dihedral_vectors(cell, j1, j2, j3, j4))
    if frame is None:
        return 1.0, 0.0
    co, si = frame
    return co, math.atan2(si, co)


def iter_dihedral_terms(cell, groupbit: int) -> Iterator[tuple]:
    """遍历以本地组内原子为 atom2 的二面角

    Yields
    ------
    tuple
        ``(dtype, j1, i, j3, j4, b1, b2, b3)``
    """
    masks = cell.get_masks()

    for i in range(cell.num_local):
        if not masks[i] & groupbit:
            continue
        for dtype, j1, j3, j4 in iter_dihedrals(cell, i):
            if j1 < 0 or j3 < 0 or j4 < 0:
                continue
            if not (masks[j1] & groupbit and masks[j3] & groupbit and masks[j4] & groupbit):
                continue
            if dtype <= 0:
                continue
            yield (dtype, j1, i, j3, j4, *dihedral_vectors(cell, j1, i, j3, j4))


def accumulate_dihedrals(values: np.ndarray, cell, dihedral_style, groupbit: int) -> int:
    """累加以本地组内原子为 atom2 的二面角贡献

    Returns
    -------
    int
        实际累加的二面角数
    """
    count = 0
    for dtype, j1, i, j3, j4, b1, b2, b3 in iter_dihedral_terms(cell, groupbit):
        valid, _, dcos, d2cos = dihedral_cos_derivatives(b1, b2, b3)
        if not valid:
            continue
        du, du2 = dihedral_style.born(cell, dtype, j1, i, j3, j4)
        accumulate_angular(values, du, du2, dcos, d2cos)
        count += 1
    return count
