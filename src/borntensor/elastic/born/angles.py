#!/usr/bin/env python3
r"""
键角 Born 项累加

键角势以 :math:`\cos\theta` 为自变量时，

.. math::
    C_{ef} \mathrel{+}= \frac{\partial U}{\partial\cos\theta}\,
    \frac{\partial^2\cos\theta}{\partial\eta_e\,\partial\eta_f}
    + \frac{\partial^2 U}{\partial\cos^2\theta}\,
    \frac{\partial\cos\theta}{\partial\eta_e}\,\frac{\partial\cos\theta}{\partial\eta_f}

.. moduleauthor:: Gilbert Young
"""

from collections.abc import Iterator

import numpy as np

from borntensor.core.topology import iter_angles

from .kernels import accumulate_angular, angle_cos_derivatives


def angle_cosine(cell, j1: int, j2: int, j3: int) -> float:
    """以 j2 为顶点的键角余弦（最小镜像，截断到 [-1, 1]）"""
    d1 = cell.minimum_image(cell.atoms[j1].position - cell.atoms[j2].position)
    d2 = cell.minimum_image(cell.atoms[j3].position - cell.atoms[j2].position)
    c = np.dot(d1, d2) / np.sqrt(np.dot(d1, d1) * np.dot(d2, d2))
    return float(min(max(c, -1.0), 1.0))


def iter_angle_terms(cell, groupbit: int) -> Iterator[tuple]:
    """遍历以本地组内原子为顶点的键角

    Yields
    ------
    tuple
        ``(atype, j1, i, j3, d1, d2)``，``d1``/``d2`` 为顶点指向两侧原子的最小镜像位移
    """
    positions = cell.get_positions()
    masks = cell.get_masks()

    for i in range(cell.num_local):
        if not masks[i] & groupbit:
            continue
        for atype, j1, j3 in iter_angles(cell, i):
            if j1 < 0 or j3 < 0:
                continue
            if not (masks[j1] & groupbit and masks[j3] & groupbit):
                continue
            if atype <= 0:
                continue
            d1 = cell.minimum_image(positions[j1] - positions[i])
            d2 = cell.minimum_image(positions[j3] - positions[i])
            yield atype, j1, i, j3, d1, d2


def accumulate_angles(values: np.ndarray, cell, angle_style, groupbit: int) -> int:
    """累加以本地组内原子为顶点（atom2）的键角贡献

    Returns
    -------
    int
        实际累加的键角数
    """
    count = 0
    for atype, j1, i, j3, d1, d2 in iter_angle_terms(cell, groupbit):
        valid, _, dcos, d2cos = angle_cos_derivatives(d1, d2)
        if not valid:
            continue
        du, du2 = angle_style.born(cell, atype, j1, i, j3)
        accumulate_angular(values, du, du2, dcos, d2cos)
        count += 1
    return count
