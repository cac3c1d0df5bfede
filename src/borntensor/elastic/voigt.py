#!/usr/bin/env python3
r"""
Voigt 指标表模块

Born 张量 :math:`C_{\alpha\beta\mu\nu}` 关于 :math:`(\alpha\beta)`、:math:`(\mu\nu)`
以及两对之间均对称，独立分量可压缩为 6×6 对称 Voigt 矩阵的 21 个上三角元素。

Voigt 记号：

=====  =====
Voigt  分量
=====  =====
1      xx
2      yy
3      zz
4      yz
5      xz
6      xy
=====  =====

21 个元素的排列顺序为
C11 C22 C33 C44 C55 C66 C12 C13 C14 C15 C16 C23 C24 C25 C26 C34 C35 C36 C45 C46 C56。

本模块的三张表在进程生命周期内固定不变，所有计算引擎只读共享。

.. moduleauthor:: Gilbert Young
"""

import numpy as np

from borntensor.utils.utils import EV_TO_GPA


def _frozen(table) -> np.ndarray:
    array = np.array(table, dtype=np.int64)
    array.setflags(write=False)
    return array


STRAIN_AXES = _frozen(
    [
        [0, 0],  # xx
        [1, 1],  # yy
        [2, 2],  # zz
        [1, 2],  # yz
        [0, 2],  # xz
        [0, 1],  # xy
    ]
)
"""6 个应变分量对应的笛卡尔轴对。"""

VOIGT_PAIRS = _frozen(
    [
        [0, 0],  # C11
        [1, 1],  # C22
        [2, 2],  # C33
        [3, 3],  # C44
        [4, 4],  # C55
        [5, 5],  # C66
        [0, 1],  # C12
        [0, 2],  # C13
        [0, 3],  # C14
        [0, 4],  # C15
        [0, 5],  # C16
        [1, 2],  # C23
        [1, 3],  # C24
        [1, 4],  # C25
        [1, 5],  # C26
        [2, 3],  # C34
        [2, 4],  # C35
        [2, 5],  # C36
        [3, 4],  # C45
        [3, 5],  # C46
        [4, 5],  # C56
    ]
)
"""21 个张量元素对应的外层 Voigt 指标对 (e, f)。"""

PAIR_INDEX = _frozen(
    [
        [0, 0, 0, 0],  # C11
        [1, 1, 1, 1],  # C22
        [2, 2, 2, 2],  # C33
        [1, 2, 1, 2],  # C44
        [0, 2, 0, 2],  # C55
        [0, 1, 0, 1],  # C66
        [0, 0, 1, 1],  # C12
        [0, 0, 2, 2],  # C13
        [0, 0, 1, 2],  # C14
        [0, 0, 0, 2],  # C15
        [0, 0, 0, 1],  # C16
        [1, 1, 2, 2],  # C23
        [1, 1, 1, 2],  # C24
        [1, 1, 0, 2],  # C25
        [1, 1, 0, 1],  # C26
        [2, 2, 1, 2],  # C34
        [2, 2, 0, 2],  # C35
        [2, 2, 0, 1],  # C36
        [1, 2, 0, 2],  # C45
        [1, 2, 0, 1],  # C46
        [0, 2, 0, 1],  # C56
    ]
)
"""21 个张量元素对应的四个笛卡尔轴 (a, b, c, d)。"""

NUM_VALUES = 21
NUM_STRAINS = 6

BORN_LABELS = tuple(f"C{e + 1}{f + 1}" for e, f in VOIGT_PAIRS)
"""21 个元素的名称，如 ``"C11"``、``"C45"``。"""


def born_vector_to_matrix(vector) -> np.ndarray:
    """将 21 元素向量展开为 6×6 对称矩阵

    Parameters
    ----------
    vector : array_like
        形状为 (21,) 的 Born 向量

    Returns
    -------
    numpy.ndarray
        形状为 (6, 6) 的对称矩阵
    """
    vector = np.asarray(vector, dtype=np.float64)
    if vector.shape != (NUM_VALUES,):
        raise ValueError(f"Born 向量必须有 21 个元素，但得到形状 {vector.shape}")
    matrix = np.zeros((NUM_STRAINS, NUM_STRAINS))
    for k, (e, f) in enumerate(VOIGT_PAIRS):
        matrix[e, f] = vector[k]
        matrix[f, e] = vector[k]
    return matrix


def born_matrix_to_vector(matrix, tol: float = 1e-8) -> np.ndarray:
    """将 6×6 对称矩阵压缩为 21 元素向量

    Parameters
    ----------
    matrix : array_like
        形状为 (6, 6) 的矩阵
    tol : float, optional
        对称性检查容差

    Returns
    -------
    numpy.ndarray
        形状为 (21,) 的 Born 向量
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (NUM_STRAINS, NUM_STRAINS):
        raise ValueError(f"输入矩阵必须是 6x6，但得到形状 {matrix.shape}")
    if not np.allclose(matrix, matrix.T, atol=tol):
        raise ValueError("输入矩阵不对称")
    return np.array([matrix[e, f] for e, f in VOIGT_PAIRS])


def to_stiffness_gpa(vector, volume: float) -> np.ndarray:
    """按体积归一化并换算为 GPa（调用方的后处理，计算核心从不执行）

    Parameters
    ----------
    vector : array_like
        Born 向量，能量单位 eV
    volume : float
        体系体积，单位 Å³

    Returns
    -------
    numpy.ndarray
        以 GPa 为单位的 21 元素向量
    """
    if volume <= 0:
        raise ValueError(f"体积必须为正数，得到 {volume}")
    return np.asarray(vector, dtype=np.float64) / volume * EV_TO_GPA
