#!/usr/bin/env python3
r"""
Born 张量的有限差分校验

在固定的相互作用集合（与解析引擎使用同样的过滤规则）上施加均匀
Lagrange 应变 :math:`\eta`，每个相互作用的位移矢量按

.. math::
    \mathbf{x}' = F\mathbf{x},\qquad F = \sqrt{I + 2\eta}

变形，对总能量做混合中心差分：

.. math::
    C_{ef} \approx \frac{U(h E_e + h E_f) - U(h E_e - h E_f)
    - U(-h E_e + h E_f) + U(-h E_e - h E_f)}{4h^2}

其中 :math:`E_k = (\hat e_a \hat e_b^{\top} + \hat e_b \hat e_a^{\top})/2`，
:math:`(a, b)` 为第 k 个 Voigt 应变分量的笛卡尔轴对。

相互作用集合在零应变下确定，变形过程中不重新判断截断。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np
from scipy.linalg import sqrtm

from borntensor.elastic.voigt import NUM_STRAINS, NUM_VALUES, STRAIN_AXES, VOIGT_PAIRS
from borntensor.utils.utils import NeighborList

from .angles import iter_angle_terms
from .bonds import iter_bond_terms
from .dihedrals import cos_sin_from_vectors, iter_dihedral_terms
from .pairs import iter_pair_terms

logger = logging.getLogger(__name__)


def strain_direction(k: int) -> np.ndarray:
    """第 k 个 Voigt 应变分量对应的对称单位应变张量 E_k"""
    a, b = STRAIN_AXES[k]
    e = np.zeros((3, 3))
    e[a, b] += 0.5
    e[b, a] += 0.5
    return e


def deformation_gradient(eta: np.ndarray) -> np.ndarray:
    """由 Lagrange 应变求对称变形梯度 F = sqrt(I + 2η)"""
    return np.real(sqrtm(np.eye(3) + 2.0 * eta))


class _InteractionSet:
    """零应变下收集的相互作用及其位移矢量"""

    def __init__(self, cell, force_field, groupbit, neighbor_list):
        ff = force_field
        self.ff = ff
        self.pairs = []
        self.bonds = []
        self.angles = []
        self.dihedrals = []

        if ff.pair is not None and ff.pair.born_enable:
            for t in iter_pair_terms(
                cell,
                neighbor_list,
                ff.pair,
                groupbit,
                ff.newton_pair,
                ff.special_lj,
                ff.special_coul,
            ):
                self.pairs.append((t.itype, t.jtype, t.factor_coul, t.factor_lj, t.rij))
        if ff.bond is not None and ff.bond.born_enable:
            for btype, _, _, rij in iter_bond_terms(cell, groupbit, ff.newton_bond):
                self.bonds.append((btype, rij))
        if ff.angle is not None and ff.angle.born_enable:
            for atype, _, _, _, d1, d2 in iter_angle_terms(cell, groupbit):
                self.angles.append((atype, d1, d2))
        if ff.dihedral is not None and ff.dihedral.born_enable:
            for dtype, _, _, _, _, b1, b2, b3 in iter_dihedral_terms(cell, groupbit):
                if cos_sin_from_vectors(b1, b2, b3) is not None:
                    self.dihedrals.append((dtype, b1, b2, b3))

        logger.debug(
            f"Finite-difference set: {len(self.pairs)} pairs, {len(self.bonds)} bonds, "
            f"{len(self.angles)} angles, {len(self.dihedrals)} dihedrals"
        )

    def energy(self, f: np.ndarray) -> float:
        ff = self.ff
        total = 0.0
        for itype, jtype, factor_coul, factor_lj, rij in self.pairs:
            r = f @ rij
            total += ff.pair.energy(itype, jtype, float(r @ r), factor_coul, factor_lj)
        for btype, rij in self.bonds:
            r = f @ rij
            total += ff.bond.energy(btype, float(r @ r))
        for atype, d1, d2 in self.angles:
            u = f @ d1
            v = f @ d2
            c = float(u @ v) / np.sqrt(float(u @ u) * float(v @ v))
            total += ff.angle.energy(atype, min(max(c, -1.0), 1.0))
        for dtype, b1, b2, b3 in self.dihedrals:
            co, _ = cos_sin_from_vectors(f @ b1, f @ b2, f @ b3)
            total += ff.dihedral.energy(dtype, co)
        return total


def numerical_born_vector(
    cell,
    force_field,
    group: str = "all",
    delta: float = 1e-4,
    neighbor_list: NeighborList | None = None,
    skin: float = 0.3,
) -> np.ndarray:
    """有限差分计算 Born 向量（本进程的局部和）

    Parameters
    ----------
    cell : Cell
        晶胞快照
    force_field : ForceField
        力场；每个风格需提供 ``energy``
    group : str, optional
        参与计算的组
    delta : float, optional
        应变步长 h
    neighbor_list : NeighborList, optional
        缺省时按对势截断新建
    skin : float, optional
        新建邻居列表的皮肤厚度

    Returns
    -------
    numpy.ndarray
        21 元素向量，与 :class:`ComputeBorn` 的 ``values_local`` 对应
    """
    if delta <= 0:
        raise ValueError(f"应变步长必须为正数，得到 {delta}")
    groupbit = cell.group_bit(group)
    if neighbor_list is None and force_field.pair is not None:
        neighbor_list = NeighborList(
            cutoff=force_field.pair.cutoff,
            skin=skin,
            newton_pair=force_field.newton_pair,
            special_lj=force_field.special_lj,
            special_coul=force_field.special_coul,
        )
    interactions = _InteractionSet(cell, force_field, groupbit, neighbor_list)

    directions = [strain_direction(k) for k in range(NUM_STRAINS)]

    def energy_at(eta):
        return interactions.energy(deformation_gradient(eta))

    values = np.zeros(NUM_VALUES)
    for k, (e, f) in enumerate(VOIGT_PAIRS):
        de = delta * directions[e]
        df = delta * directions[f]
        values[k] = (
            energy_at(de + df)
            - energy_at(de - df)
            - energy_at(-de + df)
            + energy_at(-de - df)
        ) / (4.0 * delta * delta)
    return values
