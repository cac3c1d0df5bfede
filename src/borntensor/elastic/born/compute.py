#!/usr/bin/env python3
r"""
Born 弹性张量计算

:class:`ComputeBorn` 对一个工作进程的晶胞分区计算 Born 项

.. math::
    C^{B}_{\alpha\beta\mu\nu} = \frac{\partial^2 U}{\partial\eta_{\alpha\beta}\,\partial\eta_{\mu\nu}}

的 21 个独立分量，并在所有进程间做一次求和全归约。结果单位为能量（eV），
不做体积归一化，换算见 :func:`borntensor.elastic.voigt.to_stiffness_gpa`。

每次调用的流程::

    Idle → 清零 → {对势? 键? 键角? 二面角?} → 全归约 → 发布 → Idle

非正常二面角永不计算。

Examples
--------
>>> compute = ComputeBorn(cell, force_field)          # doctest: +SKIP
>>> compute.compute_vector(step=0)                    # doctest: +SKIP
>>> born_vector_to_matrix(compute.vector)             # doctest: +SKIP

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from borntensor.core.parallel import SerialCommunicator
from borntensor.elastic.voigt import NUM_VALUES
from borntensor.utils.utils import NeighborList

from .angles import accumulate_angles
from .bonds import accumulate_bonds
from .dihedrals import accumulate_dihedrals
from .pairs import accumulate_pairs

logger = logging.getLogger(__name__)


class ComputeBorn:
    """Born 张量计算器

    Parameters
    ----------
    cell : Cell
        本进程的晶胞快照（本地 + ghost），只读
    force_field : ForceField
        相互作用风格及全局设置
    group : str, optional
        参与计算的组，默认 ``"all"``
    neighbor_list : NeighborList, optional
        半邻居列表；缺省时在 :meth:`init` 中按对势截断创建
    comm : optional
        通信器，需提供 ``Allreduce``；缺省为 :class:`SerialCommunicator`
    skin : float, optional
        自动创建邻居列表时的皮肤厚度

    Attributes
    ----------
    values_local : numpy.ndarray
        本进程累加器 (21,)
    values_global : numpy.ndarray
        归约结果 (21,)
    vector : numpy.ndarray
        对外发布的结果 (21,)
    invoked_vector : int
        最近一次计算的步数，首次计算前为 -1

    Raises
    ------
    ValueError
        非三维体系、非正交晶胞或未定义的组
    """

    size_vector = NUM_VALUES

    def __init__(
        self,
        cell,
        force_field,
        group: str = "all",
        neighbor_list: NeighborList | None = None,
        comm=None,
        skin: float = 0.3,
    ):
        if cell.dimension < 3:
            raise ValueError("Compute born incompatible with simulation dimension")
        if not cell.is_orthogonal:
            raise ValueError("Compute born incompatible with triclinic simulation box")

        self.cell = cell
        self.force_field = force_field
        self.group = group
        self.groupbit = cell.group_bit(group)
        self.neighbor_list = neighbor_list
        self.comm = comm if comm is not None else SerialCommunicator()
        self.skin = skin

        self.values_local = np.zeros(NUM_VALUES)
        self.values_global = np.zeros(NUM_VALUES)
        self.vector = np.zeros(NUM_VALUES)
        self.invoked_vector = -1

        self.pairflag = False
        self.bondflag = False
        self.angleflag = False
        self.dihedflag = False
        self.impflag = False
        self.counts = {}
        self._initialized = False

        logger.debug(
            f"ComputeBorn created for group '{group}' on {cell.num_local} local atoms"
        )

    def _category_enabled(self, style, label: str) -> bool:
        if style is None:
            return False
        if not style.born_enable:
            logger.warning(f"{label} style does not support compute born")
            return False
        return True

    def init(self) -> None:
        """检查相互作用风格能力并准备邻居列表

        Raises
        ------
        ValueError
            未定义对势，或对势不支持 Born 计算
        """
        ff = self.force_field
        if ff.pair is None:
            raise ValueError("No pair style is defined for compute born")
        if not ff.pair.born_enable:
            raise ValueError("Pair style does not support compute born")
        self.pairflag = True

        self.bondflag = self._category_enabled(ff.bond, "Bond")
        self.angleflag = self._category_enabled(ff.angle, "Angle")
        self.dihedflag = self._category_enabled(ff.dihedral, "Dihedral")
        # 非正常二面角只做能力检查，不参与计算
        self.impflag = self._category_enabled(ff.improper, "Improper")

        if self.neighbor_list is None:
            self.neighbor_list = NeighborList(
                cutoff=ff.pair.cutoff,
                skin=self.skin,
                newton_pair=ff.newton_pair,
                special_lj=ff.special_lj,
                special_coul=ff.special_coul,
            )
        self._initialized = True

        logger.info(
            "Compute born enabled: "
            f"pair={self.pairflag}, bond={self.bondflag}, angle={self.angleflag}, "
            f"dihedral={self.dihedflag}"
        )

    def compute_vector(self, step: int = 0) -> np.ndarray:
        """执行一次完整的计算周期

        Parameters
        ----------
        step : int, optional
            当前步数，记录到 :attr:`invoked_vector`

        Returns
        -------
        numpy.ndarray
            归约后的 21 元素向量（:attr:`vector` 的副本）
        """
        if not self._initialized:
            self.init()

        self.invoked_vector = int(step)
        self.values_local[:] = 0.0
        ff = self.force_field
        cell = self.cell
        counts = {"pair": 0, "bond": 0, "angle": 0, "dihedral": 0}

        if self.pairflag:
            counts["pair"] = accumulate_pairs(
                self.values_local,
                cell,
                self.neighbor_list,
                ff.pair,
                self.groupbit,
                ff.newton_pair,
                ff.special_lj,
                ff.special_coul,
            )
        if self.bondflag:
            counts["bond"] = accumulate_bonds(
                self.values_local, cell, ff.bond, self.groupbit, ff.newton_bond
            )
        if self.angleflag:
            counts["angle"] = accumulate_angles(
                self.values_local, cell, ff.angle, self.groupbit
            )
        if self.dihedflag:
            counts["dihedral"] = accumulate_dihedrals(
                self.values_local, cell, ff.dihedral, self.groupbit
            )

        self.comm.Allreduce(self.values_local, self.values_global)
        self.vector[:] = self.values_global
        self.counts = counts

        logger.debug(
            f"Step {step}: born contributions from {counts['pair']} pairs, "
            f"{counts['bond']} bonds, {counts['angle']} angles, "
            f"{counts['dihedral']} dihedrals"
        )
        return self.vector.copy()
