#!/usr/bin/env python3
r"""
空间分解模块

将完整体系沿一个坐标轴切分为 ``nworkers`` 个平板区域，每个区域生成一个
工作进程视角的 :class:`~borntensor.core.structure.Cell`：

- 本地原子：分数坐标落在本区域内的原子（深拷贝）
- ghost 原子：其余原子中与任一本地原子的最小镜像距离不超过 ``ghost_cutoff`` 的副本

原子副本携带全部拓扑记录与特殊近邻表，因此成键拓扑可在任意进程上按全局
标签解析。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from .structure import Cell

logger = logging.getLogger(__name__)


def _slab_index(cell: Cell, nworkers: int, axis: int) -> np.ndarray:
    fractional = np.dot(cell.get_positions(), cell.lattice_inv)[:, axis]
    fractional -= np.floor(fractional)
    index = np.floor(fractional * nworkers).astype(np.int64)
    return np.clip(index, 0, nworkers - 1)


def decompose(
    cell: Cell, nworkers: int, ghost_cutoff: float, axis: int = 0
) -> list[Cell]:
    """按平板分区生成各工作进程的晶胞

    Parameters
    ----------
    cell : Cell
        完整体系（所有原子均为本地原子）
    nworkers : int
        工作进程数
    ghost_cutoff : float
        ghost 原子的收集半径，应不小于最大相互作用截断（含皮肤）
        以及成键相互作用的最大跨度
    axis : int, optional
        切分方向，默认 x

    Returns
    -------
    list of Cell
        长度为 ``nworkers``；每个晶胞的原子按 ``本地 + ghost`` 排列。
        区域内没有原子的进程得到空晶胞（``num_local == 0``），其贡献为零

    Raises
    ------
    ValueError
        参数无效或输入晶胞已含 ghost 原子
    """
    if nworkers < 1:
        raise ValueError(f"工作进程数必须为正整数，得到 {nworkers}")
    if ghost_cutoff < 0:
        raise ValueError(f"ghost_cutoff 必须非负，得到 {ghost_cutoff}")
    if axis not in (0, 1, 2):
        raise ValueError(f"切分方向必须为 0/1/2，得到 {axis}")
    if cell.num_ghost:
        raise ValueError("只能分解不含 ghost 原子的完整体系")

    owner = _slab_index(cell, nworkers, axis)
    positions = cell.get_positions()
    cutsq = ghost_cutoff**2

    parts = []
    for rank in range(nworkers):
        local = np.nonzero(owner == rank)[0]
        others = np.nonzero(owner != rank)[0]
        ghosts = []
        if len(local):
            for k in others:
                d = cell.minimum_image(positions[local] - positions[k])
                if np.min(np.einsum("ij,ij->i", d, d)) <= cutsq:
                    ghosts.append(k)

        atoms = [cell.atoms[k].copy() for k in local]
        atoms += [cell.atoms[k].copy() for k in ghosts]

        parts.append(
            Cell(
                cell.lattice_vectors.copy(),
                atoms,
                pbc_enabled=cell.pbc_enabled,
                num_local=len(local),
                dimension=cell.dimension,
                molecules=cell.molecules,
                groups=dict(cell.groups),
            )
        )
        logger.debug(f"Worker {rank}: {len(local)} local atoms, {len(ghosts)} ghosts")

    return parts
