#!/usr/bin/env python3
r"""
对势 Born 项累加

对每个对势原子对，Born 张量贡献为

.. math::
    C_{abcd} \mathrel{+}= \Big(U''(r) - \frac{U'(r)}{r}\Big)\,
    \frac{r_a r_b r_c r_d}{r^2}

.. moduleauthor:: Gilbert Young
"""

import logging
from collections.abc import Iterator
from typing import NamedTuple

import numpy as np

from borntensor.utils.utils import NEIGHMASK, sbmask

from .kernels import accumulate_quartic
from .ownership import owns_pair

logger = logging.getLogger(__name__)


class PairTerm(NamedTuple):
    i: int
    j: int
    itype: int
    jtype: int
    rij: np.ndarray
    rsq: float
    factor_coul: float
    factor_lj: float


def iter_pair_terms(
    cell,
    neighbor_list,
    pair_style,
    groupbit: int,
    newton_pair: bool,
    special_lj,
    special_coul,
) -> Iterator[PairTerm]:
    """遍历本进程应累加的对势原子对

    过滤顺序：组成员、严格截断（``rsq >= cutsq`` 跳过）、归属规则。
    ``rij = minimum_image(xj - xi)``。
    """
    neighbor_list.update(cell)

    positions = cell.get_positions()
    types = cell.get_types()
    masks = cell.get_masks()
    cutsq = pair_style.cutsq

    for i in range(cell.num_local):
        if not masks[i] & groupbit:
            continue
        xi = positions[i]
        itype = int(types[i])

        for entry in neighbor_list.get_neighbors(i):
            code = sbmask(entry)
            j = int(entry) & NEIGHMASK
            factor_lj = special_lj[code]
            factor_coul = special_coul[code]

            if not masks[j] & groupbit:
                continue

            rij = cell.minimum_image(positions[j] - xi)
            rsq = float(np.dot(rij, rij))
            jtype = int(types[j])
            if rsq >= cutsq[itype, jtype]:
                continue
            if not owns_pair(cell, i, j, newton_pair):
                continue

            yield PairTerm(i, j, itype, jtype, rij, rsq, factor_coul, factor_lj)


def accumulate_pairs(
    values: np.ndarray,
    cell,
    neighbor_list,
    pair_style,
    groupbit: int,
    newton_pair: bool,
    special_lj,
    special_coul,
) -> int:
    """遍历半邻居列表，累加对势贡献

    Parameters
    ----------
    values : numpy.ndarray
        21 元素累加器，就地修改
    cell : Cell
        本进程晶胞快照（只读）
    neighbor_list : NeighborList
        半邻居列表；必要时通过其自身的 ``update`` 刷新
    pair_style : PairStyle
        对势导数提供者，需有 ``cutsq`` 与 ``born``
    groupbit : int
        组位掩码
    newton_pair : bool
        原子对归属规则
    special_lj, special_coul : sequence of float
        特殊近邻缩放因子（下标为特殊编码），原样交给 ``pair_style.born``

    Returns
    -------
    int
        实际累加的原子对数
    """
    count = 0
    for term in iter_pair_terms(
        cell, neighbor_list, pair_style, groupbit, newton_pair, special_lj, special_coul
    ):
        du, du2 = pair_style.born(
            term.i,
            term.j,
            term.itype,
            term.jtype,
            term.rsq,
            term.factor_coul,
            term.factor_lj,
        )
        # r 取自本原子对的 rsq，前因子为 du2 - du/r
        rinv = 1.0 / np.sqrt(term.rsq)
        accumulate_quartic(values, du2 - du * rinv, term.rij, term.rsq)
        count += 1
    return count
