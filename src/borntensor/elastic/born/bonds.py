#!/usr/bin/env python3
"""
键 Born 项累加

与对势相同的四次项累加，键伙伴来自成键拓扑而非邻居列表。

.. moduleauthor:: Gilbert Young
"""

from collections.abc import Iterator

import numpy as np

from borntensor.core.topology import iter_bonds

from .kernels import accumulate_quartic
from .ownership import owns_bond


def iter_bond_terms(
    cell, groupbit: int, newton_bond: bool
) -> Iterator[tuple[int, int, int, np.ndarray]]:
    """遍历本进程应累加的键

    Yields
    ------
    tuple
        ``(btype, i, j, rij)``，``rij = minimum_image(xi - xj)``
    """
    positions = cell.get_positions()
    masks = cell.get_masks()

    for i in range(cell.num_local):
        if not masks[i] & groupbit:
            continue
        for btype, j in iter_bonds(cell, i):
            if j < 0 or not masks[j] & groupbit:
                continue
            if btype <= 0:
                continue
            if not owns_bond(cell, i, j, newton_bond):
                continue
            yield btype, i, j, cell.minimum_image(positions[i] - positions[j])


def accumulate_bonds(
    values: np.ndarray, cell, bond_style, groupbit: int, newton_bond: bool
) -> int:
    """累加所有本地组内原子上存储的键的贡献

    Returns
    -------
    int
        实际累加的键数
    """
    count = 0
    for btype, i, j, rij in iter_bond_terms(cell, groupbit, newton_bond):
        rsq = float(np.dot(rij, rij))
        du, du2 = bond_style.born(btype, rsq, i, j)
        accumulate_quartic(values, du2 - du / np.sqrt(rsq), rij, rsq)
        count += 1
    return count
