#!/usr/bin/env python3
"""
相互作用归属判定

分布式体系中，一个原子对或一根键可能同时出现在两个进程上（一端为本地原子，
另一端为 ghost 副本）。以下判定保证每个相互作用在全局只被累加一次。

.. moduleauthor:: Gilbert Young
"""


def owns_pair(cell, i: int, j: int, newton_pair: bool) -> bool:
    """本进程是否累加原子对 (i, j)

    Parameters
    ----------
    cell : Cell
        本进程的晶胞快照
    i : int
        本地原子索引
    j : int
        邻居原子索引（本地或 ghost）
    newton_pair : bool
        为 True 时邻居列表已保证唯一；为 False 时本地-ghost 原子对出现在两个
        进程上，只由全局标签较小一端所在的进程累加

    Returns
    -------
    bool
    """
    if newton_pair or cell.is_local(j):
        return True
    return cell.atoms[i].id < cell.atoms[j].id


def owns_bond(cell, i: int, j: int, newton_bond: bool) -> bool:
    """本进程是否在原子 i 上累加键 (i, j)

    ``newton_bond`` 关闭时键同时存储在两端原子上，只在全局标签较小的一端累加。
    """
    if newton_bond:
        return True
    return cell.atoms[i].id < cell.atoms[j].id
