#!/usr/bin/env python3
r"""
成键拓扑模块

成键拓扑（键、键角、二面角、非正常二面角）有两种存储方式：

逐原子存储 (``Cell.molecular == 1``)
    记录直接挂在 :class:`~borntensor.core.structure.Atom` 上，成员以全局标签给出。

分子模板存储 (``Cell.molecular == 2``)
    多个分子共享一个 :class:`MoleculeTemplate`，记录以模板内编号（从 1 开始）给出，
    访问时通过标签偏移 ``tagprev = tag - molatom - 1`` 还原为全局标签。

两种方式在访问时都被解析为本进程内的本地/ghost 索引；本进程不知道的
成员解析为 ``-1``，由调用方跳过。

存储约定（与 ``newton_bond`` 相关）：

- 键存储在 atom1 上；``newton_bond`` 关闭时同时存储在 atom2 上
- 键角存储在 atom2 上；``newton_bond`` 关闭时存储在全部三个原子上
- 二面角/非正常二面角存储在 atom2 上；``newton_bond`` 关闭时存储在全部四个原子上

.. moduleauthor:: Gilbert Young
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

SPECIAL_12 = 1
SPECIAL_13 = 2
SPECIAL_14 = 3


@dataclass
class MoleculeTemplate:
    """
    分子模板

    Attributes
    ----------
    name : str
        模板名称
    natoms : int
        模板内原子数
    bonds : list of list of tuple
        ``bonds[iatom]`` 为 ``(btype, partner_id)`` 列表，``partner_id`` 为模板内编号
    angles : list of list of tuple
        ``angles[iatom]`` 为 ``(atype, id1, id2, id3)`` 列表
    dihedrals : list of list of tuple
        ``dihedrals[iatom]`` 为 ``(dtype, id1, id2, id3, id4)`` 列表
    impropers : list of list of tuple
        ``impropers[iatom]`` 为 ``(itype, id1, id2, id3, id4)`` 列表
    """

    name: str
    natoms: int
    bonds: list = field(default_factory=list)
    angles: list = field(default_factory=list)
    dihedrals: list = field(default_factory=list)
    impropers: list = field(default_factory=list)

    def __post_init__(self):
        for attr in ("bonds", "angles", "dihedrals", "impropers"):
            records = getattr(self, attr)
            if not records:
                setattr(self, attr, [[] for _ in range(self.natoms)])
            elif len(records) != self.natoms:
                raise ValueError(
                    f"模板 {self.name} 的 {attr} 长度应为 {self.natoms}，当前 {len(records)}"
                )

    @classmethod
    def from_lists(
        cls,
        name: str,
        natoms: int,
        bonds=(),
        angles=(),
        dihedrals=(),
        impropers=(),
        newton_bond: bool = True,
    ) -> "MoleculeTemplate":
        """由扁平的拓扑列表创建模板，并按存储约定分配到模板原子上

        Parameters
        ----------
        name : str
            模板名称
        natoms : int
            模板内原子数
        bonds : iterable of tuple
            ``(btype, id1, id2)``，编号从 1 开始
        angles : iterable of tuple
            ``(atype, id1, id2, id3)``
        dihedrals : iterable of tuple
            ``(dtype, id1, id2, id3, id4)``
        impropers : iterable of tuple
            ``(itype, id1, id2, id3, id4)``
        newton_bond : bool
            为 False 时记录复制到所有成员原子上

        Returns
        -------
        MoleculeTemplate
        """
        template = cls(name=name, natoms=int(natoms))
        for owner, (btype, id1, id2) in _distribute(bonds, 2, newton_bond, owner=0):
            partner = int(id2) if owner == int(id1) else int(id1)
            template.bonds[owner - 1].append((int(btype), int(partner)))
        for owner, record in _distribute(angles, 3, newton_bond, owner=1):
            template.angles[owner - 1].append(tuple(int(v) for v in record))
        for owner, record in _distribute(dihedrals, 4, newton_bond, owner=1):
            template.dihedrals[owner - 1].append(tuple(int(v) for v in record))
        for owner, record in _distribute(impropers, 4, newton_bond, owner=1):
            template.impropers[owner - 1].append(tuple(int(v) for v in record))
        return template


def _distribute(records, nmembers: int, newton_bond: bool, owner: int):
    """按存储约定产生 ``(owner_id, record)``"""
    for record in records:
        if len(record) != nmembers + 1:
            raise ValueError(f"拓扑记录应包含类型与 {nmembers} 个成员，得到: {record}")
        members = record[1:]
        if newton_bond:
            yield int(members[owner]), record
        else:
            for member in dict.fromkeys(int(m) for m in members):
                yield member, record


def assign_topology(
    atoms,
    bonds=(),
    angles=(),
    dihedrals=(),
    impropers=(),
    newton_bond: bool = True,
) -> None:
    """将扁平的拓扑列表按存储约定写入原子（逐原子存储）

    Parameters
    ----------
    atoms : list of Atom
        原子列表，成员以全局标签引用
    bonds, angles, dihedrals, impropers : iterable of tuple
        ``(type, tag1, tag2, ...)`` 记录
    newton_bond : bool
        为 False 时记录复制到所有成员原子上

    Raises
    ------
    ValueError
        记录引用了不存在的原子
    """
    by_tag = {atom.id: atom for atom in atoms}

    def owner_atom(tag):
        try:
            return by_tag[tag]
        except KeyError as e:
            raise ValueError(f"拓扑记录引用了不存在的原子 {tag}") from e

    bonds, angles, dihedrals, impropers = (
        list(records) for records in (bonds, angles, dihedrals, impropers)
    )
    # 所有成员都必须存在，而不仅是存储记录的原子
    for records in (bonds, angles, dihedrals, impropers):
        for record in records:
            for tag in record[1:]:
                owner_atom(int(tag))

    for owner, (btype, tag1, tag2) in _distribute(bonds, 2, newton_bond, owner=0):
        partner = int(tag2) if owner == int(tag1) else int(tag1)
        owner_atom(owner).bonds.append((int(btype), int(partner)))
    for owner, record in _distribute(angles, 3, newton_bond, owner=1):
        owner_atom(owner).angles.append(tuple(int(v) for v in record))
    for owner, record in _distribute(dihedrals, 4, newton_bond, owner=1):
        owner_atom(owner).dihedrals.append(tuple(int(v) for v in record))
    for owner, record in _distribute(impropers, 4, newton_bond, owner=1):
        owner_atom(owner).impropers.append(tuple(int(v) for v in record))


def _template_context(cell, i):
    atom = cell.atoms[i]
    if atom.molindex < 0:
        return None, 0, 0
    template = cell.molecules[atom.molindex]
    tagprev = atom.id - atom.molatom - 1
    return template, atom.molatom, tagprev


def iter_bonds(cell, i: int) -> Iterator[tuple[int, int]]:
    """遍历原子 ``i`` 上存储的键

    Yields
    ------
    tuple of int
        ``(btype, j)``，``j`` 为伙伴原子的本地/ghost 索引（未知时为 -1）
    """
    if cell.molecular == 1:
        for btype, partner in cell.atoms[i].bonds:
            yield btype, cell.map(partner)
        return

    template, iatom, tagprev = _template_context(cell, i)
    if template is None:
        return
    for btype, partner in template.bonds[iatom]:
        yield btype, cell.map(partner + tagprev)


def iter_angles(cell, i: int) -> Iterator[tuple[int, int, int]]:
    """遍历以原子 ``i`` 为中心（atom2）的键角

    只产生 atom2 恰为 ``i`` 的记录，保证每个键角只被计数一次。

    Yields
    ------
    tuple of int
        ``(atype, j1, j3)``
    """
    tag = cell.atoms[i].id
    if cell.molecular == 1:
        for atype, tag1, tag2, tag3 in cell.atoms[i].angles:
            if tag2 != tag:
                continue
            yield atype, cell.map(tag1), cell.map(tag3)
        return

    template, iatom, tagprev = _template_context(cell, i)
    if template is None:
        return
    for atype, id1, id2, id3 in template.angles[iatom]:
        if id2 + tagprev != tag:
            continue
        yield atype, cell.map(id1 + tagprev), cell.map(id3 + tagprev)


def iter_dihedrals(cell, i: int) -> Iterator[tuple[int, int, int, int]]:
    """遍历以原子 ``i`` 为 atom2 的二面角

    Yields
    ------
    tuple of int
        ``(dtype, j1, j3, j4)``
    """
    tag = cell.atoms[i].id
    if cell.molecular == 1:
        for dtype, tag1, tag2, tag3, tag4 in cell.atoms[i].dihedrals:
            if tag2 != tag:
                continue
            yield dtype, cell.map(tag1), cell.map(tag3), cell.map(tag4)
        return

    template, iatom, tagprev = _template_context(cell, i)
    if template is None:
        return
    for dtype, id1, id2, id3, id4 in template.dihedrals[iatom]:
        if id2 + tagprev != tag:
            continue
        yield (
            dtype,
            cell.map(id1 + tagprev),
            cell.map(id3 + tagprev),
            cell.map(id4 + tagprev),
        )


def _bond_tags(cell, atom):
    """原子上存储的键伙伴的全局标签"""
    if cell.molecular == 1:
        return [partner for _, partner in atom.bonds]
    if atom.molindex < 0:
        return []
    template = cell.molecules[atom.molindex]
    tagprev = atom.id - atom.molatom - 1
    return [partner + tagprev for _, partner in template.bonds[atom.molatom]]


def assign_special(cell) -> int:
    """根据键图计算每个原子的 1-2/1-3/1-4 特殊近邻

    需在完整体系（分区之前）上调用；结果写入 ``atom.special`` 并随原子副本传递。

    Parameters
    ----------
    cell : Cell
        完整体系

    Returns
    -------
    int
        具有至少一个特殊近邻的原子数
    """
    graph: dict[int, set[int]] = {atom.id: set() for atom in cell.atoms}
    for atom in cell.atoms:
        for partner in _bond_tags(cell, atom):
            if partner == atom.id or partner not in graph:
                continue
            graph[atom.id].add(partner)
            graph[partner].add(atom.id)

    count = 0
    for atom in cell.atoms:
        special: dict[int, int] = {}
        frontier = {atom.id}
        seen = {atom.id}
        for code in (SPECIAL_12, SPECIAL_13, SPECIAL_14):
            shell = set()
            for tag in frontier:
                shell |= graph[tag]
            shell -= seen
            for tag in shell:
                special[tag] = code
            seen |= shell
            frontier = shell
        atom.special = special
        if special:
            count += 1

    logger.debug(f"Assigned special neighbors for {count} atoms")
    return count
