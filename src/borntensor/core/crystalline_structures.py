#!/usr/bin/env python3
r"""
体系生成器模块

为 Born 张量计算生成标准测试体系：

- 立方晶格（简单立方、BCC、FCC），用于对势贡献
- 珠-簧高分子链，带完整的键/键角/二面角拓扑，用于成键贡献

基本使用：
    >>> builder = StructureBuilder()
    >>> cell = builder.create_fcc(1.5496, (3, 3, 3))
    >>> cell.num_atoms
    108

所有原子标签从 1 开始连续编号。

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

from .structure import Atom, Cell
from .topology import assign_special, assign_topology

logger = logging.getLogger(__name__)


def _check_supercell(supercell) -> tuple[int, int, int]:
    supercell = tuple(supercell)
    if len(supercell) != 3 or not all(
        isinstance(n, int | np.integer) and n > 0 for n in supercell
    ):
        raise TypeError(f"超胞尺寸必须为正整数三元组，得到: {supercell}")
    return tuple(int(n) for n in supercell)


class StructureBuilder:
    """
    统一的体系生成器

    Methods
    -------
    create_fcc(lattice_constant, supercell, atom_type=1)
        面心立方晶格
    create_bcc(lattice_constant, supercell, atom_type=1)
        体心立方晶格
    create_simple_cubic(lattice_constant, supercell, atom_type=1)
        简单立方晶格
    create_chains(nchains, nbeads, bond_length, box, ...)
        带拓扑的锯齿形珠-簧链

    Examples
    --------
    >>> builder = StructureBuilder()
    >>> cell = builder.create_chains(2, 6, 1.0, (12.0, 12.0, 12.0))
    >>> len(cell.atoms[1].angles)
    1
    """

    BASES = {
        "sc": np.array([[0.0, 0.0, 0.0]]),
        "bcc": np.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]]),
        "fcc": np.array(
            [
                [0.0, 0.0, 0.0],  # 角原子
                [0.5, 0.5, 0.0],  # xy面心
                [0.5, 0.0, 0.5],  # xz面心
                [0.0, 0.5, 0.5],  # yz面心
            ]
        ),
    }

    def create_lattice(
        self,
        kind: str,
        lattice_constant: float,
        supercell: tuple[int, int, int],
        atom_type: int = 1,
    ) -> Cell:
        """
        创建立方晶格超胞

        Parameters
        ----------
        kind : str
            ``"sc"``、``"bcc"`` 或 ``"fcc"``
        lattice_constant : float
            晶格常数
        supercell : tuple of int
            超胞尺寸 (nx, ny, nz)
        atom_type : int, optional
            原子类型

        Returns
        -------
        Cell

        Raises
        ------
        ValueError
            未知晶格类型或晶格常数非正
        TypeError
            超胞尺寸不是正整数三元组
        """
        if kind not in self.BASES:
            raise ValueError(f"不支持的晶格类型: {kind}. 支持: {list(self.BASES)}")
        if not isinstance(lattice_constant, int | float) or lattice_constant <= 0:
            raise ValueError(f"晶格常数必须为正数，得到: {lattice_constant}")
        nx, ny, nz = _check_supercell(supercell)

        n = np.array([nx, ny, nz])
        lattice_vectors = np.diag(lattice_constant * n.astype(np.float64))

        atoms = []
        tag = 1
        for i in range(nx):
            for j in range(ny):
                for k in range(nz):
                    for base_pos in self.BASES[kind]:
                        fractional_pos = (np.array([i, j, k]) + base_pos) / n
                        atoms.append(Atom(tag, atom_type, fractional_pos @ lattice_vectors))
                        tag += 1

        logger.debug(f"Created {kind} lattice with {len(atoms)} atoms")
        return Cell(lattice_vectors=lattice_vectors, atoms=atoms, pbc_enabled=True)

    def create_fcc(self, lattice_constant, supercell, atom_type: int = 1) -> Cell:
        """FCC：每个单胞 4 个原子，配位数 12"""
        return self.create_lattice("fcc", lattice_constant, supercell, atom_type)

    def create_bcc(self, lattice_constant, supercell, atom_type: int = 1) -> Cell:
        return self.create_lattice("bcc", lattice_constant, supercell, atom_type)

    def create_simple_cubic(self, lattice_constant, supercell, atom_type: int = 1) -> Cell:
        return self.create_lattice("sc", lattice_constant, supercell, atom_type)

    def create_chains(
        self,
        nchains: int,
        nbeads: int,
        bond_length: float,
        box,
        bond_angle: float = 109.47,
        atom_type: int = 1,
        bond_type: int = 1,
        angle_type: int = 1,
        dihedral_type: int = 1,
        newton_bond: bool = True,
        jitter: float = 0.0,
        seed: int = 42,
    ) -> Cell:
        r"""
        创建沿 x 方向的锯齿形珠-簧链

        每条链的相邻珠子成键，连续三个珠子构成键角，连续四个构成二面角。
        链与链在 y-z 平面内均匀排列。

        Parameters
        ----------
        nchains : int
            链数
        nbeads : int
            每条链的珠子数
        bond_length : float
            键长
        box : sequence of float
            正交盒子边长 (Lx, Ly, Lz)
        bond_angle : float, optional
            锯齿键角（度）
        jitter : float, optional
            随机扰动幅度，用于打破对称性（二面角非平面）
        newton_bond : bool, optional
            拓扑存储约定

        Returns
        -------
        Cell
            已写入拓扑与特殊近邻表的晶胞
        """
        if nchains < 1 or nbeads < 2:
            raise ValueError(f"至少需要 1 条链、每条 2 个珠子，得到 {nchains}×{nbeads}")
        box = np.asarray(box, dtype=np.float64)
        half = np.radians(bond_angle) / 2.0
        dx = bond_length * np.sin(half)
        dz = bond_length * np.cos(half)
        if dx * nbeads >= box[0]:
            raise ValueError("链长超过盒子 x 方向长度")

        rng = np.random.default_rng(seed)
        ny = int(np.ceil(np.sqrt(nchains)))
        atoms, bonds, angles, dihedrals = [], [], [], []
        tag = 1
        for c in range(nchains):
            origin = np.array(
                [
                    0.5,
                    (c % ny + 0.5) * box[1] / ny,
                    (c // ny + 0.5) * box[2] / ny,
                ]
            )
            first = tag
            for b in range(nbeads):
                pos = origin + np.array([b * dx, 0.0, dz * (b % 2)])
                if jitter:
                    pos = pos + rng.uniform(-jitter, jitter, size=3)
                atoms.append(Atom(tag, atom_type, pos))
                tag += 1
            members = list(range(first, tag))
            bonds += [(bond_type, *members[k : k + 2]) for k in range(nbeads - 1)]
            angles += [(angle_type, *members[k : k + 3]) for k in range(nbeads - 2)]
            dihedrals += [(dihedral_type, *members[k : k + 4]) for k in range(nbeads - 3)]

        assign_topology(atoms, bonds, angles, dihedrals, newton_bond=newton_bond)
        cell = Cell(np.diag(box), atoms, pbc_enabled=True)
        assign_special(cell)
        logger.debug(
            f"Created {nchains} chains: {len(bonds)} bonds, {len(angles)} angles, "
            f"{len(dihedrals)} dihedrals"
        )
        return cell
