#!/usr/bin/env python3
r"""
粒子结构模块

该模块提供 Born 弹性张量计算所需的基础数据结构：原子与晶胞。
晶胞同时承担"宿主模拟环境"的几何服务（最小镜像约定）与粒子快照
（本地原子 + ghost 副本、全局标签映射、组掩码）两种角色。

理论基础
--------
分数/笛卡尔坐标定义（采用列向量记号）：

.. math::
    \mathbf{r} = \mathbf{L}\,\mathbf{s},\qquad
    \mathbf{s} = \mathbf{L}^{-1}\,\mathbf{r}

最小镜像约定 (Minimum Image Convention)：

.. math::
    \mathbf{r}_{\min} = \mathbf{r} - \mathbf{L}\, \operatorname{round}(\mathbf{L}^{-1} \mathbf{r})

实现说明：本模块内部使用“行向量右乘”的等价实现，
即 :math:`\mathbf{s}^{\top} = \mathbf{r}^{\top}\,\mathbf{L}^{-1}`。

Classes
-------
Atom
    单个粒子：全局标签、类型、位置、组掩码、成键拓扑记录
Cell
    晶胞：晶格矢量、原子集合（本地在前，ghost 在后）、组与分子模板

Notes
-----
原子列表的前 ``num_local`` 个为本进程拥有的本地原子，其余为其他进程
所拥有原子的只读 ghost 副本。Born 计算核心从不修改其中任何数据。

Examples
--------
>>> import numpy as np
>>> from borntensor.core.structure import Atom, Cell
>>> atoms = [Atom(1, 1, [0.0, 0.0, 0.0]), Atom(2, 1, [1.0, 0.0, 0.0])]
>>> cell = Cell(np.eye(3) * 10.0, atoms)
>>> cell.map(2)
1
"""

import logging

import numpy as np
from numba import jit

logger = logging.getLogger(__name__)

ORTHOGONAL_TOL = 1e-12
"""判断晶格矢量非对角分量为零的绝对容差。"""


@jit(nopython=True)
def _minimum_image_orthogonal(displacements, box_lengths):
    """JIT优化的正交盒子最小镜像

    Parameters
    ----------
    displacements : numpy.ndarray
        位移数组 (N, 3)
    box_lengths : numpy.ndarray
        三个方向的盒长 (3,)

    Returns
    -------
    numpy.ndarray
        最小镜像位移数组 (N, 3)
    """
    out = displacements.copy()
    for m in range(out.shape[0]):
        for k in range(3):
            length = box_lengths[k]
            out[m, k] -= length * np.floor(out[m, k] / length + 0.5)
    return out


class Atom:
    r"""粒子对象，Born 计算读取的基本单元

    Parameters
    ----------
    id : int
        全局唯一标签（tag），跨进程一致
    type : int
        原子类型编号（从 1 开始）
    position : array_like
        3D 笛卡尔坐标
    mask : int, optional
        组成员位掩码，默认 1（仅属于 ``all`` 组）
    molindex : int, optional
        所属分子模板编号；``-1`` 表示拓扑直接存储在原子上
    molatom : int, optional
        原子在分子模板内的序号（从 0 开始）

    Attributes
    ----------
    bonds : list of tuple
        ``(btype, partner_tag)`` 键记录
    angles : list of tuple
        ``(atype, tag1, tag2, tag3)`` 键角记录
    dihedrals : list of tuple
        ``(dtype, tag1, tag2, tag3, tag4)`` 二面角记录
    impropers : list of tuple
        ``(itype, tag1, tag2, tag3, tag4)`` 非正常二面角记录（Born 计算从不使用）
    special : dict
        ``{partner_tag: code}``，code 为 1/2/3 分别对应 1-2/1-3/1-4 近邻
    """

    def __init__(
        self,
        id: int,
        type: int,
        position: np.ndarray,
        mask: int = 1,
        molindex: int = -1,
        molatom: int = -1,
    ) -> None:
        self.id = int(id)
        self.type = int(type)
        self.position = np.array(position, dtype=np.float64)
        self.mask = int(mask)
        self.molindex = int(molindex)
        self.molatom = int(molatom)
        self.bonds: list[tuple[int, int]] = []
        self.angles: list[tuple[int, int, int, int]] = []
        self.dihedrals: list[tuple[int, int, int, int, int]] = []
        self.impropers: list[tuple[int, int, int, int, int]] = []
        self.special: dict[int, int] = {}

    def move_by(self, displacement: np.ndarray) -> None:
        """通过位置增量移动原子

        Parameters
        ----------
        displacement : numpy.ndarray | array_like
            位置增量向量，形状为 (3,)

        Raises
        ------
        ValueError
            如果位置增量不是3D向量
        """
        if not isinstance(displacement, np.ndarray):
            displacement = np.array(displacement, dtype=np.float64)

        if displacement.shape != (3,):
            raise ValueError(f"位置增量必须是3D向量，当前形状: {displacement.shape}")

        self.position += displacement

    def copy(self) -> "Atom":
        """创建 Atom 的深拷贝（包括拓扑记录与特殊近邻表）"""
        atom = Atom(
            id=self.id,
            type=self.type,
            position=self.position.copy(),
            mask=self.mask,
            molindex=self.molindex,
            molatom=self.molatom,
        )
        atom.bonds = list(self.bonds)
        atom.angles = list(self.angles)
        atom.dihedrals = list(self.dihedrals)
        atom.impropers = list(self.impropers)
        atom.special = dict(self.special)
        return atom


class Cell:
    r"""晶胞对象，管理原子集合、组与几何服务

    Parameters
    ----------
    lattice_vectors : array_like
        3×3晶格矢量矩阵，每行为一个晶格矢量
    atoms : list of Atom
        原子列表；前 ``num_local`` 个为本地原子，其余为 ghost
    pbc_enabled : bool, optional
        是否启用周期性边界条件，默认True
    num_local : int, optional
        本地原子数；默认所有原子均为本地原子；显式给出 0 时
        允许原子列表为空（不拥有任何原子的工作进程分区）
    dimension : int, optional
        模拟维度，默认 3
    molecules : list of MoleculeTemplate, optional
        分子模板列表；非空时拓扑通过模板间接获取
    groups : dict, optional
        组名到位掩码的映射；``all`` 组总是位 1

    Attributes
    ----------
    lattice_vectors : numpy.ndarray
        晶格矢量矩阵 (3, 3)
    lattice_inv : numpy.ndarray
        晶格逆矩阵，用于坐标转换
    volume : float
        晶胞体积

    Examples
    --------
    >>> cell = Cell(np.diag([4.0, 5.0, 6.0]), [Atom(1, 1, [0, 0, 0])])
    >>> cell.is_orthogonal
    True
    """

    def __init__(
        self,
        lattice_vectors: np.ndarray,
        atoms: list["Atom"],
        pbc_enabled: bool = True,
        num_local: int | None = None,
        dimension: int = 3,
        molecules: list | None = None,
        groups: dict[str, int] | None = None,
    ) -> None:
        if not atoms and num_local != 0:
            raise ValueError("原子列表不能为空")

        if not self._validate_lattice_vectors(lattice_vectors):
            raise ValueError("Invalid lattice vectors")

        self.lattice_vectors = np.array(lattice_vectors, dtype=np.float64)
        self.atoms = atoms
        self.pbc_enabled = pbc_enabled
        self.dimension = int(dimension)
        self.num_local = len(atoms) if num_local is None else int(num_local)
        if not 0 <= self.num_local <= len(atoms):
            raise ValueError(
                f"本地原子数必须在 [0, {len(atoms)}] 范围内，当前: {self.num_local}"
            )
        self.molecules = list(molecules) if molecules else []
        self.groups = {"all": 1}
        if groups:
            self.groups.update(groups)
        self.volume = self.calculate_volume()
        self.lattice_inv = np.linalg.inv(self.lattice_vectors)

        self._validate_atoms()
        self._tag_map = self._build_tag_map()

    def _validate_lattice_vectors(self, lattice_vectors: np.ndarray) -> bool:
        """验证晶格向量的有效性

        检查内容包括：3x3 形状、可逆、体积为正。
        """
        if not isinstance(lattice_vectors, np.ndarray):
            lattice_vectors = np.array(lattice_vectors)

        if lattice_vectors.shape != (3, 3):
            return False

        try:
            np.linalg.inv(lattice_vectors)
        except np.linalg.LinAlgError:
            return False

        return not np.linalg.det(lattice_vectors) <= 0

    def _validate_atoms(self) -> None:
        """验证原子标签唯一、位置有限

        Raises
        ------
        ValueError
            如果原子属性无效
        """
        atom_ids = set()
        for atom in self.atoms:
            if atom.id in atom_ids:
                raise ValueError(f"原子ID {atom.id} 重复")
            atom_ids.add(atom.id)

            if not np.all(np.isfinite(atom.position)):
                raise ValueError(f"原子 {atom.id} 的位置包含无效值")

    def _build_tag_map(self) -> dict[int, int]:
        return {atom.id: index for index, atom in enumerate(self.atoms)}

    def calculate_volume(self) -> float:
        """计算晶胞的体积"""
        return float(np.linalg.det(self.lattice_vectors))

    def get_box_lengths(self) -> np.ndarray:
        """返回模拟盒子在 x、y、z 方向的长度"""
        return np.linalg.norm(self.lattice_vectors, axis=1)

    @property
    def is_orthogonal(self) -> bool:
        """晶格矢量是否构成正交盒子（非对角分量全为零）"""
        off_diagonal = self.lattice_vectors - np.diag(np.diag(self.lattice_vectors))
        return bool(np.all(np.abs(off_diagonal) <= ORTHOGONAL_TOL))

    @property
    def num_atoms(self) -> int:
        """返回原子总数（本地 + ghost）"""
        return len(self.atoms)

    @property
    def num_ghost(self) -> int:
        """返回 ghost 原子数量"""
        return len(self.atoms) - self.num_local

    @property
    def molecular(self) -> int:
        """拓扑存储方式：1 为逐原子存储，2 为分子模板间接存储"""
        return 2 if self.molecules else 1

    def map(self, tag: int) -> int:
        """将全局标签映射为本进程内的原子索引

        Parameters
        ----------
        tag : int
            全局原子标签

        Returns
        -------
        int
            本地或 ghost 索引；本进程不知道该原子时返回 ``-1``
        """
        return self._tag_map.get(int(tag), -1)

    def is_local(self, index: int) -> bool:
        """索引是否属于本地原子"""
        return 0 <= index < self.num_local

    # --------- 组管理 ---------
    def group_bit(self, name: str) -> int:
        """返回组的位掩码

        Raises
        ------
        ValueError
            组不存在
        """
        try:
            return self.groups[name]
        except KeyError as e:
            raise ValueError(f"未定义的组: {name}") from e

    def add_group(self, name: str, tags) -> int:
        """定义新组并设置成员原子的掩码位

        Parameters
        ----------
        name : str
            组名
        tags : iterable of int
            成员原子的全局标签

        Returns
        -------
        int
            新组的位掩码
        """
        if name in self.groups:
            bit = self.groups[name]
        else:
            used = 0
            for value in self.groups.values():
                used |= value
            bit = 1
            while bit & used:
                bit <<= 1
            self.groups[name] = bit
        members = {int(t) for t in tags}
        for atom in self.atoms:
            if atom.id in members:
                atom.mask |= bit
        logger.debug(f"Group '{name}' -> bit {bit}, {len(members)} members")
        return bit

    # --------- 几何服务 ---------
    def minimum_image(self, displacement):
        r"""计算最小镜像位移向量

        .. math::
            \mathbf{d}_{\min} = \mathbf{d} - \mathbf{L}\, \operatorname{round}(\mathbf{L}^{-1} \mathbf{d})

        Parameters
        ----------
        displacement : numpy.ndarray
            原始位移，形状 (3,) 或 (N, 3)

        Returns
        -------
        numpy.ndarray
            最小镜像位移，保持输入形状

        Raises
        ------
        ValueError
            如果位移形状不正确或包含非有限值
        """
        if not isinstance(displacement, np.ndarray):
            displacement = np.array(displacement, dtype=np.float64)

        single = displacement.ndim == 1
        d = displacement.reshape(1, -1) if single else displacement
        if d.shape[1] != 3:
            raise ValueError(f"位移向量必须是3D向量，当前形状: {displacement.shape}")
        if not np.all(np.isfinite(d)):
            raise ValueError("Non-finite values in displacement for minimum image")

        if not self.pbc_enabled:
            result = d.astype(np.float64, copy=True)
        elif self.is_orthogonal:
            result = _minimum_image_orthogonal(
                np.ascontiguousarray(d, dtype=np.float64),
                np.ascontiguousarray(np.diag(self.lattice_vectors)),
            )
        else:
            fractional = np.dot(d, self.lattice_inv)
            fractional -= np.round(fractional)
            result = np.dot(fractional, self.lattice_vectors)

        return result[0] if single else result

    def wrap_positions(self, positions: np.ndarray) -> np.ndarray:
        """将位置映射回 [0, L) 主晶胞（正交盒子）

        Notes
        -----
        浮点取模可能恰好得到 L，此时回绕为 0。
        """
        box = np.diag(self.lattice_vectors)
        wrapped = np.mod(positions, box)
        return np.where(wrapped >= box, wrapped - box, wrapped)

    # --------- 批量访问 ---------
    def get_positions(self) -> np.ndarray:
        """获取所有原子（含 ghost）的位置，形状 (num_atoms, 3)"""
        return np.array(
            [atom.position for atom in self.atoms], dtype=np.float64
        ).reshape(-1, 3)

    def get_types(self) -> np.ndarray:
        """获取所有原子的类型编号"""
        return np.array([atom.type for atom in self.atoms], dtype=np.int64)

    def get_masks(self) -> np.ndarray:
        """获取所有原子的组掩码"""
        return np.array([atom.mask for atom in self.atoms], dtype=np.int64)

    def get_tags(self) -> np.ndarray:
        """获取所有原子的全局标签"""
        return np.array([atom.id for atom in self.atoms], dtype=np.int64)

    def copy(self) -> "Cell":
        """创建 Cell 的深拷贝"""
        return Cell(
            self.lattice_vectors.copy(),
            [atom.copy() for atom in self.atoms],
            pbc_enabled=self.pbc_enabled,
            num_local=self.num_local,
            dimension=self.dimension,
            molecules=self.molecules,
            groups=dict(self.groups),
        )
