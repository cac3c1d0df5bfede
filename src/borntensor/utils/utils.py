# 文件名: utils.py
# 作者: Gilbert Young
# 修改日期: 2025-07-11
# 文件描述: 半邻居列表、日志配置，以及常用的单位转换常量。

"""
工具模块

包含 NeighborList 类用于构建带特殊近邻编码的半邻居列表，
setup_logging 用于统一日志输出格式，以及一些常用的单位转换常量。
"""

import logging
import os
import time

import numpy as np
from scipy.spatial import cKDTree

logger = logging.getLogger(__name__)

EV_TO_GPA: float = 160.2176634
"""应力单位换算系数：eV/Å³ → GPa。"""

SBBITS: int = 30
"""邻居条目中特殊近邻编码的起始位。"""

NEIGHMASK: int = 0x3FFFFFFF
"""从邻居条目中取出真实原子索引的掩码。"""


def sbmask(entry: int) -> int:
    """从邻居条目中取出特殊近邻编码（0 表示普通近邻）"""
    return (int(entry) >> SBBITS) & 3


def setup_logging(output_dir: str | None = None, level: int = logging.INFO) -> None:
    """配置根日志：控制台 handler 与可选的 ``run.log`` 文件 handler

    Parameters
    ----------
    output_dir : str, optional
        输出目录；提供时写入 ``run.log``（DEBUG 级别）
    level : int, optional
        控制台日志级别
    """
    root = logging.getLogger()
    root.setLevel(min(level, logging.DEBUG) if output_dir else level)
    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    has_stream = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    )
    if not has_stream:
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root.addHandler(sh)
    else:
        for h in root.handlers:
            if isinstance(h, logging.StreamHandler) and not isinstance(
                h, logging.FileHandler
            ):
                h.setLevel(level)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        fh = logging.FileHandler(
            os.path.join(output_dir, "run.log"), mode="w", encoding="utf-8"
        )
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)


class NeighborList:
    """
    半邻居列表类

    每个无序原子对在整个分布式体系中只出现一次。列表只为本地原子建立，
    邻居可以是本地原子或 ghost 原子；条目编码为 ``j | (code << SBBITS)``，
    其中 code 为 1-2/1-3/1-4 特殊近邻编码。

    Parameters
    ----------
    cutoff : float
        截断半径
    skin : float, optional
        皮肤厚度，默认为 0.3
    newton_pair : bool, optional
        为 True 时本地-ghost 原子对按全局标签规则只在一个进程上列出
        （标签较小的原子所在进程）；为 False 时在两个进程上都列出
    special_lj, special_coul : sequence of float, optional
        特殊近邻的缩放因子（下标 1/2/3）；两者均为 0 的特殊近邻对不列出

    Notes
    -----
    小体系（< 64 原子）使用双重循环构建，其余使用 ``scipy.spatial.cKDTree``
    的周期性搜索。周期体系要求截断（含皮肤）不超过最短盒长的一半，
    否则 :meth:`build` 抛出 ``ValueError``。
    """

    def __init__(
        self,
        cutoff: float,
        skin: float = 0.3,
        newton_pair: bool = True,
        special_lj=(1.0, 0.0, 0.0, 0.0),
        special_coul=(1.0, 0.0, 0.0, 0.0),
    ):
        if not isinstance(cutoff, int | float) or cutoff <= 0:
            raise ValueError("Cutoff must be a positive number")
        if not isinstance(skin, int | float) or skin < 0:
            raise ValueError("Skin must be non-negative")

        self.cutoff = float(cutoff)
        self.skin = float(skin)
        self.cutoff_with_skin = self.cutoff + self.skin
        self.newton_pair = bool(newton_pair)
        self.special_lj = tuple(float(v) for v in special_lj)
        self.special_coul = tuple(float(v) for v in special_coul)
        self.neighbor_list = None
        self.last_positions = None
        self.cell = None

        self._build_count = 0
        self._last_build_time = 0.0

        logger.debug(
            f"Initialized NeighborList with cutoff={cutoff}, skin={skin}, "
            f"newton_pair={newton_pair}"
        )

    @property
    def inum(self) -> int:
        """拥有邻居列表的原子数（本地原子数）"""
        return 0 if self.neighbor_list is None else len(self.neighbor_list)

    def get_neighbor_stats(self) -> dict:
        """
        返回邻居列表的统计信息

        Returns
        -------
        dict
            包含最小、最大、平均邻居数等统计信息的字典
        """
        if self.neighbor_list is None:
            return {}

        # 不拥有本地原子的分区统计全为零
        neighbor_counts = [len(neighbors) for neighbors in self.neighbor_list] or [0]
        return {
            "min_neighbors": min(neighbor_counts),
            "max_neighbors": max(neighbor_counts),
            "avg_neighbors": float(np.mean(neighbor_counts)),
            "total_pairs": int(sum(neighbor_counts)),
            "build_count": self._build_count,
            "last_build_time": self._last_build_time,
        }

    def _validate_cutoff(self, box_size: np.ndarray):
        """验证截断半径不超过盒长的一半

        最小镜像约定下每个原子对只取一个镜像；截断超过半盒长时其余周期镜像
        会被遗漏，Born 求和不再正确。

        Raises
        ------
        ValueError
            截断半径（含皮肤）大于最短盒长的一半
        """
        min_box_length = np.min(box_size)
        if self.cutoff_with_skin > min_box_length / 2:
            raise ValueError(
                f"Cutoff radius ({self.cutoff_with_skin:.3f}) is too large "
                f"compared to half box length ({min_box_length / 2:.3f})"
            )

    def build(self, cell):
        """构建邻居列表"""
        start_time = time.time()

        positions = cell.get_positions()
        num_atoms = cell.num_atoms
        self.cell = cell

        if cell.pbc_enabled:
            self._validate_cutoff(cell.get_box_lengths())

        if num_atoms < 64 or not (cell.pbc_enabled and cell.is_orthogonal):
            pairs = self._build_brute_force(cell, positions)
        else:
            pairs = self._build_with_tree(cell, positions)

        self.neighbor_list = self._encode(cell, pairs)
        self.last_positions = positions.copy()
        self._build_count += 1
        self._last_build_time = time.time() - start_time

        logger.debug(
            f"Built half neighbor list for {cell.num_local} local atoms "
            f"({num_atoms} total) in {self._last_build_time:.3f}s"
        )

    def _build_brute_force(self, cell, positions) -> list[tuple[int, int]]:
        """使用逐原子向量化距离计算构建小系统的原子对。"""
        cutoff_squared = self.cutoff_with_skin**2
        pairs = []
        for i in range(cell.num_local):
            rij = cell.minimum_image(positions - positions[i])
            distance_squared = np.einsum("ij,ij->i", rij, rij)
            for j in np.nonzero(distance_squared < cutoff_squared)[0]:
                j = int(j)
                if j != i and self._keeps(cell, i, j):
                    pairs.append((i, j))
        return pairs

    def _build_with_tree(self, cell, positions) -> list[tuple[int, int]]:
        """基于 cKDTree 周期性搜索构建原子对。"""
        box = np.diag(cell.lattice_vectors)
        tree = cKDTree(cell.wrap_positions(positions), boxsize=box)
        candidates = tree.query_pairs(r=self.cutoff_with_skin, output_type="ndarray")
        pairs = []
        for p, q in candidates:
            p, q = int(p), int(q)
            if cell.is_local(p):
                i, j = p, q
            elif cell.is_local(q):
                i, j = q, p
            else:
                continue
            if self._keeps(cell, i, j):
                pairs.append((i, j))
        return pairs

    def _keeps(self, cell, i: int, j: int) -> bool:
        """原子对 (i, j) 是否由本地原子 i 列出（i 为本地原子）"""
        if cell.is_local(j):
            return j > i
        if self.newton_pair:
            return cell.atoms[i].id < cell.atoms[j].id
        return True

    def _encode(self, cell, pairs) -> list[np.ndarray]:
        """按特殊近邻编码生成每个本地原子的邻居条目"""
        entries = [[] for _ in range(cell.num_local)]
        for i, j in pairs:
            code = cell.atoms[i].special.get(cell.atoms[j].id, 0)
            if code and self.special_lj[code] == 0.0 and self.special_coul[code] == 0.0:
                continue
            entries[i].append(j | (code << SBBITS))
        return [np.array(sorted(e), dtype=np.int64) for e in entries]

    def need_refresh(self, cell=None) -> bool:
        """
        判断是否需要更新邻居列表。

        Returns
        -------
        bool
            如果需要更新，返回 True；否则返回 False。
        """
        if cell is not None and cell is not self.cell:
            return True
        if self.last_positions is None or self.cell is None:
            return True
        positions = self.cell.get_positions()
        if positions.shape != self.last_positions.shape:
            return True
        if len(positions) == 0:
            return False
        displacements = self.cell.minimum_image(positions - self.last_positions)
        max_displacement = np.max(np.linalg.norm(displacements, axis=1))
        return max_displacement > (self.skin * 0.5)

    def update(self, cell=None):
        """按需（偶发）更新邻居列表。"""
        cell = cell if cell is not None else self.cell
        if self.need_refresh(cell):
            self.build(cell)

    def get_neighbors(self, atom_index):
        """
        获取指定本地原子的编码邻居条目。

        Parameters
        ----------
        atom_index : int
            本地原子的索引。

        Returns
        -------
        numpy.ndarray
            编码后的邻居条目。
        """
        if self.neighbor_list is None:
            self.build(self.cell)
        return self.neighbor_list[atom_index]
