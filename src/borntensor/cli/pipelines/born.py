"""Born 张量场景流水线

由 YAML 配置构建体系（晶格或显式原子 + 拓扑）、力场与分组，
执行 :class:`~borntensor.elastic.born.compute.ComputeBorn`，并输出：

- ``born_vector.yaml``：21 个分量（eV）、体积及 GPa 换算
- ``born.h5``：HDF5 记录（``output.hdf5``）
- ``born_matrix.png``：6×6 热图（``output.plot``）

``born.nworkers > 1`` 时在单进程内做平板分解，逐分区计算后求和，
用于检查分解结果与整体计算一致；``born.use_mpi`` 为真时每个 MPI 进程
计算自己的分区并通过 ``Allreduce`` 归约。
"""

from __future__ import annotations

import logging
import os

import numpy as np
import yaml

from ...core.config import ConfigManager
from ...core.crystalline_structures import StructureBuilder
from ...core.decomposition import decompose
from ...core.parallel import SerialCommunicator, world_communicator
from ...core.structure import Atom, Cell
from ...core.topology import assign_special, assign_topology
from ...elastic.born.compute import ComputeBorn
from ...elastic.born.numerical import numerical_born_vector
from ...elastic.voigt import BORN_LABELS, born_vector_to_matrix, to_stiffness_gpa
from ...potentials.force_field import ForceField
from ...utils.plotting import plot_born_matrix
from ...utils.recorder import BornRecorder

logger = logging.getLogger(__name__)


def build_cell(cfg: ConfigManager) -> Cell:
    """按 ``system``/``topology``/``groups`` 配置构建完整体系"""
    builder_kind = str(cfg.get("system.builder", "lattice")).lower()
    newton_bond = bool(cfg.get("force_field.newton_bond", True))

    if builder_kind == "lattice":
        cell = StructureBuilder().create_lattice(
            str(cfg.get("system.lattice", "fcc")).lower(),
            float(cfg.get("system.lattice_constant", 1.5496)),
            tuple(int(n) for n in cfg.get("system.supercell", [4, 4, 4])),
            atom_type=int(cfg.get("system.type", 1)),
        )
    elif builder_kind == "chains":
        cell = StructureBuilder().create_chains(
            int(cfg.get("system.nchains", 4)),
            int(cfg.get("system.nbeads", 8)),
            float(cfg.get("system.bond_length", 1.0)),
            cfg.get("system.box", [12.0, 12.0, 12.0]),
            bond_angle=float(cfg.get("system.bond_angle", 109.47)),
            newton_bond=newton_bond,
            jitter=float(cfg.get("system.jitter", 0.05)),
            seed=int(cfg.get("system.seed", 42)),
        )
    elif builder_kind == "atoms":
        records = cfg.get("system.atoms", [])
        if not records:
            raise ValueError("system.atoms 不能为空")
        atoms = [Atom(int(r[0]), int(r[1]), [float(v) for v in r[2:5]]) for r in records]
        assign_topology(
            atoms,
            bonds=cfg.get("topology.bonds", []) or [],
            angles=cfg.get("topology.angles", []) or [],
            dihedrals=cfg.get("topology.dihedrals", []) or [],
            impropers=cfg.get("topology.impropers", []) or [],
            newton_bond=newton_bond,
        )
        cell = Cell(np.diag(cfg.get("system.box")), atoms, pbc_enabled=True)
        assign_special(cell)
    else:
        raise ValueError(f"未知体系构建方式 system.builder: {builder_kind}")

    for name, tags in (cfg.get("groups", {}) or {}).items():
        cell.add_group(name, tags)
    return cell


def _ghost_cutoff(cfg, force_field, skin) -> float:
    """ghost 收集半径：默认取对势截断加皮肤厚度"""
    if force_field.pair is None:
        raise ValueError("No pair style is defined for compute born")
    return float(cfg.get("born.ghost_cutoff", force_field.pair.cutoff + skin))


def _run_partitions(cell, force_field, group, nworkers, skin, ghost_cutoff) -> np.ndarray:
    """单进程内逐分区计算并求和"""
    total = np.zeros(len(BORN_LABELS))
    for rank, part in enumerate(decompose(cell, nworkers, ghost_cutoff)):
        compute = ComputeBorn(
            part, force_field, group=group, comm=SerialCommunicator(), skin=skin
        )
        vec = compute.compute_vector()
        logger.info(f"分区 {rank}: {compute.counts}")
        total += vec
    return total


def run_born_pipeline(cfg: ConfigManager, outdir: str) -> dict:
    """执行 Born 张量计算场景

    Returns
    -------
    dict
        ``{"vector", "vector_gpa", "volume", "labels"}`` 以及可选的
        ``"numerical"``（有限差分结果）
    """
    cell = build_cell(cfg)
    force_field = ForceField.from_config(cfg.get("force_field", {}) or {})

    group = str(cfg.get("born.group", "all"))
    skin = float(cfg.get("born.skin", 0.3))
    nworkers = int(cfg.get("born.nworkers", 1))
    use_mpi = bool(cfg.get("born.use_mpi", False))
    step = int(cfg.get("born.step", 0))

    logger.info(
        f"体系: {cell.num_atoms} 原子, 体积 {cell.volume:.4f}, 组 '{group}', "
        f"workers={nworkers}, mpi={use_mpi}"
    )

    rank = 0
    if use_mpi:
        comm = world_communicator()
        rank = comm.Get_rank()
        part = decompose(cell, comm.Get_size(), _ghost_cutoff(cfg, force_field, skin))[rank]
        compute = ComputeBorn(part, force_field, group=group, comm=comm, skin=skin)
        vector = compute.compute_vector(step)
    elif nworkers > 1:
        vector = _run_partitions(
            cell, force_field, group, nworkers, skin, _ghost_cutoff(cfg, force_field, skin)
        )
    else:
        compute = ComputeBorn(cell, force_field, group=group, skin=skin)
        vector = compute.compute_vector(step)
        logger.info(f"贡献计数: {compute.counts}")

    matrix = born_vector_to_matrix(vector)
    vector_gpa = to_stiffness_gpa(vector, cell.volume)
    logger.info("Born 矩阵 (能量单位):\n" + np.array2string(matrix, precision=6))

    results = {
        "labels": list(BORN_LABELS),
        "vector": [float(v) for v in vector],
        "vector_gpa": [float(v) for v in vector_gpa],
        "volume": float(cell.volume),
    }

    if bool(cfg.get("born.check_numerical", False)):
        numerical = numerical_born_vector(
            cell, force_field, group=group, delta=float(cfg.get("born.delta", 1e-4))
        )
        diff = float(np.max(np.abs(numerical - vector)))
        logger.info(f"有限差分校验: 最大偏差 {diff:.3e}")
        results["numerical"] = [float(v) for v in numerical]
        results["max_abs_deviation"] = diff

    if rank != 0:
        return results

    with open(os.path.join(outdir, "born_vector.yaml"), "w", encoding="utf-8") as f:
        yaml.safe_dump(results, f, allow_unicode=True, sort_keys=False)

    if bool(cfg.get("output.hdf5", True)):
        recorder = BornRecorder(os.path.join(outdir, "born.h5"), volume=cell.volume)
        recorder.record(step, vector)
        recorder.save()
    if bool(cfg.get("output.plot", False)):
        plot_born_matrix(vector, os.path.join(outdir, "born_matrix.png"))

    return results
