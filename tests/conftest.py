"""
pytest配置文件 - 提供全局fixtures和测试配置
"""

import threading

import numpy as np
import pytest

from borntensor.core.crystalline_structures import StructureBuilder
from borntensor.core.structure import Atom, Cell
from borntensor.potentials.base import (
    AngleStyle,
    BondStyle,
    DihedralStyle,
    ImproperStyle,
    PairStyle,
)
from borntensor.potentials.bonded import HarmonicAngle, HarmonicBond, HarmonicDihedral
from borntensor.potentials.force_field import ForceField
from borntensor.potentials.lennard_jones import LennardJonesPair

LJ_FCC_A = 1.5496
LJ_CUTOFF = 2.5


# ---------------------------------------------------------------------------
# 桩风格：返回固定导数并记录调用参数
# ---------------------------------------------------------------------------


class ConstantPair(PairStyle):
    """对任意原子对返回固定 (du, du2) 的对势"""

    name = "constant"

    def __init__(self, du=2.0, du2=5.0, cutoff=2.0, ntypes=2):
        self.du = du
        self.du2 = du2
        self.cutoff = float(cutoff)
        self.cutsq = np.full((ntypes + 1, ntypes + 1), cutoff * cutoff)
        self.calls = []

    def born(self, i, j, itype, jtype, rsq, factor_coul, factor_lj):
        self.calls.append((i, j, itype, jtype, rsq, factor_coul, factor_lj))
        return self.du, self.du2

    def energy(self, itype, jtype, rsq, factor_coul=1.0, factor_lj=1.0):
        return 0.0


class UnsupportedPair(ConstantPair):
    name = "unsupported"
    born_enable = False


class ConstantBond(BondStyle):
    name = "constant"

    def __init__(self, du=1.0, du2=3.0):
        self.du = du
        self.du2 = du2
        self.calls = []

    def born(self, btype, rsq, atom1, atom2):
        self.calls.append((btype, rsq, atom1, atom2))
        return self.du, self.du2

    def energy(self, btype, rsq):
        return 0.0


class UnsupportedBond(ConstantBond):
    born_enable = False


class ConstantAngle(AngleStyle):
    name = "constant"

    def __init__(self, du=0.7, du2=1.3):
        self.du = du
        self.du2 = du2
        self.calls = []

    def born(self, cell, atype, atom1, atom2, atom3):
        self.calls.append((atype, atom1, atom2, atom3))
        return self.du, self.du2

    def derivatives(self, itype, c):
        return self.du, self.du2

    def energy(self, itype, c):
        return 0.0


class ConstantDihedral(DihedralStyle):
    name = "constant"

    def __init__(self, du=0.4, du2=-0.9):
        self.du = du
        self.du2 = du2
        self.calls = []

    def born(self, cell, dtype, atom1, atom2, atom3, atom4):
        self.calls.append((dtype, atom1, atom2, atom3, atom4))
        return self.du, self.du2

    def derivatives(self, itype, c):
        return self.du, self.du2

    def energy(self, itype, c):
        return 0.0


class CountingImproper(ImproperStyle):
    name = "counting"

    def __init__(self):
        self.calls = 0

    def energy(self, itype, chi):
        self.calls += 1
        return 0.0


# ---------------------------------------------------------------------------
# 线程通信器：在单进程内模拟多个工作进程的求和全归约
# ---------------------------------------------------------------------------


class ThreadCommunicator:
    """线程组中的一个成员，实现 ``Allreduce`` 求和"""

    def __init__(self, group, rank):
        self._group = group
        self._rank = rank

    def Get_rank(self):  # noqa: N802
        return self._rank

    def Get_size(self):  # noqa: N802
        return self._group.size

    def Barrier(self):  # noqa: N802
        self._group.barrier.wait()

    def Allreduce(self, sendbuf, recvbuf):  # noqa: N802
        group = self._group
        group.buffers[self._rank] = np.array(sendbuf, copy=True)
        group.barrier.wait()
        recvbuf[...] = np.sum(group.buffers, axis=0)
        group.barrier.wait()


class ThreadCommGroup:
    def __init__(self, size):
        self.size = size
        self.barrier = threading.Barrier(size, timeout=30)
        self.buffers = [None] * size

    def communicators(self):
        return [ThreadCommunicator(self, rank) for rank in range(self.size)]


def run_threaded(fn, nworkers):
    """在 ``nworkers`` 个线程中执行 ``fn(rank, comm)``，按 rank 返回结果"""
    comms = ThreadCommGroup(nworkers).communicators()
    results = [None] * nworkers
    errors = []

    def target(rank):
        try:
            results[rank] = fn(rank, comms[rank])
        except Exception as e:  # 由主线程重新抛出
            errors.append(e)

    threads = [threading.Thread(target=target, args=(r,)) for r in range(nworkers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return results


# ---------------------------------------------------------------------------
# 体系与力场
# ---------------------------------------------------------------------------


@pytest.fixture
def two_atom_cell():
    """沿 x 相距 1.0 的两原子体系"""
    atoms = [Atom(1, 1, [5.0, 5.0, 5.0]), Atom(2, 1, [6.0, 5.0, 5.0])]
    return Cell(np.eye(3) * 10.0, atoms)


@pytest.fixture
def lj_fcc_cell():
    """4×4×4 FCC 超胞（约化单位，256 原子）"""
    return StructureBuilder().create_fcc(LJ_FCC_A, (4, 4, 4))


@pytest.fixture
def lj_pair():
    return LennardJonesPair({(1, 1): {"epsilon": 1.0, "sigma": 1.0}}, cutoff=LJ_CUTOFF)


@pytest.fixture
def lj_force_field(lj_pair):
    return ForceField(pair=lj_pair)


@pytest.fixture
def chain_cell():
    """两条 6 珠锯齿链，带随机扰动使二面角非平面"""
    return StructureBuilder().create_chains(
        2, 6, 0.97, (10.0, 10.0, 10.0), jitter=0.08, seed=7
    )


@pytest.fixture
def bonded_force_field():
    """LJ + 谐振键/键角/二面角，1-4 近邻缩放 0.5"""
    return ForceField(
        pair=LennardJonesPair(
            {(1, 1): {"epsilon": 1.0, "sigma": 1.0}}, cutoff=LJ_CUTOFF
        ),
        bond=HarmonicBond({1: {"k": 100.0, "r0": 1.0}}),
        angle=HarmonicAngle({1: {"k": 20.0, "theta0": 100.0}}),
        dihedral=HarmonicDihedral({1: {"k": 1.5, "d": 1, "n": 3}}),
        special_lj=(1.0, 0.0, 0.0, 0.5),
    )


# 全局测试配置
def pytest_configure(config):
    """pytest全局配置"""
    # 设置numpy错误处理
    np.seterr(all="raise", under="ignore")


def pytest_runtest_setup(item):
    """每个测试前的设置"""
    # 设置随机种子确保可重现性
    np.random.seed(42)
