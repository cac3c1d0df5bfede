#!/usr/bin/env python3
"""平板空间分解测试"""

import numpy as np
import pytest

from borntensor.core.crystalline_structures import StructureBuilder
from borntensor.core.decomposition import decompose
from borntensor.core.structure import Atom, Cell


@pytest.fixture
def sc_cell():
    """6×6×6 简单立方，晶格常数 1.0"""
    return StructureBuilder().create_simple_cubic(1.0, (6, 6, 6))


class TestDecompose:
    @pytest.mark.parametrize("nworkers", [1, 2, 3])
    def test_local_atoms_partition_system(self, sc_cell, nworkers):
        parts = decompose(sc_cell, nworkers, ghost_cutoff=1.2)
        assert len(parts) == nworkers
        local_tags = np.concatenate([p.get_tags()[: p.num_local] for p in parts])
        assert sorted(local_tags.tolist()) == sorted(sc_cell.get_tags().tolist())

    def test_single_worker_has_no_ghosts(self, sc_cell):
        (part,) = decompose(sc_cell, 1, ghost_cutoff=2.0)
        assert part.num_ghost == 0
        assert part.num_local == sc_cell.num_atoms

    def test_ghosts_within_cutoff(self, sc_cell):
        parts = decompose(sc_cell, 2, ghost_cutoff=1.2)
        for part in parts:
            local = part.get_positions()[: part.num_local]
            ghosts = part.get_positions()[part.num_local :]
            assert len(ghosts) > 0
            for g in ghosts:
                d = part.minimum_image(local - g)
                assert np.min(np.einsum("ij,ij->i", d, d)) <= 1.2**2

    def test_ghosts_cover_all_neighbors(self, sc_cell):
        """本地原子在截断内的每个邻居都出现在本分区中"""
        cutoff = 1.5
        parts = decompose(sc_cell, 3, ghost_cutoff=cutoff)
        positions = sc_cell.get_positions()
        for part in parts:
            known = set(part.get_tags().tolist())
            for atom in part.atoms[: part.num_local]:
                d = sc_cell.minimum_image(positions - atom.position)
                near = np.nonzero(np.einsum("ij,ij->i", d, d) <= cutoff**2)[0]
                assert {sc_cell.atoms[k].id for k in near} <= known

    def test_copies_are_independent(self, sc_cell):
        sc_cell.add_group("g", [1, 2, 3])
        parts = decompose(sc_cell, 2, ghost_cutoff=1.2)
        part = parts[0]
        assert part.groups == sc_cell.groups
        part.atoms[0].position[:] = -1.0
        assert np.all(sc_cell.get_positions() >= 0.0)

    def test_topology_travels_with_atoms(self):
        cell = StructureBuilder().create_chains(1, 6, 1.0, (10.0, 10.0, 10.0))
        parts = decompose(cell, 2, ghost_cutoff=3.5)
        for part in parts:
            for atom in part.atoms:
                original = cell.atoms[cell.map(atom.id)]
                assert atom.bonds == original.bonds
                assert atom.special == original.special

    def test_invalid_arguments(self, sc_cell):
        with pytest.raises(ValueError, match="工作进程数"):
            decompose(sc_cell, 0, 1.0)
        with pytest.raises(ValueError, match="ghost_cutoff"):
            decompose(sc_cell, 2, -1.0)
        with pytest.raises(ValueError, match="切分方向"):
            decompose(sc_cell, 2, 1.0, axis=3)

    def test_cell_with_ghosts_rejected(self):
        atoms = [Atom(1, 1, [0, 0, 0]), Atom(2, 1, [1, 0, 0])]
        cell = Cell(np.eye(3) * 5.0, atoms, num_local=1)
        with pytest.raises(ValueError, match="ghost"):
            decompose(cell, 2, 1.0)

    def test_empty_region_gives_empty_partition(self):
        """区域内没有原子的进程得到空晶胞，而不是报错"""
        cell = Cell(np.eye(3) * 10.0, [Atom(1, 1, [1.0, 1.0, 1.0])])
        first, second = decompose(cell, 2, 1.0)
        assert first.num_local == 1
        assert second.num_local == 0
        assert second.num_atoms == 0
        assert second.groups == cell.groups
