#!/usr/bin/env python3
"""
测试相互作用风格基类与公共工具
"""

import math

import numpy as np
import pytest

from borntensor.core.structure import Atom, Cell
from borntensor.potentials.base import (
    AngleStyle,
    DihedralStyle,
    PairStyle,
    _type_table,
    theta_to_cos_derivatives,
)
from borntensor.potentials.bonded import CosineSquaredAngle, HarmonicDihedral


def make_cell(positions, box=10.0):
    atoms = [Atom(k + 1, 1, p) for k, p in enumerate(positions)]
    return Cell(np.eye(3) * box, atoms)


class TestTypeTable:
    def test_normalizes_keys(self):
        table = _type_table({"1": {"k": 1.0}, 2: {"k": 2.0}}, "bond harmonic")
        assert set(table) == {1, 2}
        assert table[1]["k"] == 1.0

    def test_rejects_nonpositive(self):
        with pytest.raises(ValueError, match="正整数"):
            _type_table({0: {"k": 1.0}}, "bond harmonic")

    def test_rejects_out_of_range(self):
        with pytest.raises(ValueError, match="超出类型数"):
            _type_table({3: {"k": 1.0}}, "bond harmonic", ntypes=2)


class TestThetaToCos:
    def test_matches_chain_rule(self):
        """U(θ) = θ² 时 dU/dc、d²U/dc² 与对 c 的数值微分一致"""
        c = 0.3
        h = 1e-5

        def u(x):
            return math.acos(x) ** 2

        theta = math.acos(c)
        du, du2 = theta_to_cos_derivatives(2.0 * theta, 2.0, c)
        assert du == pytest.approx((u(c + h) - u(c - h)) / (2 * h), rel=1e-7)
        assert du2 == pytest.approx(
            (u(c + h) - 2 * u(c) + u(c - h)) / (h * h), rel=1e-4
        )

    def test_sine_is_clamped(self):
        du, du2 = theta_to_cos_derivatives(1.0, 0.0, 1.0)
        assert du == pytest.approx(-1000.0)
        assert du2 == pytest.approx(-1.0e9)
        assert np.isfinite(du2)


class TestAbstractStyles:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            PairStyle()

    def test_repr_and_capability(self):
        style = CosineSquaredAngle({1: {"k": 1.0, "theta0": 90.0}})
        assert isinstance(style, AngleStyle)
        assert style.born_enable
        assert "cosine/squared" in repr(style)

    def test_missing_coefficient(self):
        style = CosineSquaredAngle({1: {"k": 1.0, "theta0": 90.0}})
        with pytest.raises(KeyError, match="缺少系数"):
            style.derivatives(2, 0.5)


class TestGeometryFromCell:
    def test_angle_born_uses_vertex(self):
        """键角以 atom2 为顶点"""
        cell = make_cell([[6.0, 5.0, 5.0], [5.0, 5.0, 5.0], [5.0, 6.0, 5.0]])
        style = CosineSquaredAngle({1: {"k": 2.0, "theta0": 120.0}})
        assert style.cosine(cell, 0, 1, 2) == pytest.approx(0.0, abs=1e-12)
        du, du2 = style.born(cell, 1, 0, 1, 2)
        assert du == pytest.approx(2.0 * 2.0 * (0.0 - math.cos(math.radians(120.0))))
        assert du2 == pytest.approx(4.0)

    def test_angle_across_boundary(self):
        cell = make_cell([[0.5, 5.0, 5.0], [9.5, 5.0, 5.0], [8.5, 5.0, 5.0]])
        style = CosineSquaredAngle({1: {"k": 1.0, "theta0": 90.0}})
        assert style.cosine(cell, 0, 1, 2) == pytest.approx(-1.0)

    @pytest.mark.parametrize("last,expected", [([6.0, 4.0, 5.0], -1.0), ([6.0, 6.0, 5.0], 1.0)])
    def test_dihedral_trans_and_cis(self, last, expected):
        cell = make_cell([[5.0, 6.0, 5.0], [5.0, 5.0, 5.0], [6.0, 5.0, 5.0], last])
        style = HarmonicDihedral({1: {"k": 1.0, "d": 1, "n": 1}})
        assert isinstance(style, DihedralStyle)
        assert style.cosine(cell, 0, 1, 2, 3) == pytest.approx(expected)
        du, du2 = style.born(cell, 1, 0, 1, 2, 3)
        # n = 1 时 U = K (1 + d cosφ)
        assert du == pytest.approx(1.0)
        assert du2 == pytest.approx(0.0)
