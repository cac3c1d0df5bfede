#!/usr/bin/env python3
"""
测试成键相互作用风格：导数与能量的数值微分一致
"""

import math

import pytest

from borntensor.potentials.bonded import (
    CosineSquaredAngle,
    HarmonicAngle,
    HarmonicBond,
    HarmonicDihedral,
    HarmonicImproper,
    MorseBond,
)

H = 1e-5


def numeric_derivatives(energy, x, h=H):
    first = (energy(x + h) - energy(x - h)) / (2 * h)
    second = (energy(x + h) - 2 * energy(x) + energy(x - h)) / (h * h)
    return first, second


class TestBonds:
    @pytest.mark.parametrize("r", [0.8, 1.0, 1.3])
    def test_harmonic(self, r):
        bond = HarmonicBond({1: {"k": 50.0, "r0": 1.0}})
        du, du2 = bond.born(1, r * r, 0, 1)
        assert du == pytest.approx(100.0 * (r - 1.0), abs=1e-12)
        assert du2 == 100.0
        assert bond.energy(1, r * r) == pytest.approx(50.0 * (r - 1.0) ** 2)

    @pytest.mark.parametrize("r", [0.9, 1.2, 1.8])
    def test_morse(self, r):
        bond = MorseBond({1: {"d0": 2.0, "alpha": 1.5, "r0": 1.1}})
        du, du2 = bond.born(1, r * r, 0, 1)
        first, second = numeric_derivatives(lambda x: bond.energy(1, x * x), r, h=1e-4)
        assert du == pytest.approx(first, rel=1e-6, abs=1e-9)
        assert du2 == pytest.approx(second, rel=1e-4, abs=1e-7)

    def test_morse_minimum(self):
        bond = MorseBond({1: {"d0": 2.0, "alpha": 1.5, "r0": 1.1}})
        du, du2 = bond.born(1, 1.21, 0, 1)
        assert du == pytest.approx(0.0, abs=1e-12)
        assert du2 == pytest.approx(2.0 * 2.0 * 1.5**2)
        assert bond.energy(1, 1.21) == pytest.approx(0.0, abs=1e-24)

    def test_missing_type(self):
        bond = HarmonicBond({1: {"k": 50.0, "r0": 1.0}})
        with pytest.raises(KeyError, match="bond 类型 2"):
            bond.born(2, 1.0, 0, 1)


class TestAngles:
    @pytest.mark.parametrize("c", [-0.6, -0.1, 0.4])
    def test_harmonic_cos_derivatives(self, c):
        angle = HarmonicAngle({1: {"k": 20.0, "theta0": 100.0}})
        du, du2 = angle.derivatives(1, c)
        first, second = numeric_derivatives(lambda x: angle.energy(1, x), c)
        assert du == pytest.approx(first, rel=1e-6)
        assert du2 == pytest.approx(second, rel=1e-4)

    def test_harmonic_equilibrium(self):
        angle = HarmonicAngle({1: {"k": 20.0, "theta0": 100.0}})
        c0 = math.cos(math.radians(100.0))
        du, du2 = angle.derivatives(1, c0)
        assert du == pytest.approx(0.0, abs=1e-10)
        assert du2 == pytest.approx(40.0 / (1.0 - c0 * c0))
        assert angle.energy(1, c0) == pytest.approx(0.0, abs=1e-20)

    def test_cosine_squared(self):
        angle = CosineSquaredAngle({1: {"k": 15.0, "theta0": 120.0}})
        du, du2 = angle.derivatives(1, 0.0)
        assert du == pytest.approx(15.0)
        assert du2 == pytest.approx(30.0)
        assert angle.energy(1, -0.5) == pytest.approx(0.0, abs=1e-20)


class TestHarmonicDihedral:
    @pytest.mark.parametrize("n,d", [(0, 1), (1, 1), (2, -1), (3, 1), (4, -1)])
    def test_energy_matches_cos_n_phi(self, n, d):
        dihedral = HarmonicDihedral({1: {"k": 1.5, "d": d, "n": n}})
        for phi in (0.3, 1.2, 2.5):
            expected = 1.5 * (1.0 + d * math.cos(n * phi))
            assert dihedral.energy(1, math.cos(phi)) == pytest.approx(expected)

    @pytest.mark.parametrize("n,d", [(1, -1), (2, 1), (3, -1)])
    def test_derivatives(self, n, d):
        dihedral = HarmonicDihedral({1: {"k": 1.5, "d": d, "n": n}})
        c = 0.35
        du, du2 = dihedral.derivatives(1, c)
        first, second = numeric_derivatives(lambda x: dihedral.energy(1, x), c)
        assert du == pytest.approx(first, rel=1e-6, abs=1e-9)
        assert du2 == pytest.approx(second, rel=1e-4, abs=1e-5)

    def test_n_zero_is_constant(self):
        dihedral = HarmonicDihedral({1: {"k": 2.0, "d": -1, "n": 0}})
        assert dihedral.derivatives(1, 0.2) == (0.0, 0.0)
        assert dihedral.energy(1, 0.2) == pytest.approx(0.0)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError, match="±1"):
            HarmonicDihedral({1: {"k": 1.0, "d": 2, "n": 1}})
        with pytest.raises(ValueError, match="非负"):
            HarmonicDihedral({1: {"k": 1.0, "d": 1, "n": -1}})


def test_improper_has_no_born():
    improper = HarmonicImproper({1: {"k": 3.0, "chi0": 0.0}})
    assert not improper.born_enable
    assert not hasattr(improper, "born")
    assert improper.energy(1, 0.5) == pytest.approx(0.75)
