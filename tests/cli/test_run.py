#!/usr/bin/env python3
"""CLI run模块测试

测试YAML配置驱动的CLI入口与 Born 场景流水线，包括场景调度、输出文件
以及分区计算与整体计算的一致性。
"""

import logging
import os
from unittest.mock import patch

import numpy as np
import pytest
import yaml

from borntensor.cli.pipelines.born import build_cell, run_born_pipeline
from borntensor.cli.run import main
from borntensor.core.config import ConfigManager
from borntensor.utils.recorder import BornRecorder

LJ_FORCE_FIELD = {
    "pair": {
        "style": "lj/cut",
        "cutoff": 2.5,
        "coeffs": {"1 1": {"epsilon": 1.0, "sigma": 1.0}},
    }
}

MOLECULE = {
    "system": {
        "builder": "atoms",
        "box": [10.0, 10.0, 10.0],
        "atoms": [
            [1, 1, 5.0, 6.0, 5.0],
            [2, 1, 5.0, 5.0, 5.0],
            [3, 1, 6.0, 5.0, 5.0],
            [4, 1, 6.3, 5.5, 5.8],
        ],
    },
    "topology": {
        "bonds": [[1, 1, 2], [1, 2, 3], [1, 3, 4]],
        "angles": [[1, 1, 2, 3], [1, 2, 3, 4]],
        "dihedrals": [[1, 1, 2, 3, 4]],
    },
    "force_field": {
        **LJ_FORCE_FIELD,
        "bond": {"style": "harmonic", "coeffs": {1: {"k": 80.0, "r0": 1.05}}},
        "angle": {"style": "harmonic", "coeffs": {1: {"k": 20.0, "theta0": 100.0}}},
        "dihedral": {"style": "harmonic", "coeffs": {1: {"k": 1.5, "d": -1, "n": 2}}},
        "special_lj": [1.0, 0.0, 0.0, 0.5],
    },
}


@pytest.fixture
def restore_logging():
    """main() 会向根日志添加 handler，测试结束后恢复"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


def write_config(tmp_path, data):
    data = dict(data)
    data.setdefault("run", {"output_dir": str(tmp_path / "out" / "{name}")})
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data, allow_unicode=True))
    return path


def lattice_config(**born):
    return {
        "system": {"builder": "lattice", "lattice": "fcc", "supercell": [4, 4, 4]},
        "force_field": LJ_FORCE_FIELD,
        "born": born,
    }


class TestCLIRunBasic:
    """CLI基本功能测试"""

    def test_missing_config_argument(self):
        """测试缺少配置文件参数时的错误处理"""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2  # argparse错误码

    def test_nonexistent_config_file(self):
        with pytest.raises(FileNotFoundError, match="配置文件不存在"):
            main(["-c", "nonexistent.yaml"])

    def test_unknown_scenario(self, tmp_path, restore_logging):
        path = write_config(tmp_path, {"scenario": "nve"})
        with pytest.raises(ValueError, match="未知场景类型"):
            main(["-c", str(path)])

    def test_dispatch_born(self, tmp_path, restore_logging):
        path = write_config(tmp_path, {"scenario": "born_matrix"})
        with patch("borntensor.cli.run.run_born_pipeline") as mock_pipeline:
            assert main(["-c", str(path)]) == 0
            mock_pipeline.assert_called_once()
        outdir = tmp_path / "out" / "born"
        assert (outdir / "resolved_config.yaml").exists()
        assert (outdir / "manifest.json").exists()
        assert (outdir / "run.log").exists()


class TestBornScenario:
    """Born 场景端到端测试"""

    def test_lattice_outputs(self, tmp_path, restore_logging):
        path = write_config(tmp_path, lattice_config())
        assert main(["-c", str(path)]) == 0

        outdir = tmp_path / "out" / "born"
        with open(outdir / "born_vector.yaml", encoding="utf-8") as f:
            results = yaml.safe_load(f)
        assert results["labels"][0] == "C11"
        assert len(results["vector"]) == 21
        assert results["volume"] == pytest.approx((4 * 1.5496) ** 3)
        assert "numerical" not in results
        # FCC 立方对称
        vector = np.array(results["vector"])
        assert vector[0] > 0
        assert vector[1] == pytest.approx(vector[0], rel=1e-9)

        steps, vectors, labels = BornRecorder.load(str(outdir / "born.h5"))
        assert list(steps) == [0]
        np.testing.assert_allclose(vectors[0], vector)
        assert labels == results["labels"]
        assert not (outdir / "born_matrix.png").exists()

    def test_partitions_match_serial(self, tmp_path):
        serial = run_born_pipeline(
            ConfigManager(overrides=lattice_config(nworkers=1)), str(tmp_path)
        )
        split = run_born_pipeline(
            ConfigManager(overrides=lattice_config(nworkers=2)), str(tmp_path)
        )
        np.testing.assert_allclose(
            split["vector"], serial["vector"], rtol=1e-10, atol=1e-9
        )

    def test_molecule_with_numerical_check(self, tmp_path):
        cfg = ConfigManager(
            overrides={
                **MOLECULE,
                "born": {"check_numerical": True},
                "output": {"hdf5": False, "plot": True},
            }
        )
        results = run_born_pipeline(cfg, str(tmp_path))
        scale = max(np.max(np.abs(results["vector"])), 1.0)
        assert len(results["numerical"]) == 21
        assert results["max_abs_deviation"] <= 1e-4 * scale
        assert (tmp_path / "born_vector.yaml").exists()
        assert (tmp_path / "born_matrix.png").exists()
        assert not (tmp_path / "born.h5").exists()

    def test_group_restricts_contributions(self, tmp_path):
        full = run_born_pipeline(ConfigManager(overrides=MOLECULE), str(tmp_path))
        partial = run_born_pipeline(
            ConfigManager(
                overrides={
                    **MOLECULE,
                    "groups": {"head": [1, 2, 3]},
                    "born": {"group": "head"},
                }
            ),
            str(tmp_path),
        )
        assert not np.allclose(full["vector"], partial["vector"])

    def test_gpa_conversion(self, tmp_path):
        results = run_born_pipeline(ConfigManager(overrides=MOLECULE), str(tmp_path))
        ratio = np.array(results["vector_gpa"]) * results["volume"]
        np.testing.assert_allclose(
            ratio, np.array(results["vector"]) * 160.2176634, rtol=1e-12
        )


class TestBuildCell:
    def test_atoms_builder(self):
        cell = build_cell(ConfigManager(overrides=MOLECULE))
        assert cell.num_atoms == 4
        assert cell.volume == pytest.approx(1000.0)
        assert cell.atoms[0].bonds == [(1, 2)]

    def test_chains_builder(self):
        cfg = ConfigManager(
            overrides={
                "system": {"builder": "chains", "nchains": 2, "nbeads": 5},
                "groups": {"first": [1, 2, 3, 4, 5]},
            }
        )
        cell = build_cell(cfg)
        assert cell.num_atoms == 10
        assert "first" in cell.groups

    def test_empty_atoms(self):
        cfg = ConfigManager(overrides={"system": {"builder": "atoms", "box": [5, 5, 5]}})
        with pytest.raises(ValueError, match="不能为空"):
            build_cell(cfg)

    def test_unknown_builder(self):
        with pytest.raises(ValueError, match="system.builder"):
            build_cell(ConfigManager(overrides={"system": {"builder": "random"}}))


def test_no_pair_style_for_partitions(tmp_path):
    cfg = ConfigManager(
        overrides={
            "system": {"builder": "lattice", "lattice": "sc", "supercell": [3, 3, 3]},
            "born": {"nworkers": 2},
        }
    )
    with pytest.raises(ValueError, match="No pair style"):
        run_born_pipeline(cfg, os.fspath(tmp_path))
