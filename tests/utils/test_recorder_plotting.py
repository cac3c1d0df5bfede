#!/usr/bin/env python3
"""Born 向量记录器与热图输出测试"""

import logging

import h5py
import numpy as np
import pytest

from borntensor.elastic.voigt import BORN_LABELS
from borntensor.utils.plotting import plot_born_matrix
from borntensor.utils.recorder import BornRecorder
from borntensor.utils.utils import setup_logging


class _FinishedCompute:
    def __init__(self, step, vector):
        self.invoked_vector = step
        self.vector = np.asarray(vector, dtype=float)


class TestBornRecorder:
    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / "born.h5")
        recorder = BornRecorder(path, volume=12.5)
        recorder.record(0, np.arange(21.0))
        recorder.record(10, np.ones(21))
        assert len(recorder) == 2
        assert recorder.save() == path

        steps, vectors, labels = BornRecorder.load(path)
        assert steps.tolist() == [0, 10]
        np.testing.assert_allclose(vectors[0], np.arange(21.0))
        assert vectors.shape == (2, 21)
        assert labels == list(BORN_LABELS)

    def test_volume_attribute(self, tmp_path):
        path = str(tmp_path / "born.h5")
        recorder = BornRecorder(path, volume=3.0)
        recorder.record(1, np.zeros(21))
        recorder.save()
        with h5py.File(path, "r") as f:
            assert f.attrs["volume"] == pytest.approx(3.0)

    def test_empty_save(self, tmp_path):
        path = str(tmp_path / "empty.h5")
        BornRecorder(path).save()
        steps, vectors, _ = BornRecorder.load(path)
        assert steps.shape == (0,)
        assert vectors.shape == (0, 21)

    def test_record_copies_vector(self, tmp_path):
        recorder = BornRecorder(str(tmp_path / "x.h5"))
        vector = np.zeros(21)
        recorder.record(0, vector)
        vector[0] = 5.0
        assert recorder.vectors[0][0] == 0.0

    def test_record_wrong_length(self, tmp_path):
        with pytest.raises(ValueError, match="21"):
            BornRecorder(str(tmp_path / "x.h5")).record(0, np.zeros(20))

    def test_mean(self, tmp_path):
        recorder = BornRecorder(str(tmp_path / "x.h5"))
        with pytest.raises(ValueError, match="没有可用的记录"):
            recorder.mean()
        recorder.record(0, np.zeros(21))
        recorder.record(1, np.full(21, 2.0))
        np.testing.assert_allclose(recorder.mean(), np.ones(21))

    def test_record_compute(self, tmp_path):
        recorder = BornRecorder(str(tmp_path / "x.h5"))
        with pytest.raises(ValueError, match="尚未执行"):
            recorder.record_compute(_FinishedCompute(-1, np.zeros(21)))
        recorder.record_compute(_FinishedCompute(4, np.ones(21)))
        assert recorder.steps == [4]


def test_plot_born_matrix(tmp_path):
    path = str(tmp_path / "plots" / "born.png")
    vector = np.zeros(21)
    vector[:3] = 10.0
    vector[6] = 4.0
    with np.errstate(all="ignore"):
        result = plot_born_matrix(vector, path, title="test")
    assert result == path
    assert (tmp_path / "plots" / "born.png").stat().st_size > 0


def test_setup_logging_writes_run_log(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging(str(tmp_path), level=logging.INFO)
        logging.getLogger("borntensor.test").debug("debug line")
        for h in root.handlers:
            h.flush()
        text = (tmp_path / "run.log").read_text(encoding="utf-8")
        assert "debug line" in text
        assert "| DEBUG | borntensor.test:" in text
    finally:
        for h in list(root.handlers):
            if h not in before:
                root.removeHandler(h)
                h.close()
        root.setLevel(level)
