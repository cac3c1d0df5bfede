#!/usr/bin/env python3
"""
Born 向量记录器

按步记录 :class:`~borntensor.elastic.born.compute.ComputeBorn` 的结果，并保存为 HDF5：

- ``steps``：形状 (n,) 的整数数据集
- ``vectors``：形状 (n, 21) 的浮点数据集
- 属性 ``labels``：21 个元素名称；``volume``：记录时的体积（若提供）

.. moduleauthor:: Gilbert Young
"""

import logging

import h5py
import numpy as np

from borntensor.elastic.voigt import BORN_LABELS, NUM_VALUES

logger = logging.getLogger(__name__)


class BornRecorder:
    """Born 向量的内存记录与 HDF5 持久化

    Parameters
    ----------
    output_file : str
        HDF5 文件路径
    volume : float, optional
        体系体积，作为文件属性保存，便于后处理换算
    """

    def __init__(self, output_file: str, volume: float | None = None):
        self.output_file = output_file
        self.volume = volume
        self.steps: list[int] = []
        self.vectors: list[np.ndarray] = []

    def __len__(self):
        return len(self.steps)

    def record(self, step: int, vector) -> None:
        vector = np.asarray(vector, dtype=np.float64)
        if vector.shape != (NUM_VALUES,):
            raise ValueError(f"Born 向量必须有 21 个元素，但得到形状 {vector.shape}")
        self.steps.append(int(step))
        self.vectors.append(vector.copy())

    def record_compute(self, compute) -> None:
        """记录一个已完成计算的 ``ComputeBorn`` 的当前结果"""
        if compute.invoked_vector < 0:
            raise ValueError("ComputeBorn 尚未执行计算")
        self.record(compute.invoked_vector, compute.vector)

    def mean(self) -> np.ndarray:
        """所有记录的平均 Born 向量"""
        if not self.vectors:
            raise ValueError("没有可用的记录")
        return np.mean(self.vectors, axis=0)

    def save(self) -> str:
        """将所有记录写入 HDF5 文件"""
        with h5py.File(self.output_file, "w") as f:
            f.create_dataset("steps", data=np.array(self.steps, dtype=np.int64))
            f.create_dataset(
                "vectors",
                data=np.array(self.vectors, dtype=np.float64).reshape(-1, NUM_VALUES),
            )
            f.attrs["labels"] = np.array(BORN_LABELS, dtype=h5py.string_dtype("utf-8"))
            if self.volume is not None:
                f.attrs["volume"] = float(self.volume)
        logger.info(f"Born vectors saved to {self.output_file}")
        return self.output_file

    @staticmethod
    def load(path: str) -> tuple[np.ndarray, np.ndarray, list[str]]:
        """读取记录文件，返回 ``(steps, vectors, labels)``"""
        with h5py.File(path, "r") as f:
            steps = f["steps"][()]
            vectors = f["vectors"][()]
            labels = [
                s.decode("utf-8") if isinstance(s, bytes) else str(s)
                for s in f.attrs["labels"]
            ]
        return steps, vectors, labels
