#!/usr/bin/env python3
"""
Born 矩阵可视化

使用 Agg 后端将 6×6 Voigt 矩阵绘制为热图。
"""

import logging
import os

import matplotlib

# 使用Agg后端，避免GUI问题
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from borntensor.elastic.voigt import born_vector_to_matrix  # noqa: E402

logger = logging.getLogger(__name__)

VOIGT_NAMES = ("xx", "yy", "zz", "yz", "xz", "xy")


def plot_born_matrix(
    vector, path: str, title: str = "Born matrix", unit: str = "eV"
) -> str:
    """绘制 Born 矩阵热图并保存

    Parameters
    ----------
    vector : array_like
        21 元素 Born 向量
    path : str
        输出图片路径
    title : str, optional
        图标题
    unit : str, optional
        颜色条单位标签

    Returns
    -------
    str
        图片路径
    """
    matrix = born_vector_to_matrix(vector)
    limit = float(np.max(np.abs(matrix))) or 1.0

    fig, ax = plt.subplots(1, 1, figsize=(6.4, 5.4))
    im = ax.imshow(matrix, cmap="RdBu_r", vmin=-limit, vmax=limit)
    ax.set_xticks(range(6), labels=VOIGT_NAMES)
    ax.set_yticks(range(6), labels=VOIGT_NAMES)
    for e in range(6):
        for f in range(6):
            ax.text(f, e, f"{matrix[e, f]:.3g}", ha="center", va="center", fontsize=8)
    fig.colorbar(im, ax=ax, label=unit)
    ax.set_title(title)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.debug(f"Born matrix plot saved to {path}")
    return path
