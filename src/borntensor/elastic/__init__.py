"""
弹性模块 - Voigt 指标表与 Born 张量计算
"""

from .voigt import (
    BORN_LABELS,
    PAIR_INDEX,
    STRAIN_AXES,
    VOIGT_PAIRS,
    born_matrix_to_vector,
    born_vector_to_matrix,
    to_stiffness_gpa,
)

__all__ = [
    "BORN_LABELS",
    "PAIR_INDEX",
    "STRAIN_AXES",
    "VOIGT_PAIRS",
    "born_matrix_to_vector",
    "born_vector_to_matrix",
    "to_stiffness_gpa",
    "ComputeBorn",
    "numerical_born_vector",
]


def __getattr__(name):
    if name == "ComputeBorn":
        from .born.compute import ComputeBorn

        return ComputeBorn
    elif name == "numerical_born_vector":
        from .born.numerical import numerical_born_vector

        return numerical_born_vector
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
