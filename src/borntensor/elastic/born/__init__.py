"""
Born 弹性张量计算包

- :class:`~borntensor.elastic.born.compute.ComputeBorn`：计算周期与全归约
- ``pairs``/``bonds``/``angles``/``dihedrals``：四个累加引擎
- :func:`~borntensor.elastic.born.numerical.numerical_born_vector`：有限差分校验
"""

__all__ = [
    "ComputeBorn",
    "accumulate_pairs",
    "accumulate_bonds",
    "accumulate_angles",
    "accumulate_dihedrals",
    "numerical_born_vector",
]


def __getattr__(name):
    if name == "ComputeBorn":
        from .compute import ComputeBorn

        return ComputeBorn
    elif name == "accumulate_pairs":
        from .pairs import accumulate_pairs

        return accumulate_pairs
    elif name == "accumulate_bonds":
        from .bonds import accumulate_bonds

        return accumulate_bonds
    elif name == "accumulate_angles":
        from .angles import accumulate_angles

        return accumulate_angles
    elif name == "accumulate_dihedrals":
        from .dihedrals import accumulate_dihedrals

        return accumulate_dihedrals
    elif name == "numerical_born_vector":
        from .numerical import numerical_born_vector

        return numerical_born_vector
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
