"""
核心模块 - 基础数据结构、拓扑、分解与配置管理
"""

__all__ = [
    "Atom",
    "Cell",
    "ConfigManager",
    "MoleculeTemplate",
    "StructureBuilder",
    "SerialCommunicator",
    "decompose",
]


# 延迟导入避免循环依赖
def __getattr__(name):
    if name == "Atom":
        from .structure import Atom

        return Atom
    elif name == "Cell":
        from .structure import Cell

        return Cell
    elif name == "ConfigManager":
        from .config import ConfigManager

        return ConfigManager
    elif name == "MoleculeTemplate":
        from .topology import MoleculeTemplate

        return MoleculeTemplate
    elif name == "StructureBuilder":
        from .crystalline_structures import StructureBuilder

        return StructureBuilder
    elif name == "SerialCommunicator":
        from .parallel import SerialCommunicator

        return SerialCommunicator
    elif name == "decompose":
        from .decomposition import decompose

        return decompose
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
