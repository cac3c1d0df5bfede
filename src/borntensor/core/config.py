"""配置加载模块

提供轻量的 YAML 配置加载与工具函数：

- 递归合并多份 YAML（后者覆盖前者），最底层为仓库的 ``config/default.yaml``
- 点路径访问（如 ``born.group``）
- 基于模板创建输出目录并保存配置快照

Notes
-----
本模块刻意不引入 Hydra，以保持依赖简单与行为透明。
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).resolve().parents[3] / "config" / "default.yaml"


def _deep_update(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_update(out[k], v)
        else:
            out[k] = v
    return out


def _get_by_path(d: dict, path: str, default: Any = None) -> Any:
    cur = d
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


@dataclass
class _Resolved:
    data: dict
    sources: list[str]


class ConfigManager:
    """配置管理器

    加载一组 YAML 配置文件并进行递归合并，提供点路径访问与常用工具。

    Parameters
    ----------
    files : Iterable[str] | None, optional
        需要加载的 YAML 文件列表，后者覆盖前者；若为 ``None`` 则只加载默认配置。
    overrides : dict | None, optional
        最后合并的字典覆盖（测试与程序化调用使用）

    Attributes
    ----------
    data : dict
        合并后的配置数据（只读属性 ``.data`` 暴露内部字典）。

    Raises
    ------
    FileNotFoundError
        用户指定的配置文件不存在
    ValueError
        配置文件顶层不是映射
    """

    def __init__(
        self, files: Iterable[str] | None = None, overrides: dict | None = None
    ) -> None:
        self._resolved = self._load_all(files)
        if overrides:
            self._resolved.data = _deep_update(self._resolved.data, overrides)
            self._resolved.sources.append("<overrides>")

    # --------- 加载与解析 ---------
    @staticmethod
    def _read_yaml(path: Path) -> dict:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"配置文件顶层必须是映射: {path}")
        return data

    def _load_all(self, files: Iterable[str] | None) -> _Resolved:
        data: dict[str, Any] = {}
        sources: list[str] = []
        if DEFAULT_CONFIG.exists():
            data = self._read_yaml(DEFAULT_CONFIG)
            sources.append(str(DEFAULT_CONFIG))
        # 用户覆盖
        for p in files or ():
            path = Path(p)
            if not path.exists():
                raise FileNotFoundError(f"配置文件不存在: {path}")
            data = _deep_update(data, self._read_yaml(path))
            sources.append(str(path))
        logger.debug(f"Loaded configuration from {sources}")
        return _Resolved(data=data, sources=sources)

    @property
    def data(self) -> dict:
        """获取合并后的配置数据字典。"""
        return self._resolved.data

    @property
    def sources(self) -> list[str]:
        return list(self._resolved.sources)

    # --------- 访问接口 ---------
    def get(self, path: str, default: Any | None = None) -> Any:
        """获取配置值（点路径）

        使用 ``a.b.c`` 形式访问嵌套字典，若不存在则返回 ``default``。

        Parameters
        ----------
        path : str
            点路径键名，例如 ``"born.group"``。
        default : Any, optional
            当键不存在时返回的默认值。

        Returns
        -------
        Any
            对应的配置值或 ``default``。
        """
        return _get_by_path(self._resolved.data, path, default)

    # --------- 实用工具 ---------
    def make_output_dir(self, name: str | None = None) -> str:
        """创建输出目录

        依据模板 ``run.output_dir`` 创建目录，支持 ``{name}`` 与 ``{timestamp}`` 占位符。
        若未配置，默认使用 ``output/{name}_{timestamp}``。

        Parameters
        ----------
        name : str | None, optional
            运行名；若为 ``None``，则读取 ``run.name``（默认 ``"born"``）。

        Returns
        -------
        str
            创建的输出目录路径。
        """
        pattern = str(self.get("run.output_dir", "output/{name}_{timestamp}"))
        name = name or str(self.get("run.name", "born"))
        ts = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
        out = pattern.format(name=name, timestamp=ts)
        os.makedirs(out, exist_ok=True)
        return out

    def snapshot(self, output_dir: str) -> None:
        """保存配置快照

        在输出目录写入 ``resolved_config.yaml`` 与轻量 ``manifest.json``，记录
        本次运行所使用的配置来源与时间戳。

        Parameters
        ----------
        output_dir : str
            输出目录路径。
        """
        try:
            path = Path(output_dir) / "resolved_config.yaml"
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(
                    self._resolved.data, f, allow_unicode=True, sort_keys=True
                )
            manifest = {
                "timestamp": _dt.datetime.now().isoformat(),
                "sources": self._resolved.sources,
            }
            with open(Path(output_dir) / "manifest.json", "w", encoding="utf-8") as f:
                json.dump(manifest, f, indent=2, ensure_ascii=False)
        except (OSError, yaml.YAMLError) as e:
            # 快照失败不阻断主流程
            logger.warning(f"配置快照写入失败: {e}")
