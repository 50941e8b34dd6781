"""宿主构建工具的资源访问适配层。

流水线只依赖 :class:`AssetHost` 抽象接口，具体实现由 :func:`adapt_host`
在启动时根据宿主对象提供的能力选择一次：

* 旧式宿主：直接暴露一个可变映射 ``name -> Asset``（或其 ``assets`` 属性）。
* 新式宿主：提供 ``emit_asset`` / ``delete_asset`` / ``update_asset`` /
  ``get_asset`` 方法。
* 磁盘目录：命令行模式下直接处理构建输出目录。
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from dataclasses import replace
from pathlib import Path
from typing import Any, List, Optional, Sequence

from avif_assets.core.exceptions import AvifAssetsError, InvalidConfigurationError
from avif_assets.core.models import Asset
from avif_assets.core.scanner import collect_asset_names

LOGGER = logging.getLogger(__name__)

COMPILATION_METHODS = ("emit_asset", "delete_asset", "update_asset", "get_asset")


class AssetNotFoundError(AvifAssetsError):
    """请求的资源在快照中不存在。"""


class AssetHost(ABC):
    """构建快照的抽象访问接口，同时收集诊断信息。"""

    def __init__(self, errors: Optional[List[Any]] = None, warnings: Optional[List[Any]] = None) -> None:
        self.errors: List[Any] = errors if errors is not None else []
        self.warnings: List[Any] = warnings if warnings is not None else []

    @abstractmethod
    def enumerate_assets(self) -> list[str]:
        """返回当前快照中的全部资源名。"""

    @abstractmethod
    def get_asset(self, name: str) -> Asset:
        """读取资源。"""

    @abstractmethod
    def add_asset(self, name: str, data: bytes) -> None:
        """新增（或覆盖）资源。"""

    @abstractmethod
    def delete_asset(self, name: str) -> None:
        """删除资源。"""

    @abstractmethod
    def update_asset_content(self, name: str, data: bytes) -> None:
        """替换资源内容，保留其余元数据。"""

    def report_error(self, error: BaseException) -> None:
        self.errors.append(error)

    def report_warning(self, warning: BaseException) -> None:
        self.warnings.append(warning)


class MappingAssetHost(AssetHost):
    """旧式宿主：直接操作 ``name -> Asset`` 的可变映射。"""

    def __init__(
        self,
        assets: MutableMapping,
        errors: Optional[List[Any]] = None,
        warnings: Optional[List[Any]] = None,
    ) -> None:
        super().__init__(errors=errors, warnings=warnings)
        self.assets = assets

    def enumerate_assets(self) -> list[str]:
        return list(self.assets.keys())

    def get_asset(self, name: str) -> Asset:
        try:
            value = self.assets[name]
        except KeyError as exc:
            raise AssetNotFoundError(f"资源不存在: {name}") from exc
        return _as_asset(name, value)

    def add_asset(self, name: str, data: bytes) -> None:
        if self._stores_raw_bytes(name):
            self.assets[name] = bytes(data)
        else:
            self.assets[name] = Asset(name=name, content=bytes(data))

    def delete_asset(self, name: str) -> None:
        self.assets.pop(name, None)

    def update_asset_content(self, name: str, data: bytes) -> None:
        current = self.assets.get(name)
        if isinstance(current, (bytes, bytearray, memoryview)):
            self.assets[name] = bytes(data)
            return
        self.assets[name] = replace(self.get_asset(name), content=bytes(data))

    def _stores_raw_bytes(self, name: str) -> bool:
        """沿用映射中已有值的类型：原值（或其他任一值）为字节时写入字节。"""

        if name in self.assets:
            sample = self.assets[name]
        else:
            sample = next(iter(self.assets.values()), None)
        return isinstance(sample, (bytes, bytearray, memoryview))


class CompilationAssetHost(AssetHost):
    """新式宿主：通过显式的增删改方法操作资源。"""

    def __init__(self, compilation: Any) -> None:
        super().__init__(
            errors=getattr(compilation, "errors", None),
            warnings=getattr(compilation, "warnings", None),
        )
        self.compilation = compilation

    def enumerate_assets(self) -> list[str]:
        assets = self.compilation.assets
        return list(assets.keys() if hasattr(assets, "keys") else assets)

    def get_asset(self, name: str) -> Asset:
        value = self.compilation.get_asset(name)
        if value is None:
            raise AssetNotFoundError(f"资源不存在: {name}")
        return _as_asset(name, value)

    def add_asset(self, name: str, data: bytes) -> None:
        self.compilation.emit_asset(name, bytes(data))

    def delete_asset(self, name: str) -> None:
        self.compilation.delete_asset(name)

    def update_asset_content(self, name: str, data: bytes) -> None:
        current = self.get_asset(name)
        self.compilation.update_asset(name, bytes(data), current.info)


class DirectoryAssetHost(AssetHost):
    """以磁盘上的构建输出目录作为资源快照。"""

    def __init__(
        self,
        root: Path,
        recursive: bool = True,
        exclude_patterns: Sequence[str] = (),
    ) -> None:
        super().__init__()
        if not root.is_dir():
            raise InvalidConfigurationError(f"构建输出目录不存在: {root}")
        self.root = root.resolve()
        self.recursive = recursive
        self.exclude_patterns = tuple(exclude_patterns)

    def enumerate_assets(self) -> list[str]:
        return collect_asset_names(self.root, self.recursive, self.exclude_patterns)

    def get_asset(self, name: str) -> Asset:
        path = self._path_for(name)
        try:
            content = path.read_bytes()
        except FileNotFoundError as exc:
            raise AssetNotFoundError(f"资源不存在: {name}") from exc
        return Asset(name=name, content=content, info={"path": path})

    def add_asset(self, name: str, data: bytes) -> None:
        path = self._path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def delete_asset(self, name: str) -> None:
        self._path_for(name).unlink(missing_ok=True)

    def update_asset_content(self, name: str, data: bytes) -> None:
        self._path_for(name).write_bytes(data)

    def _path_for(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if not path.is_relative_to(self.root):
            raise AvifAssetsError(f"资源路径越界: {name}")
        return path


def adapt_host(host: Any) -> AssetHost:
    """根据宿主对象的能力选择适配器。"""

    if isinstance(host, AssetHost):
        return host
    if isinstance(host, Path):
        return DirectoryAssetHost(host)
    if all(callable(getattr(host, method, None)) for method in COMPILATION_METHODS):
        LOGGER.debug("使用显式方法宿主适配器")
        return CompilationAssetHost(host)
    if isinstance(host, MutableMapping):
        return MappingAssetHost(host)
    assets = getattr(host, "assets", None)
    if isinstance(assets, MutableMapping):
        LOGGER.debug("使用资源映射宿主适配器")
        return MappingAssetHost(
            assets,
            errors=getattr(host, "errors", None),
            warnings=getattr(host, "warnings", None),
        )
    raise InvalidConfigurationError(f"不支持的宿主对象: {type(host).__name__}")


def _as_asset(name: str, value: Any) -> Asset:
    if isinstance(value, Asset):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Asset(name=name, content=bytes(value))
    # 兼容带 source / info 属性的资源对象
    source = getattr(value, "source", None)
    if source is None:
        raise AvifAssetsError(f"无法读取资源内容: {name}")
    if callable(source):
        source = source()
    info = getattr(value, "info", None) or {}
    return Asset(name=name, content=bytes(source), info=dict(info))
