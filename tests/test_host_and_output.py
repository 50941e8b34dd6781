"""环节二：测试宿主适配器与输出写回。"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any, Mapping

import pytest

from avif_assets.core.config import PipelineConfig
from avif_assets.core.exceptions import AssetConversionError, AvifAssetsError, InvalidConfigurationError
from avif_assets.core.host import (
    AssetNotFoundError,
    CompilationAssetHost,
    DirectoryAssetHost,
    MappingAssetHost,
    adapt_host,
)
from avif_assets.core.models import Asset, RenameMap
from avif_assets.core.output_manager import OutputManager
from avif_assets.core.rules import Rule
from avif_assets.processing.pipeline import process_assets


class FakeCompilation:
    """模拟提供显式增删改方法的新式宿主。"""

    def __init__(self, assets: dict[str, bytes]) -> None:
        self.assets = {name: Asset(name=name, content=data, info={"source": "build"}) for name, data in assets.items()}
        self.errors: list = []
        self.warnings: list = []
        self.calls: list[tuple[str, str]] = []

    def get_asset(self, name: str):
        return self.assets.get(name)

    def emit_asset(self, name: str, source: bytes) -> None:
        self.calls.append(("emit", name))
        self.assets[name] = Asset(name=name, content=source)

    def delete_asset(self, name: str) -> None:
        self.calls.append(("delete", name))
        del self.assets[name]

    def update_asset(self, name: str, source: bytes, info: Mapping[str, Any]) -> None:
        self.calls.append(("update", name))
        self.assets[name] = Asset(name=name, content=source, info=dict(info))


class ReversingCodec:
    extension = "avif"

    async def transform(self, data: bytes, options: Mapping[str, Any]) -> bytes:
        return data[::-1][:-1]


def test_adapt_host_selects_adapter_by_capabilities(tmp_path: Path) -> None:
    assert isinstance(adapt_host({}), MappingAssetHost)
    assert isinstance(adapt_host(FakeCompilation({})), CompilationAssetHost)
    assert isinstance(adapt_host(SimpleNamespace(assets={}, errors=[])), MappingAssetHost)
    assert isinstance(adapt_host(tmp_path), DirectoryAssetHost)

    host = MappingAssetHost({})
    assert adapt_host(host) is host


def test_adapt_host_rejects_unknown_objects() -> None:
    with pytest.raises(InvalidConfigurationError):
        adapt_host(object())


def test_mapping_host_accepts_raw_bytes_values() -> None:
    host = MappingAssetHost({"a.png": b"raw"})

    asset = host.get_asset("a.png")

    assert asset.content == b"raw"
    assert asset.size == 3
    with pytest.raises(AssetNotFoundError):
        host.get_asset("missing.png")


def test_legacy_assets_object_shares_diagnostics_lists() -> None:
    legacy = SimpleNamespace(assets={"b.png": Asset(name="b.png", content=b"")}, errors=[], warnings=[])

    class FailingCodec:
        extension = "avif"

        async def transform(self, data: bytes, options: Mapping[str, Any]) -> bytes:
            raise ValueError("encoder crashed")

    process_assets(legacy, PipelineConfig(strict=True), FailingCodec())

    assert len(legacy.errors) == 2
    assert "b.avif" not in legacy.assets


def test_compilation_host_runs_pipeline_through_methods() -> None:
    compilation = FakeCompilation({"a.png": b"12345", "main.css": b"url(a.png)"})
    config = PipelineConfig(rules=(Rule.from_pattern(r"\.png$"),), keep_original_file=False)

    result = process_assets(compilation, config, ReversingCodec())

    assert compilation.calls == [("emit", "a.avif"), ("delete", "a.png"), ("update", "main.css")]
    assert compilation.assets["a.avif"].content == b"5432"
    assert compilation.assets["main.css"].content == b"url(a.avif)"
    assert compilation.assets["main.css"].info == {"source": "build"}
    assert result.report.total_saved_bytes == 1


def test_output_manager_keep_original_records_nothing() -> None:
    assets = {"a.png": Asset(name="a.png", content=b"png")}
    rename_map = RenameMap()
    manager = OutputManager(MappingAssetHost(assets), rename_map)

    manager.apply("a.png", "a.avif", b"av", keep_original=True)

    assert set(assets) == {"a.png", "a.avif"}
    assert len(rename_map) == 0


def test_output_manager_replace_removes_original() -> None:
    assets = {"a.png": Asset(name="a.png", content=b"png")}
    rename_map = RenameMap()
    manager = OutputManager(MappingAssetHost(assets), rename_map)

    manager.apply("a.png", "a.avif", b"av", keep_original=False)

    assert set(assets) == {"a.avif"}
    assert assets["a.avif"].content == b"av"
    assert rename_map["a.png"] == "a.avif"


def test_directory_host_reads_and_writes_files(tmp_path: Path) -> None:
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "a.png").write_bytes(b"png")
    (tmp_path / "main.css").write_text("url(img/a.png)", encoding="utf-8")

    host = DirectoryAssetHost(tmp_path)

    assert host.enumerate_assets() == ["img/a.png", "main.css"]

    host.add_asset("img/a.avif", b"avif")
    host.delete_asset("img/a.png")
    host.update_asset_content("main.css", b"url(img/a.avif)")

    assert (tmp_path / "img" / "a.avif").read_bytes() == b"avif"
    assert not (tmp_path / "img" / "a.png").exists()
    assert (tmp_path / "main.css").read_text(encoding="utf-8") == "url(img/a.avif)"


def test_directory_host_non_recursive_and_excludes(tmp_path: Path) -> None:
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "a.png").write_bytes(b"png")
    (tmp_path / "b.png").write_bytes(b"png")
    (tmp_path / "c.png").write_bytes(b"png")

    assert DirectoryAssetHost(tmp_path, recursive=False).enumerate_assets() == ["b.png", "c.png"]
    assert DirectoryAssetHost(tmp_path, exclude_patterns=["c.*"]).enumerate_assets() == ["b.png", "img/a.png"]


def test_directory_host_rejects_paths_outside_root(tmp_path: Path) -> None:
    host = DirectoryAssetHost(tmp_path)

    with pytest.raises(AvifAssetsError):
        host.add_asset("../escape.png", b"x")


def test_directory_host_requires_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigurationError):
        DirectoryAssetHost(tmp_path / "missing")


class ConflictingCompilation(FakeCompilation):
    """写入指定资源时抛出异常的宿主。"""

    def __init__(self, assets: dict[str, bytes], conflict: str) -> None:
        super().__init__(assets)
        self.conflict = conflict

    def emit_asset(self, name: str, source: bytes) -> None:
        if name == self.conflict:
            raise RuntimeError(f"Conflict: Multiple assets emit different content to the same filename {name}")
        super().emit_asset(name, source)


def test_write_failure_counts_as_failed_conversion() -> None:
    compilation = ConflictingCompilation(
        {"a.png": b"12345", "b.png": b"67890", "main.css": b"url(a.png) url(b.png)"},
        conflict="b.avif",
    )
    config = PipelineConfig(rules=(Rule.from_pattern(r"\.png$"),), keep_original_file=False, strict=False)

    result = process_assets(compilation, config, ReversingCodec())

    assert result.report.failure_count == 1
    assert result.report.total_saved_bytes == 1
    assert dict(result.rename_map) == {"a.png": "a.avif"}
    assert "b.png" in compilation.assets
    assert "b.avif" not in compilation.assets
    assert compilation.assets["main.css"].content == b"url(a.avif) url(b.png)"


def test_write_failure_is_reported_as_error_in_strict_mode() -> None:
    compilation = ConflictingCompilation({"b.png": b"67890"}, conflict="b.avif")
    config = PipelineConfig(rules=(Rule.from_pattern(r"\.png$"),), keep_original_file=False, strict=True)

    result = process_assets(compilation, config, ReversingCodec())

    assert result.failed[0].original_name == "b.png"
    assert [type(error) for error in compilation.errors] == [RuntimeError, AssetConversionError]


def test_output_manager_records_rename_only_after_writes_succeed() -> None:
    class UndeletableHost(MappingAssetHost):
        def delete_asset(self, name: str) -> None:
            raise OSError(f"无法删除 {name}")

    rename_map = RenameMap()
    manager = OutputManager(UndeletableHost({"a.png": b"png"}), rename_map)

    with pytest.raises(OSError):
        manager.apply("a.png", "a.avif", b"av", keep_original=False)

    assert len(rename_map) == 0


def test_mapping_host_keeps_raw_bytes_values() -> None:
    snapshot = {"a.png": b"a" * 10, "style.css": b"url(a.png)"}
    config = PipelineConfig(rules=(Rule.from_pattern(r"\.png$"),), keep_original_file=False)

    process_assets(snapshot, config, ReversingCodec())

    assert set(snapshot) == {"a.avif", "style.css"}
    assert snapshot["a.avif"] == b"a" * 9
    assert snapshot["style.css"] == b"url(a.avif)"


def test_mapping_host_keeps_asset_values() -> None:
    snapshot = {
        "a.png": Asset(name="a.png", content=b"a" * 10),
        "style.css": Asset(name="style.css", content=b"url(a.png)", info={"minimized": True}),
    }
    config = PipelineConfig(rules=(Rule.from_pattern(r"\.png$"),), keep_original_file=False)

    process_assets(snapshot, config, ReversingCodec())

    assert isinstance(snapshot["a.avif"], Asset)
    assert snapshot["style.css"] == Asset(name="style.css", content=b"url(a.avif)", info={"minimized": True})
