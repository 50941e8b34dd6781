"""核心数据模型定义。"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from avif_assets.core.exceptions import RenameConflictError


@dataclass(slots=True, frozen=True)
class Asset:
    """构建快照中的单个资源。"""

    name: str
    content: bytes
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(slots=True)
class TransformOutcome:
    """记录单个资源的转换结果（用于汇总/报告）。"""

    original_name: str
    new_name: str
    saved_bytes: int = 0
    succeeded: bool = True
    error: Optional[BaseException] = None

    @property
    def status(self) -> str:
        return "converted" if self.succeeded else "failed"


@dataclass(slots=True, frozen=True)
class Report:
    """所有转换结果的汇总。"""

    total_saved_bytes: int = 0
    failure_count: int = 0


class RenameMap(Mapping):
    """原始资源名到新资源名的映射，每个键只能写入一次。"""

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}

    def record(self, original_name: str, new_name: str) -> None:
        if original_name in self._entries:
            raise RenameConflictError(
                f"资源已被重命名: {original_name} -> {self._entries[original_name]}"
            )
        self._entries[original_name] = new_name

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RenameMap({self._entries!r})"


@dataclass(slots=True)
class PipelineResult:
    """单次流水线运行的产出。"""

    outcomes: list[TransformOutcome]
    report: Report
    rename_map: RenameMap
    rewritten: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> list[TransformOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> list[TransformOutcome]:
        """返回失败记录，方便生成报告。"""

        return [outcome for outcome in self.outcomes if not outcome.succeeded]
