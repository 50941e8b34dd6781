"""构建输出目录的文件扫描与筛选逻辑。"""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Iterator, Sequence


def _iter_candidate_files(path: Path, recursive: bool) -> Iterator[Path]:
    """遍历路径下的所有文件。"""

    if not path.is_dir():
        return

    iterator = path.rglob("*") if recursive else path.glob("*")
    for candidate in iterator:
        if candidate.is_file():
            yield candidate


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch(name, pattern) for pattern in patterns)


def collect_asset_names(
    root: Path,
    recursive: bool = True,
    exclude_patterns: Sequence[str] = (),
) -> list[str]:
    """扫描构建输出目录，返回以 POSIX 相对路径表示的资源名列表。"""

    resolved_root = root.resolve()
    collected: list[str] = []

    for candidate in _iter_candidate_files(resolved_root, recursive):
        name = candidate.relative_to(resolved_root).as_posix()
        if exclude_patterns and _matches_any(name, exclude_patterns):
            continue
        collected.append(name)

    collected.sort()
    return collected
