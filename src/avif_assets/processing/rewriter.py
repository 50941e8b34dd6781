"""文本资源中的引用改写：把已被替换的原始资源名指向新资源名。"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping, Optional, Pattern

from avif_assets.core.exceptions import ReferenceRewriteError
from avif_assets.core.host import AssetHost

LOGGER = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(r"\.(css|css\.map|js|js\.map)$")


def is_reference_asset(name: str) -> bool:
    return REFERENCE_PATTERN.search(name) is not None


def build_reference_pattern(rename_map: Mapping[str, str]) -> Pattern[str]:
    """由全部原始资源名构建一个组合匹配表达式。

    按长度降序排列，保证同一位置上最长的资源名优先匹配。新资源名以原名
    为前缀时（如 ``a.png -> a.png.avif``）附加否定前瞻，已改写过的引用
    不会被再次改写。
    """

    alternatives = []
    for original in sorted(rename_map, key=len, reverse=True):
        new_name = rename_map[original]
        alternative = re.escape(original)
        if new_name != original and new_name.startswith(original):
            alternative += f"(?!{re.escape(new_name[len(original):])})"
        alternatives.append(alternative)
    return re.compile("|".join(alternatives))


def rewrite_text(text: str, rename_map: Mapping[str, str], pattern: Optional[Pattern[str]] = None) -> str:
    if not rename_map:
        return text
    pattern = pattern or build_reference_pattern(rename_map)
    return pattern.sub(lambda match: rename_map[match.group(0)], text)


def rewrite_references(
    host: AssetHost,
    rename_map: Mapping[str, str],
    names: Optional[Iterable[str]] = None,
) -> list[str]:
    """改写所有样式表/脚本资源中的引用，返回内容发生变化的资源名。"""

    if not rename_map:
        return []

    pattern = build_reference_pattern(rename_map)
    if names is None:
        names = host.enumerate_assets()
    candidates = [name for name in names if is_reference_asset(name)]
    rewritten: list[str] = []

    for name in candidates:
        asset = host.get_asset(name)
        try:
            text = asset.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            LOGGER.warning("跳过无法解码的文本资源 %s: %s", name, exc)
            host.report_warning(ReferenceRewriteError(f"无法改写引用，内容不是 UTF-8 文本: {name}"))
            continue

        updated = rewrite_text(text, rename_map, pattern)
        if updated == text:
            continue

        host.update_asset_content(name, updated.encode("utf-8"))
        rewritten.append(name)
        LOGGER.debug("已改写引用：%s", name)

    return rewritten
