"""资源匹配规则与输出文件名推导。"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Pattern, Tuple


@dataclass(slots=True, frozen=True)
class Rule:
    """一条 (匹配表达式, 编码参数) 规则。"""

    test: Pattern[str]
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_pattern(cls, pattern: str, **options: Any) -> "Rule":
        return cls(test=re.compile(pattern), options=dict(options))

    def matches(self, asset_name: str) -> bool:
        return self.test.search(asset_name) is not None


DEFAULT_RULES: Tuple[Rule, ...] = (Rule.from_pattern(r"\.(jpe?g|png)$", quality=75),)


class RuleSet:
    """有序规则列表，按声明顺序查找，第一条命中即生效。"""

    def __init__(self, rules: Iterable[Rule]) -> None:
        self.rules: Tuple[Rule, ...] = tuple(rules)

    def match(self, asset_name: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.matches(asset_name):
                return rule
        return None


def derive_output_name(asset_name: str, extension: str, override_extension: bool = True) -> str:
    """根据扩展名策略生成输出资源名。

    ``override_extension`` 为真时先去掉原有扩展名（没有扩展名则保留原名），
    否则直接在原名后追加新扩展名。
    """

    extension = extension.lstrip(".")
    base = asset_name
    if override_extension:
        base, _ = posixpath.splitext(asset_name)
    return f"{base}.{extension}"
