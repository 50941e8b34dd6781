"""流水线运行的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from avif_assets.core.exceptions import InvalidConfigurationError
from avif_assets.core.rules import DEFAULT_RULES, Rule


@dataclass(slots=True)
class PipelineConfig:
    """单次构建的转换配置集合。"""

    rules: Sequence[Rule] = DEFAULT_RULES
    override_extension: bool = True
    keep_original_file: bool = True
    strict: bool = True
    silent: bool = False
    detailed_logs: bool = False
    max_concurrency: Optional[int] = None  # None 表示不限制并发

    @property
    def has_log_conflict(self) -> bool:
        return self.silent and self.detailed_logs

    @property
    def effective_detailed_logs(self) -> bool:
        # silent 优先于 detailed_logs
        return self.detailed_logs and not self.silent

    def validate(self) -> None:
        if not self.rules:
            raise InvalidConfigurationError("至少需要一条匹配规则")
        if self.max_concurrency is not None and self.max_concurrency <= 0:
            raise InvalidConfigurationError(f"并发上限必须大于 0: {self.max_concurrency}")
