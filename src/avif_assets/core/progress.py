"""转换进度的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ProgressUpdate:
    """每个转换任务结束时发出的进度信息，``message`` 为刚结束的资源名。"""

    total: int
    completed: int
    message: Optional[str] = None
    status: str = "running"  # running | done

    @property
    def is_done(self) -> bool:
        return self.status == "done"
