"""并发转换的工作单元。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from avif_assets.core.models import TransformOutcome
from avif_assets.processing.codec import Codec


@dataclass(slots=True)
class TransformTask:
    """描述单个资源的转换任务。"""

    original_name: str
    new_name: str
    content: bytes = field(repr=False)
    options: Mapping[str, Any] = field(default_factory=dict)

    @property
    def original_size(self) -> int:
        return len(self.content)


async def run_task(task: TransformTask, codec: Codec) -> Tuple[TransformOutcome, Optional[bytes]]:
    """执行一次编码，失败只影响当前任务。"""

    try:
        output = await codec.transform(task.content, task.options)
    except Exception as exc:  # noqa: BLE001
        return (
            TransformOutcome(
                original_name=task.original_name,
                new_name=task.new_name,
                succeeded=False,
                error=exc,
            ),
            None,
        )

    return (
        TransformOutcome(
            original_name=task.original_name,
            new_name=task.new_name,
            saved_bytes=task.original_size - len(output),
        ),
        output,
    )
