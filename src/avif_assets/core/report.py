"""结果汇总与报告生成工具。"""

from __future__ import annotations

import csv
import math
from pathlib import Path
from typing import Iterable

from avif_assets.core.models import Report, TransformOutcome

HEADER = ["original_name", "new_name", "status", "saved_bytes", "message"]

BYTES_PER_KB = 1000
MB_THRESHOLD_KB = 100


def aggregate(outcomes: Iterable[TransformOutcome]) -> Report:
    """累加节省字节数并统计失败数量。"""

    total_saved = 0
    failures = 0
    for outcome in outcomes:
        if outcome.succeeded:
            total_saved += outcome.saved_bytes
        else:
            failures += 1
    return Report(total_saved_bytes=total_saved, failure_count=failures)


def format_saved_size(total_saved_bytes: int) -> str:
    """将节省的字节数格式化为 KB/MB 文本。"""

    saved_kb = total_saved_bytes / BYTES_PER_KB
    if saved_kb < MB_THRESHOLD_KB:
        return f"{math.floor(saved_kb)} KB"
    return f"{math.floor(saved_kb / 100) / 10} MB"


def write_csv_report(outcomes: Iterable[TransformOutcome], report_path: Path) -> Path:
    """将转换结果写入 CSV 报告。"""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            writer.writerow(
                [
                    record.original_name,
                    record.new_name,
                    record.status,
                    record.saved_bytes,
                    str(record.error) if record.error else "",
                ]
            )
    return report_path
