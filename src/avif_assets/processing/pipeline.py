"""转换流水线：规则匹配、并发编码、输出写回与引用改写。"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from avif_assets.core.config import PipelineConfig
from avif_assets.core.exceptions import AssetConversionError, ConfigurationConflictWarning
from avif_assets.core.host import AssetHost, adapt_host
from avif_assets.core.models import PipelineResult, RenameMap, TransformOutcome
from avif_assets.core.output_manager import OutputManager
from avif_assets.core.progress import ProgressUpdate
from avif_assets.core.report import aggregate, format_saved_size
from avif_assets.core.rules import RuleSet, derive_output_name
from avif_assets.processing.codec import Codec, PillowAvifCodec
from avif_assets.processing.rewriter import rewrite_references
from avif_assets.processing.worker import TransformTask, run_task

LOGGER = logging.getLogger(__name__)

PIPELINE_NAME = "avif-assets"

ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


async def run_pipeline(
    host: Any,
    config: Optional[PipelineConfig] = None,
    codec: Optional[Codec] = None,
    progress_callback: ProgressCallback = None,
) -> PipelineResult:
    """对当前快照执行一次完整的转换流程。

    所有命中规则的资源并发编码，全部结束后才汇总结果并改写引用。
    单个资源失败不会影响其他资源。
    """

    config = config or PipelineConfig()
    config.validate()
    codec = codec or PillowAvifCodec()
    asset_host = adapt_host(host)

    if config.has_log_conflict:
        asset_host.report_warning(
            ConfigurationConflictWarning(
                f"{PIPELINE_NAME}: 'silent' 与 'detailed_logs' 同时开启，忽略 'detailed_logs' 并关闭所有输出。"
            )
        )

    rule_set = RuleSet(config.rules)
    asset_names = asset_host.enumerate_assets()
    tasks: list[TransformTask] = []

    for name in asset_names:
        rule = rule_set.match(name)
        if rule is None:
            continue
        tasks.append(
            TransformTask(
                original_name=name,
                new_name=derive_output_name(name, codec.extension, config.override_extension),
                content=asset_host.get_asset(name).content,
                options=rule.options,
            )
        )

    LOGGER.debug("共 %d 个资源，%d 个命中转换规则", len(asset_names), len(tasks))

    rename_map = RenameMap()
    output_manager = OutputManager(asset_host, rename_map)
    semaphore = asyncio.Semaphore(config.max_concurrency) if config.max_concurrency else None
    total = len(tasks)
    completed = 0

    async def _settle(task: TransformTask) -> TransformOutcome:
        nonlocal completed
        if semaphore is None:
            outcome, output = await run_task(task, codec)
        else:
            async with semaphore:
                outcome, output = await run_task(task, codec)

        if outcome.succeeded:
            assert output is not None
            try:
                output_manager.apply(task.original_name, task.new_name, output, config.keep_original_file)
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("写回资源 %s 失败：%s", task.new_name, exc)
                outcome = TransformOutcome(
                    original_name=task.original_name,
                    new_name=task.new_name,
                    succeeded=False,
                    error=exc,
                )

        if not outcome.succeeded:
            _report_failure(asset_host, config, outcome)
        elif config.effective_detailed_logs:
            LOGGER.info("'%s' 节省 %.1f KB", task.original_name, outcome.saved_bytes / 1000)

        completed += 1
        _emit_progress(progress_callback, completed, total, task.original_name)
        return outcome

    outcomes = list(await asyncio.gather(*(_settle(task) for task in tasks)))

    report = aggregate(outcomes)
    if not config.silent:
        LOGGER.info("%s: 节省 %s", PIPELINE_NAME, format_saved_size(report.total_saved_bytes))
        if report.failure_count:
            LOGGER.warning("%s: %d 张图片未能转换", PIPELINE_NAME, report.failure_count)

    remaining = [name for name in asset_names if name not in rename_map]
    rewritten = rewrite_references(asset_host, rename_map, remaining)
    return PipelineResult(outcomes=outcomes, report=report, rename_map=rename_map, rewritten=rewritten)


def process_assets(
    host: Any,
    config: Optional[PipelineConfig] = None,
    codec: Optional[Codec] = None,
    progress_callback: ProgressCallback = None,
) -> PipelineResult:
    """同步入口，供没有事件循环的调用方使用。"""

    return asyncio.run(run_pipeline(host, config, codec, progress_callback))


def _report_failure(host: AssetHost, config: PipelineConfig, outcome: TransformOutcome) -> None:
    if config.strict:
        report = host.report_error
    elif config.detailed_logs:
        report = host.report_warning
    else:
        return

    conversion_error = AssetConversionError(f'{PIPELINE_NAME}: "{outcome.original_name}" 未能转换！')
    if outcome.error is not None:
        report(outcome.error)
    report(conversion_error)


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
) -> None:
    if not callback:
        return
    status = "done" if completed >= total else "running"
    callback(ProgressUpdate(total=total, completed=completed, message=message, status=status))
