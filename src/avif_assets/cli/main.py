"""命令行入口。"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

import typer
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from avif_assets.core.config import PipelineConfig
from avif_assets.core.exceptions import InvalidConfigurationError
from avif_assets.core.host import DirectoryAssetHost
from avif_assets.core.progress import ProgressUpdate
from avif_assets.core.report import format_saved_size, write_csv_report
from avif_assets.core.rules import DEFAULT_RULES, Rule
from avif_assets.processing.codec import PillowAvifCodec
from avif_assets.processing.pipeline import process_assets
from avif_assets.utils.logging import setup_logging

app = typer.Typer(help="将构建产物中的图片批量转换为 AVIF，并同步改写样式表/脚本中的引用。")

RULE_QUALITY_RE = re.compile(r"^(?P<pattern>.+)=(?P<quality>\d{1,3})$")


def _parse_rule(value: str, default_quality: int) -> Rule:
    match = RULE_QUALITY_RE.match(value)
    pattern, quality = value, default_quality
    if match:
        pattern, quality = match.group("pattern"), int(match.group("quality"))
    if not 0 <= quality <= 100:
        raise typer.BadParameter("质量必须在 0~100 之间")
    try:
        return Rule.from_pattern(pattern, quality=quality)
    except re.error as exc:
        raise typer.BadParameter(f"无效的正则表达式: {pattern}") from exc


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("转换图片", total=update.total)
        progress.update(task_id, completed=update.completed)
        if update.is_done:
            progress.update(task_id, description="转换完成")

    return callback


@app.command("run")
def run_cli(  # noqa: PLR0913
    dist_dir: Path = typer.Argument(..., help="构建输出目录"),
    rule: Optional[List[str]] = typer.Option(
        None, "--rule", "-r", help="匹配规则，形如 '\\.png$=60'，可指定多个，按顺序第一条命中生效"
    ),
    quality: int = typer.Option(75, "--quality", "-q", help="规则未指定质量时使用的默认质量"),
    speed: Optional[int] = typer.Option(None, "--speed", help="AVIF 编码速度 0~10"),
    keep_original: bool = typer.Option(True, "--keep-original/--replace-original", help="是否保留原图"),
    override_extension: bool = typer.Option(
        True, "--override-extension/--append-extension", help="替换原扩展名或在原名后追加"
    ),
    strict: bool = typer.Option(True, "--strict/--no-strict", help="转换失败是否视为构建错误"),
    silent: bool = typer.Option(False, "--silent", help="关闭所有汇总输出"),
    detailed_logs: bool = typer.Option(False, "--detailed-logs", help="输出每个资源的节省信息"),
    max_concurrency: Optional[int] = typer.Option(None, "--max-concurrency", "-j", help="同时编码的最大数量"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="是否递归扫描目录"),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help="排除的资源名通配符（相对构建目录），可指定多个"
    ),
    report: Optional[Path] = typer.Option(None, "--report", help="CSV 报告输出路径"),
) -> None:
    """转换构建输出目录中的图片资源。"""

    setup_logging(logging.WARNING if silent else logging.INFO)
    logging.getLogger(__name__).debug("CLI 参数解析完成")

    rules = tuple(_parse_rule(value, quality) for value in rule) if rule else DEFAULT_RULES
    config = PipelineConfig(
        rules=rules,
        override_extension=override_extension,
        keep_original_file=keep_original,
        strict=strict,
        silent=silent,
        detailed_logs=detailed_logs,
        max_concurrency=max_concurrency,
    )
    codec = PillowAvifCodec(speed=speed) if speed is not None else PillowAvifCodec()

    try:
        host = DirectoryAssetHost(dist_dir.expanduser(), recursive=recursive, exclude_patterns=exclude or ())
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        disable=silent,
    )

    try:
        with progress:
            result = process_assets(host, config, codec, progress_callback=_build_progress_callback(progress))
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if report is not None:
        write_csv_report(result.outcomes, report.expanduser())

    for warning in host.warnings:
        typer.echo(f"警告：{warning}", err=True)
    for error in host.errors:
        typer.echo(f"错误：{error}", err=True)

    if not silent:
        typer.echo(
            f"处理完成：转换 {len(result.succeeded)} 张，失败 {result.report.failure_count} 张，"
            f"节省 {format_saved_size(result.report.total_saved_bytes)}。"
        )
        if result.rewritten:
            typer.echo(f"已改写引用：{', '.join(result.rewritten)}")

    if host.errors:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
