"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from image_regen.core.config import (
    DEFAULT_ASSET_PREFIX,
    BuildConfig,
    ChangeDetectionConfig,
    EncodingConfig,
    SharpenConfig,
)
from image_regen.core.exceptions import (
    FeaturedConfigError,
    InvalidConfigurationError,
    SourceRootMissingError,
)
from image_regen.core.models import BuildResult
from image_regen.core.progress import ProgressUpdate
from image_regen.processing.batch_sharpen import sharpen_path
from image_regen.processing.featured import run_featured
from image_regen.processing.pipeline import run_build
from image_regen.utils.logging import setup_logging

app = typer.Typer(help="作品集站点的增量响应式图片构建工具。")


def _parse_sizes(value: str) -> Tuple[int, ...]:
    try:
        sizes = tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError as exc:
        raise typer.BadParameter("尺寸必须为逗号分隔的整数") from exc
    if not sizes or any(size <= 0 for size in sizes):
        raise typer.BadParameter("尺寸必须大于 0")
    return sizes


def _parse_extensions(value: str) -> Tuple[str, ...]:
    extensions = tuple(part.strip().lower().lstrip(".") for part in value.split(",") if part.strip())
    if not extensions:
        raise typer.BadParameter("至少需要一个扩展名")
    return extensions


def _strategy(force_all: bool, use_git: bool) -> str:
    if force_all:
        return "force"
    return "git" if use_git else "mtime"


def _mirror_output(build_path: Path, source: Path, project_root: Path) -> Path:
    """源目录在项目中的相对位置，映射到构建目录下。"""

    try:
        relative = source.relative_to(project_root)
    except ValueError:
        relative = Path(DEFAULT_ASSET_PREFIX)
    return build_path / relative


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理图片", total=update.total)
        progress.update(task_id, completed=update.completed)

    return callback


def _make_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
    )


def _echo_summary(result: BuildResult, dry_run: bool = False) -> None:
    label = "待处理" if dry_run else "处理"
    typer.echo("")
    typer.echo("图片处理完成：")
    typer.echo(f"   • {label} {len(result.processed)} 张")
    typer.echo(f"   • 跳过 {len(result.skipped)} 张")
    typer.echo(f"   • 失败 {len(result.failed)} 张")
    typer.echo(f"   • 用时 {result.elapsed:.1f}s")
    typer.echo(f"   • 节省 {result.avoided_percent}% 的构建工作")


@app.command("run")
def run_cli(  # noqa: PLR0913
    build_path: Path = typer.Argument(Path("build/temp"), help="构建输出目录"),
    project_root: Path = typer.Option(Path("."), "--project-root", help="项目根目录（git 仓库所在位置）"),
    source: Optional[Path] = typer.Option(None, "--source", help=f"源图片目录，默认 {DEFAULT_ASSET_PREFIX}"),
    only: Optional[List[Path]] = typer.Option(None, "--only", help="只处理指定文件，可指定多次"),
    force_all: bool = typer.Option(False, "--force-all", help="忽略变更检测，全部重新生成"),
    use_git: bool = typer.Option(True, "--git/--no-git", help="是否使用 git 差异作为变更来源"),
    sizes: str = typer.Option("320,640,960,1200,1800", "--sizes", help="输出宽度，逗号分隔"),
    sharpen: bool = typer.Option(True, "--sharpen/--no-sharpen", help="是否对输出做轻度锐化"),
    sigma: float = typer.Option(0.5, "--sigma", help="锐化高斯半径"),
    flat: float = typer.Option(0.8, "--flat", help="平坦区域锐化强度"),
    jagged: float = typer.Option(1.0, "--jagged", help="边缘区域锐化强度"),
    webp_quality: int = typer.Option(85, "--webp-quality", help="WebP 质量"),
    jpeg_quality: int = typer.Option(85, "--jpeg-quality", help="JPEG 质量"),
    dry_run: bool = typer.Option(False, "--dry-run", help="只输出处理决定，不写文件"),
    report: Optional[str] = typer.Option(None, "--report", help="在输出目录写入 CSV 报告的文件名"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """增量生成响应式图片。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger(__name__).debug("CLI 参数解析完成")

    root = project_root.expanduser().resolve()
    source_dir = source.expanduser().resolve() if source else root / DEFAULT_ASSET_PREFIX
    output_dir = _mirror_output(build_path.expanduser().resolve(), source_dir, root)

    config = BuildConfig(
        source_dir=source_dir,
        output_dir=output_dir,
        project_root=root,
        sizes=_parse_sizes(sizes),
        sharpen=SharpenConfig(enabled=sharpen, sigma=sigma, flat=flat, jagged=jagged),
        encoding=EncodingConfig(webp_quality=webp_quality, jpeg_quality=jpeg_quality),
        change_detection=ChangeDetectionConfig(strategy=_strategy(force_all, use_git)),
        dry_run=dry_run,
        report_filename=report,
    )
    targets = [path.expanduser().resolve() for path in only] if only else None

    typer.echo(f"源目录：{source_dir}")
    typer.echo(f"输出目录：{output_dir}")

    try:
        with _make_progress() as progress:
            result = run_build(config, targets=targets, progress_callback=_build_progress_callback(progress))
    except (SourceRootMissingError, InvalidConfigurationError) as exc:
        typer.echo(f"错误：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    _echo_summary(result, dry_run=dry_run)


@app.command("featured")
def featured_cli(
    build_path: Path = typer.Argument(Path("build/temp"), help="构建输出目录"),
    project_root: Path = typer.Option(Path("."), "--project-root", help="项目根目录"),
    force_all: bool = typer.Option(False, "--force-all", help="忽略变更检测，全部重新生成"),
    use_git: bool = typer.Option(True, "--git/--no-git", help="是否使用 git 差异作为变更来源"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """根据 data/next-project.json 预处理 featured 图片。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)

    root = project_root.expanduser().resolve()
    config = BuildConfig(
        source_dir=root / "public_html",
        output_dir=build_path.expanduser().resolve() / "public_html",
        project_root=root,
        change_detection=ChangeDetectionConfig(strategy=_strategy(force_all, use_git)),
    )

    try:
        result = run_featured(config)
    except (FeaturedConfigError, SourceRootMissingError, InvalidConfigurationError) as exc:
        typer.echo(f"错误：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    _echo_summary(result)


@app.command("sharpen")
def sharpen_cli(
    path: Path = typer.Argument(..., help="图片文件或目录"),
    sigma: float = typer.Option(0.8, "--sigma", help="高斯半径，建议 0.3~3.0"),
    flat: float = typer.Option(1.0, "--flat", help="平坦区域强度，建议 0.3~1.5"),
    jagged: float = typer.Option(1.2, "--jagged", help="边缘区域强度，建议 0.7~2.0"),
    suffix: str = typer.Option("sharp", "--suffix", help="输出文件名后缀"),
    extensions: str = typer.Option("jpg,jpeg,png", "--extensions", help="处理的扩展名，逗号分隔"),
    dry_run: bool = typer.Option(False, "--dry-run", help="只列出将要处理的文件"),
) -> None:
    """对单张图片或整个目录做锐化，结果写为 name--sharp.ext。"""

    setup_logging()

    try:
        stats = sharpen_path(
            path.expanduser().resolve(),
            SharpenConfig(sigma=sigma, flat=flat, jagged=jagged),
            suffix=suffix,
            extensions=_parse_extensions(extensions),
            dry_run=dry_run,
        )
    except InvalidConfigurationError as exc:
        typer.echo(f"错误：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    for output in stats.outputs:
        typer.echo(str(output))
    typer.echo(f"锐化完成：写入 {stats.written_files} 张，跳过 {stats.skipped_files} 张，失败 {stats.errors} 张。")


if __name__ == "__main__":
    app()
