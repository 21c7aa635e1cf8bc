"""Standalone sharpening for one image or a whole directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Sequence

from image_regen.core.config import EncodingConfig, SharpenConfig
from image_regen.core.exceptions import ImageRegenError, InvalidConfigurationError
from image_regen.core.naming import native_format
from image_regen.core.output_manager import OutputManager
from image_regen.processing.image_loader import load_image
from image_regen.processing.sharpen import apply_sharpen

_LOGGER = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ("jpg", "jpeg", "png")


@dataclass(slots=True)
class SharpenStats:
    """Aggregated result of a sharpen_path run."""

    inspected_files: int = 0
    written_files: int = 0
    skipped_files: int = 0
    errors: int = 0
    outputs: list[Path] = field(default_factory=list)


def sharpened_path(image_path: Path, suffix: str) -> Path:
    """``cover.png`` -> ``cover--sharp.png``; the input is never overwritten."""

    return image_path.with_name(f"{image_path.stem}--{suffix}{image_path.suffix}")


def sharpen_path(
    target: Path,
    config: SharpenConfig,
    *,
    suffix: str = "sharp",
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    dry_run: bool = False,
    encoding: EncodingConfig | None = None,
) -> SharpenStats:
    """Sharpen ``target`` (a file, or every matching image below a directory)."""

    if not suffix:
        raise InvalidConfigurationError("suffix 不能为空")
    if not target.exists():
        raise InvalidConfigurationError(f"路径不存在: {target}")

    wanted = {ext.lower().lstrip(".") for ext in extensions}
    marker = f"--{suffix}"
    writer = OutputManager(target if target.is_dir() else target.parent, encoding or EncodingConfig())
    stats = SharpenStats()

    for image_path in _iter_images(target, wanted):
        stats.inspected_files += 1
        if image_path.stem.endswith(marker):
            stats.skipped_files += 1
            continue

        destination = sharpened_path(image_path, suffix)
        if dry_run:
            _LOGGER.info("[dry-run] %s -> %s", image_path, destination.name)
            stats.outputs.append(destination)
            continue

        try:
            image = load_image(image_path)
            try:
                sharpened = apply_sharpen(image, config)
                writer.save_image(sharpened, destination, native_format(image_path))
                sharpened.close()
            finally:
                image.close()
        except ImageRegenError as exc:
            stats.errors += 1
            _LOGGER.error("锐化失败: %s -> %s", image_path, exc)
            continue

        stats.written_files += 1
        stats.outputs.append(destination)
        _LOGGER.info("已锐化: %s", destination)

    _LOGGER.info(
        "统计: 检查=%s, 写入=%s, 跳过=%s, 异常=%s",
        stats.inspected_files,
        stats.written_files,
        stats.skipped_files,
        stats.errors,
    )
    return stats


def _iter_images(target: Path, extensions: set[str]) -> Iterator[Path]:
    if target.is_file():
        if native_format(target) in extensions:
            yield target
        return
    for child in sorted(target.rglob("*")):
        if child.is_file() and native_format(child) in extensions:
            yield child
