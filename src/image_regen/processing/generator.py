"""单个源文件的派生图片生成。"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from itertools import groupby
from pathlib import Path
from typing import Optional

from PIL import Image

from image_regen.core.config import SharpenConfig
from image_regen.core.exceptions import ImageRegenError
from image_regen.core.models import ArtifactSpec
from image_regen.core.output_manager import ImageWriteError, OutputManager
from image_regen.core.staleness import mtime_ns
from image_regen.processing.image_loader import ImageLoadingError, load_image
from image_regen.processing.sharpen import apply_sharpen, resize_to_width

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerationResult:
    """一次生成的产出：成功写入的文件与失败信息。"""

    written: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ArtifactGenerator:
    """为单个源文件生成锐化原图与各尺寸、各格式的派生图片。

    单个派生文件失败只记录错误，不影响其余文件。
    """

    def __init__(self, output_manager: OutputManager, sharpen: SharpenConfig) -> None:
        self.output_manager = output_manager
        self.sharpen = sharpen

    def generate(
        self,
        source_path: Path,
        output_dir: Path,
        artifacts: list[ArtifactSpec],
        *,
        copy_source: bool = True,
    ) -> GenerationResult:
        result = GenerationResult()

        try:
            self.output_manager.ensure_directory(output_dir)
        except ImageWriteError as exc:
            LOGGER.error("%s", exc)
            result.errors.append(str(exc))
            return result

        if copy_source:
            self._copy_source(source_path, output_dir, result)

        try:
            image = load_image(source_path)
        except ImageLoadingError as exc:
            LOGGER.error("加载失败 %s: %s", source_path, exc)
            result.errors.append(str(exc))
            return result

        try:
            originals = [spec for spec in artifacts if spec.is_original]
            variants = sorted((spec for spec in artifacts if not spec.is_original), key=_width_key)

            for spec in originals:
                LOGGER.debug("  生成锐化原图 %s", spec.output_path.name)
                self._render(image, spec.output_path, [spec], result, width=None)

            for width, group in groupby(variants, key=_width_key):
                specs = list(group)
                LOGGER.debug("  生成 %dpx: %s", width, ", ".join(spec.image_format for spec in specs))
                self._render(image, specs[0].output_path, specs, result, width=width)
        finally:
            image.close()

        self._align_mtimes(source_path, result)
        return result

    def _render(
        self,
        image: Image.Image,
        label: Path,
        specs: list[ArtifactSpec],
        result: GenerationResult,
        *,
        width: Optional[int],
    ) -> None:
        """缩放并锐化一次，然后按各格式分别编码。"""

        resized: Optional[Image.Image] = None
        sharpened: Optional[Image.Image] = None
        try:
            resized = resize_to_width(image, width) if width else image.copy()
            sharpened = apply_sharpen(resized, self.sharpen)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("处理失败 %s: %s", label, exc, exc_info=exc)
            result.errors.extend(f"{spec.output_path}: {exc}" for spec in specs)
            _close_if_needed(resized, sharpened)
            return

        for spec in specs:
            try:
                self.output_manager.save_image(sharpened, spec.output_path, spec.image_format)
            except ImageRegenError as exc:
                LOGGER.error("写入失败 %s: %s", spec.output_path, exc)
                result.errors.append(f"{spec.output_path}: {exc}")
                continue
            result.written.append(spec.output_path)

        _close_if_needed(resized, sharpened)

    def _align_mtimes(self, source_path: Path, result: GenerationResult) -> None:
        """源文件时间戳超前（时钟偏差、解压还原等）时，把派生文件时间调到不早于源文件。"""

        source_time = mtime_ns(source_path)
        if source_time is None:
            return
        for path in result.written:
            try:
                if path.stat().st_mtime_ns < source_time:
                    os.utime(path, ns=(source_time, source_time))
            except OSError as exc:
                LOGGER.error("更新时间戳失败 %s: %s", path, exc)
                result.errors.append(f"{path}: {exc}")

    def _copy_source(self, source_path: Path, output_dir: Path, result: GenerationResult) -> None:
        """把源文件原样复制到构建目录，页面里直接引用原文件名时使用。"""

        destination = output_dir / source_path.name
        if destination.resolve() == source_path.resolve():
            return
        try:
            shutil.copy2(source_path, destination)
        except OSError as exc:
            LOGGER.error("复制源文件失败 %s: %s", source_path, exc)
            result.errors.append(f"{destination}: {exc}")


def _width_key(spec: ArtifactSpec) -> int:
    return spec.width or 0


def _close_if_needed(*images: Optional[Image.Image]) -> None:
    for img in images:
        if img is not None:
            img.close()
