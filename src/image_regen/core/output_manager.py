"""派生图片的编码与写入。"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from image_regen.core.config import EncodingConfig
from image_regen.core.exceptions import ImageRegenError

LOGGER = logging.getLogger(__name__)

SUPPORTED_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}


class ImageWriteError(ImageRegenError):
    """输出写入失败。"""


class OutputManager:
    """负责输出目录创建与按格式编码写盘。"""

    def __init__(self, output_dir: Path, encoding: EncodingConfig) -> None:
        self.output_dir = output_dir.resolve()
        self.encoding = encoding

    def ensure_directory(self, directory: Path) -> Path:
        """等价于 mkdir -p。"""

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ImageWriteError(f"无法创建输出目录: {directory}") from exc
        return directory

    def save_image(self, image: Image.Image, destination: Path, image_format: str) -> None:
        """将 PIL Image 按指定格式保存到磁盘。"""

        pil_format = SUPPORTED_FORMATS.get(image_format.lower())
        if not pil_format:
            raise ImageWriteError(f"不支持的输出格式: {image_format}")

        save_params: dict = {}
        image_to_save = image
        if pil_format == "JPEG":
            save_params.update(quality=self.encoding.jpeg_quality, optimize=True)
            if image.mode != "RGB":
                image_to_save = image.convert("RGB")
        elif pil_format == "WEBP":
            save_params.update(quality=self.encoding.webp_quality)
        else:
            save_params.update(optimize=self.encoding.png_optimize)

        try:
            image_to_save.save(destination, format=pil_format, **save_params)
        except (OSError, ValueError) as exc:
            raise ImageWriteError(f"写入文件失败: {destination}") from exc
        finally:
            if image_to_save is not image:
                image_to_save.close()
