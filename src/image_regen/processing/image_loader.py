"""图片加载与模式归一化。"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from image_regen.core.exceptions import ImageRegenError

LOGGER = logging.getLogger(__name__)


class ImageLoadingError(ImageRegenError):
    """图片加载失败。"""


def load_image(path: Path) -> Image.Image:
    """加载单张图片并执行 EXIF 旋转与模式归一化。

    结果只会是 RGB 或 RGBA，透明通道原样保留。
    返回值为新的 Image 对象，调用者负责关闭。
    """

    try:
        with Image.open(path) as img:
            img.load()

            # EXIF Orientation 校正
            img = ImageOps.exif_transpose(img)

            if img.mode not in {"RGB", "RGBA"}:
                img = _normalize_mode(img)

            return img.copy()
    except (UnidentifiedImageError, OSError) as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
        raise ImageLoadingError(f"无法加载图像: {path}") from exc


def _normalize_mode(img: Image.Image) -> Image.Image:
    """将任意模式转换为 RGB，带透明信息的转换为 RGBA。"""

    if img.mode in {"LA", "PA"} or "transparency" in img.info:
        return img.convert("RGBA")

    if img.mode == "P":
        return img.convert("RGB")

    if img.mode.startswith("I;16"):
        # 16 位灰度先缩放到 8 位。
        return img.convert("I").point(lambda value: value * (1 / 256)).convert("L").convert("RGB")

    return img.convert("RGB")
