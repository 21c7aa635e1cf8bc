"""缩放与轻度锐化。"""

from __future__ import annotations

import logging

import cv2
import numpy as np
from PIL import Image

from image_regen.core.config import SharpenConfig

LOGGER = logging.getLogger(__name__)

_RESAMPLING = getattr(Image, "Resampling", Image)


def resize_to_width(image: Image.Image, width: int) -> Image.Image:
    """按宽度等比缩放，不放大：目标宽度超过原图时保持原尺寸。"""

    if width >= image.width:
        return image.copy()

    height = max(1, round(image.height * width / image.width))
    return image.resize((width, height), _RESAMPLING.LANCZOS)


def apply_sharpen(image: Image.Image, config: SharpenConfig) -> Image.Image:
    """在 LAB 亮度通道上做 USM 锐化。

    细节幅度低于 threshold 的部分按 flat 放大，高于的部分按 jagged 放大，
    再分别受 max_brighten / max_darken 限制。色度与透明通道不变。
    """

    if not config.enabled:
        return image.copy()

    alpha = image.getchannel("A") if image.mode == "RGBA" else None
    rgb = np.asarray(image.convert("RGB"), dtype=np.float32) / 255.0

    lab = cv2.cvtColor(rgb, cv2.COLOR_RGB2LAB)
    lightness = np.ascontiguousarray(lab[..., 0])
    blurred = cv2.GaussianBlur(lightness, (0, 0), sigmaX=config.sigma)

    detail = lightness - blurred
    magnitude = np.abs(detail)
    boost = np.where(
        magnitude < config.threshold,
        config.flat * magnitude,
        config.flat * config.threshold + config.jagged * (magnitude - config.threshold),
    )
    boost = np.where(detail >= 0, np.minimum(boost, config.max_brighten), -np.minimum(boost, config.max_darken))

    lab[..., 0] = np.clip(lightness + boost, 0.0, 100.0)
    result = cv2.cvtColor(lab, cv2.COLOR_LAB2RGB)
    pixels = np.clip(result * 255.0 + 0.5, 0, 255).astype(np.uint8)

    sharpened = Image.fromarray(pixels)
    if alpha is not None:
        sharpened.putalpha(alpha)
    return sharpened
