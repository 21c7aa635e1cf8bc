"""构建任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from image_regen.core.exceptions import InvalidConfigurationError

DEFAULT_SIZES: Tuple[int, ...] = (320, 640, 960, 1200, 1800)
DEFAULT_ASSET_PREFIX = "public_html/assets/images"

ChangeStrategy = str  # git | mtime | force
VALID_STRATEGIES = {"git", "mtime", "force"}


@dataclass(slots=True)
class SharpenConfig:
    """轻度锐化参数，语义与常见 sigma/flat/jagged 锐化一致。"""

    enabled: bool = True
    sigma: float = 0.5
    flat: float = 0.8
    jagged: float = 1.0
    threshold: float = 2.0
    max_brighten: float = 10.0
    max_darken: float = 20.0


@dataclass(slots=True)
class EncodingConfig:
    """各输出格式的编码参数。"""

    webp_quality: int = 85
    jpeg_quality: int = 85
    png_optimize: bool = True


@dataclass(slots=True)
class ChangeDetectionConfig:
    """变更检测策略配置。"""

    strategy: ChangeStrategy = "git"


@dataclass(slots=True)
class BuildConfig:
    """单次增量构建的配置集合。"""

    source_dir: Path
    output_dir: Path
    project_root: Path = field(default_factory=Path.cwd)
    sizes: Tuple[int, ...] = DEFAULT_SIZES
    sharpen: SharpenConfig = field(default_factory=SharpenConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    change_detection: ChangeDetectionConfig = field(default_factory=ChangeDetectionConfig)
    dry_run: bool = False
    report_filename: Optional[str] = None

    def validate(self) -> None:
        """检查配置合法性，不合法时抛出 InvalidConfigurationError。"""

        if not self.sizes:
            raise InvalidConfigurationError("sizes 不能为空")
        if any(size <= 0 for size in self.sizes):
            raise InvalidConfigurationError(f"sizes 必须为正整数: {self.sizes}")
        if self.change_detection.strategy not in VALID_STRATEGIES:
            raise InvalidConfigurationError(f"未知的变更检测策略: {self.change_detection.strategy}")
        if self.sharpen.enabled and self.sharpen.sigma <= 0:
            raise InvalidConfigurationError("sigma 必须大于 0")
        for quality in (self.encoding.webp_quality, self.encoding.jpeg_quality):
            if not 1 <= quality <= 100:
                raise InvalidConfigurationError(f"质量参数必须位于 1~100: {quality}")
