"""作品集 featured 图片预处理。

从 data/next-project.json 中读取每个项目的 imageBase，
对对应的 PNG 走与主流程相同的增量判断与生成。
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Optional

from image_regen.core.change_source import ChangeSource
from image_regen.core.config import BuildConfig
from image_regen.core.exceptions import FeaturedConfigError
from image_regen.core.models import BuildResult, FileOutcome
from image_regen.processing.pipeline import BuildEngine, ProgressCallback

LOGGER = logging.getLogger(__name__)

FEATURED_CONFIG = Path("data") / "next-project.json"
FEATURED_EXTENSION = ".png"


def load_featured_bases(config_path: Path) -> list[str]:
    """读取 next-project.json，返回去重后的 imageBase（保持出现顺序）。"""

    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FeaturedConfigError(f"未找到配置文件: {config_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise FeaturedConfigError(f"无法解析配置文件 {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise FeaturedConfigError(f"配置格式错误，应为对象: {config_path}")

    bases: list[str] = []
    for key, project in payload.items():
        if not isinstance(project, dict):
            LOGGER.debug("忽略非对象条目: %s", key)
            continue
        image_base = project.get("imageBase")
        if image_base and image_base not in bases:
            LOGGER.info("发现 featured 图片: %s", image_base)
            bases.append(image_base)
    return bases


def featured_image_path(public_dir: Path, image_base: str) -> Path:
    return public_dir / f"{image_base.lstrip('/')}{FEATURED_EXTENSION}"


def run_featured(
    config: BuildConfig,
    progress_callback: ProgressCallback = None,
    change_source: Optional[ChangeSource] = None,
) -> BuildResult:
    """处理全部 featured 图片。

    config.source_dir 为站点源目录（public_html），config.output_dir 为构建目录中的对应位置。
    """

    public_dir = config.source_dir
    config_path = public_dir / FEATURED_CONFIG
    bases = load_featured_bases(config_path)
    _copy_config(config_path, config.output_dir / FEATURED_CONFIG)

    targets: list[Path] = []
    missing: list[FileOutcome] = []
    for image_base in bases:
        path = featured_image_path(public_dir, image_base)
        if path.is_file():
            targets.append(path)
        else:
            LOGGER.error("featured 图片不存在: %s", path)
            missing.append(FileOutcome(source_path=path, status="error-missing", message="源文件不存在"))

    LOGGER.info("共 %d 个 featured 图片，缺失 %d 个", len(bases), len(missing))
    if targets:
        engine = BuildEngine(config, change_source=change_source)
        result = engine.run(targets, progress_callback=progress_callback)
    else:
        result = BuildResult()
    result.failed.extend(missing)
    return result


def _copy_config(source: Path, destination: Path) -> None:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise FeaturedConfigError(f"复制配置文件失败: {destination}") from exc
    LOGGER.info("已复制 %s 到构建目录", source.name)
