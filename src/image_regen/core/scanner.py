"""源图片扫描与筛选逻辑。"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Optional

from image_regen.core.exceptions import SourceRootMissingError
from image_regen.core.models import SourceImage
from image_regen.core.naming import ORIGINAL_SUFFIX

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

# 站点图标类文件不生成响应式版本。
SKIP_PREFIXES = ("favicon", "apple-touch-icon", "android-chrome", "mstile")
SKIP_NAMES = {"browserconfig.xml", "site.webmanifest"}
SKIP_EXTENSIONS = {".svg", ".gif"}

DERIVED_STEM_RE = re.compile(r"-\d+w$")


def should_skip_file(path: Path) -> bool:
    """图标、SVG、GIF 等永远不参与处理的文件。"""

    name = path.name.lower()
    if name in SKIP_NAMES:
        return True
    if name.startswith(SKIP_PREFIXES) or "safari-pinned-tab" in name:
        return True
    return path.suffix.lower() in SKIP_EXTENSIONS


def is_derived_variant(path: Path) -> bool:
    """文件名看起来已经是派生产物（-640w、-original）。"""

    stem = path.stem
    return bool(DERIVED_STEM_RE.search(stem)) or stem.endswith(ORIGINAL_SUFFIX)


def is_source_candidate(path: Path) -> bool:
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        return False
    if should_skip_file(path):
        return False
    return not is_derived_variant(path)


def _iter_candidate_files(path: Path) -> Iterator[Path]:
    """递归遍历路径下的所有文件，目录按名称排序。"""

    if path.is_file():
        yield path
        return

    LOGGER.info("[SCANNING] %s", path)
    for candidate in sorted(path.iterdir(), key=lambda p: p.name.lower()):
        if candidate.is_dir():
            yield from _iter_candidate_files(candidate)
        elif candidate.is_file():
            yield candidate


def collect_source_images(source: Path, root: Optional[Path] = None) -> list[SourceImage]:
    """扫描源目录（或单个文件），返回需要参与增量判断的图片列表。

    root 为输出镜像的基准目录，默认取 source 本身（文件则取其所在目录）。
    """

    resolved = source.resolve()
    if not resolved.exists():
        raise SourceRootMissingError(f"源路径不存在: {source}")

    if root is not None:
        root = root.resolve()
    else:
        root = resolved if resolved.is_dir() else resolved.parent
    collected: list[SourceImage] = []

    try:
        for candidate in _iter_candidate_files(resolved):
            if not is_source_candidate(candidate):
                LOGGER.debug("忽略文件: %s", candidate)
                continue
            collected.append(
                SourceImage(
                    source_path=candidate,
                    root=root,
                    relative_path=_relative_to(candidate, root),
                )
            )
    except PermissionError as exc:
        raise SourceRootMissingError(f"源路径不可读: {source}") from exc

    return collected


def _relative_to(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return Path(path.name)
