"""基于文件时间戳的过期判断。

不维护任何缓存文件，只比较磁盘上的修改时间：
任一派生文件缺失即视为过期；全部存在时，源文件严格新于最旧的派生文件才算过期。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from image_regen.core.models import ArtifactSpec

LOGGER = logging.getLogger(__name__)

MISSING_OUTPUT = "missing-output"
SOURCE_NEWER = "source-newer"
UP_TO_DATE = "up-to-date"


def mtime_ns(path: Path) -> Optional[int]:
    """返回修改时间（纳秒），文件不存在时返回 None。"""

    try:
        return path.stat().st_mtime_ns
    except FileNotFoundError:
        return None


def find_missing(artifacts: Iterable[ArtifactSpec]) -> list[Path]:
    """返回尚不存在的派生文件路径。"""

    return [spec.output_path for spec in artifacts if not spec.output_path.is_file()]


def oldest_artifact_time(artifacts: Iterable[ArtifactSpec]) -> Optional[int]:
    """全部派生文件中最旧的修改时间；有缺失时返回 None。"""

    oldest: Optional[int] = None
    for spec in artifacts:
        current = mtime_ns(spec.output_path)
        if current is None:
            return None
        if oldest is None or current < oldest:
            oldest = current
    return oldest


def staleness_reason(source_path: Path, artifacts: list[ArtifactSpec]) -> str:
    """给出过期原因：missing-output / source-newer / up-to-date。"""

    missing = find_missing(artifacts)
    if missing:
        LOGGER.debug("缺少派生文件 %s（共 %d 个）", missing[0], len(missing))
        return MISSING_OUTPUT

    oldest = oldest_artifact_time(artifacts)
    if oldest is None:
        # 检查之后派生文件被删除。
        return MISSING_OUTPUT

    source_time = mtime_ns(source_path)
    if source_time is None:
        # 源文件在扫描后被删除，已无可处理内容。
        return UP_TO_DATE
    if source_time > oldest:
        return SOURCE_NEWER
    return UP_TO_DATE


def is_stale(source_path: Path, artifacts: list[ArtifactSpec]) -> bool:
    return staleness_reason(source_path, artifacts) != UP_TO_DATE
