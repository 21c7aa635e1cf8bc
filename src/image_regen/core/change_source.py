"""候选变更来源：git 差异、全量时间戳扫描、强制全量。

候选集只决定哪些源文件需要做完整的时间戳比较；
派生文件缺失的检查（自愈）对所有源文件都会执行。
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from image_regen.core.config import BuildConfig
from image_regen.core.exceptions import InvalidConfigurationError, VcsQueryError
from image_regen.core.scanner import IMAGE_EXTENSIONS

LOGGER = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str], Path], str]

DIFF_QUERIES: tuple[tuple[str, ...], ...] = (
    ("diff", "--name-only"),  # 未暂存
    ("diff", "--name-only", "--cached"),  # 已暂存
    ("diff", "--name-only", "HEAD~1", "HEAD"),  # 最近一次提交
)


@dataclass(frozen=True, slots=True)
class CandidateSet:
    """变更来源给出的候选源文件集合。"""

    paths: frozenset[Path] = frozenset()
    everything: bool = False

    @classmethod
    def all_sources(cls) -> "CandidateSet":
        return cls(everything=True)

    def __contains__(self, path: object) -> bool:
        return self.everything or path in self.paths

    def __len__(self) -> int:
        return len(self.paths)


class ChangeSource(ABC):
    """列出候选变更源文件的策略接口。"""

    name: str = "base"
    # 为 True 时跳过过期判断，所有源文件都重新生成。
    bypass_staleness: bool = False

    @abstractmethod
    def collect(self) -> CandidateSet:
        """返回本次构建的候选集合。"""


class ForceAllChangeSource(ChangeSource):
    name = "force"
    bypass_staleness = True

    def collect(self) -> CandidateSet:
        LOGGER.info("强制模式：处理全部图片")
        return CandidateSet.all_sources()


class TimestampChangeSource(ChangeSource):
    """不依赖版本控制，所有源文件都按时间戳比较。"""

    name = "mtime"

    def collect(self) -> CandidateSet:
        return CandidateSet.all_sources()


def run_git(args: Sequence[str], cwd: Path) -> str:
    """执行 git 子命令并返回标准输出。"""

    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise VcsQueryError(f"无法执行 git: {exc}") from exc

    if proc.returncode != 0:
        raise VcsQueryError(f"git {' '.join(args)} 失败: {proc.stderr.strip()}")
    return proc.stdout


class GitChangeSource(ChangeSource):
    """合并未暂存、已暂存与最近一次提交的差异文件。

    git 查询失败时退化为全量时间戳比较（宁可多处理，不可漏处理）。
    """

    name = "git"

    def __init__(self, project_root: Path, asset_dir: Path, runner: Optional[CommandRunner] = None) -> None:
        self.project_root = project_root
        self.asset_dir = asset_dir.resolve()
        self.runner = runner or run_git

    def collect(self) -> CandidateSet:
        try:
            changed = self._query_changed_files()
        except VcsQueryError as exc:
            LOGGER.warning("git 变更检测失败，改为检查全部图片: %s", exc)
            return CandidateSet.all_sources()

        images = frozenset(path for path in changed if self._is_asset_image(path))
        if not changed:
            LOGGER.info("git 未检测到任何变更")
        else:
            LOGGER.info("git 检测到 %d 个变更图片", len(images))
            for path in sorted(images):
                LOGGER.info("   • %s", path)
        return CandidateSet(paths=images)

    def _query_changed_files(self) -> set[Path]:
        toplevel = self.runner(("rev-parse", "--show-toplevel"), self.project_root).strip()
        if not toplevel:
            raise VcsQueryError("无法确定仓库根目录")
        repo_root = Path(toplevel)

        changed: set[Path] = set()
        for query in DIFF_QUERIES:
            output = self.runner(query, self.project_root)
            for line in output.splitlines():
                name = line.strip()
                if name:
                    changed.add((repo_root / name).resolve())
        return changed

    def _is_asset_image(self, path: Path) -> bool:
        if path.suffix.lower() not in IMAGE_EXTENSIONS:
            return False
        return self.asset_dir == path or self.asset_dir in path.parents


def create_change_source(config: BuildConfig, runner: Optional[CommandRunner] = None) -> ChangeSource:
    """根据配置选择变更来源策略。"""

    strategy = config.change_detection.strategy
    if strategy == "force":
        return ForceAllChangeSource()
    if strategy == "mtime":
        return TimestampChangeSource()
    if strategy == "git":
        source = config.source_dir
        asset_dir = source if source.is_dir() else source.parent
        return GitChangeSource(config.project_root, asset_dir, runner=runner)
    raise InvalidConfigurationError(f"未知的变更检测策略: {strategy}")
