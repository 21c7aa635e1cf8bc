"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(slots=True)
class SourceImage:
    """扫描阶段得到的源图片信息。"""

    source_path: Path
    root: Path
    relative_path: Path


@dataclass(frozen=True, slots=True)
class ArtifactSpec:
    """单个派生图片的描述。width 为 None 表示锐化后的原尺寸副本。"""

    source_path: Path
    output_path: Path
    image_format: str
    width: Optional[int] = None

    @property
    def is_original(self) -> bool:
        return self.width is None


@dataclass(slots=True)
class ProcessingDecision:
    """单个源文件在本次构建中的处理决定。"""

    source_path: Path
    action: str  # process | skip
    reason: str

    @property
    def should_process(self) -> bool:
        return self.action == "process"


@dataclass(slots=True)
class FileOutcome:
    """记录单个源文件的处理结果（用于报告/日志）。"""

    source_path: Path
    status: str
    decision: Optional[ProcessingDecision] = None
    artifacts: list[Path] = field(default_factory=list)
    message: Optional[str] = None


@dataclass(slots=True)
class BuildResult:
    """一次构建的汇总结果。"""

    processed: list[FileOutcome] = field(default_factory=list)
    skipped: list[FileOutcome] = field(default_factory=list)
    failed: list[FileOutcome] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.skipped)

    @property
    def avoided_percent(self) -> int:
        """跳过的源文件占比（百分比取整），即本次节省的工作量。"""

        if self.total == 0:
            return 0
        return round(len(self.skipped) / self.total * 100)

    def all_outcomes(self) -> list[FileOutcome]:
        """返回所有结果记录，方便生成报告。"""

        return [*self.processed, *self.skipped]
