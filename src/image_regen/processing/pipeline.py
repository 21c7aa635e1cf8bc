"""增量构建流水线：扫描、判断是否过期、生成派生图片并汇总。"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from image_regen.core.change_source import CandidateSet, ChangeSource, create_change_source
from image_regen.core.config import BuildConfig
from image_regen.core.models import ArtifactSpec, BuildResult, FileOutcome, ProcessingDecision, SourceImage
from image_regen.core.naming import build_artifact_specs, mirror_directory
from image_regen.core.output_manager import OutputManager
from image_regen.core.progress import ProgressUpdate
from image_regen.core.report import write_csv_report
from image_regen.core.scanner import collect_source_images
from image_regen.core.staleness import UP_TO_DATE, staleness_reason
from image_regen.processing.generator import ArtifactGenerator

LOGGER = logging.getLogger(__name__)

ProgressCallback = Optional[Callable[[ProgressUpdate], None]]

FORCED = "forced"


class BuildEngine:
    """一次构建调用的状态与流程。

    每次 run() 都重新判断所有源文件；同一次 run() 中重复出现的目标只处理一次。
    变更来源只提供候选列表，是否过期始终由时间戳判断决定。
    """

    def __init__(
        self,
        config: BuildConfig,
        change_source: Optional[ChangeSource] = None,
        generator: Optional[ArtifactGenerator] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.change_source = change_source or create_change_source(config)
        self.output_manager = OutputManager(config.output_dir, config.encoding)
        self.generator = generator or ArtifactGenerator(self.output_manager, config.sharpen)

    def run(self, targets: Optional[list[Path]] = None, progress_callback: ProgressCallback = None) -> BuildResult:
        """执行构建。targets 为空时扫描整个源目录。"""

        started = time.perf_counter()
        LOGGER.info("开始扫描源图片: %s", self.config.source_dir)
        sources = self._collect(targets)
        total = len(sources)
        LOGGER.info("发现 %d 个源图片", total)

        candidates = self.change_source.collect()
        result = BuildResult()
        seen: set[Path] = set()

        _emit_progress(progress_callback, 0, total, "开始增量判断")
        for index, source in enumerate(sources, start=1):
            if source.source_path in seen:
                continue
            seen.add(source.source_path)

            outcome = self.process_source(source, candidates)
            if outcome.decision and outcome.decision.should_process:
                result.processed.append(outcome)
                if outcome.status.startswith("error"):
                    result.failed.append(outcome)
            else:
                result.skipped.append(outcome)
            _emit_progress(progress_callback, index, total, _progress_message(outcome))

        result.elapsed = time.perf_counter() - started
        self._write_report(result)
        _emit_progress(progress_callback, total, total, "处理完成")
        LOGGER.info(
            "构建完成：处理 %d，跳过 %d，失败 %d，用时 %.1fs",
            len(result.processed),
            len(result.skipped),
            len(result.failed),
            result.elapsed,
        )
        return result

    def decide(self, source: SourceImage, candidates: CandidateSet) -> ProcessingDecision:
        """判断单个源文件是否需要重新生成。"""

        if self.change_source.bypass_staleness:
            return ProcessingDecision(source.source_path, "process", FORCED)

        reason = staleness_reason(source.source_path, self._artifacts_for(source))
        if reason == UP_TO_DATE and source.source_path in candidates:
            LOGGER.debug("%s 在变更列表中，但派生文件已是最新", source.source_path.name)
        action = "skip" if reason == UP_TO_DATE else "process"
        return ProcessingDecision(source.source_path, action, reason)

    def process_source(self, source: SourceImage, candidates: CandidateSet) -> FileOutcome:
        decision = self.decide(source, candidates)
        name = source.source_path.name

        if not decision.should_process:
            LOGGER.info("跳过: %s（%s）", name, decision.reason)
            return FileOutcome(source_path=source.source_path, status="skipped", decision=decision)

        if self.config.dry_run:
            LOGGER.info("待处理: %s（%s）", name, decision.reason)
            return FileOutcome(source_path=source.source_path, status="planned", decision=decision)

        LOGGER.info("处理: %s（%s）", name, decision.reason)
        output_dir = mirror_directory(source, self.output_manager.output_dir)
        generation = self.generator.generate(source.source_path, output_dir, self._artifacts_for(source))

        if generation.ok:
            LOGGER.info("完成: %s", name)
            status = "processed"
            message = None
        else:
            # 部分失败仍计为已处理；派生文件缺失，下一次构建会再次尝试。
            LOGGER.error("部分失败: %s（%d 个错误）", name, len(generation.errors))
            status = "error-partial" if generation.written else "error"
            message = "; ".join(generation.errors)

        return FileOutcome(
            source_path=source.source_path,
            status=status,
            decision=decision,
            artifacts=generation.written,
            message=message,
        )

    def _artifacts_for(self, source: SourceImage) -> list[ArtifactSpec]:
        output_dir = mirror_directory(source, self.output_manager.output_dir)
        return build_artifact_specs(source.source_path, output_dir, self.config.sizes)

    def _collect(self, targets: Optional[list[Path]]) -> list[SourceImage]:
        if not targets:
            return collect_source_images(self.config.source_dir)

        collected: list[SourceImage] = []
        for target in targets:
            collected.extend(collect_source_images(target, root=self.config.source_dir))
        return collected

    def _write_report(self, result: BuildResult) -> None:
        if not self.config.report_filename:
            return
        try:
            path = write_csv_report(result.all_outcomes(), self.output_manager.output_dir, self.config.report_filename)
        except OSError as exc:
            LOGGER.error("写入报告失败：%s", exc)
            return
        LOGGER.info("报告文件：%s", path)


def run_build(
    config: BuildConfig,
    targets: Optional[list[Path]] = None,
    progress_callback: ProgressCallback = None,
    change_source: Optional[ChangeSource] = None,
) -> BuildResult:
    """构建入口：每次调用使用新的 BuildEngine。"""

    engine = BuildEngine(config, change_source=change_source)
    return engine.run(targets, progress_callback=progress_callback)


def _progress_message(outcome: FileOutcome) -> str:
    verb = "跳过" if outcome.status == "skipped" else "完成"
    return f"{verb} {outcome.source_path.name}"


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
) -> None:
    if not callback:
        return
    callback(ProgressUpdate(total=total, completed=completed, message=message))
