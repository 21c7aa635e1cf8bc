"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from image_regen.core.models import FileOutcome

HEADER = ["source_path", "action", "reason", "artifacts", "status", "message"]


def write_csv_report(outcomes: Iterable[FileOutcome], output_dir: Path, filename: str) -> Path:
    """将每个源文件的处理决定与结果写入 CSV 报告。"""

    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            decision = record.decision
            writer.writerow(
                [
                    str(record.source_path),
                    decision.action if decision else "",
                    decision.reason if decision else "",
                    len(record.artifacts),
                    record.status,
                    record.message or "",
                ]
            )
    return report_path
