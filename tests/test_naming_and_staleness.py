"""测试派生文件命名规则与时间戳过期判断。"""

from __future__ import annotations

import os
from pathlib import Path

from image_regen.core.config import DEFAULT_SIZES
from image_regen.core.models import SourceImage
from image_regen.core.naming import artifact_formats, build_artifact_specs, mirror_directory
from image_regen.core.staleness import (
    MISSING_OUTPUT,
    SOURCE_NEWER,
    UP_TO_DATE,
    find_missing,
    is_stale,
    staleness_reason,
)

SECOND = 1_000_000_000


def _touch(path: Path, mtime_ns: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_bytes(b"x")
    os.utime(path, ns=(mtime_ns, mtime_ns))


def test_artifact_set_layout_for_png() -> None:
    specs = build_artifact_specs(Path("/site/img/hero.png"), Path("/build/img"), DEFAULT_SIZES)

    names = [spec.output_path.name for spec in specs]
    assert names[0] == "hero-original.png"
    assert len(specs) == 1 + len(DEFAULT_SIZES) * 2
    for width in DEFAULT_SIZES:
        assert f"hero-{width}w.webp" in names
        assert f"hero-{width}w.png" in names
    assert all(spec.output_path.parent == Path("/build/img") for spec in specs)
    assert specs[0].is_original and specs[0].width is None


def test_naming_is_deterministic() -> None:
    first = build_artifact_specs(Path("a/b/photo.jpeg"), Path("out"), (640,))
    second = build_artifact_specs(Path("a/b/photo.jpeg"), Path("out"), (640,))

    assert first == second
    assert [spec.output_path.name for spec in first] == [
        "photo-original.jpeg",
        "photo-640w.webp",
        "photo-640w.jpeg",
    ]


def test_webp_source_formats_are_deduplicated() -> None:
    assert artifact_formats(Path("shot.webp")) == ["webp"]
    specs = build_artifact_specs(Path("shot.webp"), Path("out"), DEFAULT_SIZES)
    assert len(specs) == 1 + len(DEFAULT_SIZES)


def test_mirror_directory_keeps_relative_structure() -> None:
    source = SourceImage(
        source_path=Path("/site/images/portfolio/x/hero.png"),
        root=Path("/site/images"),
        relative_path=Path("portfolio/x/hero.png"),
    )

    assert mirror_directory(source, Path("/build/images")) == Path("/build/images/portfolio/x")


def test_missing_artifact_is_stale(tmp_path: Path) -> None:
    source = tmp_path / "hero.png"
    _touch(source, 100 * SECOND)
    specs = build_artifact_specs(source, tmp_path / "out", (320,))
    for spec in specs[:-1]:
        _touch(spec.output_path, 200 * SECOND)

    assert staleness_reason(source, specs) == MISSING_OUTPUT
    assert find_missing(specs) == [specs[-1].output_path]


def test_source_newer_than_oldest_artifact_is_stale(tmp_path: Path) -> None:
    source = tmp_path / "hero.png"
    specs = build_artifact_specs(source, tmp_path / "out", (320,))
    for spec in specs:
        _touch(spec.output_path, 200 * SECOND)
    _touch(specs[1].output_path, 100 * SECOND)
    _touch(source, 150 * SECOND)

    assert staleness_reason(source, specs) == SOURCE_NEWER
    assert is_stale(source, specs)


def test_equal_timestamps_are_fresh(tmp_path: Path) -> None:
    source = tmp_path / "hero.png"
    specs = build_artifact_specs(source, tmp_path / "out", (320, 640))
    for spec in specs:
        _touch(spec.output_path, 100 * SECOND)
    _touch(source, 100 * SECOND)

    assert staleness_reason(source, specs) == UP_TO_DATE
    assert not is_stale(source, specs)


def test_present_artifacts_are_not_missing(tmp_path: Path) -> None:
    source = tmp_path / "hero.png"
    specs = build_artifact_specs(source, tmp_path / "out", (320,))
    for spec in specs:
        _touch(spec.output_path, 100 * SECOND)
    _touch(source, 500 * SECOND)

    assert find_missing(specs) == []
    assert staleness_reason(source, specs) == SOURCE_NEWER

