"""派生图片的命名规则。

所有输出路径都只由 (源路径, 宽度, 格式) 决定，同一输入总得到同一路径，
增量判断依赖这一点。
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

from image_regen.core.models import ArtifactSpec, SourceImage

ORIGINAL_SUFFIX = "-original"
WEBP_FORMAT = "webp"


def native_format(source_path: Path) -> str:
    """源文件自身的格式（扩展名去掉点，小写）。"""

    return source_path.suffix.lower().lstrip(".")


def variant_name(source_path: Path, width: int, image_format: str) -> str:
    return f"{source_path.stem}-{width}w.{image_format}"


def original_name(source_path: Path) -> str:
    return f"{source_path.stem}{ORIGINAL_SUFFIX}{source_path.suffix}"


def artifact_formats(source_path: Path) -> list[str]:
    """webp 与源格式，去重后保持顺序。"""

    formats = [WEBP_FORMAT, native_format(source_path)]
    return list(dict.fromkeys(formats))


def mirror_directory(source: SourceImage, output_root: Path) -> Path:
    """把源文件所在目录映射到输出根目录下的同构目录。"""

    return output_root / source.relative_path.parent


def build_artifact_specs(
    source_path: Path,
    output_dir: Path,
    sizes: Sequence[int],
    formats: Optional[Iterable[str]] = None,
) -> list[ArtifactSpec]:
    """计算一个源文件应有的全部派生图片：一张原尺寸副本加 尺寸 × 格式。"""

    chosen_formats = list(formats) if formats is not None else artifact_formats(source_path)
    specs = [
        ArtifactSpec(
            source_path=source_path,
            output_path=output_dir / original_name(source_path),
            image_format=native_format(source_path),
        )
    ]
    for width in sizes:
        for image_format in chosen_formats:
            specs.append(
                ArtifactSpec(
                    source_path=source_path,
                    output_path=output_dir / variant_name(source_path, width, image_format),
                    image_format=image_format,
                    width=width,
                )
            )
    return specs
