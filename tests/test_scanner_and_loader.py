"""测试源文件扫描、跳过规则与基础加载逻辑。"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from image_regen.core.exceptions import SourceRootMissingError
from image_regen.core.scanner import collect_source_images, is_derived_variant, should_skip_file
from image_regen.processing.image_loader import ImageLoadingError, load_image


@pytest.mark.parametrize(
    "name",
    [
        "favicon.png",
        "favicon-32x32.png",
        "apple-touch-icon.png",
        "android-chrome-192x192.png",
        "mstile-150x150.png",
        "safari-pinned-tab.svg",
        "logo.svg",
        "loading.gif",
        "browserconfig.xml",
        "site.webmanifest",
    ],
)
def test_should_skip_icons_and_unsupported_formats(name: str) -> None:
    assert should_skip_file(Path(name))


@pytest.mark.parametrize("name", ["hero.png", "photo.JPG", "cover.jpeg", "shot.webp", "my-favicon-study.png"])
def test_regular_images_are_not_skipped(name: str) -> None:
    assert not should_skip_file(Path(name))


def test_derived_variant_names_are_recognized() -> None:
    assert is_derived_variant(Path("hero-320w.png"))
    assert is_derived_variant(Path("hero-1800w.webp"))
    assert is_derived_variant(Path("hero-original.png"))
    assert not is_derived_variant(Path("hero.png"))
    assert not is_derived_variant(Path("w-320.png"))


def test_collect_source_images_filters_and_recurses(tmp_path: Path) -> None:
    source = tmp_path / "images"
    nested = source / "portfolio" / "project"
    nested.mkdir(parents=True)

    Image.new("RGB", (10, 10), "blue").save(source / "hero.png")
    Image.new("RGB", (10, 10), "red").save(nested / "detail.jpg")
    Image.new("RGB", (10, 10), "red").save(nested / "detail-640w.jpg")
    Image.new("RGB", (10, 10), "red").save(source / "favicon.png")
    (source / "notes.txt").write_text("hello")
    (source / "logo.svg").write_text("<svg/>")

    collected = collect_source_images(source)

    names = [item.source_path.name for item in collected]
    assert names == ["hero.png", "detail.jpg"]
    assert collected[1].relative_path == Path("portfolio/project/detail.jpg")
    assert collected[0].root == source.resolve()


def test_collect_single_file_with_explicit_root(tmp_path: Path) -> None:
    source = tmp_path / "images"
    (source / "sub").mkdir(parents=True)
    target = source / "sub" / "one.png"
    Image.new("RGB", (10, 10), "blue").save(target)

    collected = collect_source_images(target, root=source)

    assert len(collected) == 1
    assert collected[0].relative_path == Path("sub/one.png")


def test_missing_source_root_raises(tmp_path: Path) -> None:
    with pytest.raises(SourceRootMissingError):
        collect_source_images(tmp_path / "does-not-exist")


def test_corrupted_image_raises_loading_error(tmp_path: Path) -> None:
    broken = tmp_path / "corrupted.png"
    broken.write_text("not an image")

    with pytest.raises(ImageLoadingError):
        load_image(broken)


def test_exif_orientation_is_corrected(tmp_path: Path) -> None:
    if not hasattr(Image, "Exif"):
        pytest.skip("当前 Pillow 版本不支持写入 EXIF 数据")

    image = Image.new("RGB", (80, 40), "red")
    exif = Image.Exif()
    exif[274] = 6  # 旋转 90 度
    image.save(tmp_path / "rotated.jpg", exif=exif.tobytes())

    loaded = load_image(tmp_path / "rotated.jpg")

    assert loaded.size == (40, 80)


def test_cmyk_image_converts_to_rgb(tmp_path: Path) -> None:
    Image.new("CMYK", (50, 50), (0, 128, 255, 0)).save(tmp_path / "cmyk.jpg")

    assert load_image(tmp_path / "cmyk.jpg").mode == "RGB"


def test_transparency_is_preserved(tmp_path: Path) -> None:
    Image.new("LA", (20, 20), (128, 100)).save(tmp_path / "gray-alpha.png")
    Image.new("RGBA", (20, 20), (255, 0, 0, 50)).save(tmp_path / "rgba.png")

    assert load_image(tmp_path / "gray-alpha.png").mode == "RGBA"
    assert load_image(tmp_path / "rgba.png").mode == "RGBA"
