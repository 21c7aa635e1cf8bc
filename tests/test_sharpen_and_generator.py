"""测试缩放、锐化与单个源文件的派生图片生成。"""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from image_regen.core.config import DEFAULT_SIZES, EncodingConfig, SharpenConfig
from image_regen.core.naming import build_artifact_specs
from image_regen.core.output_manager import ImageWriteError, OutputManager
from image_regen.processing.generator import ArtifactGenerator
from image_regen.processing.sharpen import apply_sharpen, resize_to_width


def _make_generator(output_dir: Path) -> ArtifactGenerator:
    return ArtifactGenerator(OutputManager(output_dir, EncodingConfig()), SharpenConfig())


def _step_image() -> Image.Image:
    image = Image.new("RGB", (20, 10), (50, 50, 50))
    image.paste((200, 200, 200), (10, 0, 20, 10))
    return image


def test_resize_to_width_never_upscales() -> None:
    image = Image.new("RGB", (800, 600), "white")

    assert resize_to_width(image, 320).size == (320, 240)
    assert resize_to_width(image, 800).size == (800, 600)
    assert resize_to_width(image, 1800).size == (800, 600)


def test_sharpen_keeps_flat_regions() -> None:
    image = Image.new("RGB", (16, 16), (120, 60, 200))

    sharpened = apply_sharpen(image, SharpenConfig())

    for original, result in zip(image.getdata(), sharpened.getdata()):
        assert all(abs(a - b) <= 1 for a, b in zip(original, result))


def test_sharpen_increases_edge_contrast() -> None:
    sharpened = apply_sharpen(_step_image(), SharpenConfig())

    assert sharpened.getpixel((9, 5))[0] < 50
    assert sharpened.getpixel((10, 5))[0] > 200
    assert sharpened.size == (20, 10)


def test_sharpen_disabled_returns_identical_copy() -> None:
    image = _step_image()

    result = apply_sharpen(image, SharpenConfig(enabled=False))

    assert result is not image
    assert list(result.getdata()) == list(image.getdata())


def test_sharpen_preserves_alpha_channel() -> None:
    image = Image.new("RGBA", (12, 12), (10, 200, 30, 77))

    result = apply_sharpen(image, SharpenConfig())

    assert result.mode == "RGBA"
    assert set(result.getchannel("A").getdata()) == {77}


def test_generator_writes_full_artifact_set_without_upscaling(tmp_path: Path) -> None:
    source = tmp_path / "src" / "hero.png"
    source.parent.mkdir()
    Image.new("RGB", (800, 600), "orange").save(source)
    original_bytes = source.read_bytes()
    output_dir = tmp_path / "build"
    specs = build_artifact_specs(source, output_dir, DEFAULT_SIZES)

    result = _make_generator(output_dir).generate(source, output_dir, specs)

    assert result.ok
    assert sorted(result.written) == sorted(spec.output_path for spec in specs)
    with Image.open(output_dir / "hero-original.png") as original:
        assert original.size == (800, 600)
    for width in DEFAULT_SIZES:
        for ext in ("webp", "png"):
            with Image.open(output_dir / f"hero-{width}w.{ext}") as variant:
                assert variant.width == min(width, 800)
                assert variant.height == round(600 * min(width, 800) / 800)
    assert (output_dir / "hero.png").read_bytes() == original_bytes
    assert source.read_bytes() == original_bytes


def test_generator_jpeg_source_keeps_native_extension(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpg"
    Image.new("RGB", (400, 200), "green").save(source)
    output_dir = tmp_path / "build"
    specs = build_artifact_specs(source, output_dir, (320,))

    result = _make_generator(output_dir).generate(source, output_dir, specs)

    assert result.ok
    with Image.open(output_dir / "photo-320w.jpg") as variant:
        assert variant.format == "JPEG"
        assert variant.size == (320, 160)
    with Image.open(output_dir / "photo-320w.webp") as variant:
        assert variant.format == "WEBP"


def test_generator_isolates_single_artifact_failures(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "hero.png"
    Image.new("RGB", (100, 100), "blue").save(source)
    output_dir = tmp_path / "build"
    specs = build_artifact_specs(source, output_dir, (320, 640))
    original_save = OutputManager.save_image

    def flaky_save(self, image, destination, image_format):
        if image_format == "webp":
            raise ImageWriteError(f"写入文件失败: {destination}")
        return original_save(self, image, destination, image_format)

    monkeypatch.setattr(OutputManager, "save_image", flaky_save)

    result = _make_generator(output_dir).generate(source, output_dir, specs)

    assert not result.ok
    assert len(result.errors) == 2
    assert (output_dir / "hero-320w.png").exists()
    assert (output_dir / "hero-640w.png").exists()
    assert (output_dir / "hero-original.png").exists()
    assert not (output_dir / "hero-320w.webp").exists()


def test_generator_reports_unreadable_source(tmp_path: Path) -> None:
    source = tmp_path / "broken.png"
    source.write_text("not an image")
    output_dir = tmp_path / "build"
    specs = build_artifact_specs(source, output_dir, (320,))

    result = _make_generator(output_dir).generate(source, output_dir, specs)

    assert not result.ok
    assert result.written == []
