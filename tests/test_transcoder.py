from pathlib import Path

import pytest
from PIL import Image

from webp_mobile import transcoder
from webp_mobile.errors import DecodeFailed, EncodeFailed, EncoderUnavailable, UnsupportedFormat
from webp_mobile.models import MIME_JPEG, MIME_PNG
from webp_mobile.transcoder import (
    convert_to_webp,
    detect_source_kind,
    downscale_for_mobile,
    open_source_raster,
)


def _size_of(path: Path):
    with Image.open(path) as image:
        return image.size


@pytest.mark.parametrize("size", [(800, 600), (1024, 700), (500, 4000)])
def test_narrow_sources_keep_their_dimensions(tmp_path, make_jpeg, size):
    source = make_jpeg(tmp_path / "small.jpg", size)

    target = convert_to_webp(source)

    assert target == tmp_path / "small.webp"
    assert _size_of(target) == size


def test_wide_jpeg_is_scaled_to_mobile_width(asset_root, make_jpeg):
    source = make_jpeg(asset_root / "2024" / "img.jpg", (2048, 1536))

    target = convert_to_webp(source)

    assert target == asset_root / "2024" / "img.webp"
    with Image.open(target) as image:
        assert image.format == "WEBP"
        assert image.size == (1024, 768)


def test_scaled_height_is_rounded(tmp_path, make_jpeg):
    source = make_jpeg(tmp_path / "pano.jpeg", (3000, 1001))

    width, height = _size_of(convert_to_webp(source))

    assert width == 1024
    assert abs(height - round(1001 * 1024 / 3000)) <= 1


def test_png_alpha_survives_resize(tmp_path):
    source = tmp_path / "logo.png"
    image = Image.new("RGBA", (2048, 1024), (0, 0, 0, 0))
    image.paste((255, 0, 0, 255), (0, 0, 1024, 1024))
    image.save(source, format="PNG")

    with open_source_raster(source, MIME_PNG) as raster:
        assert raster.mode == "RGBA"
        resized = downscale_for_mobile(raster)
    assert resized.size == (1024, 512)
    for (x, y), expected in {(100, 100): 255, (400, 300): 255, (700, 100): 0, (1000, 500): 0}.items():
        assert resized.getpixel((x, y))[3] == expected
        assert image.getpixel((x * 2, y * 2))[3] == expected

    target = convert_to_webp(source)
    with Image.open(target) as output:
        output = output.convert("RGBA")
        assert output.getpixel((100, 100))[3] == 255
        assert output.getpixel((900, 400))[3] == 0


def test_partial_alpha_is_not_flattened(tmp_path, make_png):
    source = make_png(tmp_path / "glass.png", (1600, 400), color=(30, 60, 90, 128))

    with open_source_raster(source, MIME_PNG) as raster:
        resized = downscale_for_mobile(raster)
        assert resized.size == (1024, 256)
        assert resized.getpixel((512, 128))[3] == 128
        resized.close()


def test_opaque_png_is_decoded_without_alpha(tmp_path, make_png):
    source = make_png(tmp_path / "flat.png", (300, 200), color=(1, 2, 3))

    with open_source_raster(source, MIME_PNG) as raster:
        assert raster.mode == "RGB"


def test_downscale_returns_same_image_at_threshold():
    image = Image.new("RGB", (1024, 10))
    assert downscale_for_mobile(image) is image


def test_resampled_pixels_are_reproducible(tmp_path):
    source = tmp_path / "noise.png"
    image = Image.effect_noise((1500, 900), 64).convert("RGB")
    image.save(source, format="PNG")

    with open_source_raster(source, MIME_PNG) as first, open_source_raster(source, MIME_PNG) as second:
        assert downscale_for_mobile(first).tobytes() == downscale_for_mobile(second).tobytes()


def test_detect_source_kind_prefers_content(tmp_path, make_png):
    disguised = make_png(tmp_path / "really-png.jpg", (10, 10))
    assert detect_source_kind(disguised) == MIME_PNG

    unknown = tmp_path / "empty.jpeg"
    unknown.write_bytes(b"")
    assert detect_source_kind(unknown) == MIME_JPEG


def test_unsupported_type_is_rejected(tmp_path):
    source = tmp_path / "anim.gif"
    Image.new("P", (20, 20)).save(source, format="GIF")

    with pytest.raises(UnsupportedFormat):
        convert_to_webp(source)


def test_unmatched_extension_is_never_rewritten(tmp_path, make_jpeg):
    source = make_jpeg(tmp_path / "archive.jpegx", (50, 50))

    with pytest.raises(UnsupportedFormat):
        convert_to_webp(source)
    assert [p.name for p in tmp_path.iterdir()] == ["archive.jpegx"]


def test_plain_text_is_rejected(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_text("hello")

    with pytest.raises(UnsupportedFormat):
        convert_to_webp(source)


def test_garbage_with_image_extension_fails_to_decode(tmp_path):
    source = tmp_path / "broken.jpg"
    source.write_bytes(b"definitely not a jpeg")

    with pytest.raises(DecodeFailed):
        convert_to_webp(source)
    assert not (tmp_path / "broken.webp").exists()


def test_truncated_jpeg_fails_to_decode(tmp_path, make_jpeg):
    source = make_jpeg(tmp_path / "cut.jpg", (400, 300))
    data = source.read_bytes()
    source.write_bytes(data[: len(data) // 2])

    with pytest.raises(DecodeFailed):
        convert_to_webp(source)
    assert not (tmp_path / "cut.webp").exists()


def test_missing_encoder_is_reported(tmp_path, make_jpeg, monkeypatch):
    source = make_jpeg(tmp_path / "a.jpg", (10, 10))
    monkeypatch.setattr(transcoder, "webp_supported", lambda: False)

    with pytest.raises(EncoderUnavailable):
        convert_to_webp(source)


def test_encode_failure_leaves_existing_output_untouched(tmp_path, make_jpeg, monkeypatch):
    source = make_jpeg(tmp_path / "a.jpg", (10, 10))
    previous = tmp_path / "a.webp"
    previous.write_bytes(b"previous")

    def fail_save(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Image.Image, "save", fail_save)

    with pytest.raises(EncodeFailed) as excinfo:
        convert_to_webp(source)
    assert excinfo.value.source == source
    assert previous.read_bytes() == b"previous"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["a.jpg", "a.webp"]


def test_conversion_overwrites_previous_output(tmp_path, make_jpeg):
    source = make_jpeg(tmp_path / "a.jpg", (1200, 600))
    (tmp_path / "a.webp").write_bytes(b"stale")

    target = convert_to_webp(source)

    assert _size_of(target) == (1024, 512)


def test_colour_under_low_alpha_survives_resize(tmp_path, make_png):
    source = make_png(tmp_path / "haze.png", (2048, 64), color=(200, 100, 50, 1))

    with open_source_raster(source, MIME_PNG) as raster:
        resized = downscale_for_mobile(raster)
    assert resized.size == (1024, 32)
    assert resized.getpixel((500, 30)) == (200, 100, 50, 1)
