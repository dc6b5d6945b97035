import pytest
from PIL import Image

from showcase_crop.app import build_parser, main


@pytest.fixture
def cover_png(tmp_path, pattern_image):
    path = tmp_path / "cover.png"
    pattern_image(320, 240).save(path)
    return path


def test_parser_defaults():
    args = build_parser().parse_args(["photo.png"])
    assert (args.preset, args.rotation, args.zoom, args.fmt, args.quality) == ("16:9", 0.0, 1.0, "JPEG", 0.95)
    assert args.crop is None


def test_writes_artifact(tmp_path, tmp_config, cover_png, capsys):
    out = tmp_path / "out.jpg"
    assert main([str(cover_png), "-o", str(out), "--preset", "4:3"]) == 0
    with Image.open(out) as img:
        assert img.format == "JPEG"
        assert img.size == (320, 240)
    assert "320x240 image/jpeg" in capsys.readouterr().out


def test_default_output_name(tmp_path, tmp_config, cover_png, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main([str(cover_png), "--rotation", "90", "--crop", "0", "0", "240", "135"]) == 0
    with Image.open(tmp_path / "cover.jpg") as img:
        assert img.size == (240, 135)


def test_avatar_webp(tmp_path, tmp_config, cover_png, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main([str(cover_png), "--preset", "avatar", "--format", "WEBP", "--zoom", "2"]) == 0
    with Image.open(tmp_path / "profile-picture.webp") as img:
        assert img.format == "WEBP"
        assert img.size == (120, 120)


def test_out_of_bounds_crop_fails(tmp_path, tmp_config, cover_png, capsys):
    code = main([str(cover_png), "-o", str(tmp_path / "x.jpg"), "--crop", "100", "0", "320", "180"])
    assert code == 1
    assert "outside the image" in capsys.readouterr().err
    assert not (tmp_path / "x.jpg").exists()


def test_unreadable_source_fails(tmp_path, tmp_config, capsys):
    assert main([str(tmp_path / "missing.png")]) == 1
    assert "could not be opened" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [
    ["--preset", "21:9"],
    ["--zoom", "5"],
    ["--quality", "2"],
])
def test_bad_arguments_fail(tmp_config, cover_png, argv):
    assert main([str(cover_png), *argv]) == 2
