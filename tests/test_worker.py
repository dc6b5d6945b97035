import pytest
from PIL import Image

import showcase_crop.worker as worker
from showcase_crop.errors import CompositeError, CropOutOfBoundsError
from showcase_crop.models import CropRect, Raster
from showcase_crop.worker import check_bounds, composite, extract


class TestComposite:
    """Rotating the source into a bounding-box sized buffer."""

    def test_zero_rotation_is_a_fresh_copy(self, pattern_raster):
        raster = pattern_raster(40, 30)
        out = composite(raster, 0)
        assert out.size == (40, 30)
        assert out.image is not raster.image
        assert out.image.tobytes() == raster.image.tobytes()

    def test_quarter_turn_is_clockwise(self, pattern_raster):
        raster = pattern_raster(400, 300)
        out = composite(raster, 90)
        assert out.size == (300, 400)
        # dest(X, Y) = src(Y, h - 1 - X)
        assert out.pixel(0, 0) == raster.pixel(0, 299)
        assert out.pixel(299, 0) == raster.pixel(0, 0)
        assert out.pixel(10, 20) == raster.pixel(20, 289)

    def test_half_turn(self, pattern_raster):
        raster = pattern_raster(50, 20)
        out = composite(raster, 180)
        assert out.size == (50, 20)
        assert out.pixel(0, 0) == raster.pixel(49, 19)

    def test_full_turn_equals_zero(self, pattern_raster):
        raster = pattern_raster(64, 48)
        assert composite(raster, 360).image.tobytes() == composite(raster, 0).image.tobytes()

    def test_arbitrary_angle_size_and_corners_rgb(self):
        raster = Raster(Image.new("RGB", (100, 100), (255, 0, 0)))
        out = composite(raster, 45)
        assert out.size == (142, 142)
        assert out.pixel(0, 0) == (0, 0, 0)
        assert out.pixel(71, 71) == (255, 0, 0)

    def test_arbitrary_angle_transparent_corners_rgba(self):
        raster = Raster(Image.new("RGBA", (100, 100), (255, 0, 0, 255)))
        out = composite(raster, 45)
        assert out.mode == "RGBA"
        assert out.pixel(0, 0)[3] == 0
        assert out.pixel(141, 141)[3] == 0
        assert out.pixel(71, 71) == (255, 0, 0, 255)

    def test_buffers_are_never_shared(self, pattern_raster):
        a = composite(pattern_raster(30, 30), 30)
        b = composite(Raster(Image.new("RGB", (30, 30), (9, 9, 9))), 30)
        assert a.image is not b.image
        assert a.image.tobytes() != b.image.tobytes()

    def test_side_limit_raises(self, pattern_raster, monkeypatch):
        monkeypatch.setattr(worker, "COMPOSITE_MAX_DIMENSION", 50)
        with pytest.raises(CompositeError):
            composite(pattern_raster(60, 10), 0)

    def test_area_limit_raises(self, pattern_raster, monkeypatch):
        monkeypatch.setattr(worker, "COMPOSITE_MAX_PIXELS", 999)
        with pytest.raises(CompositeError):
            composite(pattern_raster(40, 25), 0)

    def test_allocation_failure_is_wrapped(self, pattern_raster, monkeypatch):
        def boom(*args, **kwargs):
            raise MemoryError("out of memory")
        monkeypatch.setattr(Image.Image, "transform", boom)
        with pytest.raises(CompositeError):
            composite(pattern_raster(20, 20), 10)


class TestExtract:
    """Copying the crop rectangle out of a composite."""

    def test_identity_crop(self, pattern_raster):
        raster = pattern_raster(80, 60)
        out = extract(composite(raster, 0), CropRect(0, 0, 80, 60))
        assert out.size == (80, 60)
        assert out.image.tobytes() == raster.image.tobytes()

    def test_aligned_crop_is_exact(self, pattern_raster):
        raster = pattern_raster(80, 60)
        out = extract(raster, CropRect(10, 5, 20, 20))
        assert out.pixel(0, 0) == raster.pixel(10, 5)
        assert out.pixel(19, 19) == raster.pixel(29, 24)

    def test_rotated_top_left_square(self, pattern_raster):
        raster = pattern_raster(400, 300)
        out = extract(composite(raster, 90), CropRect(0, 0, 300, 300))
        expected = raster.image.transpose(Image.Transpose.ROTATE_270).crop((0, 0, 300, 300))
        assert out.size == (300, 300)
        assert out.image.tobytes() == expected.tobytes()

    @pytest.mark.parametrize("rotation", [0, 37, 90, 200.5, 359])
    @pytest.mark.parametrize("rect, expected", [
        (CropRect(10.25, 20.75, 100.5, 50.5), (101, 51)),
        (CropRect(0, 0, 100.49, 50.49), (100, 50)),
        (CropRect(3, 4, 64, 36), (64, 36)),
    ])
    def test_output_size_is_deterministic(self, pattern_raster, rotation, rect, expected):
        rotated = composite(pattern_raster(200, 120), rotation)
        assert extract(rotated, rect).size == expected

    def test_sub_pixel_origin_interpolates(self):
        img = Image.new("L", (4, 1))
        img.putdata([0, 100, 200, 250])
        out = extract(Raster(img), CropRect(0.5, 0, 2, 1))
        # samples fall halfway between neighbours
        assert out.size == (2, 1)
        assert list(out.image.getdata()) == [50, 150]

    @pytest.mark.parametrize("rect", [
        CropRect(0, 0, 201, 100),
        CropRect(0, 0, 200, 101),
        CropRect(-1, 0, 10, 10),
        CropRect(0, -1, 10, 10),
        CropRect(191, 0, 10, 10),
        CropRect(0, 91, 10, 10),
        CropRect(0, 0, 0, 10),
        CropRect(0, 0, 10, float("nan")),
    ])
    def test_out_of_bounds_is_rejected(self, pattern_raster, rect):
        rotated = composite(pattern_raster(200, 100), 0)
        with pytest.raises(CropOutOfBoundsError):
            extract(rotated, rect)

    def test_tiny_rect_rounding_to_nothing(self, pattern_raster):
        with pytest.raises(CropOutOfBoundsError):
            extract(pattern_raster(10, 10), CropRect(0, 0, 0.4, 0.4))

    def test_float_noise_at_edge_is_tolerated(self):
        check_bounds(CropRect(0, 0, 200.0000000001, 100), 200, 100)
