"""Tests for the decode and preprocess stages."""

import io

import numpy as np
import pytest
from PIL import Image

from service_ingestion.app.pipelines.decoder import decode_image
from service_ingestion.app.pipelines.errors import DecodeError, PreprocessError
from service_ingestion.app.pipelines.preprocessor import INPUT_SHAPE, preprocess, resize_bilinear
from tests.conftest import make_image_bytes


class TestDecoder:

    def test_decodes_jpeg_to_rgb_buffer(self):
        pixels = decode_image(make_image_bytes(width=64, height=48))

        assert pixels.shape == (48, 64, 3)
        assert pixels.dtype == np.uint8

    def test_alpha_channel_is_dropped(self):
        data = make_image_bytes(width=8, height=4, mode="RGBA", fmt="PNG", color=(10, 20, 30, 128))
        pixels = decode_image(data)

        assert pixels.shape == (4, 8, 3)
        assert tuple(pixels[0, 0]) == (10, 20, 30)

    def test_grayscale_expands_to_three_channels(self):
        data = make_image_bytes(width=5, height=5, mode="L", fmt="PNG", color=77)
        pixels = decode_image(data)

        assert pixels.shape == (5, 5, 3)
        assert np.all(pixels == 77)

    def test_sixteen_bit_grayscale_is_scaled_not_clipped(self):
        buffer = io.BytesIO()
        Image.fromarray(np.full((4, 4), 30000, dtype=np.uint16)).save(buffer, format="PNG")
        pixels = decode_image(buffer.getvalue())

        assert pixels.shape == (4, 4, 3)
        assert pixels.dtype == np.uint8
        assert np.all(pixels == 30000 >> 8)

    def test_decoding_is_deterministic(self, jpeg_bytes):
        assert np.array_equal(decode_image(jpeg_bytes), decode_image(jpeg_bytes))

    @pytest.mark.parametrize("data", [b"", b"definitely not an image", b"<html>404</html>"])
    def test_rejects_non_image_bytes(self, data):
        with pytest.raises(DecodeError):
            decode_image(data)


class TestPreprocessor:

    @pytest.mark.parametrize("height,width", [(100, 100), (300, 50), (40, 500), (1, 1), (224, 224)])
    def test_output_shape_is_fixed(self, height, width):
        rng = np.random.default_rng(0)
        pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)

        tensor = preprocess(pixels)

        assert tensor.shape == INPUT_SHAPE
        assert tensor.dtype == np.float32
        assert tensor.min() >= 0.0
        assert tensor.max() <= 1.0

    @pytest.mark.parametrize("value,expected", [(0, 0.0), (255, 1.0), (51, 0.2)])
    def test_scales_to_unit_range(self, value, expected):
        pixels = np.full((37, 91, 3), value, dtype=np.uint8)
        tensor = preprocess(pixels)
        assert np.allclose(tensor, expected, atol=1e-6)

    def test_same_size_resize_is_identity(self):
        rng = np.random.default_rng(1)
        pixels = rng.integers(0, 256, size=(224, 224, 3), dtype=np.uint8)

        tensor = preprocess(pixels)

        assert np.allclose(tensor[0], pixels / 255.0, atol=1e-6)

    def test_channel_order_is_preserved(self):
        pixels = np.zeros((10, 10, 3), dtype=np.uint8)
        pixels[..., 0] = 255

        tensor = preprocess(pixels)

        assert np.allclose(tensor[0, :, :, 0], 1.0)
        assert np.allclose(tensor[0, :, :, 1:], 0.0)

    @pytest.mark.parametrize("shape", [(16, 0, 3), (0, 16, 3), (0, 0, 3)])
    def test_zero_area_image_fails(self, shape):
        with pytest.raises(PreprocessError):
            preprocess(np.zeros(shape, dtype=np.uint8))

    @pytest.mark.parametrize("shape", [(10, 10), (10, 10, 4), (1, 10, 10, 3)])
    def test_wrong_layout_fails(self, shape):
        with pytest.raises(PreprocessError):
            preprocess(np.zeros(shape, dtype=np.uint8))


class TestResizeBilinear:

    def test_upsampling_interpolates_between_rows(self):
        pixels = np.array([[[0.0]], [[100.0]]])

        resized = resize_bilinear(pixels, 4, 1)

        # samples at 0, 0.5, 1.0 and 1.5 source rows; the last clamps to the edge
        assert resized[:, 0, 0].tolist() == [0.0, 50.0, 100.0, 100.0]

    def test_downsampling_picks_scaled_positions(self):
        pixels = np.arange(16, dtype=np.float32).reshape(4, 4, 1)

        resized = resize_bilinear(pixels, 2, 2)

        assert resized[..., 0].tolist() == [[0.0, 2.0], [8.0, 10.0]]

    def test_decoded_image_preprocesses(self):
        buffer = io.BytesIO()
        Image.new("RGB", (33, 17), (255, 0, 0)).save(buffer, format="PNG")

        tensor = preprocess(decode_image(buffer.getvalue()))

        assert tensor.shape == INPUT_SHAPE
        assert np.allclose(tensor[0, :, :, 0], 1.0, atol=1e-6)
