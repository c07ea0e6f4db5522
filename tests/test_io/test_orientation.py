"""Tests for mitomi.io.orientation."""

import numpy as np
import pytest

from mitomi.core.exceptions import ConfigurationError
from mitomi.core.models import ImageSet
from mitomi.io.orientation import (
    flip_lr,
    flip_ud,
    orient,
    rotate_ccw,
    rotate_cw,
    validate_ops,
)

IMAGE = np.array([
    [1, 2, 3],
    [4, 5, 6],
])


class TestTransforms:
    def test_rotate_cw(self):
        expected = np.array([
            [4, 1],
            [5, 2],
            [6, 3],
        ])
        np.testing.assert_array_equal(rotate_cw(IMAGE), expected)

    def test_rotate_ccw_undoes_cw(self):
        np.testing.assert_array_equal(rotate_ccw(rotate_cw(IMAGE)), IMAGE)

    def test_flips(self):
        np.testing.assert_array_equal(flip_lr(IMAGE), [[3, 2, 1], [6, 5, 4]])
        np.testing.assert_array_equal(flip_ud(IMAGE), [[4, 5, 6], [1, 2, 3]])

    def test_frames_stay_last(self):
        stack = np.stack([IMAGE, IMAGE * 10], axis=-1)
        rotated = rotate_cw(stack)
        assert rotated.shape == (3, 2, 2)
        np.testing.assert_array_equal(rotated[:, :, 1], rotate_cw(IMAGE) * 10)


class TestValidateOps:
    def test_normalizes_names(self):
        assert validate_ops([" Rotate_CW", "flip_lr"]) == ["rotate_cw", "flip_lr"]

    def test_unknown(self):
        with pytest.raises(ConfigurationError, match="mirror"):
            validate_ops(["mirror"])


class TestOrient:
    @pytest.fixture
    def images(self) -> ImageSet:
        return ImageSet(
            surface=IMAGE,
            solubilized=np.stack([IMAGE, IMAGE + 10], axis=-1),
            captured=IMAGE + 100,
        )

    def test_no_ops_returns_input(self, images):
        assert orient(images, []) is images

    def test_all_channels_transformed(self, images):
        result = orient(images, ["rotate_cw"])
        assert result.shape == (3, 2)
        np.testing.assert_array_equal(result.surface, rotate_cw(IMAGE))
        np.testing.assert_array_equal(result.solubilized[:, :, 1], rotate_cw(IMAGE + 10))
        np.testing.assert_array_equal(result.captured[:, :, 0], rotate_cw(IMAGE + 100))

    def test_ops_apply_in_order(self, images):
        result = orient(images, ["flip_lr", "rotate_cw"])
        np.testing.assert_array_equal(result.surface, rotate_cw(flip_lr(IMAGE)))

    def test_input_untouched(self, images):
        before = images.surface.copy()
        orient(images, ["flip_ud"])
        np.testing.assert_array_equal(images.surface, before)
