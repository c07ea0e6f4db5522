"""Tests for mitomi.locate.masks."""

import numpy as np
import pytest

from mitomi.locate.masks import MaskFactory, annulus, disk, distance_squared, mod_radius


class TestDistanceSquared:
    def test_centered(self):
        d2 = distance_squared(1)
        np.testing.assert_array_equal(d2, [[2, 1, 2], [1, 0, 1], [2, 1, 2]])

    def test_shifted(self):
        d2 = distance_squared(2, dx=1, dy=-1)
        assert d2.shape == (5, 5)
        # Center moves one column right and one row up from the middle pixel
        assert d2[1, 3] == 0


class TestDiskAndAnnulus:
    def test_disk_is_strict(self):
        mask = disk(2.0, 2)
        assert mask.shape == (5, 5)
        assert mask[2, 2]
        assert not mask[2, 0]  # d == 2 is outside
        assert mask.sum() == 9

    def test_annulus(self):
        mask = annulus(1.0, 2.0, 2)
        assert not mask[2, 2]
        assert not mask[2, 3]  # d == 1 is excluded
        assert mask[1, 1]  # d^2 == 2

    def test_cached_and_read_only(self):
        assert disk(3.0, 4) is disk(3.0, 4)
        with pytest.raises(ValueError):
            disk(3.0, 4)[0, 0] = True


class TestModRadius:
    @pytest.mark.parametrize("radius, expected", [(6, 9), (5, 8), (7, 11), (1, 2)])
    def test_values(self, radius, expected):
        # radius + round_half_up(radius / 2)
        assert mod_radius(radius) == expected


class TestMaskFactory:
    def test_button_masks_share_shape(self):
        factory = MaskFactory()
        fg = factory.button_foreground(6)
        bg = factory.button_background(6)
        assert fg.shape == bg.shape == (19, 19)
        assert not (fg & bg).any()

    def test_button_foreground_radius(self):
        fg = MaskFactory(button_fg_fraction=0.5).button_foreground(6)
        # Disk of radius 4.5 around the middle pixel
        assert fg[9, 13]
        assert not fg[9, 14]

    def test_button_background_radius(self):
        bg = MaskFactory(button_bg_inner=0.75).button_background(6)
        assert not bg[9, 15]  # d == 6 < 6.75
        assert bg[9, 16]  # d == 7
        assert not bg[9, 18]  # d == 9 is the outer edge

    def test_chamber_foreground(self):
        fg = MaskFactory().chamber_foreground(10)
        assert fg.shape == (21, 21)
        assert fg[10, 1]
        assert not fg[10, 0]

    def test_equal_radii_share_masks(self):
        a = MaskFactory().chamber_foreground(10)
        b = MaskFactory().chamber_foreground(10)
        assert a is b


class TestMaskGrowth:
    def test_disk_grows_with_radius(self):
        counts = [int(disk(float(r), 12).sum()) for r in range(1, 12)]
        assert all(b > a for a, b in zip(counts, counts[1:]))

    def test_annulus_grows_with_outer_radius(self):
        counts = [int(annulus(2.0, float(r), 12).sum()) for r in range(3, 12)]
        assert all(b > a for a, b in zip(counts, counts[1:]))

    def test_factory_masks_grow_with_radius(self):
        factory = MaskFactory()
        radii = range(2, 15)
        button_fg = [int(factory.button_foreground(r).sum()) for r in radii]
        button_bg = [int(factory.button_background(r).sum()) for r in radii]
        chamber_fg = [int(factory.chamber_foreground(r).sum()) for r in radii]
        for counts in (button_fg, button_bg):
            assert all(b >= a for a, b in zip(counts, counts[1:]))
            assert counts[-1] > counts[0]
        assert all(b > a for a, b in zip(chamber_fg, chamber_fg[1:]))
