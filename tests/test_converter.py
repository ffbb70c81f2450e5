"""Test XYZ → linear RGB → display conversion.

Run:
    pytest tests/test_converter.py -v
"""

import numpy as np
import pytest

from paintmix.km_model.converter import (
    XYZ_TO_LINEAR_RGB,
    gamma_encode,
    xyz_to_display,
    xyz_to_linear_rgb,
)


def test_matrix_is_readonly():
    assert XYZ_TO_LINEAR_RGB.shape == (3, 3)
    assert XYZ_TO_LINEAR_RGB[0, 0] == 3.2404542
    with pytest.raises(ValueError):
        XYZ_TO_LINEAR_RGB[0, 0] = 0.0


def test_d65_white_maps_to_unit_rgb():
    rgb = xyz_to_linear_rgb([0.95047, 1.0, 1.08883])
    np.testing.assert_allclose(rgb, [1.0, 1.0, 1.0], atol=1e-3)


def test_rows_are_applied_row_major():
    np.testing.assert_allclose(xyz_to_linear_rgb([1.0, 0.0, 0.0]), XYZ_TO_LINEAR_RGB[:, 0])
    np.testing.assert_allclose(xyz_to_linear_rgb([0.0, 1.0, 0.0]), XYZ_TO_LINEAR_RGB[:, 1])


def test_batched_conversion():
    xyz = np.random.default_rng(0).random((4, 5, 3))
    rgb = xyz_to_linear_rgb(xyz)
    assert rgb.shape == (4, 5, 3)
    np.testing.assert_allclose(rgb[2, 3], XYZ_TO_LINEAR_RGB @ xyz[2, 3], atol=1e-14)


def test_trailing_dimension_checked():
    with pytest.raises(ValueError, match="trailing dimension 3"):
        xyz_to_linear_rgb(np.ones(4))


def test_gamma_encode_values():
    out = gamma_encode(np.array([0.0, 0.5, 1.0, 4.0]))
    np.testing.assert_allclose(out, [0.0, 0.5 ** (1 / 2.2), 1.0, 4.0 ** (1 / 2.2)])


def test_negative_linear_rgb_clamped():
    assert gamma_encode(np.array([-0.2]))[0] == 0.0


def test_unclamped_negative_is_nan():
    assert np.isnan(gamma_encode(np.array([-0.2]), clamp_negative=False)[0])


def test_gamma_must_be_positive():
    with pytest.raises(ValueError, match="gamma must be positive"):
        gamma_encode(np.ones(3), gamma=0.0)


def test_xyz_to_display_black():
    np.testing.assert_array_equal(xyz_to_display(np.zeros(3)), [0.0, 0.0, 0.0])
