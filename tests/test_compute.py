"""Test sample coordinates and finite-value helpers.

Run:
    pytest tests/test_compute.py -v
"""

import logging

import numpy as np
import pytest
import torch

from paintmix.utils import compute


def test_pixel_centers_range_and_orientation():
    u, v = compute.pixel_centers(2, 4)
    assert u.shape == v.shape == (2, 4)
    np.testing.assert_allclose(u[0], [0.125, 0.375, 0.625, 0.875])
    np.testing.assert_allclose(v[:, 0], [0.75, 0.25])  # row 0 is the top
    assert np.all((u > 0) & (u < 1)) and np.all((v > 0) & (v < 1))


def test_pixel_centers_single_pixel():
    u, v = compute.pixel_centers(1, 1)
    assert u[0, 0] == 0.5 and v[0, 0] == 0.5


def test_pixel_centers_invalid_size():
    with pytest.raises(ValueError, match="at least 1x1"):
        compute.pixel_centers(0, 4)


def test_assert_finite():
    compute.assert_finite(np.ones(3))
    compute.assert_finite(torch.ones(3))
    with pytest.raises(ValueError, match="1 NaNs, 0 Infs"):
        compute.assert_finite(np.array([1.0, np.nan]), "rgb")
    with pytest.raises(ValueError, match="0 NaNs, 1 Infs"):
        compute.assert_finite(torch.tensor([np.inf, 1.0]), "rgb")


def test_replace_non_finite_numpy(caplog):
    rgb = np.array([[0.2, 0.3, 0.4], [np.nan, 0.5, 0.5], [0.1, np.inf, 0.1]])
    with caplog.at_level(logging.WARNING):
        out = compute.replace_non_finite(rgb)
    np.testing.assert_array_equal(out[0], rgb[0])
    np.testing.assert_array_equal(out[1:], 0.0)
    assert "Replaced 2 non-finite" in caplog.text


def test_replace_non_finite_torch_sentinel():
    rgb = torch.tensor([[float("nan"), 0.5, 0.5], [0.1, 0.2, 0.3]], dtype=torch.float64)
    out = compute.replace_non_finite(rgb, sentinel=1.0)
    assert isinstance(out, torch.Tensor)
    assert torch.all(out[0] == 1.0)
    assert torch.equal(out[1], rgb[1])


def test_replace_non_finite_clean_input_silent(caplog):
    with caplog.at_level(logging.WARNING):
        compute.replace_non_finite(np.ones((4, 3)))
    assert caplog.text == ""
