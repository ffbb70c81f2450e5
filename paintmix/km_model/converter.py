"""XYZ → linear RGB → gamma-encoded display RGB.

Matrix (sRGB primaries, D65 white, row-major):
    R_lin =  3.2404542 X - 1.5371385 Y - 0.4985314 Z
    G_lin = -0.9692660 X + 1.8760108 Y + 0.0415560 Z
    B_lin =  0.0556434 X - 0.2040259 Y + 1.0572252 Z

Encoding: C_out = C_lin ** (1 / 2.2), per channel.

Out-of-gamut policy:
    Negative linear values are clamped to 0 before encoding (a fractional
    power of a negative number is undefined). Values above 1 are kept;
    8-bit image writers clip at save time.
"""

import numpy as np

DISPLAY_GAMMA = 2.2

XYZ_TO_LINEAR_RGB = np.array([
    [3.2404542, -1.5371385, -0.4985314],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0556434, -0.2040259, 1.0572252],
], dtype=np.float64)
XYZ_TO_LINEAR_RGB.setflags(write=False)


def xyz_to_linear_rgb(xyz: np.ndarray) -> np.ndarray:
    """Convert XYZ, shape (..., 3), to linear RGB, shape (..., 3)."""
    xyz = np.asarray(xyz, dtype=np.float64)
    if xyz.shape[-1:] != (3,):
        raise ValueError(f"Expected XYZ with trailing dimension 3, got shape {xyz.shape}")
    return xyz @ XYZ_TO_LINEAR_RGB.T


def gamma_encode(
    rgb_linear: np.ndarray,
    gamma: float = DISPLAY_GAMMA,
    clamp_negative: bool = True,
) -> np.ndarray:
    """Apply the display power curve C ** (1 / gamma).

    Parameters
    ----------
    rgb_linear : np.ndarray
        Linear RGB, any shape
    gamma : float
        Display gamma, default 2.2
    clamp_negative : bool
        Clamp negatives to 0 first (default). When False, negative inputs
        become NaN.

    Returns
    -------
    np.ndarray
        Encoded RGB, same shape
    """
    if gamma <= 0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    rgb = np.asarray(rgb_linear, dtype=np.float64)
    if clamp_negative:
        rgb = np.maximum(rgb, 0.0)
    with np.errstate(invalid="ignore"):
        return np.power(rgb, 1.0 / gamma)


def xyz_to_display(
    xyz: np.ndarray,
    gamma: float = DISPLAY_GAMMA,
    clamp_negative: bool = True,
) -> np.ndarray:
    """XYZ → display RGB in one call."""
    return gamma_encode(xyz_to_linear_rgb(xyz), gamma=gamma, clamp_negative=clamp_negative)
