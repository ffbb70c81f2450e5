"""Colour-difference helpers for comparing mixed display colours.

Provides:
    - gamma_decode(): display RGB (gamma 2.2) → linear RGB
    - linear_rgb_to_xyz(): linear RGB → CIE XYZ (D65)
    - xyz_to_lab(): XYZ → CIE L*a*b*
    - delta_e2000(): CIEDE2000 perceptual colour difference
    - display_delta_e(): ΔE2000 straight from two display colours

Used by:
    - plot_spectra.py: distance of each mixture from its constituents
    - Tests: subtractive mixes are perceptually distinct from RGB averages

All functions operate on torch tensors with channels LAST, shape (..., 3);
NumPy inputs are accepted and converted.

Invariants:
    - Display colours use the same pure power-law gamma as the converter
    - Lab coordinates: L[0,100], a,b roughly [-128, 127]
    - Y of the reference white is 1.0
"""

from typing import Union

import numpy as np
import torch

TensorLike = Union[torch.Tensor, np.ndarray]

# Inverse of the XYZ → linear RGB matrix used by the mixing pipeline.
_RGB_TO_XYZ = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)

_WHITE_POINTS = {
    "D65": (0.95047, 1.0, 1.08883),
    "D50": (0.96422, 1.0, 0.82521),
}


def _as_tensor(x: TensorLike) -> torch.Tensor:
    t = torch.as_tensor(x)
    if not t.is_floating_point():
        t = t.to(torch.float64)
    if t.shape[-1:] != (3,):
        raise ValueError(f"Expected trailing dimension 3, got shape {tuple(t.shape)}")
    return t


def gamma_decode(rgb: TensorLike, gamma: float = 2.2) -> torch.Tensor:
    """Display RGB → linear RGB (C ** gamma), negatives clamped to 0."""
    rgb = _as_tensor(rgb)
    return torch.pow(torch.clamp(rgb, min=0.0), gamma)


def linear_rgb_to_xyz(rgb: TensorLike) -> torch.Tensor:
    """Convert linear RGB to CIE XYZ (D65).

    Parameters
    ----------
    rgb : torch.Tensor or np.ndarray
        Linear RGB, shape (..., 3)

    Returns
    -------
    torch.Tensor
        XYZ, shape (..., 3); RGB (1, 1, 1) maps to Y = 1
    """
    rgb = _as_tensor(rgb)
    mat = torch.tensor(_RGB_TO_XYZ, dtype=rgb.dtype, device=rgb.device)
    return rgb @ mat.T


def xyz_to_lab(xyz: TensorLike, white_point: str = "D65") -> torch.Tensor:
    """Convert XYZ to CIE L*a*b*.

    Parameters
    ----------
    xyz : torch.Tensor or np.ndarray
        XYZ coordinates, shape (..., 3)
    white_point : str
        Reference white, "D65" (default) or "D50"

    Returns
    -------
    torch.Tensor
        Lab, shape (..., 3)

    Notes
    -----
    Uses the CIE piecewise f(t) with the 6/29 threshold.
    """
    if white_point not in _WHITE_POINTS:
        raise ValueError(f"Unknown white_point: {white_point}. Use 'D65' or 'D50'.")
    xyz = _as_tensor(xyz)
    ref = torch.tensor(_WHITE_POINTS[white_point], dtype=xyz.dtype, device=xyz.device)
    xyz_norm = xyz / ref

    delta = 6.0 / 29.0
    linear = xyz_norm / (3.0 * delta * delta) + (4.0 / 29.0)
    power = torch.pow(torch.clamp(xyz_norm, min=0.0), 1.0 / 3.0)
    f = torch.where(xyz_norm <= delta ** 3, linear, power)

    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return torch.stack([L, a, b], dim=-1)


def delta_e2000(
    lab1: TensorLike,
    lab2: TensorLike,
    kL: float = 1.0,
    kC: float = 1.0,
    kH: float = 1.0
) -> torch.Tensor:
    """Compute CIEDE2000 colour difference (ΔE2000).

    Parameters
    ----------
    lab1, lab2 : torch.Tensor or np.ndarray
        Lab colours, shape (..., 3), broadcastable
    kL, kC, kH : float
        Weighting factors for lightness, chroma, hue (default 1.0)

    Returns
    -------
    torch.Tensor
        ΔE2000 values, shape (...)
        Typical perceptual threshold: ΔE < 2.3 (just noticeable difference)

    Notes
    -----
    Implements the full CIEDE2000 formula (Sharma et al. 2005).
    """
    eps = 1e-10
    lab1 = _as_tensor(lab1)
    lab2 = _as_tensor(lab2).to(lab1.dtype)
    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    C1 = torch.sqrt(a1**2 + b1**2 + eps)
    C2 = torch.sqrt(a2**2 + b2**2 + eps)
    C_bar_7 = ((C1 + C2) / 2.0)**7
    G = 0.5 * (1.0 - torch.sqrt(C_bar_7 / (C_bar_7 + 25.0**7)))

    a1_prime = (1.0 + G) * a1
    a2_prime = (1.0 + G) * a2
    C1_prime = torch.sqrt(a1_prime**2 + b1**2 + eps)
    C2_prime = torch.sqrt(a2_prime**2 + b2**2 + eps)

    h1_prime = torch.remainder(torch.rad2deg(torch.atan2(b1, a1_prime)), 360.0)
    h2_prime = torch.remainder(torch.rad2deg(torch.atan2(b2, a2_prime)), 360.0)

    dL_prime = L2 - L1
    dC_prime = C2_prime - C1_prime

    # Hue difference on the circle
    abs_diff = torch.abs(h2_prime - h1_prime)
    dh_prime = torch.where(
        abs_diff <= 180.0,
        h2_prime - h1_prime,
        torch.where(h2_prime <= h1_prime, h2_prime - h1_prime + 360.0, h2_prime - h1_prime - 360.0)
    )
    dH_prime = 2.0 * torch.sqrt(C1_prime * C2_prime + eps) * torch.sin(torch.deg2rad(dh_prime) / 2.0)

    L_bar_prime = (L1 + L2) / 2.0
    C_bar_prime = (C1_prime + C2_prime) / 2.0
    sum_h = h1_prime + h2_prime
    h_bar_prime = torch.where(
        abs_diff <= 180.0,
        sum_h / 2.0,
        torch.where(sum_h < 360.0, (sum_h + 360.0) / 2.0, (sum_h - 360.0) / 2.0)
    )

    T = (1.0
         - 0.17 * torch.cos(torch.deg2rad(h_bar_prime - 30.0))
         + 0.24 * torch.cos(torch.deg2rad(2.0 * h_bar_prime))
         + 0.32 * torch.cos(torch.deg2rad(3.0 * h_bar_prime + 6.0))
         - 0.20 * torch.cos(torch.deg2rad(4.0 * h_bar_prime - 63.0)))

    dTheta = 30.0 * torch.exp(-((h_bar_prime - 275.0) / 25.0)**2)
    C_bar_prime_7 = C_bar_prime**7
    RC = 2.0 * torch.sqrt(C_bar_prime_7 / (C_bar_prime_7 + 25.0**7))

    L50_sq = (L_bar_prime - 50.0)**2
    SL = 1.0 + (0.015 * L50_sq) / torch.sqrt(20.0 + L50_sq)
    SC = 1.0 + 0.045 * C_bar_prime
    SH = 1.0 + 0.015 * C_bar_prime * T
    RT = -torch.sin(torch.deg2rad(2.0 * dTheta)) * RC

    return torch.sqrt(
        (dL_prime / (kL * SL))**2
        + (dC_prime / (kC * SC))**2
        + (dH_prime / (kH * SH))**2
        + RT * (dC_prime / (kC * SC)) * (dH_prime / (kH * SH))
    )


def display_delta_e(rgb1: TensorLike, rgb2: TensorLike, gamma: float = 2.2) -> torch.Tensor:
    """ΔE2000 between two display-encoded colours, shape (...)."""
    lab1 = xyz_to_lab(linear_rgb_to_xyz(gamma_decode(rgb1, gamma)))
    lab2 = xyz_to_lab(linear_rgb_to_xyz(gamma_decode(rgb2, gamma)))
    return delta_e2000(lab1, lab2)
