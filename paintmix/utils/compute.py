"""Numerics and sample-coordinate conversions.

Core utilities:
    - Sample coordinates: pixel_centers() gives normalised (u, v) per pixel
    - Finite checks: assert_finite() raises, replace_non_finite() substitutes a sentinel

Invariants:
    - u grows left → right, v grows bottom → top (texture-coordinate convention),
      both in (0, 1) at pixel centres
    - Row 0 of any (H, W, ...) field is the TOP of the image
    - replace_non_finite() is the only place a NaN colour is silently fixed up,
      and it always logs how many samples were affected
"""

import logging
from typing import Tuple, Union

import numpy as np
import torch

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, torch.Tensor]


def pixel_centers(height: int, width: int) -> Tuple[np.ndarray, np.ndarray]:
    """Normalised pixel-centre coordinates.

    Parameters
    ----------
    height, width : int
        Field size in pixels (>= 1)

    Returns
    -------
    u, v : np.ndarray
        Each (height, width) float64. u = (col + 0.5) / width,
        v = 1 - (row + 0.5) / height.

    Raises
    ------
    ValueError
        If height or width < 1
    """
    if height < 1 or width < 1:
        raise ValueError(f"Field size must be at least 1x1, got {height}x{width}")
    cols = (np.arange(width, dtype=np.float64) + 0.5) / width
    rows = 1.0 - (np.arange(height, dtype=np.float64) + 0.5) / height
    v, u = np.meshgrid(rows, cols, indexing="ij")
    return u, v


def assert_finite(x: ArrayLike, name: str = "array") -> None:
    """Assert array contains no NaN or Inf values.

    Parameters
    ----------
    x : np.ndarray or torch.Tensor
        Values to check
    name : str
        Name for the error message

    Raises
    ------
    ValueError
        If any value is NaN or Inf
    """
    if isinstance(x, torch.Tensor):
        if not torch.isfinite(x).all():
            nan_count = torch.isnan(x).sum().item()
            inf_count = torch.isinf(x).sum().item()
            raise ValueError(
                f"{name} contains non-finite values: {nan_count} NaNs, {inf_count} Infs. "
                f"Shape: {tuple(x.shape)}, dtype: {x.dtype}, device: {x.device}"
            )
        return

    x = np.asarray(x)
    if not np.all(np.isfinite(x)):
        raise ValueError(
            f"{name} contains non-finite values: {int(np.isnan(x).sum())} NaNs, "
            f"{int(np.isinf(x).sum())} Infs. Shape: {x.shape}, dtype: {x.dtype}"
        )


def replace_non_finite(rgb: ArrayLike, sentinel: float = 0.0) -> ArrayLike:
    """Replace colours containing NaN/Inf by a sentinel colour.

    Parameters
    ----------
    rgb : np.ndarray or torch.Tensor
        Colours, shape (..., 3)
    sentinel : float
        Value written to every channel of an affected sample, default 0 (black)

    Returns
    -------
    Same type as input
        Copy where each sample with any non-finite channel is set to the sentinel

    Notes
    -----
    Logs a warning with the number of affected samples.
    """
    if isinstance(rgb, torch.Tensor):
        bad = ~torch.isfinite(rgb).all(dim=-1, keepdim=True)
        count = int(bad.sum().item())
        if count:
            logger.warning(f"Replaced {count} non-finite colour sample(s) with sentinel {sentinel}")
            rgb = torch.where(bad, torch.full_like(rgb, sentinel), rgb)
        return rgb

    rgb = np.asarray(rgb, dtype=np.float64)
    bad = ~np.all(np.isfinite(rgb), axis=-1, keepdims=True)
    count = int(bad.sum())
    if count:
        logger.warning(f"Replaced {count} non-finite colour sample(s) with sentinel {sentinel}")
        rgb = np.where(bad, sentinel, rgb)
    return rgb
