"""Spectral constants: wavelength grid, illuminant, observer, built-in pigments.

Provides:
    - Bucket grid: SPD_MIN_NM, SPD_MAX_NM, SPD_STEP_NM, SPD_BUCKETS, WAVELENGTHS_NM
    - as_spectral_curve(): validated, read-only spectral curve construction
    - Observer: the three CIE colour-matching functions
    - D65 illuminant and CIE 1931 2° observer tables (10 nm, 380-750 nm)
    - BUILTIN_KS: imaginary K/S curves for the white, yellow and blue pigments

Invariants:
    - Every spectral curve has exactly SPD_BUCKETS samples (checked at construction)
    - Curves are float64, finite and read-only
    - Tables are validated at import time; a bad table fails the import

Sources:
    https://en.wikipedia.org/wiki/Illuminant_D65
    https://cie.co.at/data-tables
"""

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

SPD_MIN_NM = 380
SPD_MAX_NM = 750
SPD_STEP_NM = 10
SPD_BUCKETS = (SPD_MAX_NM - SPD_MIN_NM) // SPD_STEP_NM + 1

WAVELENGTHS_NM = np.arange(SPD_MIN_NM, SPD_MAX_NM + 1, SPD_STEP_NM, dtype=np.float64)
WAVELENGTHS_NM.setflags(write=False)

# Published trapezoidal integral of D65 x ȳ on this grid. The pipeline derives
# its own value from the tables; this one is kept for regression checks.
REFERENCE_Y_NORM = 11619.34742175

CurveLike = Union[Sequence[float], np.ndarray]


def as_spectral_curve(values: CurveLike, name: str = "curve") -> np.ndarray:
    """Validate and freeze a spectral curve.

    Parameters
    ----------
    values : sequence of float or np.ndarray
        One sample per wavelength bucket
    name : str
        Curve name used in error messages

    Returns
    -------
    np.ndarray
        Read-only float64 copy, shape (SPD_BUCKETS,)

    Raises
    ------
    ValueError
        If the curve is not 1-D, has the wrong bucket count or holds NaN/Inf
    """
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"Spectral curve {name} must be 1-D, got shape {arr.shape}")
    if arr.shape[0] != SPD_BUCKETS:
        raise ValueError(
            f"Invalid bucket count for {name}: {arr.shape[0]} != {SPD_BUCKETS}"
        )
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"Spectral curve {name} contains non-finite samples")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Observer:
    """Standard observer: x̄, ȳ, z̄ colour-matching functions."""
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray

    def __post_init__(self):
        for channel in ("x", "y", "z"):
            curve = as_spectral_curve(getattr(self, channel), f"observer {channel}")
            object.__setattr__(self, channel, curve)

    def stacked(self) -> np.ndarray:
        """Return the observer as a (SPD_BUCKETS, 3) array."""
        return np.stack([self.x, self.y, self.z], axis=-1)


# CIE standard illuminant D65, relative spectral power.
D65 = as_spectral_curve([
    49.9755, 54.6482, 82.7549, 91.486, 93.4318, 86.6823, 104.865, 117.008,
    117.812, 114.861, 115.923, 108.811, 109.354, 107.802, 104.79, 107.689,
    104.405, 104.046, 100.0, 96.3342, 95.788, 88.6856, 90.0062, 89.5991,
    87.6987, 83.2886, 83.6992, 80.0268, 80.2146, 82.2778, 78.2842, 69.7213,
    71.6091, 74.349, 61.604, 69.8856, 75.087, 63.5927,
], "D65 illuminant")

CIE_X = as_spectral_curve([
    0.0002, 0.0024, 0.0191, 0.0847, 0.2045, 0.3147, 0.3837, 0.3707, 0.3023,
    0.1956, 0.0805, 0.0162, 0.0038, 0.0375, 0.1177, 0.2365, 0.3768, 0.5298,
    0.7052, 0.8787, 1.0142, 1.1185, 1.124, 1.0305, 0.8563, 0.6475, 0.4316,
    0.2683, 0.1526, 0.0813, 0.0409, 0.0199, 0.0096, 0.0046, 0.0022, 0.001,
    0.0005, 0.0003,
], "CIE X observer")

CIE_Y = as_spectral_curve([
    0.0, 0.0003, 0.002, 0.0088, 0.0214, 0.0387, 0.0621, 0.0895, 0.1282,
    0.1852, 0.2536, 0.3391, 0.4608, 0.6067, 0.7618, 0.8752, 0.962, 0.9918,
    0.9973, 0.9556, 0.8689, 0.7774, 0.6583, 0.528, 0.3981, 0.2835, 0.1798,
    0.1076, 0.0603, 0.0318, 0.0159, 0.0077, 0.0037, 0.0018, 0.0008, 0.0004,
    0.0002, 0.0001,
], "CIE Y observer")

CIE_Z = as_spectral_curve([
    0.0007, 0.0105, 0.086, 0.3894, 0.9725, 1.5535, 1.9673, 1.9948, 1.7454,
    1.3176, 0.7721, 0.4153, 0.2185, 0.112, 0.0607, 0.0305, 0.0137, 0.004,
    0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0,
    0.0, 0.0, 0.0, 0.0, 0.0, 0.0,
], "CIE Z observer")

CIE_1931_2DEG = Observer(CIE_X, CIE_Y, CIE_Z)


def _step_curve(first: float, rest: float, edge: int) -> np.ndarray:
    """Curve equal to `first` for buckets [0, edge) and `rest` afterwards."""
    curve = np.full(SPD_BUCKETS, rest, dtype=np.float64)
    curve[:edge] = first
    return curve


# Imaginary K/S curves: K is absorption, S is scattering.
# Wrapped into Pigment objects by paintmix.km_model.pigments.
BUILTIN_KS = {
    "white": (np.zeros(SPD_BUCKETS), np.ones(SPD_BUCKETS)),
    # Absorbs 380-490 nm, reflects the rest.
    "yellow": (_step_curve(1.0, 0.0, 12), np.ones(SPD_BUCKETS)),
    # Absorbs 490-750 nm, reflects the short wavelengths.
    "blue": (_step_curve(0.0, 1.0, 11), np.ones(SPD_BUCKETS)),
}
