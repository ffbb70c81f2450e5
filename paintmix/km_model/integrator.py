"""Spectral integration: reflectance spectrum → normalised CIE XYZ.

Provides:
    - trapezoid(): fixed-step trapezoidal rule in ascending wavelength order
    - IntegrationContext: illuminant-weighted observer curves + y_norm
    - default_context(): cached D65 / CIE 1931 2° context
    - reflectance_to_xyz(): R(λ) → (X, Y, Z)

Integration:
    T[i]     = R[i] * (W_X[i], W_Y[i], W_Z[i]),   W = illuminant * observer
    ∫ T dλ  ≈ step/2 * Σ_{i=0}^{B-2} (T[i] + T[i+1])
    XYZ      = ∫ T dλ / y_norm,                    y_norm = ∫ W_Y dλ

so a perfect reflector (R ≡ 1) has Y = 1.

Numerics:
    The pair sums are accumulated with np.cumsum along the bucket axis, which
    is strictly sequential in index order. Results are reproducible bit-for-bit
    for identical inputs of identical shape; the pigment-axis and colour-matrix
    products go through BLAS, so batched and single-vector calls may differ in
    the last ulp.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from .spectra import CIE_1931_2DEG, D65, SPD_BUCKETS, SPD_STEP_NM, Observer, as_spectral_curve

logger = logging.getLogger(__name__)


def trapezoid(values: np.ndarray, step: float = SPD_STEP_NM, axis: int = -1) -> np.ndarray:
    """Integrate evenly spaced samples with the trapezoidal rule.

    Parameters
    ----------
    values : np.ndarray
        Samples along `axis` (at least two)
    step : float
        Sample spacing, default SPD_STEP_NM (10 nm)
    axis : int
        Integration axis, default -1

    Returns
    -------
    np.ndarray
        Integral with `axis` removed

    Raises
    ------
    ValueError
        If fewer than two samples are given
    """
    v = np.moveaxis(np.asarray(values, dtype=np.float64), axis, -1)
    if v.shape[-1] < 2:
        raise ValueError(f"Trapezoidal rule needs at least 2 samples, got {v.shape[-1]}")
    pairs = v[..., :-1] + v[..., 1:]
    return np.cumsum(pairs, axis=-1)[..., -1] * (step / 2.0)


@dataclass(frozen=True)
class IntegrationContext:
    """Startup-time integration constants, shared read-only by all evaluations.

    Attributes
    ----------
    weights : np.ndarray
        Illuminant-weighted observer curves, shape (SPD_BUCKETS, 3), columns X, Y, Z
    y_norm : float
        Trapezoidal integral of the Y column; scales white to Y = 1
    step : float
        Wavelength spacing in nm
    """
    weights: np.ndarray
    y_norm: float
    step: float = float(SPD_STEP_NM)

    def __post_init__(self):
        w = np.array(self.weights, dtype=np.float64)
        if w.shape != (SPD_BUCKETS, 3):
            raise ValueError(
                f"Illuminant-observer weights must have shape ({SPD_BUCKETS}, 3), got {w.shape}"
            )
        if not np.all(np.isfinite(w)):
            raise ValueError("Illuminant-observer weights contain non-finite values")
        if not (np.isfinite(self.y_norm) and self.y_norm > 0.0):
            raise ValueError(f"y_norm must be a positive finite number, got {self.y_norm}")
        if not self.step > 0.0:
            raise ValueError(f"Integration step must be positive, got {self.step}")
        w.setflags(write=False)
        object.__setattr__(self, "weights", w)
        object.__setattr__(self, "y_norm", float(self.y_norm))
        object.__setattr__(self, "step", float(self.step))

    @classmethod
    def from_tables(
        cls,
        illuminant: np.ndarray = D65,
        observer: Observer = CIE_1931_2DEG,
        step: float = SPD_STEP_NM,
    ) -> "IntegrationContext":
        """Combine an illuminant and observer into integration weights.

        Parameters
        ----------
        illuminant : np.ndarray
            Relative spectral power, shape (SPD_BUCKETS,)
        observer : Observer
            Colour-matching functions
        step : float
            Wavelength spacing in nm

        Returns
        -------
        IntegrationContext
            Context with y_norm derived from the weighted ȳ curve
        """
        illuminant = as_spectral_curve(illuminant, "illuminant")
        weights = illuminant[:, None] * observer.stacked()
        y_norm = float(trapezoid(weights[:, 1], step))
        logger.debug(f"Integration context: y_norm={y_norm:.8f}, step={step} nm")
        return cls(weights=weights, y_norm=y_norm, step=step)


@lru_cache(maxsize=1)
def default_context() -> IntegrationContext:
    """D65 illuminant with the CIE 1931 2° observer (computed once)."""
    return IntegrationContext.from_tables(D65, CIE_1931_2DEG, SPD_STEP_NM)


def reflectance_to_xyz(reflectance: np.ndarray, context: IntegrationContext) -> np.ndarray:
    """Integrate a reflectance spectrum to normalised tristimulus values.

    Parameters
    ----------
    reflectance : np.ndarray
        Shape (SPD_BUCKETS,) or batched (..., SPD_BUCKETS)
    context : IntegrationContext
        Weighted observer curves and y_norm

    Returns
    -------
    np.ndarray
        XYZ, shape (3,) or (..., 3)

    Raises
    ------
    ValueError
        If the last axis is not SPD_BUCKETS long
    """
    r = np.asarray(reflectance, dtype=np.float64)
    if r.shape[-1:] != (SPD_BUCKETS,):
        raise ValueError(f"Reflectance must end in {SPD_BUCKETS} buckets, got shape {r.shape}")
    products = r[..., :, None] * context.weights  # (..., B, 3)
    return trapezoid(products, context.step, axis=-2) / context.y_norm
