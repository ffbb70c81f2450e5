"""Kubelka-Munk reflectance with Saunderson surface correction.

Per wavelength bucket:
    ks         = K_mix / S_mix
    R_internal = 1 + ks - sqrt(ks² + 2·ks)                 (KM, opaque layer)
    R          = (1-K1)(1-K2)·R_internal / (1 - K2·R_internal)   (Saunderson)

K1 is the external specular reflectance, K2 the internal reflectance at the
surface boundary. The correction is applied per bucket, never to an aggregate.

Degenerate buckets (S_mix <= 0, ks < 0 or non-finite input):
    - "zero" policy (default): bucket reflects nothing (R = 0)
    - "propagate" policy: IEEE NaN/Inf flow through unchanged

Invariants:
    - For K >= 0 and S > 0: R_internal ∈ [0, 1] and R ∈ [0, 1]
    - Works elementwise on any shape; the bucket axis is not special here
"""

import numpy as np

K1 = 0.0031
K2 = 0.650

DEGENERATE_POLICIES = ("zero", "propagate")


def km_reflectance(ks: np.ndarray) -> np.ndarray:
    """Kubelka-Munk reflectance of an opaque layer from its K/S ratio."""
    ks = np.asarray(ks, dtype=np.float64)
    return 1.0 + ks - np.sqrt(ks * ks + 2.0 * ks)


def saunderson_correction(r: np.ndarray, k1: float = K1, k2: float = K2) -> np.ndarray:
    """Apply the Saunderson surface-reflection correction.

    Parameters
    ----------
    r : np.ndarray
        Internal (KM) reflectance
    k1 : float
        External specular reflectance, default 0.0031
    k2 : float
        Internal surface reflectance, default 0.650

    Returns
    -------
    np.ndarray
        Observed reflectance, same shape
    """
    r = np.asarray(r, dtype=np.float64)
    return ((1.0 - k1) * (1.0 - k2) * r) / (1.0 - k2 * r)


def degenerate_mask(k_mix: np.ndarray, s_mix: np.ndarray) -> np.ndarray:
    """Buckets where the KM formula has no physical value.

    True where S <= 0, K/S < 0 or either input is NaN/Inf.
    """
    k_mix = np.asarray(k_mix, dtype=np.float64)
    s_mix = np.asarray(s_mix, dtype=np.float64)
    finite = np.isfinite(k_mix) & np.isfinite(s_mix)
    # NaN comparisons are False, so non-finite inputs land in the mask too.
    valid = finite & (s_mix > 0.0) & (k_mix >= 0.0)
    return ~valid


def mixed_reflectance(
    k_mix: np.ndarray,
    s_mix: np.ndarray,
    k1: float = K1,
    k2: float = K2,
    policy: str = "zero",
) -> np.ndarray:
    """Reflectance spectrum of a pigment mixture.

    Parameters
    ----------
    k_mix, s_mix : np.ndarray
        Mixed absorption and scattering, same shape (..., SPD_BUCKETS)
    k1, k2 : float
        Saunderson constants
    policy : str
        Degenerate-bucket policy: "zero" (default) or "propagate"

    Returns
    -------
    np.ndarray
        Reflectance, same shape as inputs, in [0, 1] under the "zero" policy

    Raises
    ------
    ValueError
        If policy is unknown or shapes differ
    """
    if policy not in DEGENERATE_POLICIES:
        raise ValueError(f"Unknown degenerate policy: {policy}. Use {DEGENERATE_POLICIES}.")

    k_mix = np.asarray(k_mix, dtype=np.float64)
    s_mix = np.asarray(s_mix, dtype=np.float64)
    if k_mix.shape != s_mix.shape:
        raise ValueError(f"K and S shapes differ: {k_mix.shape} vs {s_mix.shape}")

    if policy == "propagate":
        with np.errstate(divide="ignore", invalid="ignore"):
            return saunderson_correction(km_reflectance(k_mix / s_mix), k1, k2)

    bad = degenerate_mask(k_mix, s_mix)
    # Substitute a harmless ratio in bad buckets, then zero them afterwards.
    safe_s = np.where(bad, 1.0, s_mix)
    safe_k = np.where(bad, 0.0, k_mix)
    r = saunderson_correction(km_reflectance(safe_k / safe_s), k1, k2)
    return np.where(bad, 0.0, r)
