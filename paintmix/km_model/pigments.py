"""Pigment definitions and the Kubelka-Munk pigment mixer.

Provides:
    - Pigment: immutable (name, K, S) spectral pair
    - PigmentSet: ordered, read-only stack of pigments, shape (N, SPD_BUCKETS)
    - mix_ks(): per-bucket weighted sum of K and S curves
    - WHITE, YELLOW, BLUE: built-in imaginary pigments
    - load_pigment_set(): pigments.v1.yaml → PigmentSet

Mixing rule (per wavelength bucket i, pigments p):
    K_mix[i] = Σ_p w[p] * K[p][i]
    S_mix[i] = Σ_p w[p] * S[p][i]

The mixer is linear in the weights; no normalisation is applied, so weights
summing to 2 give twice the K and S (and, since only K/S matters, the same
reflectance).

Usage:
    from paintmix.km_model.pigments import PigmentSet, WHITE, YELLOW, BLUE, mix_ks

    paints = PigmentSet([WHITE, YELLOW, BLUE])
    k_mix, s_mix = mix_ks(paints, [0.2, 0.4, 0.4])
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

import numpy as np

from .spectra import BUILTIN_KS, SPD_BUCKETS, CurveLike, as_spectral_curve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pigment:
    """One subtractive colorant.

    Attributes
    ----------
    name : str
        Unique pigment name
    k : np.ndarray
        Absorption curve, shape (SPD_BUCKETS,), read-only
    s : np.ndarray
        Scattering curve, shape (SPD_BUCKETS,), read-only
    """
    name: str
    k: np.ndarray
    s: np.ndarray

    def __post_init__(self):
        if not self.name:
            raise ValueError("Pigment name must be non-empty")
        object.__setattr__(self, "k", as_spectral_curve(self.k, f"{self.name} K"))
        object.__setattr__(self, "s", as_spectral_curve(self.s, f"{self.name} S"))

    @classmethod
    def from_curves(cls, name: str, k: CurveLike, s: CurveLike) -> "Pigment":
        return cls(name, np.asarray(k, dtype=np.float64), np.asarray(s, dtype=np.float64))


class PigmentSet:
    """Ordered, immutable collection of pigments.

    Stacks the K and S curves once at construction so every evaluation is a
    single matrix product along the pigment axis.

    Parameters
    ----------
    pigments : iterable of Pigment
        At least one pigment. Names may repeat; a repeated pigment mixes
        like one entry carrying the summed weight.

    Raises
    ------
    ValueError
        If the set is empty
    """

    def __init__(self, pigments: Iterable[Pigment]):
        self._pigments: Tuple[Pigment, ...] = tuple(pigments)
        if not self._pigments:
            raise ValueError("PigmentSet requires at least one pigment")

        self._k = np.stack([p.k for p in self._pigments])
        self._s = np.stack([p.s for p in self._pigments])
        self._k.setflags(write=False)
        self._s.setflags(write=False)

    def __len__(self) -> int:
        return len(self._pigments)

    def __iter__(self) -> Iterator[Pigment]:
        return iter(self._pigments)

    def __getitem__(self, idx: int) -> Pigment:
        return self._pigments[idx]

    def __repr__(self) -> str:
        return f"PigmentSet({', '.join(self.names)})"

    @property
    def names(self) -> List[str]:
        return [p.name for p in self._pigments]

    @property
    def k(self) -> np.ndarray:
        """Absorption matrix, shape (N, SPD_BUCKETS)."""
        return self._k

    @property
    def s(self) -> np.ndarray:
        """Scattering matrix, shape (N, SPD_BUCKETS)."""
        return self._s

    def index(self, name: str) -> int:
        """Position of the first pigment called `name`."""
        for i, pigment in enumerate(self._pigments):
            if pigment.name == name:
                return i
        raise KeyError(f"Unknown pigment '{name}'. Known: {self.names}")


def check_weights(pigments: Union[PigmentSet, Sequence[Pigment]], weights) -> np.ndarray:
    """Coerce weights to float64 and check they match the pigment count.

    Parameters
    ----------
    pigments : PigmentSet or sequence of Pigment
        Pigments the weights refer to
    weights : array-like
        Shape (N,) or (..., N)

    Returns
    -------
    np.ndarray
        Weights as float64, same shape

    Raises
    ------
    ValueError
        If the last axis length differs from the number of pigments
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.ndim == 0:
        raise ValueError("Mixing weights must be a vector, got a scalar")
    if w.shape[-1] != len(pigments):
        raise ValueError(
            f"Weight vector length {w.shape[-1]} does not match pigment count {len(pigments)}"
        )
    return w


def mix_ks(pigments: PigmentSet, weights) -> Tuple[np.ndarray, np.ndarray]:
    """Blend pigment K and S curves by concentration.

    Parameters
    ----------
    pigments : PigmentSet
        N pigments
    weights : array-like
        Mixing weights, shape (N,) or batched (..., N); not normalised

    Returns
    -------
    k_mix, s_mix : np.ndarray
        Combined curves, shape (SPD_BUCKETS,) or (..., SPD_BUCKETS)

    Raises
    ------
    ValueError
        On weight/pigment length mismatch
    """
    w = check_weights(pigments, weights)
    return w @ pigments.k, w @ pigments.s


def _builtin(name: str) -> Pigment:
    k, s = BUILTIN_KS[name]
    return Pigment(name, k, s)


WHITE = _builtin("white")
YELLOW = _builtin("yellow")
BLUE = _builtin("blue")

BUILTIN_PIGMENTS = {p.name: p for p in (WHITE, YELLOW, BLUE)}


def default_pigment_set() -> PigmentSet:
    """The [WHITE, YELLOW, BLUE] triple driven by screen_weights()."""
    return PigmentSet([WHITE, YELLOW, BLUE])


def load_pigment_set(path: Union[str, Path]) -> PigmentSet:
    """Load pigments.v1.yaml into a PigmentSet.

    Parameters
    ----------
    path : Union[str, Path]
        Path to pigments YAML

    Returns
    -------
    PigmentSet
        Pigments in file order

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (bucket count, duplicate names, schema)
    """
    from ..utils import validators

    cfg = validators.load_pigments_config(path)
    try:
        pigment_set = PigmentSet(Pigment.from_curves(p.name, p.k, p.s) for p in cfg.pigments)
    except ValueError as e:
        raise ValueError(f"Pigments config validation failed at {path}: {e}") from e
    logger.info(f"Loaded {len(pigment_set)} pigments from {path}: {pigment_set.names}")
    return pigment_set
