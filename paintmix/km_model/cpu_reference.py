"""CPU reference evaluator for the Kubelka-Munk mixing pipeline.

This is the deterministic, pure-NumPy implementation every other backend is
checked against. One evaluation maps a mixing-weight vector to a display
colour:

    weights ─► mix_ks ─► mixed_reflectance ─► reflectance_to_xyz ─► xyz_to_display
               (K, S)     (KM + Saunderson)     (trapezoid / y_norm)   (matrix, gamma)

Architecture:
    - evaluate(): the pure function of the public contract, all inputs explicit
    - CPUReferenceMixer: holds the immutable startup data (pigments, integration
      context, mixer parameters) and evaluates single vectors or whole fields
    - screen_weights(): per-pixel weights for [WHITE, YELLOW, BLUE] derived from
      normalised screen position

Invariants:
    - No mutable state: every evaluation depends only on its inputs and the
      read-only context, so fields may be split across threads freely
    - FP64 throughout; integration accumulates in ascending wavelength order
    - Degenerate buckets follow MixerV1.degenerate_policy ("zero" by default);
      under "zero" a non-finite colour becomes the black sentinel
    - Negative linear RGB is clamped before gamma unless clamp_negative_rgb=False

Usage:
    from paintmix.km_model.cpu_reference import CPUReferenceMixer
    from paintmix.km_model.pigments import default_pigment_set

    mixer = CPUReferenceMixer(default_pigment_set())
    rgb = mixer.evaluate([0.0, 0.5, 0.5])
    field = mixer.render_screen(256, 256, workers=4)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..utils import compute
from ..utils.validators import MixerV1
from .converter import xyz_to_display
from .integrator import IntegrationContext, default_context, reflectance_to_xyz
from .pigments import Pigment, PigmentSet, check_weights, mix_ks
from .reflectance import degenerate_mask, mixed_reflectance
from .spectra import SPD_BUCKETS

logger = logging.getLogger(__name__)


def screen_weights(height: int, width: int) -> np.ndarray:
    """Mixing weights for [WHITE, YELLOW, BLUE] over a screen.

    Parameters
    ----------
    height, width : int
        Field size in pixels

    Returns
    -------
    np.ndarray
        (height, width, 3): (v, u, 1 - u) per pixel, where u runs left → right
        and v bottom → top. White fades in upward; yellow and blue trade off
        horizontally.
    """
    u, v = compute.pixel_centers(height, width)
    return np.stack([v, u, 1.0 - u], axis=-1)


class CPUReferenceMixer:
    """NumPy reference evaluator bound to one pigment set.

    Parameters
    ----------
    pigments : PigmentSet or sequence of Pigment
        Pigments, in weight order
    context : IntegrationContext, optional
        Weighted observer curves and y_norm; default D65 / CIE 1931 2°
    mixer_cfg : MixerV1, optional
        Saunderson constants, gamma and numeric policies; defaults if None

    Attributes
    ----------
    pigments : PigmentSet
    context : IntegrationContext
    mixer_cfg : MixerV1
    """

    def __init__(
        self,
        pigments: Union[PigmentSet, Sequence[Pigment]],
        context: Optional[IntegrationContext] = None,
        mixer_cfg: Optional[MixerV1] = None,
    ):
        self.pigments = pigments if isinstance(pigments, PigmentSet) else PigmentSet(pigments)
        self.context = context if context is not None else default_context()
        self.mixer_cfg = mixer_cfg if mixer_cfg is not None else MixerV1()

        logger.debug(
            f"CPUReferenceMixer: pigments={self.pigments.names}, k1={self.mixer_cfg.k1}, "
            f"k2={self.mixer_cfg.k2}, gamma={self.mixer_cfg.gamma}, "
            f"policy={self.mixer_cfg.degenerate_policy}"
        )

    def reflectance(self, weights) -> np.ndarray:
        """Reflectance spectrum of a mixture, shape (..., SPD_BUCKETS)."""
        k_mix, s_mix = mix_ks(self.pigments, weights)
        return mixed_reflectance(
            k_mix, s_mix,
            k1=self.mixer_cfg.k1,
            k2=self.mixer_cfg.k2,
            policy=self.mixer_cfg.degenerate_policy,
        )

    def evaluate_xyz(self, weights) -> np.ndarray:
        """Normalised tristimulus of a mixture, shape (..., 3)."""
        return reflectance_to_xyz(self.reflectance(weights), self.context)

    def evaluate(self, weights) -> np.ndarray:
        """Display colour of a mixture.

        Parameters
        ----------
        weights : array-like
            Shape (N,) or batched (..., N)

        Returns
        -------
        np.ndarray
            Gamma-encoded RGB, shape (3,) or (..., 3)

        Raises
        ------
        ValueError
            If the weight length does not match the pigment count
        """
        cfg = self.mixer_cfg
        if cfg.degenerate_policy == "propagate":
            with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
                xyz = self.evaluate_xyz(weights)
                return xyz_to_display(xyz, gamma=cfg.gamma, clamp_negative=cfg.clamp_negative_rgb)

        rgb = xyz_to_display(
            self.evaluate_xyz(weights), gamma=cfg.gamma, clamp_negative=cfg.clamp_negative_rgb
        )
        return compute.replace_non_finite(rgb, sentinel=0.0)

    def count_degenerate(self, weights) -> int:
        """Number of samples with at least one degenerate bucket."""
        k_mix, s_mix = mix_ks(self.pigments, weights)
        bad = degenerate_mask(k_mix, s_mix)
        return int(np.any(bad, axis=-1).sum())

    def render_field(self, weight_field, workers: Optional[int] = None) -> np.ndarray:
        """Evaluate every sample of a 2-D weight field.

        Parameters
        ----------
        weight_field : array-like
            (H, W, N) mixing weights
        workers : int, optional
            Thread count; rows are distributed over a thread pool when > 1.
            Defaults to MixerV1.workers.

        Returns
        -------
        np.ndarray
            (H, W, 3) display RGB. Identical for any worker count.
        """
        field = check_weights(self.pigments, weight_field)
        if field.ndim != 3:
            raise ValueError(f"Weight field must have shape (H, W, N), got {field.shape}")
        workers = workers if workers is not None else self.mixer_cfg.workers
        height = field.shape[0]

        if workers <= 1 or height == 1:
            rows = [self.evaluate(field[y]) for y in range(height)]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                rows = list(pool.map(self.evaluate, (field[y] for y in range(height))))

        out = np.stack(rows, axis=0)
        degenerate = self.count_degenerate(field)
        if degenerate:
            logger.info(
                f"{degenerate}/{field.shape[0] * field.shape[1]} samples hit the "
                f"'{self.mixer_cfg.degenerate_policy}' degenerate-bucket policy"
            )
        return out

    def render_screen(self, height: int, width: int, workers: Optional[int] = None) -> np.ndarray:
        """Render the screen-position field; requires exactly three pigments."""
        if len(self.pigments) != 3:
            raise ValueError(
                f"Screen field drives exactly 3 pigments, mixer has {len(self.pigments)}"
            )
        return self.render_field(screen_weights(height, width), workers=workers)


def evaluate(
    pigments: Union[PigmentSet, Sequence[Pigment]],
    weights: Sequence[float],
    illuminant_observer_weights,
    y_norm: float,
    mixer_cfg: Optional[MixerV1] = None,
) -> Tuple[float, float, float]:
    """Display colour of one pigment mixture, with every input explicit.

    Parameters
    ----------
    pigments : PigmentSet or sequence of Pigment
        N pigments with SPD_BUCKETS-long K and S curves
    weights : sequence of float
        N mixing weights
    illuminant_observer_weights : array-like
        SPD_BUCKETS entries of (W_X, W_Y, W_Z)
    y_norm : float
        Normaliser, > 0
    mixer_cfg : MixerV1, optional
        Constants and policies; reference defaults if None

    Returns
    -------
    tuple of float
        (R, G, B), gamma encoded

    Raises
    ------
    ValueError
        If any precondition fails; nothing is evaluated in that case
    """
    pigment_set = pigments if isinstance(pigments, PigmentSet) else PigmentSet(pigments)
    w = check_weights(pigment_set, weights)
    if w.ndim != 1:
        raise ValueError(f"evaluate() takes one weight vector, got shape {w.shape}")
    iow = np.asarray(illuminant_observer_weights, dtype=np.float64)
    if iow.shape != (SPD_BUCKETS, 3):
        raise ValueError(
            f"illuminant_observer_weights must have {SPD_BUCKETS} entries of 3 values, "
            f"got shape {iow.shape}"
        )
    context = IntegrationContext(weights=iow, y_norm=y_norm)

    rgb = CPUReferenceMixer(pigment_set, context, mixer_cfg).evaluate(w)
    return float(rgb[0]), float(rgb[1]), float(rgb[2])
