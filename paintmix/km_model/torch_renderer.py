"""Batched PyTorch evaluator: one vectorised pass over a whole weight field.

Every sample is independent, so the whole (..., N) weight tensor is pushed
through the pipeline at once on CPU or CUDA. Results match CPUReferenceMixer
within floating-point tolerance (summation order inside torch reductions is
not guaranteed).

Pipeline (all tensors, last axis = buckets or channels):
    K, S     = w @ K_p, w @ S_p                    (..., B)
    R        = Saunderson(KM(K / S))               (..., B), degenerate → 0
    XYZ      = trapezoid(R * W) / y_norm           (..., 3)
    RGB      = clamp(XYZ @ M.T, 0) ** (1 / gamma)  (..., 3)

Invariants:
    - Constants uploaded once at construction, never modified
    - FP64 by default for parity; FP32 accepted for speed

Usage:
    renderer = TorchKMRenderer(default_pigment_set(), device="cuda")
    rgb = renderer.render(weights)  # weights: (H, W, 3) tensor
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import torch

from ..utils import compute
from ..utils.validators import MixerV1
from .converter import XYZ_TO_LINEAR_RGB
from .cpu_reference import screen_weights
from .integrator import IntegrationContext, default_context
from .pigments import Pigment, PigmentSet

logger = logging.getLogger(__name__)


class TorchKMRenderer:
    """KM mixing pipeline on torch tensors.

    Parameters
    ----------
    pigments : PigmentSet or sequence of Pigment
        Pigments, in weight order
    context : IntegrationContext, optional
        Default D65 / CIE 1931 2°
    mixer_cfg : MixerV1, optional
        Constants and policies; defaults if None
    device : str or torch.device, optional
        Defaults to MixerV1.device
    dtype : torch.dtype
        Compute dtype, default torch.float64
    """

    def __init__(
        self,
        pigments: Union[PigmentSet, Sequence[Pigment]],
        context: Optional[IntegrationContext] = None,
        mixer_cfg: Optional[MixerV1] = None,
        device: Optional[Union[str, torch.device]] = None,
        dtype: torch.dtype = torch.float64,
    ):
        self.pigments = pigments if isinstance(pigments, PigmentSet) else PigmentSet(pigments)
        self.context = context if context is not None else default_context()
        self.mixer_cfg = mixer_cfg if mixer_cfg is not None else MixerV1()
        self.device = torch.device(device if device is not None else self.mixer_cfg.device)
        self.dtype = dtype

        def _const(a: np.ndarray) -> torch.Tensor:
            return torch.as_tensor(np.array(a), dtype=dtype, device=self.device)

        self._k = _const(self.pigments.k)                # (N, B)
        self._s = _const(self.pigments.s)                # (N, B)
        self._obs = _const(self.context.weights)         # (B, 3)
        self._xyz_to_rgb = _const(XYZ_TO_LINEAR_RGB.T)   # (3, 3), right-multiplied

        logger.debug(
            f"TorchKMRenderer on {self.device} ({dtype}): pigments={self.pigments.names}"
        )

    def _as_weights(self, weights) -> torch.Tensor:
        w = torch.as_tensor(weights, dtype=self.dtype, device=self.device)
        if w.ndim == 0 or w.shape[-1] != len(self.pigments):
            raise ValueError(
                f"Weight tensor must end in {len(self.pigments)} pigments, got shape {tuple(w.shape)}"
            )
        return w

    def reflectance(self, weights) -> torch.Tensor:
        """Reflectance spectra, shape (..., SPD_BUCKETS)."""
        cfg = self.mixer_cfg
        w = self._as_weights(weights)
        k_mix = w @ self._k
        s_mix = w @ self._s

        if cfg.degenerate_policy == "propagate":
            ks = k_mix / s_mix
        else:
            bad = ~(torch.isfinite(k_mix) & torch.isfinite(s_mix) & (s_mix > 0) & (k_mix >= 0))
            ks = torch.where(bad, torch.zeros_like(k_mix), k_mix) / torch.where(
                bad, torch.ones_like(s_mix), s_mix
            )

        r = 1.0 + ks - torch.sqrt(ks * ks + 2.0 * ks)
        r = ((1.0 - cfg.k1) * (1.0 - cfg.k2) * r) / (1.0 - cfg.k2 * r)

        if cfg.degenerate_policy != "propagate":
            r = torch.where(bad, torch.zeros_like(r), r)
        return r

    def evaluate_xyz(self, weights) -> torch.Tensor:
        """Normalised tristimulus, shape (..., 3)."""
        t = self.reflectance(weights).unsqueeze(-1) * self._obs   # (..., B, 3)
        pairs = t[..., :-1, :] + t[..., 1:, :]
        integral = pairs.sum(dim=-2) * (self.context.step / 2.0)
        return integral / self.context.y_norm

    def render(self, weights) -> torch.Tensor:
        """Display RGB for a batch or field of weights.

        Parameters
        ----------
        weights : array-like or torch.Tensor
            (..., N) mixing weights

        Returns
        -------
        torch.Tensor
            (..., 3) gamma-encoded RGB on self.device
        """
        cfg = self.mixer_cfg
        rgb_lin = self.evaluate_xyz(weights) @ self._xyz_to_rgb
        if cfg.clamp_negative_rgb:
            rgb_lin = torch.clamp(rgb_lin, min=0.0)
        rgb = torch.pow(rgb_lin, 1.0 / cfg.gamma)
        if cfg.degenerate_policy == "propagate":
            return rgb
        return compute.replace_non_finite(rgb, sentinel=0.0)

    def render_screen(self, height: int, width: int) -> torch.Tensor:
        """Screen-position field for [WHITE, YELLOW, BLUE], shape (H, W, 3)."""
        if len(self.pigments) != 3:
            raise ValueError(
                f"Screen field drives exactly 3 pigments, renderer has {len(self.pigments)}"
            )
        return self.render(screen_weights(height, width))
