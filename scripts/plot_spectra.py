#!/usr/bin/env python3
"""Plot reflectance spectra of pigment mixtures with their display colours.

Diagnostic view of the mixing pipeline: for each mixture the reflectance
curve over 380-750 nm is drawn in the mixture's own display colour, and a
swatch row shows the colour next to the ΔE2000 distance from the naive
average of its constituents' colours.

Usage:
    # Built-in WHITE/YELLOW/BLUE, default mixtures
    python scripts/plot_spectra.py --output outputs/spectra.png

    # Custom mixtures (weights in pigment order)
    python scripts/plot_spectra.py --pigments configs/pigments.v1.yaml \
        --mix 0,1,0 --mix 0,0,1 --mix 0,0.5,0.5 --output outputs/green.png
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from paintmix.km_model.cpu_reference import CPUReferenceMixer
from paintmix.km_model.pigments import default_pigment_set, load_pigment_set
from paintmix.km_model.spectra import WAVELENGTHS_NM
from paintmix.utils import color as color_utils, fs, logging_config, validators

logger = logging.getLogger(__name__)

DEFAULT_MIXES = ["1,0,0", "0,1,0", "0,0,1", "0,0.5,0.5", "0.5,0.25,0.25"]


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Plot mixture reflectance spectra",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--pigments', type=str, default=None, help='pigments.v1.yaml path')
    parser.add_argument('--mixer', type=str, default=None, help='mixer.v1.yaml path')
    parser.add_argument(
        '--mix',
        action='append',
        default=None,
        help='Comma-separated weights, repeatable (default: a few WHITE/YELLOW/BLUE mixes)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default='outputs/spectra.png',
        help='Output image path, default: outputs/spectra.png'
    )
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')
    return parser.parse_args(argv)


def parse_mix(text: str) -> List[float]:
    """'0,0.5,0.5' → [0.0, 0.5, 0.5]."""
    try:
        return [float(x) for x in text.split(',')]
    except ValueError as e:
        raise ValueError(f"Invalid mixture '{text}': expected comma-separated numbers") from e


def naive_rgb_average(mixer: CPUReferenceMixer, weights: np.ndarray) -> np.ndarray:
    """Weight-averaged display colours of the pure pigments."""
    total = weights.sum()
    if total <= 0:
        return np.zeros(3)
    pure = mixer.evaluate(np.eye(len(weights)))  # (N, 3)
    return (weights[:, None] * pure).sum(axis=0) / total


def plot_spectra(mixer: CPUReferenceMixer, mixes: List[List[float]], output_path: Path) -> Path:
    """Draw reflectance curves and swatches for the given mixtures.

    Returns
    -------
    Path
        Written image path
    """
    weights = np.asarray(mixes, dtype=np.float64)
    reflectance = mixer.reflectance(weights)    # (M, B)
    rgb = mixer.evaluate(weights)               # (M, 3)
    naive = np.stack([naive_rgb_average(mixer, w) for w in weights])
    delta_e = color_utils.display_delta_e(rgb, naive, gamma=mixer.mixer_cfg.gamma).numpy()

    fig, (ax_curve, ax_swatch) = plt.subplots(
        2, 1, figsize=(9, 7), gridspec_kw={'height_ratios': [3, 1]}
    )
    names = mixer.pigments.names
    for w, r, c in zip(weights, reflectance, rgb):
        label = " + ".join(f"{x:g} {n}" for x, n in zip(w, names) if x != 0) or "empty"
        ax_curve.plot(WAVELENGTHS_NM, r, color=np.clip(c, 0.0, 1.0), linewidth=2, label=label)
    ax_curve.set_xlabel('Wavelength (nm)')
    ax_curve.set_ylabel('Reflectance')
    ax_curve.set_ylim(0.0, 1.0)
    ax_curve.set_title('Kubelka-Munk mixture reflectance')
    ax_curve.legend(fontsize=8)
    ax_curve.grid(alpha=0.3)

    for i, (c, n, de) in enumerate(zip(rgb, naive, delta_e)):
        ax_swatch.add_patch(plt.Rectangle((i, 0.5), 0.9, 0.5, color=np.clip(c, 0.0, 1.0)))
        ax_swatch.add_patch(plt.Rectangle((i, 0.0), 0.9, 0.45, color=np.clip(n, 0.0, 1.0)))
        ax_swatch.text(i + 0.45, -0.15, f"ΔE={de:.1f}", ha='center', va='top', fontsize=8)
    ax_swatch.set_xlim(-0.1, len(rgb))
    ax_swatch.set_ylim(-0.4, 1.05)
    ax_swatch.set_title('Mixed (top) vs averaged RGB (bottom)', fontsize=9)
    ax_swatch.axis('off')

    fs.ensure_dir(output_path.parent)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    logging_config.setup_logging(log_level=log_level, log_file=None, context={"app": "plot"})

    try:
        pigments = load_pigment_set(args.pigments) if args.pigments else default_pigment_set()
        mixer_cfg = (
            validators.load_mixer_config(args.mixer) if args.mixer else validators.MixerV1()
        )
        mixes = [parse_mix(m) for m in (args.mix or DEFAULT_MIXES)]
        mixer = CPUReferenceMixer(pigments, mixer_cfg=mixer_cfg)
        output_path = plot_spectra(mixer, mixes, Path(args.output))
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    logger.info(f"Saved spectra plot: {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
