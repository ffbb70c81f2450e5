#!/usr/bin/env python3
"""Render the screen-position pigment field to a PNG.

Every pixel mixes [WHITE, YELLOW, BLUE] with weights (v, u, 1 - u) taken from
its normalised position: white fades in toward the top, yellow and blue
trade off from right to left. The field is evaluated with the CPU reference
mixer (optionally across a thread pool) or the batched torch renderer.

Usage:
    # Built-in pigments and default mixer parameters
    python scripts/render_mix.py --height 256 --width 256

    # From a render job
    python scripts/render_mix.py --config configs/render.v1.yaml

    # Torch backend on GPU, overriding the job size
    python scripts/render_mix.py --config configs/render.v1.yaml \
        --backend torch --device cuda --height 1024 --width 1024

Outputs:
    - <prefix>_render.png: 8-bit display colours (values clipped to [0, 1])
    - <prefix>_metadata.yaml: size, backend, timings, config, provenance hashes
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

import numpy as np

from paintmix.km_model.cpu_reference import CPUReferenceMixer
from paintmix.km_model.pigments import PigmentSet, default_pigment_set, load_pigment_set
from paintmix.km_model.torch_renderer import TorchKMRenderer
from paintmix.utils import fs, hashing, logging_config, validators
from paintmix.utils.profiler import synchronize_and_time, timer

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the WHITE/YELLOW/BLUE screen field with the Kubelka-Munk mixer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='render.v1.yaml job; command-line options override it'
    )
    parser.add_argument('--height', type=int, default=None, help='Image height (px)')
    parser.add_argument('--width', type=int, default=None, help='Image width (px)')
    parser.add_argument('--pigments', type=str, default=None, help='pigments.v1.yaml path')
    parser.add_argument('--mixer', type=str, default=None, help='mixer.v1.yaml path')

    # Backend overrides (default: from mixer config)
    parser.add_argument(
        '--backend',
        type=str,
        default=None,
        choices=['cpu', 'torch'],
        help='Evaluation backend'
    )
    parser.add_argument('--device', type=str, default=None, help='Torch device, e.g. cuda')
    parser.add_argument('--workers', type=int, default=None, help='CPU thread pool size')

    # Output settings
    parser.add_argument('--output_dir', type=str, default=None, help='Output directory')
    parser.add_argument('--prefix', type=str, default=None, help='Output filename prefix')

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def build_render_config(args) -> validators.RenderV1:
    """Merge a render job file with command-line overrides."""
    render_cfg = (
        validators.load_render_config(args.config) if args.config else validators.RenderV1()
    )
    updates: Dict[str, Any] = {}
    for key in ('height', 'width', 'pigments', 'mixer'):
        value = getattr(args, key)
        if value is not None:
            updates[key] = value

    output = render_cfg.output.model_dump()
    if args.output_dir is not None:
        output['dir'] = args.output_dir
    if args.prefix is not None:
        output['prefix'] = args.prefix
    updates['output'] = output

    merged = render_cfg.model_dump(by_alias=True)
    merged.update(updates)
    # Re-validate so overrides hit the same bounds as the file
    return validators.RenderV1(**merged)


def render_main(
    render_cfg: validators.RenderV1,
    backend: Optional[str] = None,
    device: Optional[str] = None,
    workers: Optional[int] = None,
) -> Dict[str, Any]:
    """Render one job and write its outputs.

    Parameters
    ----------
    render_cfg : RenderV1
        Validated render job
    backend, device, workers : optional
        Overrides for the mixer config fields of the same name

    Returns
    -------
    dict
        render_path, metadata_path (str), rgb (np.ndarray, (H, W, 3)),
        render_time_s (float)
    """
    pigments = (
        load_pigment_set(render_cfg.pigments) if render_cfg.pigments else default_pigment_set()
    )
    mixer_cfg = (
        validators.load_mixer_config(render_cfg.mixer) if render_cfg.mixer else validators.MixerV1()
    )
    overrides = {
        k: v for k, v in (('backend', backend), ('device', device), ('workers', workers))
        if v is not None
    }
    if overrides:
        mixer_cfg = validators.MixerV1(**{**mixer_cfg.model_dump(by_alias=True), **overrides})

    height, width = render_cfg.height, render_cfg.width
    logging_config.push_context(backend=mixer_cfg.backend, size=f"{height}x{width}")
    try:
        return _render_and_save(render_cfg, pigments, mixer_cfg)
    finally:
        logging_config.pop_context(keys=['backend', 'size'])


def _render_and_save(
    render_cfg: validators.RenderV1,
    pigments: PigmentSet,
    mixer_cfg: validators.MixerV1,
) -> Dict[str, Any]:
    height, width = render_cfg.height, render_cfg.width
    logger.info(f"Rendering {height}x{width} field with pigments {pigments.names}")

    if mixer_cfg.backend == 'torch':
        renderer = TorchKMRenderer(pigments, mixer_cfg=mixer_cfg)
        rgb_t, render_time = synchronize_and_time(renderer.render_screen, height, width)
        rgb = rgb_t.detach().cpu().numpy()
    else:
        mixer = CPUReferenceMixer(pigments, mixer_cfg=mixer_cfg)
        timings: Dict[str, float] = {}
        with timer("render", sink=timings.__setitem__):
            rgb = mixer.render_screen(height, width, workers=mixer_cfg.workers)
        render_time = timings['render']

    logger.info(f"Rendering completed in {render_time:.3f}s")
    n_over = int(np.sum(rgb > 1.0))
    if n_over:
        logger.info(f"{n_over} channel values above 1.0 will be clipped in the PNG")

    output_dir = fs.ensure_dir(render_cfg.output.dir)
    prefix = render_cfg.output.prefix

    render_path = output_dir / f'{prefix}_render.png'
    fs.atomic_save_image(rgb, render_path)
    logger.info(f"Saved render: {render_path}")

    metadata = {
        'size_px': [height, width],
        'backend': mixer_cfg.backend,
        'device': mixer_cfg.device if mixer_cfg.backend == 'torch' else 'cpu',
        'render_time_s': float(render_time),
        'pigments': list(pigments.names),
        'render_config': validators.flatten_config(render_cfg),
        'mixer_config': validators.flatten_config(mixer_cfg),
        'provenance': {
            **hashing.pigment_provenance(pigments),
            'mixer_config_sha256': hashing.hash_dict(validators.flatten_config(mixer_cfg)),
            'render_sha256': hashing.sha256_file(render_path),
        },
    }
    metadata_path = output_dir / f'{prefix}_metadata.yaml'
    fs.atomic_yaml_dump(metadata, metadata_path)
    logger.info(f"Saved metadata: {metadata_path}")

    return {
        'render_path': str(render_path),
        'metadata_path': str(metadata_path),
        'rgb': rgb,
        'render_time_s': float(render_time),
    }


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    logging_config.setup_logging(log_level=log_level, log_file=None, context={"app": "render"})
    logging_config.install_excepthook()

    try:
        render_cfg = build_render_config(args)
        render_main(render_cfg, backend=args.backend, device=args.device, workers=args.workers)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    logger.info("Render complete!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
