"""Kubelka-Munk pigment mixing model.

Turns a vector of pigment weights into a display colour:
    - spectra: wavelength grid, D65 and CIE 1931 2° tables, y_norm
    - pigments: Pigment / PigmentSet, weighted K and S mixing
    - reflectance: KM reflectance with Saunderson surface correction
    - integrator: trapezoidal reflectance → XYZ integration
    - converter: XYZ → linear RGB → gamma 2.2 display values
    - cpu_reference: NumPy reference evaluator (single vectors and fields)
    - torch_renderer: batched torch evaluator (CPU or CUDA)

Invariants:
    - 38 buckets, 380-750 nm at 10 nm spacing, everywhere
    - All startup tables are read-only; evaluations are pure functions
    - cpu_reference is the ground truth the torch backend is tested against
"""

from .cpu_reference import CPUReferenceMixer, evaluate, screen_weights
from .integrator import IntegrationContext, default_context
from .pigments import (
    BLUE,
    WHITE,
    YELLOW,
    Pigment,
    PigmentSet,
    default_pigment_set,
    load_pigment_set,
)
from .spectra import SPD_BUCKETS, WAVELENGTHS_NM

__all__ = [
    'CPUReferenceMixer',
    'evaluate',
    'screen_weights',
    'IntegrationContext',
    'default_context',
    'Pigment',
    'PigmentSet',
    'WHITE',
    'YELLOW',
    'BLUE',
    'default_pigment_set',
    'load_pigment_set',
    'SPD_BUCKETS',
    'WAVELENGTHS_NM',
]
