"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Sample coordinates and finite checks (compute)
    - Colour difference metrics (color)
    - Atomic I/O (fs)
    - Profiling (profiler)
    - Hashing for provenance (hashing)
    - Unified logging (logging_config)

No module in utils/ may import from km_model/ or scripts/.

Convenience imports:
    from paintmix.utils import fs, compute, color, validators
    from paintmix.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import compute
from . import fs
from . import hashing
from . import logging_config
from . import profiler
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'compute',
    'fs',
    'hashing',
    'logging_config',
    'profiler',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
