"""Wall-clock timing for render passes.

Provides:
    - timer(): context manager reporting elapsed seconds to a sink
    - synchronize_and_time(): CUDA-synchronised timing of one call

Used to measure full-field renders: timer() around the CPU row pass,
synchronize_and_time() around the batched torch render.

Without a sink, timer() logs at INFO through this module's logger.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

import torch

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Label reported with the elapsed time
    sink : callable, optional
        callback(name, elapsed_seconds); logs at INFO if None

    Examples
    --------
    >>> timings = {}
    >>> with timer("render", sink=timings.__setitem__):
    ...     rgb = mixer.render_screen(256, 256)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.info(f"{name}: {elapsed:.3f} s")


def synchronize_and_time(fn: Callable, *args, **kwargs) -> tuple:
    """Run fn(*args, **kwargs) between CUDA synchronisations.

    Returns
    -------
    tuple
        (result, elapsed_seconds)
    """
    if torch.cuda.is_available():
        torch.cuda.synchronize()
    start = time.perf_counter()
    result = fn(*args, **kwargs)
    if torch.cuda.is_available():
        torch.cuda.synchronize()
    return result, time.perf_counter() - start
