"""Shared fixtures for the paintmix test suite."""

import importlib.util
from pathlib import Path

import pytest

from paintmix.km_model.cpu_reference import CPUReferenceMixer
from paintmix.km_model.integrator import default_context
from paintmix.km_model.pigments import default_pigment_set

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def repo_root():
    """Repository root (configs/ and scripts/ live here)."""
    return REPO_ROOT


@pytest.fixture
def pigments():
    """Built-in [WHITE, YELLOW, BLUE] set."""
    return default_pigment_set()


@pytest.fixture
def context():
    """D65 / CIE 1931 2° integration context."""
    return default_context()


@pytest.fixture
def mixer(pigments):
    """CPU reference mixer with default parameters."""
    return CPUReferenceMixer(pigments)


def _load_script(name: str):
    path = REPO_ROOT / "scripts" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(scope="session")
def render_mix():
    """scripts/render_mix.py imported as a module."""
    return _load_script("render_mix")


@pytest.fixture(scope="session")
def plot_spectra():
    """scripts/plot_spectra.py imported as a module."""
    return _load_script("plot_spectra")
