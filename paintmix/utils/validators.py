"""YAML schema validation and config loading.

Provides centralized validation for all configuration files using pydantic:
    - Pigments schema (pigments.v1.yaml): named K/S curves, one value per bucket
    - Mixer schema (mixer.v1.yaml): Saunderson constants, gamma, numeric policies, backend
    - Render schema (render.v1.yaml): output size, config paths, output location

All modules must use these validators to load configs for fail-fast error detection
with actionable messages (offending pigment, expected bucket count, allowed values).

Units:
    - Wavelength buckets: 380-750 nm in 10 nm steps (38 samples)
    - K, S: arbitrary non-negative units (only K/S matters)
    - Image size: pixels

Usage:
    from paintmix.utils import validators

    pigments_cfg = validators.load_pigments_config("configs/pigments.v1.yaml")
    mixer_cfg = validators.load_mixer_config("configs/mixer.v1.yaml")
    render_cfg = validators.load_render_config("configs/render.v1.yaml")
"""

import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import torch
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# PIGMENTS SCHEMA V1
# ============================================================================

class PigmentV1(BaseModel):
    """Single pigment: absorption (k) and scattering (s) curves."""
    name: str = Field(..., min_length=1, description="Unique pigment name")
    k: List[float] = Field(..., min_length=2, description="Absorption, one value per bucket")
    s: List[float] = Field(..., min_length=2, description="Scattering, one value per bucket")
    description: Optional[str] = None

    @field_validator('k', 's')
    @classmethod
    def validate_curve(cls, v: List[float], info) -> List[float]:
        if not all(math.isfinite(x) for x in v):
            raise ValueError(f"Curve '{info.field_name}' contains non-finite values")
        if any(x < 0.0 for x in v):
            raise ValueError(f"Curve '{info.field_name}' contains negative values")
        return v

    @model_validator(mode='after')
    def validate_matching_lengths(self) -> 'PigmentV1':
        """Bucket count itself is checked when the Pigment is built."""
        if len(self.k) != len(self.s):
            raise ValueError(
                f"Pigment '{self.name}': k has {len(self.k)} samples but s has {len(self.s)}"
            )
        return self


class PigmentsFileV1(BaseModel):
    """Container for a pigment table (YAML file format)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("pigments.v1", alias="schema", description="Schema version")
    pigments: List[PigmentV1] = Field(..., min_length=1, description="Pigments in mixing order")

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "pigments.v1":
            raise ValueError(f"Expected schema 'pigments.v1', got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_unique_names(self) -> 'PigmentsFileV1':
        names = [p.name for p in self.pigments]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate pigment names: {duplicates}")
        return self


# ============================================================================
# MIXER SCHEMA V1
# ============================================================================

class MixerV1(BaseModel):
    """Mixing model parameters (mixer.v1.yaml schema).

    Defaults are the published Saunderson constants and gamma 2.2, plus the policies
    for degenerate buckets and out-of-gamut colours.
    """
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("mixer.v1", alias="schema")
    k1: float = Field(0.0031, ge=0.0, lt=1.0, description="External specular reflectance")
    k2: float = Field(0.650, ge=0.0, lt=1.0, description="Internal surface reflectance")
    gamma: float = Field(2.2, gt=0.0, description="Display gamma")
    degenerate_policy: str = Field("zero", description="'zero' or 'propagate'")
    clamp_negative_rgb: bool = Field(True, description="Clamp linear RGB to [0, inf) before gamma")
    backend: str = Field("cpu", description="'cpu' (NumPy reference) or 'torch'")
    device: str = Field("cpu", description="Torch device for the torch backend")
    workers: int = Field(1, ge=1, le=256, description="Thread pool size for the cpu backend")

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "mixer.v1":
            raise ValueError(f"Expected schema 'mixer.v1', got '{v}'")
        return v

    @field_validator('degenerate_policy')
    @classmethod
    def validate_policy(cls, v: str) -> str:
        if v not in ("zero", "propagate"):
            raise ValueError(f"degenerate_policy must be 'zero' or 'propagate', got '{v}'")
        return v

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("cpu", "torch"):
            raise ValueError(f"backend must be 'cpu' or 'torch', got '{v}'")
        return v

    @field_validator('device')
    @classmethod
    def validate_device(cls, v: str) -> str:
        try:
            torch.device(v)
        except RuntimeError as e:
            raise ValueError(f"Invalid torch device '{v}': {e}") from e
        return v


# ============================================================================
# RENDER SCHEMA V1
# ============================================================================

class RenderOutput(BaseModel):
    """Where the rendered field is written."""
    dir: str = Field("outputs/render", description="Output directory")
    prefix: str = Field("mix", min_length=1, description="Output filename prefix")


class RenderV1(BaseModel):
    """Headless render job (render.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("render.v1", alias="schema")
    height: int = Field(256, ge=1, le=8192, description="Image height (px)")
    width: int = Field(256, ge=1, le=8192, description="Image width (px)")
    pigments: Optional[str] = Field(
        None, description="pigments.v1.yaml path; None uses built-in WHITE/YELLOW/BLUE"
    )
    mixer: Optional[str] = Field(None, description="mixer.v1.yaml path; None uses defaults")
    output: RenderOutput = Field(default_factory=RenderOutput)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "render.v1":
            raise ValueError(f"Expected schema 'render.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def _load_validated(path: Union[str, Path], model: type, label: str):
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{label} not found: {path}")

    data = fs.load_yaml(path)
    if not isinstance(data, dict):
        raise ValueError(f"{label} at {path} must be a YAML mapping, got {type(data).__name__}")
    try:
        return model(**data)
    except Exception as e:
        raise ValueError(f"{label} validation failed at {path}: {e}") from e


def load_pigments_config(path: Union[str, Path]) -> PigmentsFileV1:
    """Load and validate a pigment table from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to pigments.v1.yaml file

    Returns
    -------
    PigmentsFileV1
        Validated pigment table

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    return _load_validated(path, PigmentsFileV1, "Pigments config")


def load_mixer_config(path: Union[str, Path]) -> MixerV1:
    """Load and validate mixer parameters from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to mixer.v1.yaml file

    Returns
    -------
    MixerV1
        Validated mixer configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    return _load_validated(path, MixerV1, "Mixer config")


def load_render_config(path: Union[str, Path]) -> RenderV1:
    """Load and validate a render job from YAML.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    return _load_validated(path, RenderV1, "Render config")


def flatten_config(cfg: Union[Dict, BaseModel]) -> Dict[str, Any]:
    """Flatten a nested config into dot-separated keys.

    Parameters
    ----------
    cfg : Union[Dict, BaseModel]
        Nested config dict or pydantic model

    Returns
    -------
    Dict[str, Any]
        Flat dict (e.g., 'output.dir'); lists are kept as lists

    Notes
    -----
    Used for render metadata and for hashing a config deterministically.
    """
    if isinstance(cfg, BaseModel):
        cfg = cfg.model_dump(by_alias=True)

    def _flatten(d: Dict, parent_key: str = '') -> Dict:
        items = []
        for k, v in d.items():
            new_key = f"{parent_key}.{k}" if parent_key else k
            if isinstance(v, dict):
                items.extend(_flatten(v, new_key).items())
            else:
                items.append((new_key, v))
        return dict(items)

    return _flatten(cfg)
