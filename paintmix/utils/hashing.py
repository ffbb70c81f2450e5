"""SHA-256 hashing for pigment-table and render provenance.

Provides:
    - sha256_file(): Hash file contents (pigment YAML, rendered PNG)
    - sha256_array(): Hash array/tensor values (K/S stacks, rendered fields)
    - sha256_string(), hash_dict(): Hash text and JSON-serialisable configs
    - pigment_provenance(): Per-pigment hashes of the K and S curves

Written into render metadata so a rendered image can be traced back to the
exact curves and mixer parameters that produced it.

Deterministic hashing:
    - Arrays converted to contiguous bytes (tensors via .cpu().numpy())
    - Files read in chunks (1 MB default) for memory efficiency
    - Results are hex strings (64 chars)

Usage:
    from paintmix.utils import hashing
    table_hash = hashing.sha256_file("configs/pigments.v1.yaml")

Note: Module named `hashing.py` to avoid shadowing builtin `hash()`.
"""

import hashlib
import json
from pathlib import Path
from typing import Dict, Iterable, Union

import numpy as np
import torch


def sha256_file(path: Union[str, Path], chunk_size: int = 1 << 20) -> str:
    """Compute SHA-256 hash of file contents.

    Parameters
    ----------
    path : Union[str, Path]
        File path
    chunk_size : int
        Read chunk size in bytes, default 1 MB

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256 = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            sha256.update(chunk)

    return sha256.hexdigest()


def sha256_array(a: Union[np.ndarray, torch.Tensor]) -> str:
    """Compute SHA-256 hash of array values.

    Parameters
    ----------
    a : np.ndarray or torch.Tensor
        Array to hash (any shape, dtype)

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Notes
    -----
    Same values → same hash, independent of device and memory layout.
    NOT invariant to dtype (float32 and float64 copies hash differently).
    """
    if isinstance(a, torch.Tensor):
        a = a.detach().cpu().numpy()
    data = np.ascontiguousarray(a).tobytes()
    return hashlib.sha256(data).hexdigest()


def sha256_string(s: str) -> str:
    """Compute SHA-256 hash of a UTF-8 string."""
    return hashlib.sha256(s.encode('utf-8')).hexdigest()


def hash_dict(d: dict) -> str:
    """Compute SHA-256 hash of dictionary (sorted keys).

    Parameters
    ----------
    d : dict
        Dictionary to hash (must be JSON-serializable)

    Returns
    -------
    str
        SHA-256 hex digest; key order does not matter
    """
    return sha256_string(json.dumps(d, sort_keys=True))


def pigment_provenance(pigments: Iterable) -> Dict[str, str]:
    """Hash each pigment's K and S curves.

    Parameters
    ----------
    pigments : iterable of Pigment
        Objects with `name`, `k` and `s` attributes

    Returns
    -------
    dict
        {"<name>_sha256": digest of K bytes followed by S bytes}
    """
    provenance = {}
    for pigment in pigments:
        sha256 = hashlib.sha256()
        sha256.update(np.ascontiguousarray(pigment.k, dtype=np.float64).tobytes())
        sha256.update(np.ascontiguousarray(pigment.s, dtype=np.float64).tobytes())
        provenance[f"{pigment.name}_sha256"] = sha256.hexdigest()
    return provenance
