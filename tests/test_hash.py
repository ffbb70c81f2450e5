"""Test hashing functions for provenance.

Run:
    pytest tests/test_hash.py -v
"""

import hashlib

import numpy as np
import torch

from paintmix.km_model.pigments import BLUE, WHITE, YELLOW
from paintmix.utils import hashing


def test_sha256_file_known_content(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"paintmix")
    digest = hashing.sha256_file(path, chunk_size=3)
    assert digest == hashlib.sha256(b"paintmix").hexdigest()
    assert len(digest) == 64


def test_sha256_file_different(tmp_path):
    a, b = tmp_path / "a", tmp_path / "b"
    a.write_text("white")
    b.write_text("blue")
    assert hashing.sha256_file(a) != hashing.sha256_file(b)


def test_sha256_array_tensor_matches_numpy():
    arr = np.linspace(0.0, 1.0, 38)
    assert hashing.sha256_array(arr) == hashing.sha256_array(torch.from_numpy(arr))
    assert hashing.sha256_array(arr) != hashing.sha256_array(arr.astype(np.float32))


def test_sha256_array_layout_independent():
    arr = np.arange(12.0).reshape(3, 4)
    assert hashing.sha256_array(np.asfortranarray(arr)) == hashing.sha256_array(arr)


def test_hash_dict_key_order():
    assert hashing.hash_dict({"a": 1, "b": 2}) == hashing.hash_dict({"b": 2, "a": 1})
    assert hashing.hash_dict({"a": 1}) != hashing.hash_dict({"a": 2})


def test_pigment_provenance():
    prov = hashing.pigment_provenance([WHITE, YELLOW, BLUE])
    assert set(prov) == {"white_sha256", "yellow_sha256", "blue_sha256"}
    assert len(set(prov.values())) == 3
    assert prov == hashing.pigment_provenance([WHITE, YELLOW, BLUE])
