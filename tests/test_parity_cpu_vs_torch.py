"""CPU reference vs torch renderer parity.

The torch renderer evaluates whole fields in one batched pass; its output must
match the NumPy reference within floating-point tolerance:
    - FP64 on CPU: max abs difference ≤ 1e-10
    - FP32: max abs difference ≤ 1e-4
    - CUDA (if available): same thresholds as CPU for the matching dtype

Run:
    pytest tests/test_parity_cpu_vs_torch.py -v
    pytest -m parity  # parity tests only
"""

import numpy as np
import pytest
import torch

from paintmix.km_model.cpu_reference import CPUReferenceMixer, screen_weights
from paintmix.km_model.pigments import BLUE, WHITE, YELLOW
from paintmix.km_model.torch_renderer import TorchKMRenderer
from paintmix.utils.validators import MixerV1


pytestmark = pytest.mark.parity

FP64_ATOL = 1e-10
FP32_ATOL = 1e-4


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def torch_renderer(pigments):
    return TorchKMRenderer(pigments, device="cpu")


@pytest.fixture
def random_weights():
    rng = np.random.default_rng(1234)
    return rng.random((64, 3))


# ============================================================================
# PARITY
# ============================================================================

def test_reflectance_parity(mixer, torch_renderer, random_weights):
    cpu = mixer.reflectance(random_weights)
    gpu = torch_renderer.reflectance(random_weights).numpy()
    np.testing.assert_allclose(gpu, cpu, atol=FP64_ATOL, rtol=0)


def test_xyz_parity(mixer, torch_renderer, random_weights):
    cpu = mixer.evaluate_xyz(random_weights)
    gpu = torch_renderer.evaluate_xyz(random_weights).numpy()
    np.testing.assert_allclose(gpu, cpu, atol=FP64_ATOL, rtol=0)


def test_screen_field_parity_fp64(mixer, torch_renderer):
    cpu = mixer.render_screen(32, 48)
    gpu = torch_renderer.render_screen(32, 48)
    assert gpu.shape == (32, 48, 3)
    assert gpu.dtype == torch.float64
    np.testing.assert_allclose(gpu.numpy(), cpu, atol=FP64_ATOL, rtol=0)


def test_screen_field_parity_fp32(mixer, pigments):
    renderer = TorchKMRenderer(pigments, device="cpu", dtype=torch.float32)
    cpu = mixer.render_screen(16, 16)
    gpu = renderer.render_screen(16, 16)
    assert gpu.dtype == torch.float32
    np.testing.assert_allclose(gpu.numpy().astype(np.float64), cpu, atol=FP32_ATOL, rtol=0)


def test_zero_weights_parity(mixer, torch_renderer):
    w = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, -0.5]])
    np.testing.assert_allclose(torch_renderer.render(w).numpy(), mixer.evaluate(w), atol=FP64_ATOL)
    assert torch.all(torch_renderer.render(w)[0] == 0.0)


def test_propagate_policy_parity(pigments):
    cfg = MixerV1(degenerate_policy="propagate")
    cpu = CPUReferenceMixer(pigments, mixer_cfg=cfg).evaluate([0.0, 0.0, 0.0])
    gpu = TorchKMRenderer(pigments, mixer_cfg=cfg, device="cpu").render([0.0, 0.0, 0.0])
    assert np.all(np.isnan(cpu))
    assert torch.all(torch.isnan(gpu))


def test_thread_pool_matches_torch(mixer, torch_renderer):
    threaded = mixer.render_field(screen_weights(20, 12), workers=3)
    batched = torch_renderer.render_screen(20, 12).numpy()
    np.testing.assert_allclose(batched, threaded, atol=FP64_ATOL, rtol=0)


def test_weight_mismatch_rejected(torch_renderer):
    with pytest.raises(ValueError, match="must end in 3 pigments"):
        torch_renderer.render(np.ones((4, 2)))


def test_screen_requires_three_pigments():
    renderer = TorchKMRenderer([WHITE, BLUE], device="cpu")
    with pytest.raises(ValueError, match="exactly 3 pigments"):
        renderer.render_screen(4, 4)


@pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA not available")
def test_cuda_parity(mixer):
    renderer = TorchKMRenderer([WHITE, YELLOW, BLUE], device="cuda")
    gpu = renderer.render_screen(64, 64)
    assert gpu.is_cuda
    np.testing.assert_allclose(gpu.cpu().numpy(), mixer.render_screen(64, 64), atol=FP64_ATOL, rtol=0)
