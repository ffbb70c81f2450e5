"""Test the render_mix.py and plot_spectra.py entrypoints.

Validates that:
    - render_main() writes the PNG and metadata for both backends
    - Command-line options override the render job file
    - main() returns a non-zero status on invalid configs
    - Log context is restored when rendering fails
    - plot_spectra writes a figure

Run:
    pytest tests/test_render_mix.py -v
"""

import logging
import sys

import numpy as np
import pytest
import yaml
from PIL import Image

from paintmix.utils import fs, hashing, logging_config, validators


@pytest.fixture
def isolated_logging(monkeypatch):
    """Entrypoints install handlers and an excepthook; undo both."""
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging_config.pop_context()
    logging.captureWarnings(False)


def test_render_main_cpu(render_mix, tmp_path):
    cfg = validators.RenderV1(height=6, width=10, output={"dir": str(tmp_path), "prefix": "t"})
    result = render_mix.render_main(cfg, workers=2)

    img = np.asarray(Image.open(result["render_path"]))
    assert img.shape == (6, 10, 3)
    np.testing.assert_array_equal(img, fs.to_uint8_image(result["rgb"]))

    meta = fs.load_yaml(result["metadata_path"])
    assert meta["size_px"] == [6, 10]
    assert meta["backend"] == "cpu"
    assert meta["pigments"] == ["white", "yellow", "blue"]
    assert meta["provenance"]["render_sha256"] == hashing.sha256_file(result["render_path"])
    assert "white_sha256" in meta["provenance"]
    assert meta["mixer_config"]["workers"] == 2


def test_render_main_torch_matches_cpu(render_mix, tmp_path):
    cpu_cfg = validators.RenderV1(height=5, width=7, output={"dir": str(tmp_path), "prefix": "cpu"})
    torch_cfg = validators.RenderV1(height=5, width=7, output={"dir": str(tmp_path), "prefix": "gpu"})
    cpu = render_mix.render_main(cpu_cfg)
    gpu = render_mix.render_main(torch_cfg, backend="torch", device="cpu")
    np.testing.assert_allclose(gpu["rgb"], cpu["rgb"], atol=1e-10)
    assert fs.load_yaml(gpu["metadata_path"])["backend"] == "torch"


def test_build_render_config_overrides(render_mix, repo_root, tmp_path):
    args = render_mix.parse_args([
        "--config", str(repo_root / "configs" / "render.v1.yaml"),
        "--height", "12",
        "--output_dir", str(tmp_path),
    ])
    cfg = render_mix.build_render_config(args)
    assert cfg.height == 12
    assert cfg.width == 256
    assert cfg.output.dir == str(tmp_path)
    assert cfg.output.prefix == "mix"


def test_build_render_config_validates_overrides(render_mix):
    args = render_mix.parse_args(["--height", "0"])
    with pytest.raises(ValueError):
        render_mix.build_render_config(args)


def test_main_end_to_end(render_mix, tmp_path, isolated_logging):
    status = render_mix.main([
        "--height", "4", "--width", "4", "--output_dir", str(tmp_path), "--prefix", "e2e",
    ])
    assert status == 0
    assert (tmp_path / "e2e_render.png").exists()
    assert (tmp_path / "e2e_metadata.yaml").exists()


def test_main_invalid_mixer_config(render_mix, tmp_path, isolated_logging):
    bad = tmp_path / "mixer.yaml"
    bad.write_text(yaml.safe_dump({"schema": "mixer.v1", "degenerate_policy": "clamp"}))
    status = render_mix.main(["--height", "4", "--width", "4", "--mixer", str(bad),
                              "--output_dir", str(tmp_path)])
    assert status == 1
    assert not (tmp_path / "mix_render.png").exists()


def test_main_invalid_device(render_mix, tmp_path, isolated_logging):
    status = render_mix.main(["--height", "4", "--width", "4", "--backend", "torch",
                              "--device", "gpu", "--output_dir", str(tmp_path)])
    assert status == 1
    assert not (tmp_path / "mix_render.png").exists()


def test_render_main_clears_context_on_failure(render_mix, tmp_path, monkeypatch):
    def fail_save(rgb, path):
        raise OSError("disk full")

    monkeypatch.setattr(fs, "atomic_save_image", fail_save)
    cfg = validators.RenderV1(height=3, width=3, output={"dir": str(tmp_path), "prefix": "t"})
    logging_config.push_context(app="render")
    try:
        with pytest.raises(OSError, match="disk full"):
            render_mix.render_main(cfg)
        assert logging_config.get_context() == {"app": "render"}
    finally:
        logging_config.pop_context()


def test_plot_spectra_writes_figure(plot_spectra, tmp_path, isolated_logging):
    out = tmp_path / "plots" / "spectra.png"
    status = plot_spectra.main(["--mix", "0,1,0", "--mix", "0,0.5,0.5", "--output", str(out)])
    assert status == 0
    assert out.exists()


def test_plot_spectra_rejects_bad_mix(plot_spectra, tmp_path, isolated_logging):
    status = plot_spectra.main(["--mix", "0,1", "--output", str(tmp_path / "x.png")])
    assert status == 1


def test_parse_mix(plot_spectra):
    assert plot_spectra.parse_mix("0,0.5,0.5") == [0.0, 0.5, 0.5]
    with pytest.raises(ValueError, match="Invalid mixture"):
        plot_spectra.parse_mix("a,b")
