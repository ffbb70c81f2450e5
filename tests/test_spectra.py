"""Test wavelength grid and colorimetric tables.

Tests for paintmix.km_model.spectra:
    - 38 buckets, 380-750 nm, 10 nm step
    - Tables are validated, read-only, float64
    - as_spectral_curve() rejects bad curves with actionable messages

Run:
    pytest tests/test_spectra.py -v
"""

import numpy as np
import pytest

from paintmix.km_model import spectra
from paintmix.km_model.spectra import (
    CIE_1931_2DEG,
    D65,
    SPD_BUCKETS,
    WAVELENGTHS_NM,
    Observer,
    as_spectral_curve,
)


def test_wavelength_grid():
    assert SPD_BUCKETS == 38
    assert WAVELENGTHS_NM.shape == (38,)
    assert WAVELENGTHS_NM[0] == 380.0
    assert WAVELENGTHS_NM[-1] == 750.0
    assert np.all(np.diff(WAVELENGTHS_NM) == 10.0)


@pytest.mark.parametrize("table", [D65, spectra.CIE_X, spectra.CIE_Y, spectra.CIE_Z])
def test_tables_shape_and_readonly(table):
    assert table.shape == (SPD_BUCKETS,)
    assert table.dtype == np.float64
    assert np.all(np.isfinite(table))
    with pytest.raises(ValueError):
        table[0] = 1.0


def test_d65_normalised_at_560nm():
    idx = int(np.where(WAVELENGTHS_NM == 560.0)[0][0])
    assert D65[idx] == 100.0


def test_observer_stacked_columns():
    stacked = CIE_1931_2DEG.stacked()
    assert stacked.shape == (SPD_BUCKETS, 3)
    np.testing.assert_array_equal(stacked[:, 1], spectra.CIE_Y)
    # ȳ peaks at 560 nm on this grid
    assert WAVELENGTHS_NM[np.argmax(stacked[:, 1])] == 560.0


def test_as_spectral_curve_copies():
    values = np.linspace(0.0, 1.0, SPD_BUCKETS)
    curve = as_spectral_curve(values)
    values[0] = 42.0
    assert curve[0] == 0.0
    assert not curve.flags.writeable


def test_as_spectral_curve_wrong_length():
    with pytest.raises(ValueError, match="Invalid bucket count for probe: 37 != 38"):
        as_spectral_curve(np.ones(37), "probe")


def test_as_spectral_curve_rejects_2d_and_nan():
    with pytest.raises(ValueError, match="1-D"):
        as_spectral_curve(np.ones((2, SPD_BUCKETS)))
    bad = np.ones(SPD_BUCKETS)
    bad[5] = np.nan
    with pytest.raises(ValueError, match="non-finite"):
        as_spectral_curve(bad)


def test_observer_validates_channels():
    with pytest.raises(ValueError, match="observer y"):
        Observer(np.ones(SPD_BUCKETS), np.ones(10), np.ones(SPD_BUCKETS))


def test_builtin_ks_curves():
    k_white, s_white = spectra.BUILTIN_KS["white"]
    assert np.all(k_white == 0.0) and np.all(s_white == 1.0)

    k_yellow, _ = spectra.BUILTIN_KS["yellow"]
    assert np.all(k_yellow[:12] == 1.0) and np.all(k_yellow[12:] == 0.0)

    k_blue, _ = spectra.BUILTIN_KS["blue"]
    assert np.all(k_blue[:11] == 0.0) and np.all(k_blue[11:] == 1.0)
