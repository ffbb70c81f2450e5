"""Paintmix: spectral pigment mixing with the Kubelka-Munk model.

Mixes pigments by their absorption (K) and scattering (S) spectra, derives a
reflectance spectrum, integrates it against D65 and the CIE 1931 observer and
encodes the result as a display colour.

Architecture layers (strict one-way dependency):
    scripts/ → paintmix/km_model/ → paintmix/utils/

Key invariants:
    - One wavelength grid: 380-750 nm, 10 nm steps, 38 buckets
    - YAML-only configs, validated by pydantic schemas
    - Linear RGB until the final gamma 2.2 encode
"""

__version__ = "1.0.0"
