import numpy as np

from lowlight_enhancer.config import EnhancementConfig
from lowlight_enhancer.curve_estim import (
    apply_curve,
    curve_lut,
    enhance_curve,
    local_contrast_boost,
)

from conftest import make_buffer, uniform_buffer


def test_black_stays_black():
    out = enhance_curve(uniform_buffer(0), EnhancementConfig())
    assert not out.rgb.any()


def test_white_stays_white():
    out = enhance_curve(uniform_buffer(255), EnhancementConfig())
    assert (out.rgb == 255).all()


def test_curve_lut_is_monotonic():
    lut = curve_lut(0.8)

    assert lut[0] == 0
    assert lut[255] == 255
    assert lut[128] == 179
    assert (np.diff(lut.astype(int)) >= 0).all()
    assert (lut >= np.arange(256)).all()


def test_apply_curve_bounded():
    values = apply_curve(np.arange(256), 1.0)
    assert values.min() >= 0.0
    assert values.max() <= 255.0


def test_alpha_untouched(dark_noisy_buffer):
    out = enhance_curve(dark_noisy_buffer, EnhancementConfig())
    assert np.array_equal(out.alpha, dark_noisy_buffer.alpha)


def test_input_not_mutated(dark_noisy_buffer):
    before = dark_noisy_buffer.data.copy()
    enhance_curve(dark_noisy_buffer, EnhancementConfig())
    assert np.array_equal(dark_noisy_buffer.data, before)


def test_iterations_compound(dark_noisy_buffer):
    cfg = EnhancementConfig(curve_iterations=2, local_contrast_factor=0.0)
    lut = curve_lut(cfg.curve_strength)

    out = enhance_curve(dark_noisy_buffer, cfg)

    assert np.array_equal(out.rgb, lut[lut[dark_noisy_buffer.rgb]])


def test_local_contrast_pushes_center_from_neighbour_mean():
    snapshot = np.full((3, 3, 3), 100.0)
    snapshot[1, 1] = 150.0

    result = local_contrast_boost(snapshot, 0.2)

    assert np.allclose(result[1, 1], 160.0)
    border = np.ones((3, 3), dtype=bool)
    border[1, 1] = False
    assert np.allclose(result[border], 100.0)


def test_local_contrast_leaves_border(random_buffer):
    cfg = EnhancementConfig()
    with_boost = enhance_curve(random_buffer, cfg)
    without_boost = enhance_curve(random_buffer, cfg.replace(local_contrast_factor=0.0))

    for edge in (np.s_[0, :], np.s_[-1, :], np.s_[:, 0], np.s_[:, -1]):
        assert np.array_equal(with_boost.rgb[edge], without_boost.rgb[edge])
    assert not np.array_equal(with_boost.rgb[1:-1, 1:-1], without_boost.rgb[1:-1, 1:-1])


def test_local_contrast_without_interior():
    rgb = np.array([[[10, 20, 30], [200, 100, 50]]], dtype=np.uint8)
    buf = make_buffer(rgb)
    cfg = EnhancementConfig()

    out = enhance_curve(buf, cfg)

    assert np.array_equal(out.rgb, curve_lut(cfg.curve_strength)[rgb])
