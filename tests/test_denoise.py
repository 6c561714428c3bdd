import numpy as np
import pytest

from lowlight_enhancer.buffer import PixelBuffer
from lowlight_enhancer.config import EnhancementConfig
from lowlight_enhancer.denoise import (
    blend_factor,
    compute_edge_map,
    denoise,
    edge_aware_filter,
    filter_radius,
)

from conftest import make_buffer, uniform_buffer


def test_edge_map_range_and_border(random_buffer):
    edge_map = compute_edge_map(random_buffer.snapshot())

    assert edge_map.shape == random_buffer.shape
    assert edge_map.min() >= 0.0
    assert edge_map.max() <= 1.0
    assert not edge_map[0].any()
    assert not edge_map[-1].any()
    assert not edge_map[:, 0].any()
    assert not edge_map[:, -1].any()
    assert not edge_map.flags.writeable


def test_edge_map_flat_is_zero():
    assert not compute_edge_map(uniform_buffer(90).snapshot()).any()


def test_edge_map_hard_edge(hard_edge):
    edge_map = compute_edge_map(hard_edge.snapshot())

    assert np.allclose(edge_map[1:-1, 3], 1.0)
    assert np.allclose(edge_map[1:-1, 4], 1.0)
    assert not edge_map[1:-1, 1].any()


def test_hard_edge_columns_unchanged(hard_edge):
    out = denoise(hard_edge, EnhancementConfig())

    assert np.array_equal(out.rgb[:, 3], hard_edge.rgb[:, 3])
    assert np.array_equal(out.rgb[:, 4], hard_edge.rgb[:, 4])


def test_strong_edges_never_modified(rng):
    buf = PixelBuffer(rng.integers(0, 256, size=(14, 14, 4), dtype=np.uint8))
    cfg = EnhancementConfig()

    edge_map = compute_edge_map(buf.snapshot(), cfg.edge_normalization)
    out = denoise(buf, cfg)

    strong = edge_map >= cfg.denoise_edge_threshold
    assert strong.any()
    assert np.array_equal(out.rgb[strong], buf.rgb[strong])


def test_border_pixels_pass_through(dark_noisy_buffer):
    out = denoise(dark_noisy_buffer, EnhancementConfig())
    src = dark_noisy_buffer.rgb

    assert np.array_equal(out.rgb[0], src[0])
    assert np.array_equal(out.rgb[-1], src[-1])
    assert np.array_equal(out.rgb[:, 0], src[:, 0])
    assert np.array_equal(out.rgb[:, -1], src[:, -1])


def test_minimal_buffer_only_touches_center():
    rgb = np.full((3, 3, 3), 100, dtype=np.uint8)
    rgb[1, 1] = 104
    buf = make_buffer(rgb)

    out = denoise(buf, EnhancementConfig())

    border = np.ones((3, 3), dtype=bool)
    border[1, 1] = False
    assert np.array_equal(out.rgb[border], rgb[border])
    assert 100 <= out.rgb[1, 1, 0] < 104


def test_isolated_noise_is_smoothed():
    rgb = np.full((5, 5, 3), 100, dtype=np.uint8)
    rgb[2, 2] = 110
    out = denoise(make_buffer(rgb), EnhancementConfig())

    assert 100 < out.rgb[2, 2, 0] < 110


def test_uniform_unchanged():
    buf = uniform_buffer(60)
    assert denoise(buf, EnhancementConfig()) == buf


def test_workers_do_not_change_result(dark_noisy_buffer):
    single = denoise(dark_noisy_buffer, EnhancementConfig(workers=1))
    banded = denoise(dark_noisy_buffer, EnhancementConfig(workers=3))
    assert single == banded


def test_alpha_untouched(dark_noisy_buffer):
    out = denoise(dark_noisy_buffer, EnhancementConfig())
    assert np.array_equal(out.alpha, dark_noisy_buffer.alpha)


def test_filter_radius():
    edges = np.array([0.0, 0.01, 0.25, 0.6, 1.0])
    assert filter_radius(edges).tolist() == [2, 1, 1, 1, 1]


def test_blend_factor_monotonic_with_floor():
    edges = np.linspace(0.0, 1.0, 21)
    blend = blend_factor(edges, 0.3)

    assert blend[0] == pytest.approx(1.0)
    assert blend.min() == pytest.approx(0.3)
    assert (np.diff(blend) <= 0).all()


def test_smoothing_strength_does_not_grow_with_edges(rng):
    snapshot = rng.normal(100, 10, size=(8, 8, 3))
    cfg = EnhancementConfig(denoise_edge_threshold=1.0)

    weak = edge_aware_filter(snapshot, np.full((8, 8), 0.05), cfg)
    strong = edge_aware_filter(snapshot, np.full((8, 8), 0.45), cfg)

    interior = np.s_[1:-1, 1:-1]
    weak_change = np.abs(weak[interior] - snapshot[interior]).sum()
    strong_change = np.abs(strong[interior] - snapshot[interior]).sum()
    assert strong_change <= weak_change


@pytest.mark.parametrize("chunk_rows,workers", [(1, 1), (5, 1), (2, 3), (100, 2)])
def test_chunking_does_not_change_result(dark_noisy_buffer, chunk_rows, workers):
    snapshot = dark_noisy_buffer.snapshot()
    edge_map = compute_edge_map(snapshot)

    reference = edge_aware_filter(snapshot, edge_map, EnhancementConfig())
    chunked = edge_aware_filter(snapshot, edge_map, EnhancementConfig(workers=workers),
                                chunk_rows=chunk_rows)

    assert np.array_equal(chunked, reference)


def test_chunk_rows_must_be_positive(dark_noisy_buffer):
    snapshot = dark_noisy_buffer.snapshot()
    with pytest.raises(ValueError):
        edge_aware_filter(snapshot, compute_edge_map(snapshot), EnhancementConfig(), chunk_rows=0)
