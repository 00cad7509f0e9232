import numpy as np
import pytest

from heightfield.noise import NoiseField, build_permutation_table, seed_to_int


def test_same_seed_same_values():
    a = NoiseField(42)
    b = NoiseField(42)
    points = [(0.5, 0.25), (-3.7, 12.1), (1234.5, -987.25), (1e6 + 0.3, -1e6 - 0.7)]
    for x, y in points:
        assert a.sample(x, y) == b.sample(x, y)
        assert a.sample(x, y) == a.sample(x, y)


def test_different_seeds_differ():
    a = NoiseField(1)
    b = NoiseField(2)
    xs = np.linspace(-50, 50, 101) + 0.37
    assert not np.array_equal(a.sample_array(xs, xs * 0.5), b.sample_array(xs, xs * 0.5))


def test_permutation_table_is_read_only_permutation():
    table = NoiseField(7).permutation_table
    assert sorted(table.tolist()) == list(range(256))
    with pytest.raises(ValueError):
        table[0] = 1


def test_permutation_table_is_not_identity():
    assert not np.array_equal(build_permutation_table(1337), np.arange(256))


def test_permutation_table_is_numpy_shuffle():
    expected = np.arange(256)
    np.random.default_rng(42).shuffle(expected)
    assert np.array_equal(build_permutation_table(42), expected)


def test_negative_seed_builds_distinct_table():
    negative = build_permutation_table(-5)
    assert sorted(negative.tolist()) == list(range(256))
    assert np.array_equal(negative, build_permutation_table(-5))
    assert not np.array_equal(negative, build_permutation_table(5))


def test_seed_reduction():
    assert seed_to_int(5) == 5
    assert seed_to_int(2**64 + 5) == 5
    assert seed_to_int(-1) == -1
    assert seed_to_int(np.int32(9)) == 9
    assert seed_to_int(b"terrain") == seed_to_int(bytearray(b"terrain"))
    assert seed_to_int(b"terrain") != seed_to_int(b"terrain!")


@pytest.mark.parametrize("bad_seed", [True, 1.5, "1337", None])
def test_seed_rejects_other_types(bad_seed):
    with pytest.raises(TypeError):
        NoiseField(bad_seed)


def test_bytes_seed_is_deterministic():
    assert NoiseField(b"abc").sample(3.3, 4.4) == NoiseField(b"abc").sample(3.3, 4.4)


def test_origin_is_zero(noise_field):
    assert abs(noise_field.sample(0.0, 0.0)) < 1e-9


def test_bounded_over_random_points(noise_field):
    rng = np.random.default_rng(0)
    xs = rng.uniform(-1e4, 1e4, 100_000)
    ys = rng.uniform(-1e4, 1e4, 100_000)
    values = noise_field.sample_array(xs, ys)
    assert np.all(np.isfinite(values))
    assert values.min() >= -1.2
    assert values.max() <= 1.2
    # Not degenerate.
    assert values.std() > 0.05


def test_continuity_finite_difference(noise_field):
    rng = np.random.default_rng(1)
    xs = rng.uniform(-1e3, 1e3, 5000)
    ys = rng.uniform(-1e3, 1e3, 5000)
    eps = 1e-4
    base = noise_field.sample_array(xs, ys)
    assert np.max(np.abs(noise_field.sample_array(xs + eps, ys) - base)) < 0.01
    assert np.max(np.abs(noise_field.sample_array(xs, ys + eps) - base)) < 0.01


def test_continuous_across_cell_boundaries(noise_field):
    for k in range(-5, 6):
        below = noise_field.sample(k - 1e-9, 0.5)
        above = noise_field.sample(k + 1e-9, 0.5)
        assert abs(above - below) < 1e-6


def test_large_and_negative_coordinates(noise_field):
    for x, y in [(-1e9, 3.5), (1e9, -2.25), (-0.5, -0.5), (2**40 + 0.5, 7.0)]:
        value = noise_field.sample(x, y)
        assert np.isfinite(value)
        assert -1.2 <= value <= 1.2


def test_scalar_and_array_paths_agree(noise_field):
    xs = np.array([[0.1, 2.5], [-7.75, 100.125]])
    ys = np.array([[3.3, -4.4], [0.0, 55.5]])
    values = noise_field.sample_array(xs, ys)
    assert values.shape == (2, 2)
    for i in range(2):
        for j in range(2):
            assert values[i, j] == noise_field.sample(xs[i, j], ys[i, j])


def test_parallel_array_path_matches_serial(noise_field):
    rng = np.random.default_rng(2)
    xs = rng.uniform(-100, 100, 2000)
    ys = rng.uniform(-100, 100, 2000)
    assert np.array_equal(
        noise_field.sample_array(xs, ys),
        noise_field.sample_array(xs, ys, parallel=True),
    )


def test_array_shape_mismatch(noise_field):
    with pytest.raises(ValueError):
        noise_field.sample_array(np.zeros(3), np.zeros(4))
