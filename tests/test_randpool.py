import pytest

from lstrace.randpool import LockedRand, Pool, next_nearest_pow2


@pytest.mark.parametrize("value, expected", [(2, 2), (3, 4), (5, 8), (10, 16), (1, 1), (16, 16)])
def test_next_nearest_pow2(value, expected):
    assert next_nearest_pow2(value) == expected


def test_next_nearest_pow2_of_zero_wraps():
    assert next_nearest_pow2(0) == 0


def test_pool_size_is_power_of_two():
    pool = Pool(1, 3)
    assert len(pool.sources) == 4


def test_pool_pick_round_robin():
    pool = Pool(7, 4)
    picks = [pool.pick() for _ in range(8)]
    expected = [pool.sources[i % 4] for i in range(1, 9)]
    assert all(a is b for a, b in zip(picks, expected))


def test_pool_is_deterministic_for_seed():
    first = [Pool(42, 2).pick().uint64() for _ in range(1)]
    second = [Pool(42, 2).pick().uint64() for _ in range(1)]
    assert first == second


def test_empty_pool_pick_raises():
    with pytest.raises(IndexError):
        Pool(1, 0).pick()


def test_locked_rand_deterministic_and_reseed():
    a = LockedRand(5)
    b = LockedRand(5)
    first = [a.uint64() for _ in range(5)]
    assert first == [b.uint64() for _ in range(5)]
    a.seed(5)
    assert [a.uint64() for _ in range(5)] == first


def test_locked_rand_ranges():
    r = LockedRand(3)
    for _ in range(200):
        assert 0 <= r.int63() < 2**63
        assert 0 <= r.int31() < 2**31
        assert 0 <= r.uint32() < 2**32
        assert 0 <= r.uint64() < 2**64
        assert 0 <= r.int() < 2**63
        assert 0 <= r.intn(7) < 7
        assert 0 <= r.int31n(3) < 3
        assert 0 <= r.int63n(10) < 10
        assert 0.0 <= r.float64() < 1.0
        assert 0.0 <= r.float32() < 1.0
        x, y = r.two_int63()
        assert 0 <= x < 2**63 and 0 <= y < 2**63
        u, v = r.two_uint64()
        assert 0 <= u < 2**64 and 0 <= v < 2**64


@pytest.mark.parametrize("n", [0, -1])
def test_locked_rand_nonpositive_bound_raises(n):
    r = LockedRand(1)
    with pytest.raises(ValueError):
        r.intn(n)
    with pytest.raises(ValueError):
        r.int63n(n)
    with pytest.raises(ValueError):
        r.int31n(n)


def test_perm_is_permutation():
    assert sorted(LockedRand(9).perm(20)) == list(range(20))


def test_read_length():
    r = LockedRand(11)
    assert len(r.read(16)) == 16
    assert r.read(0) == b""