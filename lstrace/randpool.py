"""Thread-safe random number generators and a round-robin pool of them."""

from __future__ import annotations

import random
import threading

_MASK64 = (1 << 64) - 1


class LockedRand:
    """A seeded random generator that is safe to share between threads."""

    def __init__(self, seed: int) -> None:
        self._lock = threading.Lock()
        self._rand = random.Random(seed)

    def seed(self, seed: int) -> None:
        """Reset the generator to the deterministic state given by ``seed``."""
        with self._lock:
            self._rand.seed(seed)

    def two_int63(self) -> tuple[int, int]:
        """Two non-negative 63-bit integers, drawn under one lock."""
        with self._lock:
            return self._rand.getrandbits(63), self._rand.getrandbits(63)

    def int63(self) -> int:
        """A non-negative 63-bit integer."""
        with self._lock:
            return self._rand.getrandbits(63)

    def uint32(self) -> int:
        """A 32-bit unsigned integer."""
        with self._lock:
            return self._rand.getrandbits(32)

    def uint64(self) -> int:
        """A 64-bit unsigned integer."""
        with self._lock:
            return self._rand.getrandbits(64)

    def two_uint64(self) -> tuple[int, int]:
        """Two 64-bit unsigned integers, drawn under one lock."""
        with self._lock:
            return self._rand.getrandbits(64), self._rand.getrandbits(64)

    def int31(self) -> int:
        """A non-negative 31-bit integer."""
        with self._lock:
            return self._rand.getrandbits(31)

    def int(self) -> int:
        """A non-negative integer of machine-word width."""
        return self.int63()

    def _below(self, n: int) -> int:
        if n <= 0:
            raise ValueError("invalid argument: n must be positive")
        with self._lock:
            return self._rand.randrange(n)

    def int63n(self, n: int) -> int:
        """A non-negative integer in ``[0, n)``; ``n`` must be positive."""
        return self._below(n)

    def int31n(self, n: int) -> int:
        """A non-negative integer in ``[0, n)``; ``n`` must be positive."""
        return self._below(n)

    def intn(self, n: int) -> int:
        """A non-negative integer in ``[0, n)``; ``n`` must be positive."""
        return self._below(n)

    def float64(self) -> float:
        """A float in ``[0.0, 1.0)``."""
        with self._lock:
            return self._rand.random()

    def float32(self) -> float:
        """A single-precision float in ``[0.0, 1.0)``."""
        with self._lock:
            return self._rand.getrandbits(24) / (1 << 24)

    def perm(self, n: int) -> list[int]:
        """A random permutation of ``range(n)``."""
        values = list(range(n))
        with self._lock:
            self._rand.shuffle(values)
        return values

    def read(self, n: int) -> bytes:
        """``n`` random bytes."""
        if n < 0:
            raise ValueError("invalid argument: n must not be negative")
        with self._lock:
            return self._rand.getrandbits(8 * n).to_bytes(n, "little") if n else b""


def next_nearest_pow2(value: int) -> int:
    """The smallest power of two not below ``value``, in 64-bit arithmetic."""
    v = (value - 1) & _MASK64
    for shift in (1, 2, 4, 8, 16, 32):
        v |= v >> shift
    return (v + 1) & _MASK64


class Pool:
    """A power-of-two sized pool of generators picked round robin."""

    def __init__(self, seed: int, size: int) -> None:
        self.size = next_nearest_pow2(size)
        seeder = random.Random(seed)
        self.sources: tuple[LockedRand, ...] = tuple(
            LockedRand(seeder.getrandbits(63)) for _ in range(self.size)
        )
        self._counter = 0
        self._lock = threading.Lock()

    def pick(self) -> LockedRand:
        """Return the next generator in round-robin order."""
        if not self.sources:
            raise IndexError("pick from an empty pool")
        with self._lock:
            self._counter = (self._counter + 1) & _MASK64
            selection = self._counter & (self.size - 1)
        return self.sources[selection]