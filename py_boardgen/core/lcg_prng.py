"""
Linear congruential PRNG used by every board generation step.

Each generation call owns one instance and threads it explicitly through
the builders and placers, so an explicit seed always reproduces the same
board.
"""

import time
from typing import Optional

MULTIPLIER = 1664525
INCREMENT = 1013904223
MODULUS = 2147483647


class LcgPRNG:
    """
    Seeded LCG with a 31-bit state.

    ``s' = (s * 1664525 + 1013904223) mod 2147483647`` and the output is
    ``s' / 2147483647`` in [0, 1).
    """

    def __init__(self, seed: Optional[int] = None):
        """Initialize with an integer seed; 0 or None falls back to the clock."""
        self.seed = self.resolve_seed(seed)
        self.state = self.seed
        self.call_count = 0

    @staticmethod
    def resolve_seed(seed: Optional[int] = None) -> int:
        """
        Return the effective seed.

        An explicit non-zero seed is reduced modulo the 31-bit modulus, so a
        negative seed or one past the modulus maps to a non-negative state
        (-1 becomes MODULUS - 1). Seeds already in range are kept as given.
        A missing or zero seed is replaced by the wall-clock time in
        milliseconds, reduced the same way. That case is the only
        non-reproducible one.
        """
        if seed:
            return int(seed) % MODULUS
        clock_seed = int(time.time() * 1000) % MODULUS
        return clock_seed or 1

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        self.state = (self.state * MULTIPLIER + INCREMENT) % MODULUS
        return self.state / MODULUS
