"""
Random number helpers built on the board generator's LCG.

Python's random and NumPy's random must not be used in generation code:
every draw comes from the LcgPRNG instance passed in by the caller so that
a seed fully determines the board.
"""

from typing import TYPE_CHECKING, List, Sequence, TypeVar

if TYPE_CHECKING:
    from ..core.lcg_prng import LcgPRNG

T = TypeVar("T")


def rand_int(prng: "LcgPRNG", min_val: int, max_val: int) -> int:
    """Return an integer in [min_val, max_val] inclusive."""
    return int(prng.random() * (max_val - min_val + 1)) + min_val


def uniform(prng: "LcgPRNG", min_val: float, max_val: float) -> float:
    """Return a float in [min_val, max_val)."""
    return min_val + prng.random() * (max_val - min_val)


def chance(prng: "LcgPRNG", probability: float) -> bool:
    """Return True with the given probability."""
    if probability >= 1:
        return True
    if probability <= 0:
        return False
    return prng.random() < probability


def choice(prng: "LcgPRNG", seq: Sequence[T]) -> T:
    """Choose a random element from a non-empty sequence."""
    if not seq:
        raise IndexError("Cannot choose from an empty sequence")
    return seq[int(prng.random() * len(seq))]


def shuffle(prng: "LcgPRNG", items: Sequence[T]) -> List[T]:
    """
    Return a Fisher-Yates shuffled copy of ``items``.

    Walks from the last index down to 1 and swaps with
    ``j = floor(U * (i + 1))``.
    """
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(prng.random() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
