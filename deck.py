"""Exact draw probabilities for a two-colour policy deck.

Cards are exchangeable before they are drawn, so a deck is fully described by
its remaining liberal and fascist counts and every probability reduces to a
hypergeometric ratio.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from math import comb
from typing import Dict, Iterator

from errors import DomainError
from role_data import Policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class ClaimPattern:
    """Order-independent colour counts of a draw, e.g. ``RRB``."""

    liberal: int
    fascist: int

    def __post_init__(self):
        if self.liberal < 0 or self.fascist < 0:
            raise DomainError(f"Negative card count in pattern ({self.liberal}, {self.fascist}).")

    @property
    def size(self) -> int:
        return self.liberal + self.fascist

    @classmethod
    def parse(cls, text: str) -> "ClaimPattern":
        liberal = fascist = 0
        for letter in str(text).strip():
            try:
                policy = Policy.parse(letter)
            except ValueError as exc:
                raise DomainError(str(exc)) from exc
            if policy is Policy.LIBERAL:
                liberal += 1
            else:
                fascist += 1
        return cls(liberal, fascist)

    @classmethod
    def coerce(cls, value) -> "ClaimPattern":
        if isinstance(value, cls):
            return value
        return cls.parse(value)

    @classmethod
    def from_liberals(cls, liberal: int, size: int) -> "ClaimPattern":
        return cls(liberal, size - liberal)

    def count(self, policy: Policy) -> int:
        return self.liberal if policy is Policy.LIBERAL else self.fascist

    def without(self, policy: Policy) -> "ClaimPattern":
        """Pattern left after discarding one card of ``policy``."""
        if policy is Policy.LIBERAL:
            return ClaimPattern(self.liberal - 1, self.fascist)
        return ClaimPattern(self.liberal, self.fascist - 1)

    def discards_to(self, other: "ClaimPattern") -> bool:
        """True when removing exactly one card from ``self`` yields ``other``."""
        if other.size != self.size - 1:
            return False
        return any(
            self.count(policy) > 0 and self.without(policy) == other
            for policy in Policy
        )

    def __str__(self) -> str:
        return str(Policy.FASCIST) * self.fascist + str(Policy.LIBERAL) * self.liberal


def parse_pattern(text: str, min_size: int = 0, max_size: int | None = None) -> ClaimPattern:
    pattern = ClaimPattern.parse(text)
    if max_size is not None and pattern.size > max_size:
        raise DomainError(
            f"Requested a pattern of length {pattern.size} but only had {max_size} cards available."
        )
    if pattern.size < min_size:
        raise DomainError(
            f"Presented a pattern of length {pattern.size} but the required pattern length is {min_size}."
        )
    return pattern


def _check_deck(num_liberal: int, num_fascist: int) -> None:
    if num_liberal < 0 or num_fascist < 0:
        raise DomainError(f"A deck cannot hold negative counts ({num_liberal}, {num_fascist}).")


def patterns_of_size(size: int) -> Iterator[ClaimPattern]:
    """Every pattern with ``size`` cards, fascist-heavy first."""
    for liberal in range(size + 1):
        yield ClaimPattern.from_liberals(liberal, size)


@lru_cache(maxsize=None)
def pattern_count(num_liberal: int, num_fascist: int, pattern: ClaimPattern) -> int:
    """Number of card subsets of the deck that match ``pattern``."""
    _check_deck(num_liberal, num_fascist)
    if pattern.size > num_liberal + num_fascist:
        raise DomainError(
            f"Requested a pattern of length {pattern.size} but only had "
            f"{num_liberal + num_fascist} cards available."
        )
    if pattern.liberal > num_liberal or pattern.fascist > num_fascist:
        raise DomainError(
            f"Pattern {pattern} needs more cards of one colour than the deck "
            f"({num_liberal} liberal, {num_fascist} fascist) holds."
        )
    return comb(num_liberal, pattern.liberal) * comb(num_fascist, pattern.fascist)


def pattern_probability(num_liberal: int, num_fascist: int, pattern) -> float:
    """Probability that the next ``|pattern|`` cards match ``pattern`` in any order."""
    pattern = ClaimPattern.coerce(pattern)
    matching = pattern_count(num_liberal, num_fascist, pattern)
    return matching / comb(num_liberal + num_fascist, pattern.size)


def distribution(num_liberal: int, num_fascist: int, size: int) -> Dict[ClaimPattern, float]:
    """Probability of every pattern for a draw of ``size`` cards.

    Patterns that need more cards of a colour than the deck holds are reported
    with probability zero so the mapping always covers all ``size + 1``
    patterns.
    """
    _check_deck(num_liberal, num_fascist)
    total = num_liberal + num_fascist
    if size < 0 or size > total:
        raise DomainError(f"Requested a pattern of length {size} but only had {total} cards available.")
    denominator = comb(total, size)
    out = {}
    for pattern in patterns_of_size(size):
        # comb() is zero when a colour is over-requested
        out[pattern] = comb(num_liberal, pattern.liberal) * comb(num_fascist, pattern.fascist) / denominator
    return out


def next_pattern_probability(
    num_liberal: int,
    num_fascist: int,
    pattern,
    guaranteed_liberal: int = 0,
    guaranteed_fascist: int = 0,
) -> float:
    """Chance ``pattern`` matches the next cards given some of them are already known.

    ``guaranteed_liberal``/``guaranteed_fascist`` are lower bounds on the
    colours inside the window (for instance a card revealed by a veto or a
    confirmed president). Returns 0.0 when the guarantees are unsatisfiable.
    """
    pattern = ClaimPattern.coerce(pattern)
    dist = distribution(num_liberal, num_fascist, pattern.size)
    admissible = {
        p: prob
        for p, prob in dist.items()
        if p.liberal >= guaranteed_liberal and p.fascist >= guaranteed_fascist
    }
    total = sum(admissible.values())
    if total == 0:
        logger.debug("No window of size %d satisfies the guaranteed counts", pattern.size)
        return 0.0
    return admissible.get(pattern, 0.0) / total
