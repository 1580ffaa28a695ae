"""Turn the recorded game into constraints the deduction engine can check.

Everything here is a pure function of the session: conflicts, deduced facts,
investigation claims and the ordered list of draw windows are recomputed on
every call. The only cache is on ``find_realization`` whose inputs are
immutable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

from deck import ClaimPattern
from role_data import CHANCELLOR_HAND, RESHUFFLE_THRESHOLD, Policy
from session import (
    CardIdentity,
    Execution,
    Government,
    HardFact,
    Investigation,
    NotHitler,
    PolicyPeek,
    Session,
)

logger = logging.getLogger(__name__)

# (liberal cards left in the draw pile, liberal count of a peek awaiting the next draw)
DeckState = Tuple[int, Optional[int]]


@dataclass(frozen=True)
class Conflict:
    """President and chancellor claims that cannot both be true."""

    round: int
    president: int
    chancellor: int

    @property
    def seats(self) -> Tuple[int, int]:
        return self.president, self.chancellor


@dataclass(frozen=True)
class InvestigationClaim:
    round: int
    investigator: int
    target: int
    claimed: Policy


class WindowKind(Enum):
    GOVERNMENT = auto()
    TOP_DECK = auto()
    PEEK = auto()


@dataclass(frozen=True)
class DrawWindow:
    """One look at the top of the draw pile.

    ``reset_liberal`` is set on the first window of every shuffle and holds the
    liberal count of the freshly shuffled pile. Peek windows do not remove
    cards; the government drawing next sees the same cards.
    """

    round: int
    kind: WindowKind
    shuffle: int
    size: int
    cards_before: int
    reset_liberal: Optional[int] = None
    enacted: Optional[Policy] = None
    president: Optional[int] = None
    chancellor: Optional[int] = None
    president_claim: Optional[ClaimPattern] = None
    chancellor_claim: Optional[ClaimPattern] = None
    known_liberal: int = 0
    known_fascist: int = 0

    @property
    def consumes(self) -> bool:
        return self.kind is not WindowKind.PEEK

    @property
    def claimants(self) -> Tuple[int, ...]:
        return tuple(seat for seat in (self.president, self.chancellor) if seat is not None)


@dataclass(frozen=True)
class DeckBounds:
    """Interval of liberal cards left in the pile after a window."""

    round: int
    kind: WindowKind
    shuffle: int
    low: int
    high: int


@dataclass(frozen=True)
class FeasibilityWarning:
    round: int
    seats: Tuple[int, ...]
    message: str


@dataclass(frozen=True)
class ExtractedConstraints:
    conflicts: Tuple[Conflict, ...]
    deduced_facts: Tuple[HardFact, ...]
    investigations: Tuple[InvestigationClaim, ...]
    windows: Tuple[DrawWindow, ...]
    bounds: Tuple[DeckBounds, ...]
    warnings: Tuple[FeasibilityWarning, ...]


def find_conflicts(session: Session) -> List[Conflict]:
    conflicts = []
    for gov in session.governments:
        if not gov.president_claim.discards_to(gov.chancellor_claim):
            conflicts.append(Conflict(gov.round, gov.president, gov.chancellor))
    return conflicts


def deduced_facts(session: Session) -> List[HardFact]:
    """Facts that follow from public events alone."""
    facts: List[HardFact] = []
    for gov in session.governments:
        # the game would have ended had Hitler been shot
        if isinstance(gov.power, Execution):
            facts.append(NotHitler(gov.power.target))
    return facts


def investigation_claims(session: Session) -> List[InvestigationClaim]:
    return [
        InvestigationClaim(gov.round, gov.president, gov.power.target, gov.power.claimed)
        for gov in session.governments
        if isinstance(gov.power, Investigation)
    ]


def _known_cards(facts) -> Dict[int, Tuple[int, int]]:
    slots = {}
    for fact in facts:
        if isinstance(fact, CardIdentity):
            slots[(fact.round, fact.slot)] = fact.policy
    known: Dict[int, Tuple[int, int]] = {}
    for (round_index, _slot), policy in slots.items():
        liberal, fascist = known.get(round_index, (0, 0))
        if policy is Policy.LIBERAL:
            liberal += 1
        else:
            fascist += 1
        known[round_index] = (liberal, fascist)
    return known


def build_draw_windows(session: Session) -> Tuple[DrawWindow, ...]:
    config = session.config
    known = _known_cards(session.hard_facts)
    windows: List[DrawWindow] = []

    shuffle = 0
    remaining = config.deck_liberal + config.deck_fascist
    reset: Optional[int] = config.deck_liberal
    on_board = {Policy.LIBERAL: config.placed_liberal, Policy.FASCIST: config.placed_fascist}

    for event in session.events:
        known_liberal, known_fascist = known.get(event.round, (0, 0))
        if isinstance(event, Government):
            window = DrawWindow(
                round=event.round,
                kind=WindowKind.GOVERNMENT,
                shuffle=shuffle,
                size=event.draw_size,
                cards_before=remaining,
                reset_liberal=reset,
                enacted=event.enacted,
                president=event.president,
                chancellor=event.chancellor,
                president_claim=event.president_claim,
                chancellor_claim=event.chancellor_claim,
                known_liberal=known_liberal,
                known_fascist=known_fascist,
            )
        else:
            window = DrawWindow(
                round=event.round,
                kind=WindowKind.TOP_DECK,
                shuffle=shuffle,
                size=event.draw_size,
                cards_before=remaining,
                reset_liberal=reset,
                enacted=event.enacted,
                known_liberal=known_liberal,
                known_fascist=known_fascist,
            )
        windows.append(window)
        reset = None
        remaining -= event.draw_size
        on_board[event.enacted] += 1

        if remaining < RESHUFFLE_THRESHOLD:
            shuffle += 1
            reset = config.total_liberal - on_board[Policy.LIBERAL]
            remaining = reset + config.total_fascist - on_board[Policy.FASCIST]
            logger.debug("Reshuffle after round %d: %d cards, %d liberal", event.round, remaining, reset)

        if isinstance(event, Government) and isinstance(event.power, PolicyPeek):
            windows.append(
                DrawWindow(
                    round=event.round,
                    kind=WindowKind.PEEK,
                    shuffle=shuffle,
                    size=event.power.pattern.size,
                    cards_before=remaining,
                    reset_liberal=reset,
                    president=event.president,
                    president_claim=event.power.pattern,
                )
            )
            reset = None
    return tuple(windows)


def chancellor_hands(window: DrawWindow, drawn: int, free_seats: FrozenSet[int]) -> Tuple[int, ...]:
    """Liberal counts the chancellor may have received from a draw of ``drawn`` liberals."""
    hands = []
    for received in range(max(0, drawn - 1), min(CHANCELLOR_HAND, drawn) + 1):
        if window.enacted is Policy.LIBERAL and received == 0:
            continue
        if window.enacted is Policy.FASCIST and received == CHANCELLOR_HAND:
            continue
        if window.chancellor not in free_seats:
            claim = window.chancellor_claim
            if claim.size != CHANCELLOR_HAND or claim.liberal != received:
                continue
        hands.append(received)
    return tuple(hands)


def allowed_draws(window: DrawWindow, liberal_left: int, free_seats: FrozenSet[int]) -> Tuple[int, ...]:
    """True liberal counts of the window that every non-free claimant agrees with."""
    fascist_left = window.cards_before - liberal_left
    out = []
    for drawn in range(window.size + 1):
        if drawn > liberal_left or window.size - drawn > fascist_left:
            continue
        if drawn < window.known_liberal or window.size - drawn < window.known_fascist:
            continue
        if window.kind is WindowKind.TOP_DECK:
            if drawn != (1 if window.enacted is Policy.LIBERAL else 0):
                continue
        else:
            if window.president not in free_seats and window.president_claim.liberal != drawn:
                continue
            if window.kind is WindowKind.GOVERNMENT and not chancellor_hands(window, drawn, free_seats):
                continue
        out.append(drawn)
    return tuple(out)


def _matches_peek(window: DrawWindow, drawn: int, peeked: int) -> bool:
    if window.kind is WindowKind.GOVERNMENT:
        return drawn == peeked
    # a top-deck takes only the first of the peeked cards
    return peeked >= 1 if drawn == 1 else peeked <= 2


def successors(window: DrawWindow, state: DeckState, free_seats: FrozenSet[int]) -> Iterator[Tuple[int, DeckState]]:
    liberal_left, peeked = state
    if window.reset_liberal is not None:
        liberal_left = window.reset_liberal
    for drawn in allowed_draws(window, liberal_left, free_seats):
        if window.kind is WindowKind.PEEK:
            yield drawn, (liberal_left, drawn)
        elif peeked is None or _matches_peek(window, drawn, peeked):
            yield drawn, (liberal_left - drawn, None)


def _advance(window: DrawWindow, states, free_seats: FrozenSet[int]) -> Dict[DeckState, Tuple[DeckState, int]]:
    layer: Dict[DeckState, Tuple[DeckState, int]] = {}
    for state in states:
        for drawn, nxt in successors(window, state, free_seats):
            layer.setdefault(nxt, (state, drawn))
    return layer


INITIAL_STATE: DeckState = (0, None)


@lru_cache(maxsize=8192)
def find_realization(windows: Tuple[DrawWindow, ...], free_seats: FrozenSet[int]) -> Optional[Tuple[int, ...]]:
    """One true liberal count per window consistent with every truthful claim, or None.

    Propagates the set of reachable deck states window by window, so the cost
    is linear in the number of windows.
    """
    layers = []
    states = [INITIAL_STATE]
    for window in windows:
        layer = _advance(window, states, free_seats)
        if not layer:
            return None
        layers.append(layer)
        states = list(layer)
    if not layers:
        return ()

    state = states[0]
    draws = []
    for layer in reversed(layers):
        state, drawn = layer[state]
        draws.append(drawn)
    return tuple(reversed(draws))


def literal_deck_bounds(session: Session) -> Tuple[List[DeckBounds], List[FeasibilityWarning]]:
    """Deck intervals if every claim were true, plus a warning where that is impossible."""
    return _literal_bounds(build_draw_windows(session))


def _literal_bounds(windows: Tuple[DrawWindow, ...]) -> Tuple[List[DeckBounds], List[FeasibilityWarning]]:
    bounds: List[DeckBounds] = []
    warnings: List[FeasibilityWarning] = []
    states = [INITIAL_STATE]
    for window in windows:
        layer = _advance(window, states, frozenset())
        if not layer:
            seats = window.claimants
            layer = _advance(window, states, frozenset(seats))
            if not layer:
                # the conflicting claim is an earlier peek
                states = [(liberal_left, None) for liberal_left, _ in states]
                layer = _advance(window, states, frozenset(seats))
            message = f"Claims of round {window.round} cannot be reconciled with the deck."
            warnings.append(FeasibilityWarning(window.round, seats, message))
            logger.warning(message)
        if not layer:
            message = f"Round {window.round} is impossible with the remaining deck."
            warnings.append(FeasibilityWarning(window.round, (), message))
            logger.warning(message)
            break
        states = list(layer)
        lefts = [liberal_left for liberal_left, _ in states]
        bounds.append(DeckBounds(window.round, window.kind, window.shuffle, min(lefts), max(lefts)))
    return bounds, warnings


def extract_constraints(session: Session) -> ExtractedConstraints:
    windows = build_draw_windows(session)
    bounds, warnings = _literal_bounds(windows)
    return ExtractedConstraints(
        conflicts=tuple(find_conflicts(session)),
        deduced_facts=tuple(deduced_facts(session)),
        investigations=tuple(investigation_claims(session)),
        windows=windows,
        bounds=tuple(bounds),
        warnings=tuple(warnings),
    )
