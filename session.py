"""In-memory record of one game: roster, recorded events and hard facts.

The session is the only mutable object in the toolkit. It grows through
``record_government``, ``record_top_deck`` and ``add_hard_fact``; every query
reads it without modifying it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from board_config import BoardConfig, standard_board_config
from deck import ClaimPattern
from errors import ArgumentShapeError, DomainError, FactError, GovernmentError, RosterError, UnknownSeatError
from role_data import DRAW_SIZE, Policy, PowerKind, SecretRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Player:
    seat: int
    name: str = ""

    def __str__(self) -> str:
        if not self.name:
            return str(self.seat)
        return f"{self.name} {{{self.seat}}}"


# Power results -------------------------------------------------------------

@dataclass(frozen=True)
class Investigation:
    """The president claims ``target`` belongs to the ``claimed`` party."""

    target: int
    claimed: Policy
    kind = PowerKind.INVESTIGATE

    def __post_init__(self):
        if not isinstance(self.claimed, Policy):
            try:
                object.__setattr__(self, "claimed", Policy.parse(self.claimed))
            except ValueError as exc:
                raise DomainError(str(exc)) from exc


@dataclass(frozen=True)
class SpecialElection:
    target: int
    kind = PowerKind.SPECIAL_ELECTION


@dataclass(frozen=True)
class PolicyPeek:
    """The president claims the next three cards are ``pattern``."""

    pattern: ClaimPattern
    kind = PowerKind.POLICY_PEEK

    def __post_init__(self):
        object.__setattr__(self, "pattern", ClaimPattern.coerce(self.pattern))


@dataclass(frozen=True)
class Execution:
    target: int
    kind = PowerKind.EXECUTION


PowerResult = Union[Investigation, SpecialElection, PolicyPeek, Execution]


# Events --------------------------------------------------------------------

@dataclass(frozen=True)
class Government:
    round: int
    president: int
    chancellor: int
    president_claim: ClaimPattern
    chancellor_claim: ClaimPattern
    enacted: Policy
    power: Optional[PowerResult] = None

    @property
    def draw_size(self) -> int:
        return DRAW_SIZE


@dataclass(frozen=True)
class TopDeck:
    """Policy enacted from the top of the deck after three failed elections."""

    round: int
    enacted: Policy

    @property
    def draw_size(self) -> int:
        return 1


Event = Union[Government, TopDeck]


# Hard facts ----------------------------------------------------------------

@dataclass(frozen=True)
class RoleAssertion:
    seat: int
    role: SecretRole

    def __post_init__(self):
        if not isinstance(self.role, SecretRole):
            try:
                object.__setattr__(self, "role", SecretRole.parse(self.role))
            except ValueError as exc:
                raise FactError(str(exc)) from exc


@dataclass(frozen=True)
class NotHitler:
    seat: int


@dataclass(frozen=True)
class CardIdentity:
    """The card at position ``slot`` of the draw made in ``round`` is ``policy``."""

    round: int
    slot: int
    policy: Policy

    def __post_init__(self):
        if not isinstance(self.policy, Policy):
            try:
                object.__setattr__(self, "policy", Policy.parse(self.policy))
            except ValueError as exc:
                raise FactError(str(exc)) from exc


@dataclass(frozen=True)
class AtLeastOneFascist:
    seats: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, "seats", tuple(self.seats))


HardFact = Union[RoleAssertion, NotHitler, CardIdentity, AtLeastOneFascist]


class Session:
    def __init__(self, config: Optional[BoardConfig] = None):
        self.reset(config)

    def reset(self, config: Optional[BoardConfig] = None) -> None:
        """Start a new game, optionally with a different configuration."""
        if config is None:
            config = getattr(self, "config", None) or standard_board_config(7)
        self.config = config
        self._players: Dict[int, Player] = {seat: Player(seat) for seat in config.seats}
        self._events: List[Event] = []
        self._facts: List[HardFact] = []
        logger.debug("Session reset for %d players", config.player_count)

    # Roster ----------------------------------------------------------------

    @property
    def players(self) -> Tuple[Player, ...]:
        return tuple(self._players[seat] for seat in sorted(self._players))

    def name_player(self, seat: int, name: str) -> Player:
        self._require_seat(seat)
        name = name.strip()
        for other in self._players.values():
            if other.seat != seat and name and other.name.lower() == name.lower():
                raise RosterError(f"The name {name} is already used by seat {other.seat}.")
        player = Player(seat, name)
        self._players[seat] = player
        return player

    def seat_of(self, who: Union[int, str]) -> int:
        if isinstance(who, int):
            self._require_seat(who)
            return who
        text = str(who).strip()
        if text.isdigit():
            return self.seat_of(int(text))
        for player in self._players.values():
            if player.name and player.name.lower() == text.lower():
                return player.seat
        raise RosterError(f'Failed to associate "{text}" with a player\'s name.')

    def display_name(self, seat: int) -> str:
        player = self._players.get(seat)
        return str(player) if player else str(seat)

    def _require_seat(self, seat) -> None:
        if seat not in self._players:
            raise UnknownSeatError(seat)

    # Events ------------------------------------------------------------------

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    @property
    def governments(self) -> Tuple[Government, ...]:
        return tuple(e for e in self._events if isinstance(e, Government))

    @property
    def hard_facts(self) -> Tuple[HardFact, ...]:
        return tuple(self._facts)

    def event_at(self, round_index: int) -> Optional[Event]:
        for event in self._events:
            if event.round == round_index:
                return event
        return None

    def enacted_counts(self) -> Tuple[int, int]:
        """(liberal, fascist) policies on the board, pre-placed ones included."""
        liberal = self.config.placed_liberal
        fascist = self.config.placed_fascist
        for event in self._events:
            if event.enacted is Policy.LIBERAL:
                liberal += 1
            else:
                fascist += 1
        return liberal, fascist

    def _next_round(self) -> int:
        return self._events[-1].round + 1 if self._events else 1

    def expected_power(self, enacted: Policy) -> PowerKind:
        """Power the next government unlocks if it enacts ``enacted``."""
        if enacted is not Policy.FASCIST:
            return PowerKind.NONE
        _, fascist = self.enacted_counts()
        return self.config.round_power(fascist + 1)

    def record_government(
        self,
        president,
        chancellor,
        president_claim,
        chancellor_claim,
        enacted,
        power: Optional[PowerResult] = None,
    ) -> Government:
        round_index = self._next_round()
        president = self._government_seat(president)
        chancellor = self._government_seat(chancellor)
        if president == chancellor:
            raise GovernmentError(f"Round {round_index}: player {president} cannot be both president and chancellor.")
        president_claim = ClaimPattern.coerce(president_claim)
        chancellor_claim = ClaimPattern.coerce(chancellor_claim)
        if president_claim.size != DRAW_SIZE:
            raise ArgumentShapeError(round_index, f"{DRAW_SIZE}-card president claim", f"{president_claim.size} cards")
        if chancellor_claim.size > DRAW_SIZE:
            raise ArgumentShapeError(
                round_index, f"chancellor claim of at most {DRAW_SIZE} cards", f"{chancellor_claim.size} cards"
            )
        enacted = self._coerce_enacted(round_index, enacted)

        expected = self.expected_power(enacted)
        received = power.kind if power is not None else PowerKind.NONE
        if expected.has_payload != (power is not None) or (power is not None and received is not expected):
            raise ArgumentShapeError(round_index, expected, received)
        if power is not None:
            self._check_power(round_index, power)

        government = Government(
            round=round_index,
            president=president,
            chancellor=chancellor,
            president_claim=president_claim,
            chancellor_claim=chancellor_claim,
            enacted=enacted,
            power=power,
        )
        self._events.append(government)
        logger.debug(
            "Recorded government %d: president %s claimed %s, chancellor %s claimed %s, enacted %s",
            round_index,
            president,
            president_claim,
            chancellor,
            chancellor_claim,
            enacted.name,
        )
        return government

    def _government_seat(self, who) -> int:
        try:
            return self.seat_of(who)
        except RosterError as exc:
            raise UnknownSeatError(who) from exc

    def _check_power(self, round_index: int, power: PowerResult) -> None:
        if isinstance(power, PolicyPeek):
            if power.pattern.size != DRAW_SIZE:
                raise ArgumentShapeError(round_index, f"{DRAW_SIZE}-card peek", f"{power.pattern.size} cards")
        else:
            self._require_seat(power.target)

    @staticmethod
    def _coerce_enacted(round_index: int, enacted) -> Policy:
        if isinstance(enacted, Policy):
            return enacted
        try:
            return Policy.parse(enacted)
        except ValueError as exc:
            raise GovernmentError(f"Round {round_index}: {exc}") from exc

    def record_top_deck(self, enacted) -> TopDeck:
        round_index = self._next_round()
        enacted = self._coerce_enacted(round_index, enacted)
        top_deck = TopDeck(round=round_index, enacted=enacted)
        self._events.append(top_deck)
        logger.debug("Recorded top-deck %d: %s", top_deck.round, enacted.name)
        return top_deck

    # Facts -------------------------------------------------------------------

    def add_hard_fact(self, fact: HardFact) -> HardFact:
        if isinstance(fact, (RoleAssertion, NotHitler)):
            self._require_seat(fact.seat)
        elif isinstance(fact, AtLeastOneFascist):
            if not fact.seats:
                raise FactError("At least one seat is required.")
            for seat in fact.seats:
                self._require_seat(seat)
        elif isinstance(fact, CardIdentity):
            self._check_card_identity(fact)
        else:
            raise FactError(f"Unknown fact {fact!r}.")
        self._facts.append(fact)
        logger.debug("Added hard fact %r", fact)
        return fact

    def _check_card_identity(self, fact: CardIdentity) -> None:
        event = self.event_at(fact.round)
        if event is None:
            raise FactError(f"Round {fact.round} has not been recorded.")
        if not 0 <= fact.slot < event.draw_size:
            raise FactError(f"Round {fact.round} drew {event.draw_size} cards, there is no slot {fact.slot}.")
        if isinstance(event, TopDeck) and fact.policy is not event.enacted:
            raise FactError(f"Round {fact.round} publicly top-decked {event.enacted.name}.")
        for other in self._facts:
            if isinstance(other, CardIdentity) and (other.round, other.slot) == (fact.round, fact.slot):
                if other.policy is not fact.policy:
                    raise FactError(f"Round {fact.round}, slot {fact.slot} is already known to be {other.policy.name}.")
