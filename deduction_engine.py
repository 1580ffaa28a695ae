import logging
from collections.abc import Mapping
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from constraint_extraction import ExtractedConstraints, extract_constraints, find_realization
from csp import role_assignments
from errors import ContradictoryState
from role_data import Policy, SecretRole
from session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceToggles:
    """Switches that widen or narrow which worlds count as consistent."""

    # two fascists may end up contradicting each other in one government
    fascist_conflict_possible: bool = True
    # Hitler may lie about cards and investigations like any other fascist
    aggressive_hitler_possible: bool = True


DEFAULT_TOGGLES = InferenceToggles()


@dataclass
class WorldState:
    """Representation of a possible game world."""

    roles: Dict[int, SecretRole]
    # true liberal count of every draw window, filled in by the deck step
    realization: Optional[Tuple[int, ...]] = None

    @property
    def fascists(self) -> FrozenSet[int]:
        return frozenset(seat for seat, role in self.roles.items() if role.is_fascist)

    @property
    def hitler(self) -> int:
        return next(seat for seat, role in self.roles.items() if role is SecretRole.HITLER)

    def free_seats(self, toggles: InferenceToggles) -> FrozenSet[int]:
        """Seats whose claims are not bound to the truth in this world."""
        if toggles.aggressive_hitler_possible:
            return self.fascists
        return self.fascists - {self.hitler}


def generate_all_worlds(session: Session, extracted: ExtractedConstraints) -> List[WorldState]:
    facts = session.hard_facts + extracted.deduced_facts
    return [WorldState(roles=roles) for roles in role_assignments(session.config, facts)]


def process_conflicts(world: WorldState, extracted: ExtractedConstraints, toggles: InferenceToggles) -> bool:
    if toggles.fascist_conflict_possible:
        return True
    team = world.fascists
    if any(conflict.president in team and conflict.chancellor in team for conflict in extracted.conflicts):
        return False
    # naming a teammate as fascist is an internal conflict too
    return not any(
        claim.claimed is Policy.FASCIST and claim.investigator in team and claim.target in team
        for claim in extracted.investigations
    )


def process_investigations(world: WorldState, extracted: ExtractedConstraints, toggles: InferenceToggles) -> bool:
    free = world.free_seats(toggles)
    for claim in extracted.investigations:
        if claim.investigator in free:
            continue
        if world.roles[claim.target].party is not claim.claimed:
            return False
    return True


def process_deck(world: WorldState, extracted: ExtractedConstraints, toggles: InferenceToggles) -> bool:
    world.realization = find_realization(extracted.windows, world.free_seats(toggles))
    return world.realization is not None


DEDUCTION_STEPS = [
    process_conflicts,
    process_investigations,
    process_deck,
]


def deduction_pipeline(worlds, extracted: ExtractedConstraints, toggles: InferenceToggles) -> List[WorldState]:
    """Apply every deduction step in order, keeping the worlds that pass all of them."""
    current = worlds
    for step in DEDUCTION_STEPS:
        current = [w for w in current if step(w, extracted, toggles)]
        logger.debug("%s kept %d worlds", step.__name__, len(current))
        if not current:
            break
    return current


def _deduce(session: Session, toggles: Optional[InferenceToggles]) -> Tuple[ExtractedConstraints, List[WorldState]]:
    toggles = toggles or DEFAULT_TOGGLES
    extracted = extract_constraints(session)
    worlds = generate_all_worlds(session, extracted)
    logger.debug("Generated %d worlds before deduction.", len(worlds))
    deduced = deduction_pipeline(worlds, extracted, toggles)
    logger.debug("After deduction: %d worlds remain.", len(deduced))
    if not deduced:
        logger.warning("No role assignment is consistent with the recorded game.")
    return extracted, deduced


def feasible_worlds(session: Session, toggles: Optional[InferenceToggles] = None) -> List[WorldState]:
    return _deduce(session, toggles)[1]


class SeatProbabilities(Mapping):
    """Read-only seat -> probability mapping over the consistent worlds.

    An empty world set is a result, not a failure: every probability is 0 and
    ``contradictory`` is set.
    """

    def __init__(self, counts: Dict[int, int], num_worlds: int):
        self.counts = dict(counts)
        self.num_worlds = num_worlds

    @property
    def contradictory(self) -> bool:
        return self.num_worlds == 0

    def raise_for_contradiction(self) -> None:
        if self.contradictory:
            raise ContradictoryState()

    def __getitem__(self, seat: int) -> float:
        count = self.counts[seat]
        return count / self.num_worlds if self.num_worlds else 0.0

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.counts))

    def __len__(self) -> int:
        return len(self.counts)

    def __repr__(self) -> str:
        values = ", ".join(f"{seat}: {self[seat]:.3f}" for seat in self)
        return f"SeatProbabilities({{{values}}}, num_worlds={self.num_worlds})"


def compute_role_probs(worlds, seats) -> Tuple[SeatProbabilities, SeatProbabilities]:
    """Return the chance each seat is liberal and the chance it is Hitler."""
    liberal_counts = {seat: 0 for seat in seats}
    hitler_counts = {seat: 0 for seat in seats}
    for w in worlds:
        for seat in seats:
            role = w.roles[seat]
            if role is SecretRole.LIBERAL:
                liberal_counts[seat] += 1
            elif role is SecretRole.HITLER:
                hitler_counts[seat] += 1
    return (
        SeatProbabilities(liberal_counts, len(worlds)),
        SeatProbabilities(hitler_counts, len(worlds)),
    )


def liberal_percent(session: Session, toggles: Optional[InferenceToggles] = None) -> SeatProbabilities:
    worlds = feasible_worlds(session, toggles)
    return compute_role_probs(worlds, session.config.seats)[0]


def hitler_snipe(session: Session, toggles: Optional[InferenceToggles] = None) -> SeatProbabilities:
    worlds = feasible_worlds(session, toggles)
    return compute_role_probs(worlds, session.config.seats)[1]


def impossible_teams(session: Session, toggles: Optional[InferenceToggles] = None) -> Set[FrozenSet[int]]:
    """Every seat subset of team size that is the fascist team in no consistent world."""
    worlds = feasible_worlds(session, toggles)
    possible = {w.fascists for w in worlds}
    config = session.config
    return {
        frozenset(team)
        for team in combinations(config.seats, config.team_size)
        if frozenset(team) not in possible
    }


def fascist_correlation(session: Session, toggles: Optional[InferenceToggles] = None) -> Dict[int, Dict[int, float]]:
    """P(``b`` is fascist | ``a`` is fascist) over the consistent worlds.

    Worlds are weighted uniformly, like every other query, so a team that
    fits several Hitler placements counts once per placement.
    ``correlation[a][a]`` is 1.0 whenever ``a`` can be fascist at all.
    """
    seats = list(session.config.seats)
    together = {s1: dict.fromkeys(seats, 0) for s1 in seats}
    for world in feasible_worlds(session, toggles):
        team = world.fascists
        for s1 in team:
            for s2 in team:
                together[s1][s2] += 1

    return {
        s1: {s2: together[s1][s2] / together[s1][s1] if together[s1][s1] else 0.0 for s2 in seats}
        for s1 in seats
    }


if __name__ == "__main__":
    from session import Investigation

    logging.basicConfig(level=logging.DEBUG)
    session = Session()
    session.record_government(1, 2, "RRB", "RB", "B")
    session.record_government(2, 3, "RRB", "RR", "R")
    session.record_government(3, 4, "RRR", "RR", "R", power=Investigation(5, "B"))
    session.record_government(4, 5, "RRB", "RB", "B")

    liberal = liberal_percent(session)
    hitler = hitler_snipe(session)
    print("\nRole probabilities:")
    for seat in session.config.seats:
        print(f"{session.display_name(seat)}: {liberal[seat] * 100:.1f}% liberal, {hitler[seat] * 100:.1f}% Hitler")
    print(f"\n{len(impossible_teams(session))} impossible teams")
