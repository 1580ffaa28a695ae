from functools import lru_cache
from typing import Dict, Iterable, List, Tuple

from constraint import AllDifferentConstraint, Problem

from board_config import BoardConfig
from role_data import SecretRole
from session import AtLeastOneFascist, HardFact, NotHitler, RoleAssertion

HITLER_VAR = "hitler"


def _fascist_vars(config: BoardConfig) -> List[str]:
    return [f"fascist_{i}" for i in range(config.num_regular_fascists)]


def role_assignments(config: BoardConfig, facts: Iterable[HardFact] = ()) -> List[Dict[int, SecretRole]]:
    """
    Every seat -> role mapping with the configured head-counts that respects
    the role-level hard facts (RoleAssertion, NotHitler, AtLeastOneFascist).
    Card facts are ignored here; they only constrain the deck.
    """
    solutions = _solve(config, tuple(f for f in facts if not _is_card_fact(f)))
    return [dict(zip(config.seats, roles)) for roles in solutions]


def _is_card_fact(fact) -> bool:
    return not isinstance(fact, (RoleAssertion, NotHitler, AtLeastOneFascist))


@lru_cache(maxsize=256)
def _solve(config: BoardConfig, facts: Tuple[HardFact, ...]) -> Tuple[Tuple[SecretRole, ...], ...]:
    seats = list(config.seats)
    forced: Dict[int, SecretRole] = {}
    not_hitler = set()
    groups = []
    for fact in facts:
        if isinstance(fact, RoleAssertion):
            if forced.get(fact.seat, fact.role) is not fact.role:
                return ()
            forced[fact.seat] = fact.role
        elif isinstance(fact, NotHitler):
            not_hitler.add(fact.seat)
        else:
            groups.append(frozenset(fact.seats))

    forced_hitlers = [seat for seat, role in forced.items() if role is SecretRole.HITLER]
    if len(forced_hitlers) > 1:
        return ()
    hitler_domain = [
        s for s in (forced_hitlers or seats)
        if s not in not_hitler and forced.get(s, SecretRole.HITLER) is SecretRole.HITLER
    ]
    fascist_domain = [s for s in seats if forced.get(s, SecretRole.FASCIST) is SecretRole.FASCIST]
    fascist_vars = _fascist_vars(config)
    forced_fascists = [seat for seat, role in forced.items() if role is SecretRole.FASCIST]
    if not hitler_domain or len(forced_fascists) > len(fascist_vars):
        return ()
    if fascist_vars and not fascist_domain:
        return ()

    problem = Problem()
    problem.addVariable(HITLER_VAR, hitler_domain)
    if fascist_vars:
        problem.addVariables(fascist_vars, fascist_domain)
    problem.addConstraint(AllDifferentConstraint())

    # Fascists are interchangeable, keep them in seat order so each team is produced once
    for left, right in zip(fascist_vars, fascist_vars[1:]):
        problem.addConstraint(lambda a, b: a < b, (left, right))

    for seat in forced_fascists:
        def fascist_claim_constraint(*team, seat=seat):
            return seat in team
        problem.addConstraint(fascist_claim_constraint, fascist_vars)

    team_vars = [HITLER_VAR] + fascist_vars
    for group in groups:
        def at_least_one_constraint(*team, group=group):
            return any(s in group for s in team)
        problem.addConstraint(at_least_one_constraint, team_vars)

    assignments = []
    for sol in problem.getSolutions():
        roles = {seat: SecretRole.LIBERAL for seat in seats}
        for name in fascist_vars:
            roles[sol[name]] = SecretRole.FASCIST
        roles[sol[HITLER_VAR]] = SecretRole.HITLER
        assignments.append(tuple(roles[seat] for seat in seats))
    # the solver's order depends on its internal heuristics
    assignments.sort(key=lambda roles: [role.value for role in roles])
    return tuple(assignments)
