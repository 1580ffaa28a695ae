from __future__ import annotations

import pytest

from deduction_engine import (
    InferenceToggles,
    fascist_correlation,
    feasible_worlds,
    hitler_snipe,
    impossible_teams,
    liberal_percent,
)
from errors import ContradictoryState
from role_data import SecretRole
from session import Execution, Investigation, NotHitler, PolicyPeek, RoleAssertion, Session

STRICT = InferenceToggles(fascist_conflict_possible=False, aggressive_hitler_possible=False)
PASSIVE_HITLER = InferenceToggles(aggressive_hitler_possible=False)
NO_INTERNAL_CONFLICT = InferenceToggles(fascist_conflict_possible=False)

ALL_TOGGLES = [
    InferenceToggles(),
    PASSIVE_HITLER,
    NO_INTERNAL_CONFLICT,
    STRICT,
]


def _forced_liars(session: Session) -> None:
    # three fascists drawn yet a liberal enacted: both claims cannot be true
    session.record_government(1, 2, "RRR", "RR", "B")


def _conflicting(session: Session) -> None:
    session.record_government(1, 2, "RRB", "BB", "B")


def test_empty_log_is_uniform(seven_players: Session) -> None:
    liberal = liberal_percent(seven_players)
    hitler = hitler_snipe(seven_players)
    assert liberal.num_worlds == 105
    assert not liberal.contradictory
    for seat in seven_players.config.seats:
        assert liberal[seat] == pytest.approx(4 / 7)
        assert hitler[seat] == pytest.approx(1 / 7)


def test_empty_log_has_no_impossible_teams(seven_players: Session) -> None:
    assert impossible_teams(seven_players) == set()


def test_execution_target_is_never_hitler(five_players: Session) -> None:
    five_players.record_government(1, 2, "RRB", "RB", "R")
    five_players.record_government(2, 3, "RRB", "RB", "R")
    five_players.record_government(3, 4, "RRB", "RB", "R", power=PolicyPeek("RRB"))
    five_players.record_government(4, 5, "RRB", "RB", "R", power=Execution(1))
    snipe = hitler_snipe(five_players)
    assert snipe[1] == 0.0
    assert sum(snipe.values()) == pytest.approx(1.0)


def test_forced_lie_puts_both_on_the_team(seven_players: Session) -> None:
    _forced_liars(seven_players)
    liberal = liberal_percent(seven_players)
    assert liberal[1] == 0.0
    assert liberal[2] == 0.0
    assert liberal.num_worlds == 15


def test_passive_hitler_must_tell_the_truth(seven_players: Session) -> None:
    _forced_liars(seven_players)
    worlds = feasible_worlds(seven_players, PASSIVE_HITLER)
    assert len(worlds) == 5
    assert all(w.hitler not in (1, 2) for w in worlds)
    assert hitler_snipe(seven_players, PASSIVE_HITLER)[1] == 0.0


def test_conflict_toggle_removes_shared_team(seven_players: Session) -> None:
    _conflicting(seven_players)
    assert len(feasible_worlds(seven_players)) == 75
    worlds = feasible_worlds(seven_players, NO_INTERNAL_CONFLICT)
    assert len(worlds) == 60
    assert all(not {1, 2} <= w.fascists for w in worlds)


def test_conflict_toggle_covers_investigating_a_teammate(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "R")
    seven_players.record_government(3, 4, "RRB", "RB", "R", power=Investigation(5, "R"))
    assert any({3, 5} <= w.fascists for w in feasible_worlds(seven_players))
    worlds = feasible_worlds(seven_players, NO_INTERNAL_CONFLICT)
    assert worlds
    assert all(not {3, 5} <= w.fascists for w in worlds)


def test_conflict_toggle_allows_covering_a_teammate(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "R")
    seven_players.record_government(3, 4, "RRB", "RB", "R", power=Investigation(5, "B"))
    worlds = feasible_worlds(seven_players, NO_INTERNAL_CONFLICT)
    assert any({3, 5} <= w.fascists for w in worlds)


@pytest.mark.parametrize("record", [_forced_liars, _conflicting])
@pytest.mark.parametrize("fascist_conflict_possible", [True, False])
def test_aggressive_hitler_is_monotone(seven_players: Session, record, fascist_conflict_possible: bool) -> None:
    record(seven_players)
    passive = InferenceToggles(fascist_conflict_possible, aggressive_hitler_possible=False)
    aggressive = InferenceToggles(fascist_conflict_possible, aggressive_hitler_possible=True)
    assert len(feasible_worlds(seven_players, aggressive)) >= len(feasible_worlds(seven_players, passive))


@pytest.mark.parametrize("toggles", ALL_TOGGLES)
def test_probabilities_are_bounded(seven_players: Session, toggles: InferenceToggles) -> None:
    _conflicting(seven_players)
    seven_players.record_government(3, 4, "RRR", "RR", "R")
    liberal = liberal_percent(seven_players, toggles)
    hitler = hitler_snipe(seven_players, toggles)
    assert all(0.0 <= p <= 1.0 for p in liberal.values())
    assert all(0.0 <= p <= 1.0 for p in hitler.values())
    assert sum(hitler.values()) == pytest.approx(1.0)
    # the team has three seats
    assert sum(1 - p for p in liberal.values()) == pytest.approx(3.0)


def test_investigation_binds_truthful_investigator(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "R")
    seven_players.record_government(2, 3, "RRB", "RB", "R", power=Investigation(5, "R"))
    for w in feasible_worlds(seven_players):
        if w.roles[2] is SecretRole.LIBERAL:
            assert w.roles[5].is_fascist

    seven_players.add_hard_fact(RoleAssertion(2, SecretRole.LIBERAL))
    assert liberal_percent(seven_players)[5] == 0.0


def test_contradiction_is_reported_not_raised(seven_players: Session) -> None:
    seven_players.add_hard_fact(RoleAssertion(1, SecretRole.HITLER))
    seven_players.add_hard_fact(NotHitler(1))
    hitler = hitler_snipe(seven_players)
    assert hitler.contradictory
    assert hitler.num_worlds == 0
    assert all(p == 0.0 for p in hitler.values())
    with pytest.raises(ContradictoryState):
        hitler.raise_for_contradiction()
    assert len(impossible_teams(seven_players)) == 35


def test_impossible_teams_lists_every_excluded_subset(seven_players: Session) -> None:
    _forced_liars(seven_players)
    teams = impossible_teams(seven_players)
    # only the five teams holding both seats 1 and 2 survive
    assert len(teams) == 35 - 5
    assert frozenset({1, 2, 3}) not in teams
    assert frozenset({1, 3, 4}) in teams
    assert all(len(team) == 3 for team in teams)


def test_fascist_correlation(seven_players: Session) -> None:
    _forced_liars(seven_players)
    correlation = fascist_correlation(seven_players)
    assert correlation[1][2] == pytest.approx(1.0)
    assert correlation[3][1] == pytest.approx(1.0)
    assert correlation[3][4] == pytest.approx(0.0)
    assert correlation[1][3] == pytest.approx(1 / 5)


def test_fascist_correlation_counts_worlds(seven_players: Session) -> None:
    seven_players.add_hard_fact(NotHitler(3))
    seven_players.add_hard_fact(NotHitler(4))
    correlation = fascist_correlation(seven_players)
    # {3, 4, x} leaves one Hitler placement, {3, a, b} leaves two
    assert correlation[3][4] == pytest.approx(5 / 25)
    assert correlation[3][5] == pytest.approx(9 / 25)
    assert correlation[3][3] == pytest.approx(1.0)


def test_queries_do_not_mutate_session(seven_players: Session) -> None:
    _conflicting(seven_players)
    before = (seven_players.events, seven_players.hard_facts)
    liberal_percent(seven_players)
    impossible_teams(seven_players)
    assert (seven_players.events, seven_players.hard_facts) == before


def test_role_assertion_by_name(seven_players: Session) -> None:
    seven_players.add_hard_fact(RoleAssertion(3, "Hitler"))
    snipe = hitler_snipe(seven_players)
    assert snipe[3] == pytest.approx(1.0)
    assert snipe.num_worlds == 15
