from __future__ import annotations

from constraint_extraction import (
    Conflict,
    WindowKind,
    allowed_draws,
    build_draw_windows,
    extract_constraints,
    find_conflicts,
    find_realization,
    literal_deck_bounds,
)
from role_data import Policy
from session import CardIdentity, Execution, Investigation, NotHitler, PolicyPeek, Session


def _fascist_run(session: Session, rounds: int) -> None:
    """Enact ``rounds`` fascist policies with honest-looking claims and no powers."""
    seats = list(session.config.seats)
    for i in range(rounds):
        session.record_government(seats[i], seats[i + 1], "RRB", "RB", "R")


def test_discard_mismatch_registers_one_conflict(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "BB", "B")
    assert find_conflicts(seven_players) == [Conflict(1, 1, 2)]


def test_reconcilable_claims_register_no_conflict(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "B")
    seven_players.record_government(2, 3, "RRR", "RR", "R")
    assert find_conflicts(seven_players) == []


def test_execution_yields_not_hitler(five_players: Session) -> None:
    _fascist_run(five_players, 2)
    five_players.record_government(3, 4, "RRB", "RB", "R", power=PolicyPeek("RRR"))
    five_players.record_government(4, 5, "RRR", "RR", "R", power=Execution(1))
    extracted = extract_constraints(five_players)
    assert NotHitler(1) in extracted.deduced_facts
    assert len(extracted.deduced_facts) == 1


def test_investigation_becomes_a_claim(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "R")
    seven_players.record_government(2, 3, "RRB", "RB", "R", power=Investigation(5, "R"))
    (claim,) = extract_constraints(seven_players).investigations
    assert (claim.round, claim.investigator, claim.target, claim.claimed) == (2, 2, 5, Policy.FASCIST)


def test_windows_reshuffle_when_fewer_than_three_cards_remain(seven_players: Session) -> None:
    for enacted, (president, chancellor) in zip("BRBBB", [(1, 2), (2, 3), (3, 4), (4, 5), (5, 6)]):
        seven_players.record_government(president, chancellor, "RRB", "RB", enacted)
    seven_players.record_government(6, 7, "RRB", "RB", "B")
    windows = build_draw_windows(seven_players)

    assert [w.shuffle for w in windows] == [0, 0, 0, 0, 0, 1]
    assert (windows[0].reset_liberal, windows[0].cards_before) == (6, 17)
    assert windows[1].reset_liberal is None
    assert windows[1].cards_before == 14
    # four liberals and one fascist are on the board after the fifth government
    assert (windows[5].reset_liberal, windows[5].cards_before) == (2, 12)


def test_top_deck_window(seven_players: Session) -> None:
    seven_players.record_top_deck("B")
    (window,) = build_draw_windows(seven_players)
    assert window.kind is WindowKind.TOP_DECK
    assert window.size == 1
    assert allowed_draws(window, 6, frozenset()) == (1,)
    assert allowed_draws(window, 0, frozenset()) == ()


def test_peek_window_does_not_consume(five_players: Session) -> None:
    _fascist_run(five_players, 2)
    five_players.record_government(3, 4, "RRB", "RB", "R", power=PolicyPeek("BBB"))
    windows = build_draw_windows(five_players)
    assert [w.kind for w in windows][-2:] == [WindowKind.GOVERNMENT, WindowKind.PEEK]
    assert windows[-1].cards_before == 8
    assert windows[-1].president == 3
    assert windows[-1].consumes is False


def test_allowed_draws_for_truthful_government(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "B")
    (window,) = build_draw_windows(seven_players)
    assert allowed_draws(window, 6, frozenset()) == (1,)
    # a lying president could have drawn two or three liberals
    assert allowed_draws(window, 6, frozenset({1})) == (1, 2)
    assert allowed_draws(window, 6, frozenset({1, 2})) == (1, 2, 3)
    assert allowed_draws(window, 0, frozenset({1, 2})) == ()


def test_card_identity_limits_draws(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "B")
    seven_players.add_hard_fact(CardIdentity(1, 0, Policy.LIBERAL))
    seven_players.add_hard_fact(CardIdentity(1, 1, Policy.LIBERAL))
    (window,) = build_draw_windows(seven_players)
    assert (window.known_liberal, window.known_fascist) == (2, 0)
    assert allowed_draws(window, 6, frozenset({1, 2})) == (2, 3)


def test_card_identity_by_letter_limits_draws(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "B")
    seven_players.add_hard_fact(CardIdentity(1, 0, "B"))
    (window,) = build_draw_windows(seven_players)
    assert (window.known_liberal, window.known_fascist) == (1, 0)


def test_realization_of_empty_history_is_empty() -> None:
    assert find_realization((), frozenset()) == ()


def test_realization_follows_truthful_claims(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "B")
    seven_players.record_government(2, 3, "RBB", "BB", "B")
    windows = build_draw_windows(seven_players)
    assert find_realization(windows, frozenset()) == (1, 2)


def test_forced_lie_needs_a_free_president(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRR", "RR", "B")
    windows = build_draw_windows(seven_players)
    assert find_realization(windows, frozenset()) is None
    assert find_realization(windows, frozenset({1})) is None
    assert find_realization(windows, frozenset({1, 2})) is not None


def test_peek_links_to_next_draw(five_players: Session) -> None:
    _fascist_run(five_players, 2)
    five_players.record_government(3, 4, "RRB", "RB", "R", power=PolicyPeek("BBB"))
    five_players.record_government(4, 5, "RRR", "RR", "R", power=Execution(1))
    windows = build_draw_windows(five_players)

    assert find_realization(windows, frozenset()) is None
    # three liberals would have forced a liberal enactment
    assert find_realization(windows, frozenset({4, 5})) is None
    realization = find_realization(windows, frozenset({3}))
    assert realization is not None
    assert realization[-1] == 0


def test_literal_bounds_track_remaining_liberals(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "RB", "B")
    seven_players.record_government(2, 3, "RRR", "RR", "R")
    bounds, warnings = literal_deck_bounds(seven_players)
    assert warnings == []
    assert [(b.low, b.high) for b in bounds] == [(5, 5), (5, 5)]


def test_literal_bounds_warn_and_relax(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRR", "RR", "B")
    seven_players.record_government(3, 4, "RRB", "RB", "R")
    bounds, warnings = literal_deck_bounds(seven_players)
    assert len(warnings) == 1
    assert warnings[0].round == 1
    assert warnings[0].seats == (1, 2)
    assert (bounds[0].low, bounds[0].high) == (3, 5)
    assert (bounds[1].low, bounds[1].high) == (2, 4)


def test_extract_constraints_bundles_everything(seven_players: Session) -> None:
    seven_players.record_government(1, 2, "RRB", "BB", "B")
    extracted = extract_constraints(seven_players)
    assert extracted.conflicts == (Conflict(1, 1, 2),)
    assert len(extracted.windows) == 1
    assert len(extracted.bounds) == 1
    assert extracted.warnings
    assert extracted.conflicts[0].seats == (1, 2)
