import pytest

from pickup.services.rating import (
    Team,
    compute_breakdown,
    compute_deltas,
    round_half_up,
)
from pickup.services.validation import ValidationError


def _team(*members):
    return Team(members=tuple(members))


def test_two_a_side_clean_sheet_between_equal_teams():
    home = _team(("a", 1500), ("b", 1500))
    away = _team(("c", 1500), ("d", 1500))

    breakdown = compute_breakdown(home, away, 2, 0)

    assert breakdown.rd == 0
    assert breakdown.es == 0
    assert breakdown.goal_diff == 2
    assert breakdown.goal_ratio == 0
    assert breakdown.rgd == pytest.approx(3.6)
    assert breakdown.gv == pytest.approx(12.6)
    assert breakdown.tv == pytest.approx(90.72)
    assert breakdown.deltas == {"a": 45, "b": 45, "c": -45, "d": -45}


def test_deltas_split_by_share_of_team_rating():
    home = _team(("a", 1800), ("b", 1200))
    away = _team(("c", 1500), ("d", 1500))

    deltas = compute_deltas(home, away, 3, 1)

    assert deltas["a"] > deltas["b"] > 0
    assert deltas["c"] == deltas["d"] < 0


def test_identical_inputs_produce_identical_deltas():
    home = _team(("a", 1610), ("b", 1390))
    away = _team(("c", 1520), ("d", 1475))

    first = compute_deltas(home, away, 4, 3)
    second = compute_deltas(home, away, 4, 3)

    assert first == second


def test_goalless_draw_is_scored_as_one_all():
    home = _team(("a", 1600))
    away = _team(("b", 1450))

    goalless = compute_breakdown(home, away, 0, 0)
    one_all = compute_breakdown(home, away, 1, 1)

    assert goalless.adjusted_home_score == 1
    assert goalless.adjusted_away_score == 1
    assert goalless.deltas == one_all.deltas
    assert goalless.home_score == 0


def test_draw_treats_home_as_reference_winner():
    home = _team(("a", 1600), ("b", 1600))
    away = _team(("c", 1400), ("d", 1400))

    breakdown = compute_breakdown(home, away, 1, 1)

    assert breakdown.home_is_reference_winner is True
    assert breakdown.rd == 400
    assert breakdown.es == pytest.approx(6)
    assert breakdown.rgd == 0
    assert breakdown.tv == pytest.approx(-151.2)
    # A stronger side that only draws gives rating away.
    assert breakdown.deltas == {"a": -76, "b": -76, "c": 76, "d": 76}


def test_draw_between_equal_teams_changes_nothing():
    home = _team(("a", 1500), ("b", 1500))
    away = _team(("c", 1500), ("d", 1500))

    assert set(compute_deltas(home, away, 2, 2).values()) == {0}


def test_away_win_makes_away_the_reference_winner():
    home = _team(("a", 1500))
    away = _team(("b", 1500))

    breakdown = compute_breakdown(home, away, 1, 3)

    assert breakdown.home_is_reference_winner is False
    assert breakdown.deltas["b"] > 0
    assert breakdown.deltas["a"] == -breakdown.deltas["b"]


def test_one_on_one_football():
    breakdown = compute_breakdown(_team(("a", 1500)), _team(("b", 1500)), 3, 1)

    assert breakdown.gv == pytest.approx(14)
    assert breakdown.rgd == pytest.approx(2 * (0.8 - 1 / 3 + 1))
    assert breakdown.deltas == {"a": 41, "b": -41}


def test_basketball_compares_average_ratings():
    home = _team(("a", 1500))
    away = _team(("b", 1500))

    breakdown = compute_breakdown(home, away, 50, 40, sport="basketball")

    assert breakdown.sport == "basketball"
    assert breakdown.rgd == pytest.approx(10)
    assert breakdown.gv == pytest.approx(5.4)
    assert breakdown.deltas == {"a": 54, "b": -54}


def test_uneven_team_sizes_compare_team_totals():
    home = _team(("a", 1500), ("b", 1500))
    away = _team(("c", 1000), ("d", 1000), ("e", 1000))

    breakdown = compute_breakdown(home, away, 2, 1)

    assert breakdown.rd == 0
    assert breakdown.gv == pytest.approx(11.9)
    assert breakdown.deltas == {"a": 19, "b": 19, "c": -13, "d": -13, "e": -13}


def test_breakdown_details_use_wire_names():
    details = compute_breakdown(_team(("a", 1500)), _team(("b", 1500)), 0, 0).as_details()

    assert details["adjustedScore"] == {"home": 1, "away": 1}
    assert details["referenceWinner"] == "home"
    assert {"RD", "ES", "RGD", "GV", "TV", "goalDiff", "goalRatio"} <= set(details)


@pytest.mark.parametrize(
    "home, away",
    [
        ((), (("b", 1500),)),
        ((("a", 1500),), ()),
        ((("a", 1500),), (("a", 1500),)),
        ((("a", 0),), (("b", 1500),)),
    ],
)
def test_invalid_teams_are_rejected(home, away):
    with pytest.raises(ValidationError):
        compute_breakdown(_team(*home), _team(*away), 1, 0)


def test_negative_score_is_rejected():
    with pytest.raises(ValidationError):
        compute_breakdown(_team(("a", 1500)), _team(("b", 1500)), -1, 0)


def test_unknown_sport_is_rejected():
    with pytest.raises(ValidationError):
        compute_breakdown(_team(("a", 1500)), _team(("b", 1500)), 1, 0, sport="curling")


def test_assemble_requires_known_ratings():
    with pytest.raises(ValidationError):
        Team.assemble(["a", "ghost"], {"a": 1500})


@pytest.mark.parametrize(
    "value, expected",
    [(45.36, 45), (45.5, 46), (-75.6, -76), (-0.5, 0), (-1.5, -1), (0.0, 0)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
