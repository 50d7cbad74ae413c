import logging
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm.attributes import flag_modified

from pickup.exceptions import MatchNotFound, MatchNotReversible, PlayerNotFound
from pickup.services import (
    ValidationError,
    add_player,
    apply_match,
    get_active_season,
    get_match,
    get_player,
    list_matches,
    list_seasons,
    preview_match,
    remove_player,
    reverse_match,
    start_new_season,
)


async def _roster(session, *names, group="g1", sport="football", rating=1500):
    players = {}
    for name in names:
        players[name] = await add_player(session, group, sport, name, rating)
    return players


def _state(player):
    return (
        player.rating,
        player.matches_played,
        player.wins,
        player.draws,
        player.losses,
        player.goals_scored,
        player.goals_conceded,
        player.last_rating_change,
    )


def test_apply_match_updates_players_and_records_snapshots(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B", "C", "D")
        match = await apply_match(
            session, "g1", "football", [p["A"].id, p["B"].id], [p["C"].id, p["D"].id], 2, 0
        )
        season = await get_active_season(session, "g1", "football")
        return p, match, season

    p, match, season = run_db(scenario)

    assert _state(p["A"]) == (1545, 1, 1, 0, 0, 2, 0, 45)
    assert _state(p["C"]) == (1455, 1, 0, 0, 1, 0, 2, -45)
    assert match.season_number == 1
    assert match.sequence == 1
    assert season.total_matches == 1

    home = match.home_team[0]
    assert home["ratingBefore"] == 1500
    assert home["ratingAfter"] == 1545
    assert home["ratingChange"] == 45
    assert home["result"] == "win"
    assert match.away_team[0]["result"] == "loss"
    assert match.details["TV"] == pytest.approx(90.72)
    assert match.details["resetLastChanges"] == {}


def test_basketball_accepts_triple_digit_scores(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B", sport="basketball")
        match = await apply_match(
            session, "g1", "basketball", [p["A"].id], [p["B"].id], 102, 98
        )
        return p, match

    p, match = run_db(scenario)
    assert (match.home_score, match.away_score) == (102, 98)
    assert match.details["GV"] == pytest.approx(5.4)
    assert p["A"].rating == 1518
    assert p["B"].rating == 1482
    assert p["A"].goals_scored == 102


def test_draw_counts_as_draw_for_everyone(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 0, 0)
        return p

    p = run_db(scenario)
    assert p["A"].draws == 1 and p["B"].draws == 1
    assert p["A"].wins == p["B"].losses == 0


def test_uninvolved_players_lose_their_last_change(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B", "C", "D")
        first = await apply_match(
            session, "g1", "football", [p["A"].id, p["B"].id], [p["C"].id, p["D"].id], 2, 0
        )
        second = await apply_match(session, "g1", "football", [p["A"].id], [p["C"].id], 1, 1)
        return p, first, second

    p, first, second = run_db(scenario)

    assert p["B"].last_rating_change == 0
    assert p["D"].last_rating_change == 0
    assert p["B"].rating == 1545
    assert second.details["resetLastChanges"] == {p["B"].id: 45, p["D"].id: -45}
    # 1545 vs 1455 drawing: the stronger home side pays out.
    assert p["A"].rating == 1507
    assert p["C"].rating == 1493
    assert second.sequence == first.sequence + 1


def test_reverse_restores_exact_prior_state(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B", "C", "D")
        await apply_match(
            session, "g1", "football", [p["A"].id, p["B"].id], [p["C"].id, p["D"].id], 2, 0
        )
        before = {name: _state(player) for name, player in p.items()}

        second = await apply_match(session, "g1", "football", [p["A"].id], [p["C"].id], 1, 1)
        await reverse_match(session, second.id)
        after_reverse = {name: _state(player) for name, player in p.items()}

        with pytest.raises(MatchNotFound):
            await get_match(session, second.id)
        season = await get_active_season(session, "g1", "football")
        return before, after_reverse, season

    before, after_reverse, season = run_db(scenario)
    assert after_reverse == before
    assert season.total_matches == 1


def test_reversing_every_match_returns_to_initial_ratings(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B", "C")
        m1 = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 3, 1)
        m2 = await apply_match(session, "g1", "football", [p["B"].id], [p["C"].id], 0, 2)
        await reverse_match(session, m2.id)
        await reverse_match(session, m1.id)
        return p

    for player in run_db(scenario).values():
        assert _state(player) == (1500, 0, 0, 0, 0, 0, 0, 0)


def test_only_latest_match_can_be_reversed(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        m1 = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 1, 0)
        await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 0, 1)
        with pytest.raises(MatchNotReversible) as exc:
            await reverse_match(session, m1.id)
        return exc.value

    err = run_db(scenario)
    assert err.status_code == 409
    assert err.code == "match_not_reversible"


def test_match_in_closed_season_cannot_be_reversed(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        m1 = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 1, 0)
        await start_new_season(session, "g1", "football")
        with pytest.raises(MatchNotReversible):
            await reverse_match(session, m1.id)

    run_db(scenario)


def test_reverse_unknown_match(run_db):
    async def scenario(session):
        with pytest.raises(MatchNotFound):
            await reverse_match(session, "nope")

    run_db(scenario)


def test_reverse_falls_back_to_rating_after_minus_change(run_db, caplog):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        match = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 2, 1)
        match.home_team = [
            {k: v for k, v in member.items() if k != "ratingBefore"}
            for member in match.home_team
        ]
        match.away_team = [
            {k: v for k, v in member.items() if k not in ("ratingBefore", "ratingAfter")}
            for member in match.away_team
        ]
        flag_modified(match, "home_team")
        flag_modified(match, "away_team")
        await session.commit()

        with caplog.at_level(logging.WARNING, logger="pickup.services.ledger"):
            await reverse_match(session, match.id)
        return p

    p = run_db(scenario)
    assert p["A"].rating == 1500
    assert p["B"].rating == 1500
    assert "lacks ratingBefore; using ratingAfter - ratingChange" in caplog.text
    assert "using current rating - ratingChange" in caplog.text


def test_reverse_skips_players_that_no_longer_exist(run_db, caplog):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        match = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 2, 1)
        match.away_team = [dict(member, playerId="ghost") for member in match.away_team]
        flag_modified(match, "away_team")
        await session.commit()

        with caplog.at_level(logging.WARNING, logger="pickup.services.ledger"):
            await reverse_match(session, match.id)
        return p

    p = run_db(scenario)
    assert p["A"].rating == 1500
    assert "Player ghost from match" in caplog.text


def test_removed_player_is_still_restored(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        match = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 2, 1)
        await remove_player(session, p["B"].id)
        await reverse_match(session, match.id)
        return p

    p = run_db(scenario)
    assert p["B"].rating == 1500
    assert p["B"].deleted_at is not None


def test_unknown_player_rejects_match_and_changes_nothing(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        a_id = p["A"].id
        with pytest.raises(PlayerNotFound):
            await apply_match(session, "g1", "football", [a_id], ["ghost"], 1, 0)
        # The failed apply rolled back and expired everything; reload.
        a = await get_player(session, a_id)
        return a.rating, await list_matches(session, "g1", "football")

    rating, matches = run_db(scenario)
    assert matches == []
    assert rating == 1500


def test_failed_apply_on_new_group_opens_no_season(run_db):
    async def scenario(session):
        with pytest.raises(PlayerNotFound):
            await apply_match(session, "empty", "football", ["x"], ["y"], 1, 0)
        return await list_seasons(session, "empty", "football")

    assert run_db(scenario) == []


def test_players_from_another_group_are_unknown(run_db):
    async def scenario(session):
        a = await add_player(session, "g1", "football", "A")
        b = await add_player(session, "g2", "football", "B")
        with pytest.raises(PlayerNotFound):
            await apply_match(session, "g1", "football", [a.id], [b.id], 1, 0)

    run_db(scenario)


@pytest.mark.parametrize(
    "home, away, home_score, away_score",
    [
        (["A"], ["A"], 1, 0),
        ([], ["B"], 1, 0),
        (["A"], ["B"], -1, 0),
        (["A"], ["B"], 1, 1000),
    ],
)
def test_invalid_results_are_rejected(run_db, home, away, home_score, away_score):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        with pytest.raises(ValidationError):
            await apply_match(
                session,
                "g1",
                "football",
                [p[n].id for n in home],
                [p[n].id for n in away],
                home_score,
                away_score,
            )

    run_db(scenario)


def test_preview_does_not_persist(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B", "C", "D")
        breakdown = await preview_match(
            session, "g1", "football", [p["A"].id, p["B"].id], [p["C"].id, p["D"].id], 2, 0
        )
        return p, breakdown, await list_matches(session, "g1", "football")

    p, breakdown, matches = run_db(scenario)
    assert breakdown.deltas[p["A"].id] == 45
    assert p["A"].rating == 1500
    assert matches == []


def test_list_matches_newest_first_and_by_season(run_db):
    async def scenario(session):
        p = await _roster(session, "A", "B")
        m1 = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 1, 0)
        m2 = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 0, 1)
        await start_new_season(session, "g1", "football")
        m3 = await apply_match(session, "g1", "football", [p["A"].id], [p["B"].id], 2, 2)
        return (
            [m.id for m in await list_matches(session, "g1", "football", 1)],
            [m.id for m in await list_matches(session, "g1", "football")],
            m1,
            m2,
            m3,
        )

    season_one, current, m1, m2, m3 = run_db(scenario)
    assert season_one == [m2.id, m1.id]
    assert current == [m3.id]
    assert m3.season_number == 2


def test_played_at_is_stored_as_naive_utc(run_db):
    played = datetime(2024, 5, 1, 18, 30, tzinfo=timezone(timedelta(hours=2)))

    async def scenario(session):
        p = await _roster(session, "A", "B")
        return await apply_match(
            session, "g1", "football", [p["A"].id], [p["B"].id], 1, 0, played_at=played
        )

    match = run_db(scenario)
    assert match.played_at == datetime(2024, 5, 1, 16, 30)
