"""
Result ingestion: history is always appended, statistics only for non-local opponents.
"""

import pytest

from gamehub.api.models import GameHistory, GameStatistic
from gamehub.core import stats


def _record(client, user, game_id, **fields):
    payload = {"mode": "offline", "result": "won", "score": 0}
    payload.update(fields)
    return client.post(f"/games/{game_id}/record-result", json=payload, headers=user.headers)


def _stat_row(client, user, game_id, mode="offline"):
    rows = client.get(f"/statistics/game/{game_id}", headers=user.headers).json()["statistics"]
    return next((r for r in rows if r["mode"] == mode), None)


def test_local_matches_are_logged_but_not_aggregated(client, register, make_game, session_scope):
    user = register()
    game_id = make_game()
    for _ in range(3):
        resp = _record(client, user, game_id, opponent_type="local", score=50)
        assert resp.status_code == 201
        assert resp.json()["game_history"]["counts_for_stats"] is False

    assert _stat_row(client, user, game_id) is None
    with session_scope() as s:
        assert s.query(GameHistory).filter(GameHistory.user_id == user.id).count() == 3
        assert s.query(GameStatistic).count() == 0


def test_local_matches_leave_existing_statistics_untouched(client, register, make_game):
    user = register()
    game_id = make_game()
    _record(client, user, game_id, result="won", score=5)
    for _ in range(4):
        _record(client, user, game_id, opponent_type="local", result="lost", score=500)
    row = _stat_row(client, user, game_id)
    assert row["games_played"] == 1
    assert row["games_lost"] == 0
    assert row["high_score"] == 5


@pytest.mark.parametrize("scores", [[10, 3, 25, 7], [3, 7, 25, 10], [25, 10, 7, 3]])
def test_high_score_is_running_maximum(client, register, make_game, scores):
    user = register()
    game_id = make_game()
    for score in scores:
        assert _record(client, user, game_id, score=score).status_code == 201
    row = _stat_row(client, user, game_id)
    assert row["high_score"] == 25
    assert row["games_played"] == 4


def test_result_counters(client, register, make_game):
    user = register()
    game_id = make_game()
    for result in ["won", "won", "lost", "draw", "abandoned"]:
        _record(client, user, game_id, result=result, opponent_type="ai")
    row = _stat_row(client, user, game_id)
    assert row["games_played"] == 5
    assert (row["games_won"], row["games_lost"], row["games_draw"]) == (2, 1, 1)


def test_modes_have_separate_rows(client, register, make_game):
    user, rival = register(), register()
    game_id = make_game()
    _record(client, user, game_id, mode="online", opponent_type="human", opponent_id=rival.id, score=9)
    _record(client, user, game_id, mode="offline", score=4)

    online = client.get("/statistics/online", headers=user.headers).json()
    offline = client.get("/statistics/offline", headers=user.headers).json()
    everything = client.get("/statistics", headers=user.headers).json()
    assert [(r["mode"], r["high_score"]) for r in online] == [("online", 9)]
    assert [(r["mode"], r["high_score"]) for r in offline] == [("offline", 4)]
    assert len(everything) == 2
    assert everything[0]["game"]["id"] == game_id
    # The rival's own statistics are not touched
    assert client.get("/statistics", headers=rival.headers).json() == []


def test_opponent_type_defaults_to_ai(client, register, make_game):
    user = register()
    game_id = make_game()
    body = _record(client, user, game_id).json()["game_history"]
    assert body["opponent_type"] == "ai"
    assert body["counts_for_stats"] is True


def test_record_result_validation(client, register, make_game):
    user = register()
    game_id = make_game()
    assert _record(client, user, 9999).status_code == 404
    assert _record(client, user, game_id, result="surrendered").status_code == 422
    assert _record(client, user, game_id, mode="both").status_code == 422
    assert _record(client, user, game_id, score=-1).status_code == 422
    assert _record(client, user, game_id, opponent_type="robot").status_code == 422
    resp = _record(client, user, game_id, opponent_id=9999)
    assert resp.status_code == 422
    assert "opponent_id" in resp.json()["errors"]
    assert client.get("/game-history", headers=user.headers).json() == []


def test_statistics_for_unknown_game(client, register):
    user = register()
    assert client.get("/statistics/game/9999", headers=user.headers).status_code == 404


def test_failed_fold_rolls_back_history(register, make_game, session_scope, monkeypatch):
    user = register()
    game_id = make_game()

    def broken_fold(*args, **kwargs):
        raise RuntimeError("statistics store unavailable")

    monkeypatch.setattr(stats, "fold_result", broken_fold)
    with session_scope() as s:
        with pytest.raises(RuntimeError):
            stats.record_result(s, user.id, game_id, mode="offline", result="won", score=3)
    with session_scope() as s:
        assert s.query(GameHistory).count() == 0
        assert s.query(GameStatistic).count() == 0


def test_fold_updates_row_created_elsewhere(register, make_game, session_scope):
    user = register()
    game_id = make_game()
    with session_scope() as s:
        s.add(GameStatistic(user_id=user.id, game_id=game_id, mode="online", games_played=2, games_won=2, high_score=40))
        s.commit()
    with session_scope() as s:
        stats.fold_result(s, user.id, game_id, "online", "lost", 12)
        s.commit()
    with session_scope() as s:
        row = s.query(GameStatistic).one()
        assert (row.games_played, row.games_won, row.games_lost, row.high_score) == (3, 2, 1, 40)


def test_fold_onto_row_created_concurrently(client, register, make_game, session_scope, monkeypatch):
    user = register()
    game_id = make_game()
    with session_scope() as s:
        s.add(GameStatistic(user_id=user.id, game_id=game_id, mode="offline", games_played=1, games_won=1, high_score=9))
        s.commit()

    # The existence check misses, as if another submission inserted the row just after it
    monkeypatch.setattr(stats, "find_statistic", lambda db, user_id, game_id, mode: None)
    resp = _record(client, user, game_id, result="lost", score=4)
    assert resp.status_code == 201

    with session_scope() as s:
        row = s.query(GameStatistic).one()
        assert (row.games_played, row.games_won, row.games_lost, row.high_score) == (2, 1, 1, 9)
        assert s.query(GameHistory).count() == 1


def test_counts_for_stats_rule():
    assert stats.counts_for_stats("human")
    assert stats.counts_for_stats("ai")
    assert not stats.counts_for_stats("local")
