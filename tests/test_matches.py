"""
Tests for the result handshake (report, confirm, dispute) and no-show penalties.
"""

from datetime import datetime, timedelta, timezone

import pytest

from utils import matches


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def winner(make_player):
    return make_player("Kyaw Zin", level="intermediate", xp=600, total_wins=2, total_matches_played=3)


@pytest.fixture
def loser(make_player):
    return make_player("Thandar", level="intermediate", xp=900, total_losses=1, total_matches_played=2)


@pytest.fixture
def arrived_request(fake_db, winner, loser):
    """Competitive 1v1 request where both players checked in"""
    request = fake_db.seed("partner_requests", [{
        "created_by_user": winner["id"],
        "matched_user": loser["id"],
        "court_id": None,
        "date": "2025-06-02",
        "time": "18:00",
        "mode": "competitive",
        "players_needed": 1,
        "status": "arrived",
    }])[0]
    fake_db.seed("partner_request_participants", [
        {"request_id": request["id"], "user_id": loser["id"], "status": "arrived"},
    ])
    return request


@pytest.fixture
def reported(arrived_request, winner):
    return matches.report_result(arrived_request, winner["id"], 21, 17)


# ============================================================================
# Report
# ============================================================================

class TestReportResult:
    def test_reporter_is_player1_and_pre_confirmed(self, fake_db, reported, arrived_request, winner, loser):
        assert reported["player1"] == winner["id"]
        assert reported["player2"] == loser["id"]
        assert reported["winner"] == winner["id"]
        assert reported["player1_confirmed"] is True
        assert reported["player2_confirmed"] is False
        assert (reported["score_player1"], reported["score_player2"]) == (21, 17)
        assert fake_db.rows("partner_requests", id=arrived_request["id"])[0]["status"] == "completed"
        note = fake_db.rows("notifications", user_id=loser["id"], type="match_confirmation")[0]
        assert note["related_id"] == reported["id"]

    def test_participant_can_report_against_creator(self, arrived_request, winner, loser):
        match = matches.report_result(arrived_request, loser["id"], 15, 21)
        assert match["player2"] == winner["id"]
        assert match["winner"] == winner["id"]

    def test_draw_is_rejected(self, fake_db, arrived_request, winner):
        with pytest.raises(ValueError, match="draw"):
            matches.report_result(arrived_request, winner["id"], 21, 21)
        assert fake_db.rows("matches") == []

    def test_request_must_be_arrived(self, arrived_request, winner):
        with pytest.raises(ValueError, match="arrived"):
            matches.report_result(dict(arrived_request, status="matched"), winner["id"], 21, 10)

    def test_outsider_cannot_report(self, arrived_request, make_player):
        outsider = make_player("Random")
        with pytest.raises(ValueError, match="Only players"):
            matches.report_result(arrived_request, outsider["id"], 21, 10)

    def test_negative_score_rejected(self, arrived_request, winner):
        with pytest.raises(ValueError, match="negative"):
            matches.report_result(arrived_request, winner["id"], 21, -3)


# ============================================================================
# Confirm
# ============================================================================

class TestConfirmResult:
    def test_confirm_applies_stats_once(self, fake_db, reported, winner, loser):
        assert matches.confirm_result(reported, loser["id"]) is True

        assert len(fake_db.rpc_calls) == 1
        name, params = fake_db.rpc_calls[0]
        assert name == "update_match_stats"
        assert params["p_winner"] == winner["id"]
        assert params["p_player1_exp_gain"] == 15
        assert params["p_player2_exp_gain"] == 10
        assert params["p_is_friendly"] is False

        stored = fake_db.rows("matches", id=reported["id"])[0]
        assert stored["player2_confirmed"] is True
        assert stored["experience_awarded"] is True

        profiles = {p["id"]: p for p in fake_db.rows("profiles")}
        assert profiles[winner["id"]]["experience_points"] == 615
        assert profiles[winner["id"]]["total_wins"] == 3
        assert profiles[loser["id"]]["experience_points"] == 910
        assert profiles[loser["id"]]["total_losses"] == 2
        assert fake_db.rows("notifications", user_id=winner["id"], type="match_confirmed")

    def test_second_confirm_with_stale_row_is_a_no_op(self, fake_db, reported, loser):
        # Two tabs showing the same unconfirmed match
        assert matches.confirm_result(dict(reported), loser["id"]) is True
        assert matches.confirm_result(dict(reported), loser["id"]) is False
        assert len(fake_db.rpc_calls) == 1

    def test_already_confirmed_row_short_circuits(self, fake_db, reported, loser):
        assert matches.confirm_result(dict(reported, player2_confirmed=True), loser["id"]) is False
        assert fake_db.rpc_calls == []

    def test_only_opponent_confirms(self, reported, winner):
        with pytest.raises(ValueError, match="Only the opponent"):
            matches.confirm_result(reported, winner["id"])

    def test_experience_rules_row_is_used(self, fake_db, reported, loser):
        fake_db.seed("experience_rules", [{"mode": "competitive", "win_points": 25, "lose_points": 8, "friendly_points": 5}])
        matches.confirm_result(reported, loser["id"])
        params = fake_db.rpc_calls[0][1]
        assert (params["p_player1_exp_gain"], params["p_player2_exp_gain"]) == (25, 8)

    def test_friendly_match_gives_both_players_friendly_points(self, fake_db, arrived_request, winner, loser):
        friendly = dict(arrived_request, mode="friendly")
        match = matches.report_result(friendly, winner["id"], 21, 12)
        matches.confirm_result(match, loser["id"])
        params = fake_db.rpc_calls[0][1]
        assert params["p_is_friendly"] is True
        assert (params["p_player1_exp_gain"], params["p_player2_exp_gain"]) == (5, 5)

    def test_failed_stats_update_can_be_retried(self, fake_db, reported, winner, loser, monkeypatch):
        real_update = matches.db.call_update_match_stats
        failures = [RuntimeError("connection reset")]

        def flaky_update(params):
            if failures:
                raise failures.pop()
            return real_update(params)

        monkeypatch.setattr(matches.db, "call_update_match_stats", flaky_update)

        with pytest.raises(RuntimeError, match="connection reset"):
            matches.confirm_result(dict(reported), loser["id"])
        stored = fake_db.rows("matches", id=reported["id"])[0]
        assert stored["player2_confirmed"] is False
        assert stored["experience_awarded"] is False
        assert fake_db.rpc_calls == []

        assert matches.confirm_result(dict(reported), loser["id"]) is True
        assert len(fake_db.rpc_calls) == 1
        stored = fake_db.rows("matches", id=reported["id"])[0]
        assert stored["player2_confirmed"] is True
        assert stored["experience_awarded"] is True
        profiles = {p["id"]: p for p in fake_db.rows("profiles")}
        assert profiles[winner["id"]]["total_wins"] == 3
        assert profiles[loser["id"]]["total_losses"] == 2

    def test_notification_failure_keeps_stats_applied_once(self, fake_db, reported, loser, monkeypatch):
        def broken_notification(*args, **kwargs):
            raise RuntimeError("notifications unavailable")

        monkeypatch.setattr(matches.db, "insert_notification", broken_notification)

        with pytest.raises(RuntimeError):
            matches.confirm_result(dict(reported), loser["id"])
        stored = fake_db.rows("matches", id=reported["id"])[0]
        assert stored["experience_awarded"] is True
        assert len(fake_db.rpc_calls) == 1
        assert matches.confirm_result(dict(reported), loser["id"]) is False
        assert len(fake_db.rpc_calls) == 1


# ============================================================================
# Dispute
# ============================================================================

class TestDisputeResult:
    def test_dispute_removes_match_and_reopens_reporting(self, fake_db, reported, arrived_request, winner, loser):
        matches.dispute_result(reported, loser["id"])

        assert fake_db.rows("matches") == []
        assert fake_db.rows("partner_requests", id=arrived_request["id"])[0]["status"] == "arrived"
        assert fake_db.rows("notifications", user_id=winner["id"], type="match_disputed")
        assert fake_db.rpc_calls == []

    def test_confirmed_result_cannot_be_disputed(self, reported, loser):
        with pytest.raises(ValueError, match="already been confirmed"):
            matches.dispute_result(dict(reported, player2_confirmed=True), loser["id"])


# ============================================================================
# Penalties
# ============================================================================

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestCancelWithPenalty:
    def test_cancelling_costs_three_percent(self, fake_db, arrived_request, loser):
        result = matches.cancel_with_penalty(dict(arrived_request, status="matched"), loser["id"], now=NOW)

        assert result == {"xp_lost": 27, "penalty_count": 1, "suspended_until": None}
        profile = fake_db.rows("profiles", id=loser["id"])[0]
        assert profile["experience_points"] == 873
        assert profile["penalty_count"] == 1
        assert profile["account_suspension_until"] is None
        log = fake_db.rows("penalty_logs", user_id=loser["id"])[0]
        assert log["exp_deducted_percent"] == 3
        assert log["reason"] == "No-show / Cancellation"
        assert fake_db.rows("partner_requests", id=arrived_request["id"])[0]["status"] == "cancelled"
        assert fake_db.rows("partner_request_participants", user_id=loser["id"])[0]["status"] == "cancelled"
        assert fake_db.rows("notifications", user_id=loser["id"], type="penalty")

    def test_fifth_penalty_suspends_for_thirty_days(self, fake_db, arrived_request, winner):
        fake_db.rows("profiles", id=winner["id"])[0]["penalty_count"] = 4

        result = matches.cancel_with_penalty(arrived_request, winner["id"], now=NOW)

        expected = (NOW + timedelta(days=30)).isoformat()
        assert result["penalty_count"] == 5
        assert result["suspended_until"] == expected
        assert fake_db.rows("profiles", id=winner["id"])[0]["account_suspension_until"] == expected

    def test_open_request_is_not_penalised(self, arrived_request, winner):
        with pytest.raises(ValueError):
            matches.cancel_with_penalty(dict(arrived_request, status="open"), winner["id"], now=NOW)


# ============================================================================
# Read helpers
# ============================================================================

def test_pending_and_history_views():
    rows = [
        {"id": "m1", "player1": "a", "player2": "b", "winner": "a", "score_player1": 21, "score_player2": 15,
         "player1_confirmed": True, "player2_confirmed": False, "mode": "competitive", "created_at": "2025-06-01"},
        {"id": "m2", "player1": "b", "player2": "a", "winner": "b", "score_player1": 21, "score_player2": 19,
         "player1_confirmed": True, "player2_confirmed": True, "mode": "friendly", "created_at": "2025-05-01"},
    ]
    assert [m["id"] for m in matches.pending_confirmations(rows, "b")] == ["m1"]
    assert [m["id"] for m in matches.awaiting_opponent(rows, "a")] == ["m1"]
    assert [m["id"] for m in matches.recent_matches(rows)] == ["m2"]

    history = matches.match_history(rows, "a", {"b": {"name": "Bo"}})
    assert history[0]["result"] == "Pending"
    assert history[1]["result"] == "Lost"
    assert history[1]["score"] == "19-21"
    assert history[1]["opponent"] == "Bo"


def test_upcoming_reminder_within_24_hours():
    now = datetime(2025, 6, 1, 20, 0)
    requests = [
        {"id": "r1", "created_by_user": "a", "status": "matched", "date": "2025-06-02", "time": "18:00"},
        {"id": "r2", "created_by_user": "a", "status": "matched", "date": "2025-06-05", "time": "18:00"},
        {"id": "r3", "created_by_user": "a", "status": "open", "date": "2025-06-01", "time": "21:00"},
    ]
    reminder = matches.upcoming_reminder(requests, [], "a", now=now)
    assert reminder["request"]["id"] == "r1"
    assert reminder["when"] == "tomorrow"
    assert matches.upcoming_reminder(requests, [], "someone-else", now=now) is None


def test_upcoming_reminder_uses_mandalay_date_for_utc_now():
    # 19:00 UTC on 1 June is 01:30 on 2 June in Mandalay
    now = datetime(2025, 6, 1, 19, 0, tzinfo=timezone.utc)
    requests = [
        {"id": "r1", "created_by_user": "a", "status": "matched", "date": "2025-06-02", "time": "10:00"},
        {"id": "r2", "created_by_user": "a", "status": "matched", "date": "2025-06-02", "time": "01:00"},
    ]
    reminder = matches.upcoming_reminder(requests, [], "a", now=now)
    assert reminder["request"]["id"] == "r1"
    assert reminder["when"] == "today"
    assert reminder["starts_at"] == datetime(2025, 6, 2, 10, 0)
