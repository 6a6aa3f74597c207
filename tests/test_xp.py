"""
Tests for XP rewards, penalties, level progress and rankings.
"""

import pytest

from utils.xp import (
    experience_for,
    group_rankings,
    level_for_xp,
    level_progress,
    penalized_xp,
    player_position,
    win_rate,
    winner_from_scores,
    xp_to_next_level,
)


class TestExperienceFor:
    def test_defaults_per_mode(self):
        assert experience_for("competitive", True) == 15
        assert experience_for("competitive", False) == 10
        assert experience_for("tournament", True) == 15
        assert experience_for("friendly", True) == 5
        assert experience_for("friendly", False) == 5

    def test_rules_row_overrides_defaults(self):
        rules = {"win_points": 30, "lose_points": 12, "friendly_points": 8}
        assert experience_for("tournament", True, rules) == 30
        assert experience_for("tournament", False, rules) == 12
        assert experience_for("friendly", False, rules) == 8

    def test_missing_rule_values_fall_back(self):
        assert experience_for("competitive", True, {"win_points": None}) == 15


class TestWinnerFromScores:
    def test_higher_score_wins(self):
        assert winner_from_scores("a", "b", 21, 15) == "a"
        assert winner_from_scores("a", "b", 18, 21) == "b"

    def test_draw_or_missing_score_has_no_winner(self):
        assert winner_from_scores("a", "b", 21, 21) is None
        assert winner_from_scores("a", "b", None, 21) is None


class TestPenalizedXp:
    @pytest.mark.parametrize("xp,expected", [
        (1000, 970),
        (100, 97),
        (20, 20),   # floor(0.6) == 0
        (0, 0),
        (None, 0),
    ])
    def test_three_percent_rounded_down(self, xp, expected):
        assert penalized_xp(xp) == expected


class TestLevels:
    @pytest.mark.parametrize("xp,level", [
        (0, "beginner"),
        (500, "beginner"),
        (501, "intermediate"),
        (1500, "intermediate"),
        (1501, "advanced"),
        (9000, "advanced"),
    ])
    def test_level_for_xp(self, xp, level):
        assert level_for_xp(xp) == level

    def test_progress_within_range(self):
        assert level_progress(0, "beginner") == 0
        assert level_progress(250, "beginner") == 50
        assert level_progress(800, "beginner") == 100
        assert level_progress(1001, "intermediate") == 50

    def test_progress_uses_xp_when_level_unknown(self):
        assert level_progress(250, None) == 50

    def test_xp_to_next_level(self):
        assert xp_to_next_level(400, "beginner") == 101
        assert xp_to_next_level(700, "intermediate") == 801
        assert xp_to_next_level(2000, "advanced") is None

    def test_win_rate(self):
        assert win_rate(3, 4) == 75
        assert win_rate(0, 0) == 0
        assert win_rate(None, 3) == 0


# ============================================================================
# Rankings
# ============================================================================

@pytest.fixture
def profiles():
    """Twelve beginners, two intermediates, one advanced player"""
    rows = [{"id": f"b{i}", "name": f"Beginner {i}", "level": "beginner", "experience_points": i * 10} for i in range(12)]
    rows += [
        {"id": "i1", "name": "Mid One", "level": "intermediate", "experience_points": 700},
        {"id": "i2", "name": "Mid Two", "level": "intermediate", "experience_points": 900},
        {"id": "a1", "name": "Pro", "level": "advanced", "experience_points": 2500},
    ]
    return rows


class TestRankings:
    def test_top_ten_per_level_ordered_by_xp(self, profiles):
        rankings = group_rankings(profiles)
        beginners = rankings["beginner"]
        assert len(beginners) == 10
        assert beginners[0]["id"] == "b11"
        assert [p["position"] for p in beginners] == list(range(1, 11))
        assert [p["id"] for p in rankings["intermediate"]] == ["i2", "i1"]
        assert rankings["advanced"][0]["position"] == 1

    def test_every_level_present_even_when_empty(self):
        rankings = group_rankings([])
        assert rankings == {"beginner": [], "intermediate": [], "advanced": []}

    def test_missing_level_counts_as_beginner(self):
        rankings = group_rankings([{"id": "x", "experience_points": 5}])
        assert rankings["beginner"][0]["id"] == "x"

    def test_player_position_beyond_top_ten(self, profiles):
        assert player_position(profiles, "b0") == 12
        assert player_position(profiles, "i1") == 2
        assert player_position(profiles, "nobody") is None
