"""Tests for path scoring, stage branching and unlock rules."""

from lifeleveling.db.models import PredefinedPath, UserInterest
from lifeleveling.paths.seed import PREDEFINED_PATHS
from lifeleveling.paths.service import is_stage_unlocked, recommendation_reasons, score_path, stages_for_commitment

STAGES = [{"stage": n, "name": f"Stage {n}", "requirements": {"level": n}} for n in range(1, 5)]


def _path(intent_levels=("casual", "average", "invested", "competitive"), stages=STAGES, synergies=None):
    return PredefinedPath(
        interest_category="Music",
        path_name="Test Path",
        age_range_min=6,
        age_range_max=99,
        intent_levels=list(intent_levels),
        stages=list(stages),
        synergies=synergies or {},
    )


def _interest(level, intent="casual"):
    return UserInterest(category="Music", current_level=level, intent_level=intent)


class TestScoring:
    def test_full_match(self):
        assert score_path(_path(), _interest(1)) == 100

    def test_intent_mismatch(self):
        assert score_path(_path(intent_levels=("competitive",)), _interest(1)) == 70

    def test_one_level_short(self):
        stages = [{"stage": 1, "name": "x", "requirements": {"level": 2}}]
        assert score_path(_path(stages=stages), _interest(1)) == 90

    def test_far_below_first_stage(self):
        stages = [{"stage": 1, "name": "x", "requirements": {"level": 4}}]
        assert score_path(_path(stages=stages), _interest(1)) == 80

    def test_reasons(self):
        reasons = recommendation_reasons(_path(synergies={"Math": 0.2}), _interest(1))
        assert reasons == [
            "Matches your casual commitment level",
            "You're ready to start this path",
            "This path has synergies with other skills",
        ]

    def test_reasons_when_not_ready(self):
        stages = [{"stage": 1, "name": "x", "requirements": {"level": 3}}]
        reasons = recommendation_reasons(_path(stages=stages, intent_levels=()), _interest(1))
        assert reasons == ["You'll be ready after reaching level 3"]


class TestStagesForCommitment:
    def test_casual_gets_three(self):
        assert len(stages_for_commitment(STAGES, "casual")) == 3

    def test_average_gets_four(self):
        assert len(stages_for_commitment(STAGES, "average")) == 4

    def test_invested_and_competitive_get_all(self):
        many = STAGES + [{"stage": 5, "name": "Bonus", "requirements": {"level": 4}}]
        assert len(stages_for_commitment(many, "invested")) == 5
        assert len(stages_for_commitment(many, "competitive")) == 5


class TestUnlock:
    def test_first_stage_needs_only_level(self):
        assert is_stage_unlocked(STAGES[0], 1, 0, 0) is True

    def test_later_stage_needs_progress(self):
        assert is_stage_unlocked(STAGES[1], 2, 0, 1) is False
        assert is_stage_unlocked(STAGES[1], 2, 1, 1) is True

    def test_later_stage_needs_level(self):
        assert is_stage_unlocked(STAGES[2], 2, 4, 2) is False


class TestSeedData:
    def test_every_path_has_four_graded_stages(self):
        assert len(PREDEFINED_PATHS) == 10
        for entry in PREDEFINED_PATHS:
            assert [s["requirements"]["level"] for s in entry["stages"]] == [1, 2, 3, 4]

    def test_team_sports_excludes_casual(self):
        team = next(p for p in PREDEFINED_PATHS if p["path_name"] == "Team Sports Mastery")
        assert "casual" not in team["intent_levels"]
