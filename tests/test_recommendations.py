"""
Recommendation rules, focus items, lifestyle patterns and ranking.
"""

import copy

import pytest

from bioage_catalog import CONFIG_DIR, load_config
from bioage_recommendations import (
    MIN_RECOMMENDATIONS,
    PRIORITY_RANK,
    Recommendation,
    RecommendationEngine,
    generate_recommendations,
    identify_lifestyle_pattern,
    matches,
    prioritize,
    recommendation_limit,
)

HIGH_RISK = {
    "age": "45",
    "smoker": "yes",
    "alcohol": "heavy",
    "sleep": "less",
    "stress": "high",
    "exercise": "none",
    "diet-quality": "poor",
    "processed-food": "high",
    "sugar-intake": "high",
    "daily-movement": "sedentary",
    "social": "isolated",
    "anxiety": "severe",
    "depression": "severe",
}


def rec(priority, text="x", category="Diet"):
    return Recommendation(category=category, text=text, priority=priority,
                          evidence_rating="strong", time_to_effect="short-term")


class TestConditions:
    def test_value_list(self):
        assert matches({"sleep": ["less"]}, {"sleep": "less"})
        assert not matches({"sleep": ["less"]}, {"sleep": "optimal"})

    def test_missing_answer(self):
        assert matches({"mindfulness": ["none", None]}, {})
        assert not matches({"mindfulness": ["none"]}, {})
        assert matches({"mindfulness": ["none", None]}, {"mindfulness": ""})

    def test_list_answer(self):
        assert matches({"conditions": ["diabetes"]}, {"conditions": ["none", "diabetes"]})

    def test_and_or(self):
        cond = {"all": [{"any": [{"sleep": ["less"]}, {"sleep-quality": ["poor"]}]},
                        {"stress": ["high"]}]}
        assert matches(cond, {"sleep-quality": "poor", "stress": "high"})
        assert not matches(cond, {"sleep-quality": "poor", "stress": "low"})

    def test_factors_need_result(self, classic):
        cond = {"factors": ["Current Smoker"]}
        assert not matches(cond, {"smoker": "yes"})
        assert matches(cond, {}, classic.compute({"smoker": "yes"}))


class TestRanking:
    @pytest.mark.parametrize("high,limit", [(0, 5), (3, 5), (4, 6), (6, 8), (10, 8)])
    def test_limit(self, high, limit):
        assert recommendation_limit([rec("high", str(i)) for i in range(high)]) == limit

    def test_dedupe(self):
        assert prioritize([rec("high"), rec("high")]) == [rec("high")]
        assert len(prioritize([rec("high"), rec("high", category="Exercise")])) == 2

    def test_stable_sort(self):
        recs = [rec("low", "a"), rec("high", "b"), rec("medium", "c"), rec("high", "d")]
        assert [r.text for r in prioritize(recs)] == ["b", "d", "c", "a"]


class TestGenerate:
    def test_empty_answers(self, recommender, enhanced):
        recs = recommender.generate({}, enhanced.compute({}))
        assert [r.priority for r in recs] == ["medium", "medium", "medium"]
        assert {r.category for r in recs} == {"Exercise", "Medical", "Mental Health"}

    def test_short_list_is_not_padded(self, recommender, enhanced):
        """Fewer qualifying items than the minimum are returned as-is."""
        result = enhanced.compute({})
        fired = recommender.rule_recommendations({}, result)
        recs = recommender.generate({}, result)
        assert len(fired) == 3
        assert recs == fired
        assert len(recs) < MIN_RECOMMENDATIONS == recommendation_limit(recs)

    def test_high_risk_is_capped(self, recommender, enhanced):
        recs = recommender.generate(HIGH_RISK, enhanced.compute(HIGH_RISK))
        assert len(recs) == 8
        assert all(r.priority == "high" for r in recs)
        assert recs[0].category == "Diet"

    def test_sorted_and_bounded(self, recommender, engine, baseline_answers):
        recs = recommender.generate(baseline_answers, engine.compute(baseline_answers))
        ranks = [PRIORITY_RANK[r.priority] for r in recs]
        assert ranks == sorted(ranks)
        high = sum(1 for r in recs if r.priority == "high")
        assert len(recs) <= min(max(5, high + 2), 8)

    def test_strengths_focus(self, recommender, classic, baseline_answers):
        focus = recommender.focus_recommendations(classic.compute(baseline_answers))
        assert len(focus) == 1
        assert focus[0].category == "Strengths"
        assert "Optimal Sleep, Occasional Exercise." in focus[0].text

    def test_risk_focus(self, recommender, classic, unhealthy_answers):
        focus = recommender.focus_recommendations(classic.compute(unhealthy_answers))
        assert focus[0].category == "Priority Focus Areas"
        assert focus[0].priority == "high"
        assert "Current Smoker, Poor Diet Quality, Insufficient Sleep." in focus[0].text

    def test_pattern_attached(self, enhanced):
        cfg = copy.deepcopy(load_config(CONFIG_DIR / "recommendations.yaml"))
        cfg["rules"] = []
        answers = {"diet-quality": "good", "exercise": "none", "daily-movement": "low"}
        recs = RecommendationEngine(cfg).generate(answers, enhanced.compute(answers))
        assert [r.category for r in recs] == ["Priority Focus Areas", "Strengths", "Personalized Approach"]
        assert recs[2].text.startswith("You appear to prioritize nutrition")

    def test_module_level(self, enhanced, unhealthy_answers):
        recs = generate_recommendations(unhealthy_answers, enhanced.compute(unhealthy_answers))
        assert recs and recs[0].priority == "high"
        assert recs[0].to_dict()["evidence_rating"] == "strong"


class TestPatterns:
    def test_first_match_wins(self):
        answers = {"stress": "high", "exercise": "none", "sleep": "less",
                   "screen-time": "high", "social": "isolated"}
        assert identify_lifestyle_pattern(answers).pattern == "busy-professional"

    def test_socially_isolated(self):
        answers = {"social": "isolated", "stress": "moderate"}
        assert identify_lifestyle_pattern(answers).pattern == "socially-isolated"

    def test_health_diet_sedentary(self):
        answers = {"diet-quality": "good", "exercise": "none", "daily-movement": "low"}
        assert identify_lifestyle_pattern(answers).pattern == "health-diet-sedentary"

    def test_active_but_stressed(self):
        answers = {"exercise": "daily", "stress": "severe"}
        assert identify_lifestyle_pattern(answers).pattern == "active-but-stressed"

    def test_no_pattern(self):
        assert identify_lifestyle_pattern({}) is None


class TestAgeStrategy:
    def test_young(self, recommender):
        assert "prevention" in recommender.age_strategy(25).text

    def test_older(self, recommender):
        assert "muscle mass" in recommender.age_strategy(60).text

    @pytest.mark.parametrize("age", [30, 45, 59])
    def test_middle(self, recommender, age):
        assert recommender.age_strategy(age) is None


class TestConfigValidation:
    @pytest.fixture
    def cfg(self):
        return copy.deepcopy(load_config(CONFIG_DIR / "recommendations.yaml"))

    def test_shipped_table_loads(self, cfg):
        assert len(RecommendationEngine(cfg).rules) > 30

    def test_unknown_priority(self, cfg):
        cfg["rules"][0]["priority"] = "urgent"
        with pytest.raises(ValueError, match="priority"):
            RecommendationEngine(cfg)

    def test_unknown_evidence(self, cfg):
        cfg["rules"][0]["evidence"] = "anecdotal"
        with pytest.raises(ValueError, match="evidence"):
            RecommendationEngine(cfg)

    def test_empty_condition(self, cfg):
        cfg["rules"][0]["when"] = {}
        with pytest.raises(ValueError, match="when"):
            RecommendationEngine(cfg)

    def test_duplicate_pattern_ids(self, cfg):
        cfg["patterns"][1]["id"] = cfg["patterns"][0]["id"]
        with pytest.raises(ValueError, match="unique"):
            RecommendationEngine(cfg)
