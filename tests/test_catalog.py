"""
Factor catalog: table loading, validation and per-item evaluation.
"""

import copy

import pytest

from bioage_catalog import (
    FactorCatalog,
    calculate_bmi,
    iter_entries,
    load_model_config,
    model_config_path,
    parse_int,
)


class TestParseInt:
    @pytest.mark.parametrize("raw,expected", [
        ("30", 30),
        ("30.7", 30),
        ("72kg", 72),
        (" 45", 45),
        (45, 45),
        (45.9, 45),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
    ])
    def test_leading_integer(self, raw, expected):
        assert parse_int(raw) == expected


class TestBmi:
    def test_metric_bmi(self):
        assert calculate_bmi(170, 70) == pytest.approx(24.22, abs=0.01)

    def test_missing_or_zero(self):
        assert calculate_bmi(None, 70) is None
        assert calculate_bmi(170, 0) is None

    @pytest.mark.parametrize("height,weight,name", [
        ("170", "50", "BMI (Underweight)"),
        ("170", "70", "BMI (Normal)"),
        ("170", "80", "BMI (Overweight)"),
        ("170", "95", "BMI (Obese)"),
        ("170cm", "70kg", "BMI (Normal)"),
    ])
    def test_bands(self, classic, height, weight, name):
        hit = classic.catalog.evaluate_item("bmi", {"height": height, "weight": weight})
        assert hit.factor.name == name
        assert hit.factor.category == "basic"

    def test_unparsable_weight_gives_nothing(self, classic):
        assert classic.catalog.evaluate_item("bmi", {"height": "170", "weight": "abc"}) is None
        assert classic.catalog.evaluate_item("bmi", {"height": "170"}) is None


class TestChoiceItems:
    def test_smoker_entry(self, classic):
        hit = classic.catalog.evaluate_item("smoker", {"smoker": "yes"})
        assert hit.factor.name == "Current Smoker"
        assert hit.factor.impact == 10
        assert hit.score == -5
        assert hit.factor.key == "smoker"

    def test_neutral_and_unknown_values(self, classic):
        assert classic.catalog.evaluate_item("smoker", {"smoker": "no"}) is None
        assert classic.catalog.evaluate_item("exercise", {"exercise": "sometimes"}) is None
        assert classic.catalog.evaluate_item("exercise", {"exercise": ["daily"]}) is None

    def test_classic_uses_default_confidence(self, classic):
        hit = classic.catalog.evaluate_item("exercise", {"exercise": "daily"})
        assert hit.factor.confidence == 0.8

    def test_enhanced_confidence(self, enhanced):
        assert enhanced.catalog.evaluate_item("smoker", {"smoker": "yes"}).factor.confidence == 0.95
        assert enhanced.catalog.evaluate_item("exercise", {"exercise": "daily"}).factor.confidence == 0.9


class TestGating:
    def test_intensity_needs_exercise(self, classic):
        assert classic.catalog.evaluate_item("exercise-intensity", {"exercise-intensity": "high"}) is None
        assert classic.catalog.evaluate_item(
            "exercise-intensity", {"exercise": "none", "exercise-intensity": "high"}) is None

    def test_intensity_with_exercise(self, classic):
        hit = classic.catalog.evaluate_item(
            "exercise-intensity", {"exercise": "regular", "exercise-intensity": "varied"})
        assert hit.factor.name == "Varied Exercise Intensity"


class TestMultiSelect:
    def test_count_rule(self, classic):
        hit = classic.catalog.evaluate_item("conditions", {"conditions": ["diabetes", "hypertension"]})
        assert hit.factor.impact == 3.0
        assert hit.score == -2
        assert hit.factor.description == "Having 2 chronic conditions increases biological age"

    def test_caps(self, classic):
        hit = classic.catalog.evaluate_item("conditions", {"conditions": ["a", "b", "c", "d", "e"]})
        assert hit.factor.impact == 6.0
        assert hit.score == -3

    def test_enhanced_ignores_none(self, enhanced):
        assert enhanced.catalog.evaluate_item("conditions", {"conditions": ["none"]}) is None
        hit = enhanced.catalog.evaluate_item("conditions", {"conditions": ["none", "diabetes"]})
        assert hit.factor.impact == 1.5

    def test_classic_counts_every_selection(self, classic):
        hit = classic.catalog.evaluate_item("conditions", {"conditions": ["none", "diabetes"]})
        assert hit.factor.impact == 3.0
        assert hit.score == -2

    def test_unhashable_selections(self, engine):
        hit = engine.catalog.evaluate_item("conditions", {"conditions": [["diabetes"], {"x": 1}]})
        assert hit.factor.impact == 3.0

    def test_scalar_answer_ignored(self, classic):
        assert classic.catalog.evaluate_item("conditions", {"conditions": "diabetes"}) is None


class TestModels:
    def test_category_sets(self, classic, enhanced):
        assert set(classic.categories) == {"basic", "diet", "activity", "lifestyle", "environment", "medical"}
        assert set(enhanced.categories) == set(classic.categories) | {"mentalHealth", "socialConnection"}

    def test_weights_sum_to_one(self, engine):
        assert sum(c["weight"] for c in engine.categories.values()) == pytest.approx(1.0)

    def test_enhanced_moves_stress(self, classic, enhanced):
        answers = {"stress": "high"}
        assert classic.catalog.evaluate_item("stress", answers).factor.category == "lifestyle"
        assert enhanced.catalog.evaluate_item("stress", answers).factor.category == "mentalHealth"

    def test_unknown_model(self):
        with pytest.raises(ValueError):
            model_config_path("bogus")

    def test_iter_entries_covers_items(self, classic):
        rows = list(iter_entries(classic.catalog))
        assert {r["item"] for r in rows} == set(classic.catalog.item_ids)
        assert all({"score", "impact", "name", "confidence"} <= set(r) for r in rows)


class TestValidation:
    @pytest.fixture
    def cfg(self):
        return copy.deepcopy(load_model_config("classic"))

    def test_weights_must_sum(self, cfg):
        cfg["categories"]["basic"]["weight"] = 0.5
        with pytest.raises(ValueError, match="sum to 1.0"):
            FactorCatalog(cfg)

    def test_max_score_positive(self, cfg):
        cfg["categories"]["diet"]["max_score"] = 0
        with pytest.raises(ValueError, match="max_score"):
            FactorCatalog(cfg)

    def test_unknown_category(self, cfg):
        cfg["items"][1]["category"] = "mystery"
        with pytest.raises(ValueError, match="unknown category"):
            FactorCatalog(cfg)

    def test_confidence_range(self, cfg):
        cfg["items"][1]["confidence"] = 1.5
        with pytest.raises(ValueError, match="confidence"):
            FactorCatalog(cfg)

    def test_missing_entry_field(self, cfg):
        del cfg["items"][1]["options"]["female"]["impact"]
        with pytest.raises(ValueError, match="missing impact"):
            FactorCatalog(cfg)

    def test_bad_bands(self, cfg):
        cfg["items"][0]["bands"] = cfg["items"][0]["bands"][:1]
        with pytest.raises(ValueError, match="bands"):
            FactorCatalog(cfg)
