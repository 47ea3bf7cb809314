#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Recommendation engine - rule table -> ranked advice
- Every rule in config/recommendations.yaml may fire on its own.
- Synthesized focus items name the largest risk and protective factors.
- At most one lifestyle pattern is attached (first match in priority order).
- The list is deduplicated, stable-sorted by priority and truncated to an
  adaptive length.
"""

import logging
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from bioage_catalog import CONFIG_DIR, load_config
from bioage_engine import CalculationResult

logger = logging.getLogger(__name__)

PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}
EVIDENCE_RATINGS = ("strong", "moderate", "emerging", "personalized")
TIMES_TO_EFFECT = ("short-term", "medium-term", "long-term", "varies", "ongoing")
MIN_RECOMMENDATIONS = 5
MAX_RECOMMENDATIONS = 8


@dataclass(frozen=True)
class Recommendation:
    category: str
    text: str
    priority: str
    evidence_rating: str
    time_to_effect: str
    impact: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LifestylePattern:
    pattern: str
    recommendation: str


def _answer_matches(raw: Any, accepted: List[Any]) -> bool:
    if raw is None or raw == "" or (isinstance(raw, (list, tuple)) and not raw):
        return None in accepted
    wanted = {str(v) for v in accepted if v is not None}
    if isinstance(raw, (list, tuple)):
        return any(str(v) in wanted for v in raw)
    return str(raw) in wanted


def matches(condition: Dict[str, Any], answers: Dict[str, Any],
            result: Optional[CalculationResult] = None) -> bool:
    """Evaluate one rule condition; every clause in the mapping must hold."""
    for key, clause in condition.items():
        if key == "all":
            if not all(matches(c, answers, result) for c in clause):
                return False
        elif key == "any":
            if not any(matches(c, answers, result) for c in clause):
                return False
        elif key == "factors":
            names = set(clause)
            if result is None or not any(f.name in names for f in result.factors):
                return False
        elif not _answer_matches(answers.get(key), clause):
            return False
    return True


def _recommendation(spec: Dict[str, Any], text: Optional[str] = None) -> Recommendation:
    return Recommendation(
        category=spec["category"],
        text=text if text is not None else spec["text"],
        priority=spec["priority"],
        evidence_rating=spec["evidence"],
        time_to_effect=spec["time_to_effect"],
        impact=spec.get("impact", ""),
    )


def recommendation_limit(recommendations: List[Recommendation]) -> int:
    high = sum(1 for r in recommendations if r.priority == "high")
    return min(max(MIN_RECOMMENDATIONS, high + 2), MAX_RECOMMENDATIONS)


def prioritize(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Dedupe, stable-sort by priority (generation order breaks ties), truncate."""
    seen = set()
    unique: List[Recommendation] = []
    for rec in recommendations:
        marker = (rec.category, rec.text)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(rec)
    ranked = sorted(unique, key=lambda r: PRIORITY_RANK[r.priority])
    return ranked[:recommendation_limit(ranked)]


class RecommendationEngine:
    def __init__(self, cfg: Dict[str, Any]):
        self.cfg = cfg
        self.rules: List[Dict[str, Any]] = cfg.get("rules", [])
        self.focus: Dict[str, Any] = cfg["focus"]
        self.patterns: List[Dict[str, Any]] = cfg.get("patterns", [])
        self.pattern_spec: Dict[str, Any] = cfg["pattern_recommendation"]
        self.age_strategies: List[Dict[str, Any]] = cfg.get("age_strategies", [])
        self._validate()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RecommendationEngine":
        return cls(load_config(path))

    def _validate(self) -> None:
        specs = list(self.rules) + [self.focus["risks"], self.focus["strengths"]] + list(self.age_strategies)
        for spec in specs:
            self._check_spec(spec, require_text=True)
        self._check_spec(self.pattern_spec, require_text=False)
        for rule in self.rules:
            if not isinstance(rule.get("when"), dict) or not rule["when"]:
                raise ValueError(f"Rule '{rule['text'][:40]}...' needs a non-empty 'when' mapping")
        ids = [p.get("id") for p in self.patterns]
        if None in ids or len(set(ids)) != len(ids):
            raise ValueError("Lifestyle patterns need unique ids")
        for p in self.patterns:
            if not isinstance(p.get("when"), dict) or "text" not in p:
                raise ValueError(f"Pattern {p['id']} needs 'when' and 'text'")
        for s in self.age_strategies:
            if ("below" in s) == ("at_least" in s):
                raise ValueError("Age strategies need exactly one of 'below' / 'at_least'")

    @staticmethod
    def _check_spec(spec: Dict[str, Any], require_text: bool) -> None:
        label = spec.get("category", "?")
        if spec.get("priority") not in PRIORITY_RANK:
            raise ValueError(f"{label}: unknown priority '{spec.get('priority')}'")
        if spec.get("evidence") not in EVIDENCE_RATINGS:
            raise ValueError(f"{label}: unknown evidence rating '{spec.get('evidence')}'")
        if spec.get("time_to_effect") not in TIMES_TO_EFFECT:
            raise ValueError(f"{label}: unknown time to effect '{spec.get('time_to_effect')}'")
        if require_text and not spec.get("text"):
            raise ValueError(f"{label}: recommendation text is missing")

    # --------------------------------------------------------------- stages

    def rule_recommendations(self, answers: Dict[str, Any],
                             result: Optional[CalculationResult] = None) -> List[Recommendation]:
        return [_recommendation(r) for r in self.rules if matches(r["when"], answers, result)]

    def focus_recommendations(self, result: CalculationResult) -> List[Recommendation]:
        by_size = sorted(result.factors, key=lambda f: abs(f.impact), reverse=True)
        risks = [f for f in by_size if f.impact > 0][:int(self.focus.get("top_risks", 3))]
        strengths = [f for f in by_size if f.impact < 0][:int(self.focus.get("top_strengths", 2))]
        out: List[Recommendation] = []
        for factors, spec in ((risks, self.focus["risks"]), (strengths, self.focus["strengths"])):
            if factors:
                names = ", ".join(f.name for f in factors)
                out.append(_recommendation(spec, spec["text"].format(names=names)))
        return out

    def identify_lifestyle_pattern(self, answers: Dict[str, Any]) -> Optional[LifestylePattern]:
        for p in self.patterns:
            if matches(p["when"], answers):
                return LifestylePattern(pattern=p["id"], recommendation=p["text"])
        return None

    def age_strategy(self, chronological_age: int) -> Optional[Recommendation]:
        for s in self.age_strategies:
            if "below" in s and chronological_age < s["below"]:
                return _recommendation(s)
            if "at_least" in s and chronological_age >= s["at_least"]:
                return _recommendation(s)
        return None

    def generate(self, answers: Optional[Dict[str, Any]], result: CalculationResult) -> List[Recommendation]:
        answers = dict(answers or {})
        recs = self.rule_recommendations(answers, result)
        recs.extend(self.focus_recommendations(result))

        pattern = self.identify_lifestyle_pattern(answers)
        if pattern is not None:
            logger.debug("Lifestyle pattern matched: %s", pattern.pattern)
            recs.append(_recommendation(self.pattern_spec, pattern.recommendation))

        strategy = self.age_strategy(result.chronological_age)
        if strategy is not None:
            recs.append(strategy)

        ranked = prioritize(recs)
        logger.debug("%d candidate recommendations, returning %d", len(recs), len(ranked))
        return ranked


@lru_cache(maxsize=None)
def get_recommendation_engine(path: Optional[str] = None) -> RecommendationEngine:
    return RecommendationEngine.from_file(path or CONFIG_DIR / "recommendations.yaml")


def generate_recommendations(answers: Optional[Dict[str, Any]], result: CalculationResult,
                             engine: Optional[RecommendationEngine] = None) -> List[Recommendation]:
    return (engine or get_recommendation_engine()).generate(answers, result)


def identify_lifestyle_pattern(answers: Dict[str, Any],
                               engine: Optional[RecommendationEngine] = None) -> Optional[LifestylePattern]:
    return (engine or get_recommendation_engine()).identify_lifestyle_pattern(answers)
