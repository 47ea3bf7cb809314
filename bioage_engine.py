#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Biological Age - deterministic factor -> age engine (no ML)
- Loads a versioned YAML scoring model (categories, weights, factor catalog).
- Consumes raw form answers (option strings, numbers, multi-select lists).
- Aggregates factors per category, adds their year impacts to the
  chronological age, and derives a heuristic uncertainty band from the
  per-factor confidences. Category weights feed the overall health index.
"""

import json
import logging
import math
import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from bioage_catalog import (
    DEFAULT_MODEL,
    Contribution,
    Factor,
    FactorCatalog,
    load_config,
    load_model_config,
    parse_int,
)

logger = logging.getLogger(__name__)

DEFAULT_CHRONOLOGICAL_AGE = 30
NO_FACTOR_CONFIDENCE = 0.8


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def round1(x: float) -> float:
    return math.floor(x * 10.0 + 0.5) / 10.0


def percentage_score(raw_score: float, max_score: float) -> float:
    """0..100 display score with 50 as neutral."""
    return max(0.0, min(100.0, raw_score / max_score * 100.0 + 50.0))


@dataclass(frozen=True)
class CategoryScore:
    category: str
    raw_score: float
    max_score: float
    weight: float
    factors: Tuple[Factor, ...]
    percentage_score: float
    impact: float

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CategoryScore":
        return cls(**{**d, "factors": tuple(Factor(**f) for f in d.get("factors", ()))})


@dataclass(frozen=True)
class CalculationResult:
    chronological_age: int
    biological_age: int
    difference: int
    total_adjustment: float
    factors: Tuple[Factor, ...]
    category_scores: Dict[str, CategoryScore]
    confidence_interval: float
    lower_bound: int
    upper_bound: int
    health_index: float = 50.0
    model_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CalculationResult":
        """Rebuild a result from to_dict() output (e.g. a history record)."""
        return cls(**{
            **d,
            "factors": tuple(Factor(**f) for f in d.get("factors", ())),
            "category_scores": {k: CategoryScore.from_dict(v) for k, v in d.get("category_scores", {}).items()},
        })


def confidence_band(factors: Tuple[Factor, ...]) -> float:
    avg = sum(f.confidence for f in factors) / len(factors) if factors else NO_FACTOR_CONFIDENCE
    return (1.0 - avg) * math.sqrt(len(factors)) * 2.0


class BioAgeEngine:
    def __init__(self, cfg: Dict[str, Any]):
        self.cfg = cfg
        self.catalog = FactorCatalog(cfg)
        self.version = self.catalog.version
        self.model_version = self.catalog.model_version
        self.categories = self.catalog.categories

    @classmethod
    def from_model(cls, model: str = DEFAULT_MODEL) -> "BioAgeEngine":
        return cls(load_model_config(model))

    @classmethod
    def from_file(cls, path: str) -> "BioAgeEngine":
        return cls(load_config(path))

    def aggregate(self, contributions: List[Contribution]) -> Dict[str, CategoryScore]:
        raw: Dict[str, float] = {c: 0.0 for c in self.categories}
        grouped: Dict[str, List[Factor]] = {c: [] for c in self.categories}
        for hit in contributions:
            cat = hit.factor.category
            raw[cat] += hit.score
            grouped[cat].append(hit.factor)

        scores: Dict[str, CategoryScore] = {}
        for cat, spec in self.categories.items():
            max_score = float(spec["max_score"])
            scores[cat] = CategoryScore(
                category=cat,
                raw_score=raw[cat],
                max_score=max_score,
                weight=float(spec["weight"]),
                factors=tuple(grouped[cat]),
                percentage_score=percentage_score(raw[cat], max_score),
                impact=sum(f.impact for f in grouped[cat]),
            )
        return scores

    @staticmethod
    def total_adjustment(category_scores: Dict[str, CategoryScore]) -> float:
        """Sum of factor year-impacts; category weights only shape the health index."""
        return round1(sum(cs.impact for cs in category_scores.values()))

    @staticmethod
    def health_index(category_scores: Dict[str, CategoryScore]) -> float:
        return round1(sum(cs.percentage_score * cs.weight for cs in category_scores.values()))

    def compute(self, answers: Optional[Dict[str, Any]]) -> CalculationResult:
        """answers may hold option strings, numbers or lists; missing keys mean no evidence."""
        answers = dict(answers or {})
        chron = parse_int(answers.get("age")) or DEFAULT_CHRONOLOGICAL_AGE

        contributions = self.catalog.evaluate(answers)
        category_scores = self.aggregate(contributions)
        factors = tuple(f for cs in category_scores.values() for f in cs.factors)
        adjustment = self.total_adjustment(category_scores)

        bio = max(1, round_half_up(chron + adjustment))
        ci = confidence_band(factors)
        lower = max(1, round_half_up(bio - ci))
        upper = round_half_up(bio + ci)

        logger.debug("model=%s age=%d factors=%d adjustment=%+.1f -> %d",
                     self.model_version, chron, len(factors), adjustment, bio)
        return CalculationResult(
            chronological_age=chron,
            biological_age=bio,
            difference=bio - chron,
            total_adjustment=adjustment,
            factors=factors,
            category_scores=category_scores,
            confidence_interval=ci,
            lower_bound=lower,
            upper_bound=upper,
            health_index=self.health_index(category_scores),
            model_version=self.model_version,
        )

    def what_if(self, answers: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        proposed = dict(answers)
        proposed.update(changes)
        base = self.compute(answers)
        new = self.compute(proposed)
        return {
            "old_biological_age": base.biological_age,
            "new_biological_age": new.biological_age,
            "improvement": base.biological_age - new.biological_age,
        }


@lru_cache(maxsize=None)
def get_engine(model: Optional[str] = None) -> BioAgeEngine:
    """Shared engine per model version; tables are read-only after load."""
    return BioAgeEngine.from_model(model or os.environ.get("BIOAGE_MODEL", DEFAULT_MODEL))


def compute_biological_age(answers: Optional[Dict[str, Any]], model: Optional[str] = None,
                           engine: Optional[BioAgeEngine] = None) -> CalculationResult:
    return (engine or get_engine(model)).compute(answers)


def main(argv: Optional[List[str]] = None) -> int:
    import argparse

    from bioage_recommendations import generate_recommendations
    from bioage_trajectory import project_trajectory

    parser = argparse.ArgumentParser(description="Estimate biological age deterministically.")
    parser.add_argument("-n", "--answers", required=True, help="JSON mapping question key -> answer")
    parser.add_argument("-m", "--model", default=None, help="model version (classic, enhanced)")
    parser.add_argument("-c", "--config", help="path to a custom scoring model (YAML/JSON)")
    parser.add_argument("-i", "--interventions", help="JSON mapping question key -> hypothetical answer")
    parser.add_argument("-r", "--recommendations", action="store_true", help="include recommendations")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    eng = BioAgeEngine.from_file(args.config) if args.config else get_engine(args.model)
    answers = json.loads(Path(args.answers).read_text(encoding="utf-8"))
    res = eng.compute(answers)

    out: Dict[str, Any] = {
        "algo_version": eng.version,
        "chronological_age": res.chronological_age,
        "biological_age": res.biological_age,
        "difference": res.difference,
        "range": [res.lower_bound, res.upper_bound],
        "total_adjustment": res.total_adjustment,
        "category_scores": {k: round(v.percentage_score, 1) for k, v in res.category_scores.items()},
        "factors": [{"name": f.name, "impact": f.impact} for f in res.factors],
    }
    if args.interventions:
        changes = json.loads(Path(args.interventions).read_text(encoding="utf-8"))
        traj = project_trajectory(answers, list(changes.items()), engine=eng)
        out["trajectory"] = {
            name: [p.biological_age for p in points] for name, points in traj.trajectories.items()
        }
    if args.recommendations:
        out["recommendations"] = [
            {"category": r.category, "priority": r.priority, "text": r.text}
            for r in generate_recommendations(answers, res)
        ]
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
