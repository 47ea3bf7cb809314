#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Trajectory projection - ten-year biological age paths
- no_change: current biological age advancing at the baseline yearly rate.
- with_interventions: the same path minus the improvement a set of answer
  overrides would bring, phased in linearly over the first few years.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from bioage_engine import BioAgeEngine, CalculationResult, get_engine, round1

logger = logging.getLogger(__name__)

TIME_HORIZON = 10
BASELINE_YEARLY_INCREASE = 0.9
UNHEALTHY_EXTRA_INCREASE = 0.2
RAMP_YEARS = 3


@dataclass(frozen=True)
class Intervention:
    factor: str
    value: Any


@dataclass(frozen=True)
class TrajectoryPoint:
    year: int
    chronological_age: int
    biological_age: float


@dataclass(frozen=True)
class TrajectoryResult:
    current_calculation: CalculationResult
    trajectories: Dict[str, List[TrajectoryPoint]]
    time_horizon: int
    modified_calculation: Optional[CalculationResult] = None
    improvement: float = 0.0

    @property
    def no_change(self) -> List[TrajectoryPoint]:
        return self.trajectories["no_change"]

    @property
    def with_interventions(self) -> List[TrajectoryPoint]:
        return self.trajectories["with_interventions"]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


InterventionLike = Union[Intervention, Mapping[str, Any], Sequence[Any]]


def normalize_interventions(interventions: Optional[Iterable[InterventionLike]]) -> List[Intervention]:
    """Accept Intervention objects, {"factor"/"factor_key": k, "value": v} mappings or (k, v) pairs."""
    out: List[Intervention] = []
    for iv in interventions or []:
        if isinstance(iv, Intervention):
            out.append(iv)
        elif isinstance(iv, Mapping):
            key = iv.get("factor", iv.get("factor_key", iv.get("factorKey")))
            if key is None:
                raise ValueError(f"Intervention has no factor key: {iv!r}")
            out.append(Intervention(str(key), iv.get("value")))
        else:
            key, value = iv
            out.append(Intervention(str(key), value))
    return out


def apply_interventions(answers: Dict[str, Any], interventions: List[Intervention]) -> Dict[str, Any]:
    modified = dict(answers)
    for iv in interventions:
        modified[iv.factor] = iv.value
    return modified


def baseline_increase(calc: CalculationResult) -> float:
    """Yearly aging rate; an unhealthy baseline ages faster."""
    return BASELINE_YEARLY_INCREASE + (UNHEALTHY_EXTRA_INCREASE if calc.total_adjustment > 0 else 0.0)


def intervention_effect(improvement: float, year: int) -> float:
    return improvement * min(1.0, year / RAMP_YEARS)


def project_trajectory(answers: Optional[Dict[str, Any]],
                       interventions: Optional[Iterable[InterventionLike]] = None,
                       engine: Optional[BioAgeEngine] = None,
                       time_horizon: int = TIME_HORIZON) -> TrajectoryResult:
    eng = engine or get_engine()
    answers = dict(answers or {})
    current = eng.compute(answers)
    rate = baseline_increase(current)
    bio0 = current.biological_age
    chron0 = current.chronological_age
    years = range(time_horizon + 1)

    no_change = [
        TrajectoryPoint(year=y, chronological_age=chron0 + y, biological_age=round1(bio0 + rate * y))
        for y in years
    ]

    planned = normalize_interventions(interventions)
    with_interventions: List[TrajectoryPoint] = []
    modified: Optional[CalculationResult] = None
    improvement = 0.0
    if planned:
        modified = eng.compute(apply_interventions(answers, planned))
        improvement = float(bio0 - modified.biological_age)
        with_interventions = [
            TrajectoryPoint(
                year=y,
                chronological_age=chron0 + y,
                biological_age=round1(bio0 + rate * y - intervention_effect(improvement, y)),
            )
            for y in years
        ]
        logger.debug("%d interventions -> improvement %+.1f years", len(planned), improvement)

    return TrajectoryResult(
        current_calculation=current,
        trajectories={"no_change": no_change, "with_interventions": with_interventions},
        time_horizon=time_horizon,
        modified_calculation=modified,
        improvement=improvement,
    )
