#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Factor catalog - declarative answer -> factor tables (no ML)
- One YAML table per model version ("classic", "enhanced"), validated on load.
- Each item maps an answer key to a category and, per recognized value, to a
  (score delta, year impact, name, description, confidence) entry.
- Missing answers and unrecognized values contribute nothing; they are not errors.
"""

import json
import logging
import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(os.environ.get("BIOAGE_CONFIG_DIR", Path(__file__).resolve().parent / "config"))
MODEL_VERSIONS = ("classic", "enhanced")
DEFAULT_MODEL = "enhanced"

INPUT_TYPES = ("choice", "multi_select", "bmi")
_ENTRY_FIELDS = ("score", "impact", "name", "description")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class Factor:
    name: str
    impact: float
    description: str
    confidence: float
    category: str
    key: str = ""


@dataclass(frozen=True)
class Contribution:
    """One catalog hit: the factor it produced and its category score delta."""
    factor: Factor
    score: float


def parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse: "30" -> 30, "30.7" -> 30, "72kg" -> 72, "abc" -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        return int(m.group(1)) if m else None
    return None


def _is_blank(raw: Any) -> bool:
    return raw is None or raw == "" or (isinstance(raw, (list, tuple)) and len(raw) == 0)


def calculate_bmi(height_cm: Optional[int], weight_kg: Optional[int]) -> Optional[float]:
    """BMI from metric height/weight; None when either is missing or non-positive."""
    if not height_cm or not weight_kg or height_cm <= 0 or weight_kg <= 0:
        return None
    height_m = height_cm / 100.0
    return weight_kg / (height_m ** 2)


class FactorCatalog:
    def __init__(self, cfg: Dict[str, Any]):
        self.cfg = cfg
        self.version = cfg.get("algo_version", "BIOAGE-unknown")
        self.model_version = cfg.get("model_version", "custom")
        self.default_confidence = float(cfg.get("default_confidence", 0.8))
        self.categories: Dict[str, Dict[str, float]] = cfg["categories"]
        self.items: List[Dict[str, Any]] = cfg["items"]
        self._by_id = {it["id"]: it for it in self.items}
        self._validate()

    def _validate(self) -> None:
        if not self.categories:
            raise ValueError("Catalog defines no categories")
        for cat, spec in self.categories.items():
            if float(spec.get("max_score", 0)) <= 0:
                raise ValueError(f"Category {cat} needs a positive max_score")
            if float(spec.get("weight", -1)) < 0:
                raise ValueError(f"Category {cat} needs a non-negative weight")
        total_weight = sum(float(spec["weight"]) for spec in self.categories.values())
        if abs(total_weight - 1.0) > 1e-6:
            raise ValueError(f"Category weights must sum to 1.0, got {total_weight:.4f}")
        if not 0.0 < self.default_confidence <= 1.0:
            raise ValueError("default_confidence must be in (0, 1]")
        if len(self._by_id) != len(self.items):
            raise ValueError("Duplicate item ids in catalog")

        for it in self.items:
            iid = it["id"]
            if it.get("category") not in self.categories:
                raise ValueError(f"{iid}: unknown category '{it.get('category')}'")
            kind = it.get("input_type", "choice")
            if kind not in INPUT_TYPES:
                raise ValueError(f"{iid}: unknown input_type '{kind}'")
            self._check_confidence(iid, it.get("confidence"))
            if kind == "choice":
                options = it.get("options")
                if not isinstance(options, dict) or not options:
                    raise ValueError(f"{iid}: choice items need an options map")
                for value, entry in options.items():
                    self._check_entry(f"{iid}={value}", entry)
            elif kind == "bmi":
                bands = it.get("bands")
                if not isinstance(bands, list) or len(bands) < 2:
                    raise ValueError(f"{iid}: bmi items need at least 2 bands")
                limits = [b.get("max") for b in bands]
                if limits[-1] is not None or any(lim is None for lim in limits[:-1]):
                    raise ValueError(f"{iid}: only the last band may omit 'max'")
                if limits[:-1] != sorted(limits[:-1]):
                    raise ValueError(f"{iid}: band limits must ascend")
                for b in bands:
                    self._check_entry(f"{iid} band", b)
            else:
                for fld in ("per_item_impact", "impact_cap", "score_cap", "name", "description"):
                    if fld not in it:
                        raise ValueError(f"{iid}: multi_select items need '{fld}'")
            req = it.get("requires")
            if req is not None and not isinstance(req, dict):
                raise ValueError(f"{iid}: 'requires' must be a mapping")

    def _check_entry(self, label: str, entry: Any) -> None:
        if not isinstance(entry, dict):
            raise ValueError(f"{label}: entry must be a mapping")
        missing = [f for f in _ENTRY_FIELDS if f not in entry]
        if missing:
            raise ValueError(f"{label}: missing {', '.join(missing)}")
        self._check_confidence(label, entry.get("confidence"))

    @staticmethod
    def _check_confidence(label: str, conf: Any) -> None:
        if conf is not None and not 0.0 < float(conf) <= 1.0:
            raise ValueError(f"{label}: confidence must be in (0, 1]")

    # ------------------------------------------------------------- lookups

    @property
    def item_ids(self) -> List[str]:
        return [it["id"] for it in self.items]

    def item(self, item_id: str) -> Dict[str, Any]:
        return self._by_id[item_id]

    def option_values(self, item_id: str) -> List[str]:
        """Recognized (non-neutral) values for a choice item, in table order."""
        it = self._by_id.get(item_id)
        if not it or it.get("input_type", "choice") != "choice":
            return []
        return list(it["options"].keys())

    def _confidence(self, item: Dict[str, Any], entry: Optional[Dict[str, Any]] = None) -> float:
        if entry is not None and entry.get("confidence") is not None:
            return float(entry["confidence"])
        if item.get("confidence") is not None:
            return float(item["confidence"])
        return self.default_confidence

    def _factor(self, item: Dict[str, Any], entry: Dict[str, Any], **fmt: Any) -> Contribution:
        description = entry["description"]
        if fmt:
            description = description.format(**fmt)
        factor = Factor(
            name=entry["name"],
            impact=float(entry["impact"]),
            description=description,
            confidence=self._confidence(item, entry),
            category=item["category"],
            key=item["id"],
        )
        return Contribution(factor=factor, score=float(entry["score"]))

    # ---------------------------------------------------------- evaluation

    @staticmethod
    def _gate_open(item: Dict[str, Any], answers: Dict[str, Any]) -> bool:
        for key, rule in (item.get("requires") or {}).items():
            raw = answers.get(key)
            if _is_blank(raw):
                return False
            if "in" in rule and raw not in rule["in"]:
                return False
            if "not_in" in rule and raw in rule["not_in"]:
                return False
        return True

    def _evaluate_choice(self, item: Dict[str, Any], raw: Any) -> Optional[Contribution]:
        if isinstance(raw, (list, tuple, dict)):
            logger.debug("Ignoring non-scalar answer for %s", item["id"])
            return None
        entry = item["options"].get(raw if isinstance(raw, str) else str(raw))
        if entry is None:
            logger.debug("No catalog entry for %s=%r", item["id"], raw)
            return None
        return self._factor(item, entry)

    def _evaluate_multi(self, item: Dict[str, Any], raw: Any) -> Optional[Contribution]:
        if not isinstance(raw, (list, tuple)):
            logger.debug("Expected a list for %s, got %r", item["id"], raw)
            return None
        ignore = {str(v) for v in item.get("ignore_values") or []}
        count = len([v for v in raw if str(v) not in ignore])
        if count == 0:
            return None
        impact = min(float(item["impact_cap"]), count * float(item["per_item_impact"]))
        score = -min(float(item["score_cap"]), float(count))
        entry = {"score": score, "impact": impact, "name": item["name"], "description": item["description"]}
        return self._factor(item, entry, count=count)

    def _evaluate_bmi(self, item: Dict[str, Any], answers: Dict[str, Any]) -> Optional[Contribution]:
        height = answers.get(item.get("height_key", "height"))
        weight = answers.get(item.get("weight_key", "weight"))
        if _is_blank(height) or _is_blank(weight):
            return None
        bmi = calculate_bmi(parse_int(height), parse_int(weight))
        if bmi is None:
            logger.debug("Unusable height/weight %r/%r", height, weight)
            return None
        for band in item["bands"]:
            if band.get("max") is None or bmi < float(band["max"]):
                return self._factor(item, band)
        return None

    def evaluate_item(self, item_id: str, answers: Dict[str, Any]) -> Optional[Contribution]:
        """Zero or one contribution for a single catalog item."""
        it = self._by_id.get(item_id)
        if it is None:
            return None
        if not self._gate_open(it, answers):
            return None
        kind = it.get("input_type", "choice")
        if kind == "bmi":
            return self._evaluate_bmi(it, answers)
        raw = answers.get(item_id)
        if _is_blank(raw):
            return None
        if kind == "multi_select":
            return self._evaluate_multi(it, raw)
        return self._evaluate_choice(it, raw)

    def evaluate(self, answers: Dict[str, Any]) -> List[Contribution]:
        """All contributions for an answer set, in catalog order."""
        out: List[Contribution] = []
        for iid in self.item_ids:
            hit = self.evaluate_item(iid, answers)
            if hit is not None:
                out.append(hit)
        return out


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    text = Path(path).read_text(encoding="utf-8")
    if str(path).endswith((".yaml", ".yml")):
        return yaml.safe_load(text)
    return json.loads(text)


def model_config_path(model: str, config_dir: Optional[Union[str, Path]] = None) -> Path:
    base = Path(config_dir) if config_dir is not None else CONFIG_DIR
    path = base / f"{model}.yaml"
    if not path.is_file():
        raise ValueError(f"Unknown model version '{model}' (no {path})")
    return path


def load_model_config(model: str, config_dir: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    path = model_config_path(model, config_dir)
    logger.info("Loading %s scoring model from %s", model, path)
    return load_config(path)


def iter_entries(catalog: FactorCatalog) -> Iterable[Dict[str, Any]]:
    """Flat view of every table entry: one row per (item, value) or band."""
    for it in catalog.items:
        kind = it.get("input_type", "choice")
        if kind == "choice":
            for value, entry in it["options"].items():
                yield {"item": it["id"], "value": value, "category": it["category"],
                       "confidence": catalog._confidence(it, entry), **entry}
        elif kind == "bmi":
            for band in it["bands"]:
                yield {"item": it["id"], "value": f"<{band['max']}" if band.get("max") is not None else "rest",
                       "category": it["category"], "confidence": catalog._confidence(it, band), **band}
        else:
            yield {"item": it["id"], "value": "*", "category": it["category"],
                   "confidence": catalog._confidence(it), "score": -float(it["score_cap"]),
                   "impact": float(it["impact_cap"]), "name": it["name"], "description": it["description"]}
