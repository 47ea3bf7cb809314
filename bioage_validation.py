#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Answer validation - pre-call checks the engine itself never enforces
(required fields, plausible age / height / weight ranges).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from bioage_catalog import parse_int

logger = logging.getLogger(__name__)

AGE_RANGE = (18, 120)
HEIGHT_CM_RANGE = (100, 250)
WEIGHT_KG_RANGE = (30, 300)

REQUIRED_FIELDS = {
    "basic": ("age", "gender"),
    "diet": ("diet-quality",),
    "activity": ("exercise",),
    "lifestyle": ("sleep", "smoker"),
    "environment": ("outdoor-time",),
    "medical": (),
}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)


class AnswerValidationError(ValueError):
    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(f"Invalid answers ({detail})")


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != []


def validate_age(age: Any) -> Optional[str]:
    if not _present(age):
        return "Please enter your age."
    n = parse_int(age)
    if n is None:
        return "Age must be a number."
    if n < AGE_RANGE[0]:
        return f"You must be at least {AGE_RANGE[0]} years old to use this calculator."
    if n > AGE_RANGE[1]:
        return f"Please enter an age below {AGE_RANGE[1]}."
    return None


def validate_height(height: Any) -> Optional[str]:
    n = parse_int(height)
    if n is None:
        return "Height must be a number."
    if n < HEIGHT_CM_RANGE[0]:
        return "Height seems too low. Please enter height in centimeters."
    if n > HEIGHT_CM_RANGE[1]:
        return "Height seems too high. Please enter height in centimeters."
    return None


def validate_weight(weight: Any) -> Optional[str]:
    n = parse_int(weight)
    if n is None:
        return "Weight must be a number."
    if n < WEIGHT_KG_RANGE[0]:
        return "Weight seems too low. Please enter weight in kilograms."
    if n > WEIGHT_KG_RANGE[1]:
        return "Weight seems too high. Please enter weight in kilograms."
    return None


def validate_answers(answers: Dict[str, Any]) -> ValidationResult:
    errors: Dict[str, str] = {}

    msg = validate_age(answers.get("age"))
    if msg:
        errors["age"] = msg
    if _present(answers.get("height")):
        msg = validate_height(answers["height"])
        if msg:
            errors["height"] = msg
    if _present(answers.get("weight")):
        msg = validate_weight(answers["weight"])
        if msg:
            errors["weight"] = msg

    for fields in REQUIRED_FIELDS.values():
        for key in fields:
            if not _present(answers.get(key)) and key not in errors:
                errors[key] = "This field is required"

    if errors:
        logger.debug("Answer validation failed: %s", sorted(errors))
    return ValidationResult(valid=not errors, errors=errors)


def ensure_valid(answers: Dict[str, Any]) -> Dict[str, Any]:
    """Return answers unchanged, or raise AnswerValidationError."""
    result = validate_answers(answers)
    if not result.valid:
        raise AnswerValidationError(result.errors)
    return answers
