#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Calculation history - JSON file of {timestamp, inputs, results} records,
most recent first, capped at a fixed number of entries.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from bioage_engine import CalculationResult

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 10


class HistoryStore:
    def __init__(self, path: Union[str, Path], max_entries: int = MAX_HISTORY_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.path = Path(path)
        self.max_entries = max_entries

    def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, exc)
            return []
        if not isinstance(data, list):
            logger.warning("Ignoring malformed history file %s", self.path)
            return []
        return data

    def _write(self, entries: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    def save(self, answers: Dict[str, Any], result: CalculationResult,
             timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        ts = timestamp or datetime.now(timezone.utc)
        entry = {"timestamp": ts.isoformat(), "inputs": dict(answers), "results": result.to_dict()}
        entries = [entry] + self.load()
        self._write(entries[:self.max_entries])
        logger.info("Saved calculation to %s (%d entries)", self.path, min(len(entries), self.max_entries))
        return entry

    def results(self) -> List[CalculationResult]:
        return [CalculationResult.from_dict(e["results"]) for e in self.load()]

    def delete(self, index: int) -> None:
        entries = self.load()
        if not 0 <= index < len(entries):
            raise IndexError(f"No history entry at index {index}")
        del entries[index]
        self._write(entries)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
