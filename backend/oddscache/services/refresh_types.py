"""
backend/oddscache/services/refresh_types.py

Purpose:
    Result counters passed between the refresh phases and the cycle
    orchestrator.

Dependencies:
    - dataclasses
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class PhaseResult:
    odds_updated: int = 0
    api_calls: int = 0
    events_written: int = 0
    write_failures: int = 0
    failed_events: list[str] = field(default_factory=list)
    skipped_events: int = 0


@dataclass
class CycleResult:
    sport_key: str
    log_id: Optional[str]
    status: str
    events_updated: int = 0
    odds_updated: int = 0
    api_calls_made: int = 0
    main_line_odds: int = 0
    player_prop_odds: int = 0
    write_failures: int = 0
    props_failed_events: int = 0
    expired_purged: int = 0
    duration_seconds: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
