"""
Shot History
Append-only record of the shots captured in a session, with summary stats.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .form_scorer import ShotRecord, error_counts, round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionStats:
    """Summary of captured shots"""
    total_shots: int
    average_score: Optional[int]
    best_score: Optional[int]
    # Up to 3 {"type", "count"} entries, most frequent first
    common_errors: Tuple[Dict, ...] = ()


def get_common_errors(shots: List[ShotRecord], n: int = 3) -> List[Dict]:
    """
    Most frequent error types across shots.
    Equal counts keep the order in which the error type was first seen.
    """
    counts = error_counts([e for shot in shots for e in shot.errors])
    ranked = sorted(
        ({"type": t, "count": c} for t, c in counts.items()),
        key=lambda x: -x["count"]
    )
    return ranked[:n]


class ShotHistory:
    """Captured shots for the active session; cleared as a whole, never rolled back"""

    def __init__(self):
        self._shots: List[ShotRecord] = []

    def add(self, shot: ShotRecord) -> None:
        self._shots.append(shot)
        logger.debug(f"Shot added to history (total={len(self._shots)})")

    @property
    def shots(self) -> Tuple[ShotRecord, ...]:
        return tuple(self._shots)

    def __len__(self) -> int:
        return len(self._shots)

    def stats(self) -> SessionStats:
        if not self._shots:
            return SessionStats(total_shots=0, average_score=None, best_score=None)

        scores = np.array([s.overall_score for s in self._shots], dtype=float)
        return SessionStats(
            total_shots=len(self._shots),
            average_score=round_half_up(float(np.mean(scores))),
            best_score=int(np.max(scores)),
            common_errors=tuple(get_common_errors(self._shots)),
        )

    def clear(self) -> None:
        self._shots = []
