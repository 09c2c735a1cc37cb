from __future__ import annotations
import datetime as dt
from pathlib import Path
from typing import Dict, Tuple

from .time_budget import PacingTier, pacing_tier

_PROMPT_PATH = Path(__file__).resolve().parents[1] / "prompts" / "interviewer.txt"

_PACING: Dict[PacingTier, str] = {
    PacingTier.SHORT: (
        "This is a short session. Focus on one core component of the design and "
        "keep follow-up questions tight; skip deep scaling discussions."
    ),
    PacingTier.STANDARD: (
        "This is a standard-length session. Cover a baseline design, then one or "
        "two rounds of scaling and failure handling."
    ),
    PacingTier.EXTENDED: (
        "This is a long session. After the baseline design, go deep on scaling, "
        "data partitioning, consistency and operational concerns."
    ),
}


def load_base_directives(path: Path = _PROMPT_PATH) -> Tuple[str, ...]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return tuple(line.strip() for line in lines if line.strip())


class Directives:
    """The static instruction set sent ahead of every transcript."""

    def __init__(self, base: Tuple[str, ...] = ()):
        self.base = tuple(base) or load_base_directives()

    def for_limit(self, time_limit: dt.timedelta) -> Tuple[str, ...]:
        return self.base + (_PACING[pacing_tier(time_limit)],)

    def system_message(self, time_limit: dt.timedelta) -> Dict[str, str]:
        return {"role": "system", "content": "\n".join(self.for_limit(time_limit))}
