from __future__ import annotations

from typing import List

from config import DEFAULT_SUGGESTED_ACTIONS, SUGGESTED_ACTIONS


def suggested_actions(metric: str) -> List[str]:
    return list(SUGGESTED_ACTIONS.get(metric, DEFAULT_SUGGESTED_ACTIONS))
