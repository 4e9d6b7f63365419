"""Scope growth: how much work is added to the backlog each sprint."""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np

from .forecast_models import Sprint

logger = logging.getLogger(__name__)

SCOPE_GROWTH_MODES = ("calculated", "custom")


@dataclass
class ScopeChangeStats:
    """Scope change between sprints that recorded their remaining backlog.

    Scope at the end of a sprint is the work done so far plus the backlog
    left. `average_scope_injection` is None with fewer than two such sprints.
    """

    count: int
    total_scope_change: float
    average_scope_injection: Optional[float]


def calculate_scope_change_stats(sprints: Iterable[Sprint]) -> ScopeChangeStats:
    """Average per-sprint scope change across the sprint history."""
    cumulative_done = 0.0
    scopes = []
    for sprint in sorted(sprints, key=lambda s: s.sprint_number):
        cumulative_done += sprint.done_value
        if sprint.backlog_at_sprint_end is not None:
            scopes.append(cumulative_done + sprint.backlog_at_sprint_end)

    if len(scopes) < 2:
        return ScopeChangeStats(len(scopes), 0.0, None)

    changes = np.diff(scopes)
    return ScopeChangeStats(
        len(scopes), float(changes.sum()), float(changes.mean())
    )


def resolve_scope_growth_per_sprint(
    model_scope_growth: bool,
    scope_growth_mode: str,
    custom_scope_growth: Union[str, float, None],
    average_scope_injection: Optional[float],
) -> Optional[float]:
    """Scope growth to feed the simulation, or None when it is not modelled.

    In custom mode an unparseable value means no scope growth.
    """
    if not model_scope_growth:
        return None

    if scope_growth_mode == "custom":
        try:
            value = float(custom_scope_growth)
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring custom scope growth `%s`: not a number", custom_scope_growth
            )
            return None
        return None if math.isnan(value) else value

    return average_scope_injection
