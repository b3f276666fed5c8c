"""
Budget figures derived from a campaign site list.
"""

import math
from typing import Any, Iterable, Optional

from models.data_models import BudgetSummary, CampaignSite


def parse_budget(value: Any) -> Optional[float]:
    """
    Parse user budget input.

    Returns a non-negative float, or None when the input is blank,
    unparseable or negative.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(',', '')
        if not value:
            return None
    try:
        budget = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(budget) or budget < 0:
        return None
    return budget


def calculate_budget_summary(budget: Optional[float], sites: Iterable[CampaignSite]) -> BudgetSummary:
    """
    Compute total cost, remaining budget and the over-budget flag.

    remaining_budget is None when no budget is set.
    """
    total_cost = sum(site.cost for site in sites)
    if budget is None:
        return BudgetSummary(total_cost=total_cost, remaining_budget=None, is_over_budget=False)

    remaining = budget - total_cost
    return BudgetSummary(total_cost=total_cost, remaining_budget=remaining, is_over_budget=remaining < 0)
