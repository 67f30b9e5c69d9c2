"""Read-only query selectors."""

from cashplan_kernel.selectors.base import BaseSelector
from cashplan_kernel.selectors.funding_selector import FundingSelector, goal_to_dto

__all__ = ["BaseSelector", "FundingSelector", "goal_to_dto"]
