"""
CRISTAL AI Advisors — Public API
==================================
Intelligence advisors producing alert candidates.
"""

from ai.advisors.base import Advisor, Advisory
from ai.advisors.occupancy_advisor import OccupancyAdvisor
from ai.advisors.retention_advisor import ClientRetentionAdvisor
from ai.advisors.revenue_advisor import RevenuePerHourAdvisor

__all__ = [
    "Advisor",
    "Advisory",
    "ClientRetentionAdvisor",
    "OccupancyAdvisor",
    "RevenuePerHourAdvisor",
]
