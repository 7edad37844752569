"""
Weekly availability rule lookup.
"""

import logging

from pendulum import Date

from .exceptions import NoRuleFound
from .models import AvailabilityProfile, DayRule, Weekday

logger = logging.getLogger(__name__)


def rule_for(day: Date, profile: AvailabilityProfile) -> DayRule:
    """
    Resolve the rule that applies to a calendar date.

    Raises:
        NoRuleFound: If the profile has no entry for the date's weekday
    """
    weekday = Weekday.of(day)
    try:
        return profile.days[weekday]
    except KeyError:
        logger.error(
            "Availability profile of owner %s has no rule for %s",
            profile.owner_id,
            weekday.name.lower(),
        )
        raise NoRuleFound(
            f"No availability rule for {weekday.name.lower()} "
            f"in the profile of owner '{profile.owner_id}'"
        ) from None
