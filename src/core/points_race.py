"""
Points-race view: playoff qualifiers stay put, everyone else is ordered by points.
"""
from typing import Iterable, List

from core.models import Team
from core.standings import StandingsPolicy, apply_rankings, assign_ranks


DEFAULT_QUALIFIER_COUNT = 6


def points_race_reseed(teams: List[Team], qualifier_count: int = DEFAULT_QUALIFIER_COUNT) -> List[Team]:
    """
    Re-rank a default-sorted team list for the points race.

    The first ``qualifier_count`` teams keep their order. The remainder is
    sorted by points for (desc) then roster id (asc). Returns new Team objects
    ranked 1..N.
    """
    qualifiers = list(teams[:qualifier_count])
    remainder = sorted(teams[qualifier_count:], key=lambda t: (-t.points_for, t.roster_id))
    return assign_ranks(qualifiers + remainder)


def points_race(teams: Iterable[Team], qualifier_count: int = DEFAULT_QUALIFIER_COUNT) -> List[Team]:
    """Rank unranked teams with the default comparator, then reseed the points race."""
    return points_race_reseed(apply_rankings(teams, StandingsPolicy.DEFAULT), qualifier_count)
