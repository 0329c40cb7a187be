"""
Standings calculation: win percentage, tie-breaks and ranking policies.
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional

from core.models import LeagueFormat, Team


DEFAULT_WILDCARD_RANK = 7


class StandingsPolicy(Enum):
    DEFAULT = 'default'   # win%, points for, points against, roster id
    RECORD = 'record'     # win%, points for, roster id
    CUSTOM = 'custom'     # RECORD plus the wildcard promotion


def win_percentage(wins: int, losses: int, ties: int) -> float:
    """Win percentage counting a tie as half a win; 0 when no games were played."""
    total_games = wins + losses + ties
    if total_games == 0:
        return 0.0
    return (wins + 0.5 * ties) / total_games


def standings_sort_key(team: Team, include_points_against: bool = True) -> tuple:
    """
    Sort key for standings order.

    Win percentage desc, points for desc, points against desc (optional),
    roster id asc as the final deterministic tie-break.
    """
    pct = win_percentage(team.wins, team.losses, team.ties)
    if include_points_against:
        return (-pct, -team.points_for, -team.points_against, team.roster_id)
    return (-pct, -team.points_for, team.roster_id)


def sort_standings(teams: Iterable[Team], include_points_against: bool = True) -> List[Team]:
    """Return a sorted copy of teams; the input is left untouched."""
    return sorted(teams, key=lambda t: standings_sort_key(t, include_points_against))


def assign_ranks(teams: List[Team]) -> List[Team]:
    """Return new Team objects ranked 1..N in list order."""
    return [team.copy(rank=index + 1) for index, team in enumerate(teams)]


def promote_wildcard(sorted_teams: List[Team], wildcard_rank: int = DEFAULT_WILDCARD_RANK) -> List[Team]:
    """
    Give the wildcard position to the top scorer among the teams at or below it.

    Teams above ``wildcard_rank`` are never moved. The promoted team is the one
    with the highest points for among positions wildcard_rank..N (roster id
    ascending on ties); everyone else keeps their relative order.
    """
    cut = wildcard_rank - 1
    if cut < 0 or len(sorted_teams) < wildcard_rank:
        return list(sorted_teams)

    contenders = sorted_teams[cut:]
    promoted = min(contenders, key=lambda t: (-t.points_for, t.roster_id))
    rest = [t for t in contenders if t is not promoted]
    return list(sorted_teams[:cut]) + [promoted] + rest


def apply_rankings(teams: Iterable[Team], policy: StandingsPolicy = StandingsPolicy.DEFAULT,
                   wildcard_rank: int = DEFAULT_WILDCARD_RANK) -> List[Team]:
    """Sort teams under a policy and assign dense ranks 1..N."""
    if policy == StandingsPolicy.DEFAULT:
        ordered = sort_standings(teams, include_points_against=True)
    elif policy == StandingsPolicy.RECORD:
        ordered = sort_standings(teams, include_points_against=False)
    elif policy == StandingsPolicy.CUSTOM:
        ordered = promote_wildcard(sort_standings(teams, include_points_against=False), wildcard_rank)
    else:
        raise ValueError(f"Unknown standings policy: {policy}")
    return assign_ranks(ordered)


def policy_for_league(league_format) -> StandingsPolicy:
    """Redraft leagues use the wildcard rule; dynasty leagues the plain record sort."""
    if LeagueFormat.parse(league_format) == LeagueFormat.REDRAFT:
        return StandingsPolicy.CUSTOM
    return StandingsPolicy.RECORD


def rank_league(teams: Iterable[Team], league_format,
                wildcard_rank: int = DEFAULT_WILDCARD_RANK) -> List[Team]:
    return apply_rankings(teams, policy_for_league(league_format), wildcard_rank)


def simple_streak(wins: int, losses: int, ties: int) -> str:
    """Cheap streak guess used when weekly history has not been fetched."""
    if wins + losses + ties == 0:
        return '-'
    return 'W1' if wins >= losses else 'L1'


def calculate_streak(roster_id: int, weekly_matchups: Dict[int, List[Dict]]) -> str:
    """
    Current streak from weekly matchup rows, e.g. "W3".

    ``weekly_matchups`` maps week -> upstream rows ({roster_id, matchup_id, points}).
    Weeks are walked newest first until the result changes. Weeks where the
    team has no row or no opponent are skipped.
    """
    streak_type: Optional[str] = None
    count = 0

    for week in sorted(weekly_matchups, reverse=True):
        rows = weekly_matchups[week] or []
        own = next((r for r in rows if r.get('roster_id') == roster_id), None)
        if not own or own.get('matchup_id') is None:
            continue
        opponent = next(
            (r for r in rows
             if r.get('matchup_id') == own['matchup_id'] and r.get('roster_id') != roster_id),
            None
        )
        if not opponent:
            continue

        own_points = own.get('points') or 0
        opp_points = opponent.get('points') or 0
        if own_points > opp_points:
            result = 'W'
        elif own_points < opp_points:
            result = 'L'
        else:
            result = 'T'

        if streak_type is None:
            streak_type = result
        elif result != streak_type:
            break
        count += 1

    if not streak_type:
        return '-'
    return f"{streak_type}{count}"
