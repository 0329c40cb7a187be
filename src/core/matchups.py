"""
Weekly matchup pairing.

Three schemes, picked by league format and week:
- consecutive pairing (1v2, 3v4, ...) for redraft leagues at their pairing week
- a fixed, hand-written schedule table for dynasty leagues in weeks 10-13
- bracket-derived pairing for playoff weeks
"""
from typing import Dict, Iterable, List, Optional, Tuple

from core.errors import InvalidScheduleError, UnsupportedWeekError
from core.models import LeagueFormat, MatchStatus, MatchupPair, Team, infer_status
from core.playoffs import current_round_pairs, reconstruct_bracket


# 0-based rank positions. This is a human-designed schedule, not a formula.
FIXED_WEEK_PAIRINGS: Dict[int, List[Tuple[int, int]]] = {
    10: [(0, 1), (3, 4), (5, 6), (7, 8), (2, 9)],  # 1v2, 4v5, 6v7, 8v9, 3v10
    11: [(0, 2), (1, 9), (3, 5), (4, 6), (7, 8)],  # 1v3, 2v10, 4v6, 5v7, 8v9
    12: [(0, 3), (1, 4), (2, 5), (6, 7), (8, 9)],  # 1v4, 2v5, 3v6, 7v8, 9v10
    13: [(0, 1), (2, 4), (3, 5), (6, 7), (8, 9)],  # 1v2, 3v5, 4v6, 7v8, 9v10
}
FIXED_TABLE_TEAM_COUNT = 10


class LeagueRules:
    """Week sets and playoff shape for one league format."""

    def __init__(self, league_format, pairing_weeks, playoff_start_week, playoff_seeds, bye_seeds):
        self.league_format = LeagueFormat.parse(league_format)
        self.pairing_weeks = tuple(sorted(pairing_weeks))
        self.playoff_start_week = playoff_start_week
        self.playoff_seeds = playoff_seeds
        self.bye_seeds = bye_seeds

    def is_pairing_week(self, week):
        return week in self.pairing_weeks

    def is_playoff_week(self, week):
        return self.playoff_start_week is not None and week >= self.playoff_start_week

    def describe_valid_weeks(self):
        weeks = ', '.join(str(w) for w in self.pairing_weeks)
        if self.playoff_start_week is not None:
            weeks += f" (regular), {self.playoff_start_week}+ (playoffs)"
        return weeks

    def with_playoff_start(self, playoff_start_week):
        return LeagueRules(self.league_format, self.pairing_weeks, playoff_start_week,
                           self.playoff_seeds, self.bye_seeds)

    def __repr__(self):
        return (f"LeagueRules(format={self.league_format.value}, pairing_weeks={self.pairing_weeks}, "
                f"playoff_start_week={self.playoff_start_week})")


DEFAULT_RULES = {
    LeagueFormat.REDRAFT: LeagueRules(LeagueFormat.REDRAFT, [14], 15, playoff_seeds=7, bye_seeds=1),
    LeagueFormat.DYNASTY: LeagueRules(LeagueFormat.DYNASTY, sorted(FIXED_WEEK_PAIRINGS), 15,
                                      playoff_seeds=6, bye_seeds=2),
}


def get_rules(league_format, rules: Optional[LeagueRules] = None) -> LeagueRules:
    if rules is not None:
        return rules
    return DEFAULT_RULES[LeagueFormat.parse(league_format)]


def pair_consecutive(teams: List[Team]) -> List[MatchupPair]:
    """Pair rank 1 with 2, 3 with 4, ...; an odd team out is dropped."""
    pairs = []
    for i in range(0, len(teams) - 1, 2):
        pairs.append(MatchupPair(home=teams[i], away=teams[i + 1], status=MatchStatus.SCHEDULED))
    return pairs


def pair_fixed_table(teams: List[Team], week: int) -> List[MatchupPair]:
    """Pair teams by the literal schedule table for ``week``."""
    index_pairs = FIXED_WEEK_PAIRINGS.get(week)
    if index_pairs is None:
        raise InvalidScheduleError(
            f"No fixed schedule for week {week} (weeks: {sorted(FIXED_WEEK_PAIRINGS)})"
        )
    if len(teams) != FIXED_TABLE_TEAM_COUNT:
        raise InvalidScheduleError(
            f"Fixed schedule needs exactly {FIXED_TABLE_TEAM_COUNT} teams, got {len(teams)}"
        )
    return [
        MatchupPair(home=teams[home], away=teams[away], status=MatchStatus.SCHEDULED)
        for home, away in index_pairs
    ]


def pair_from_weekly_matchups(teams: Iterable[Team], weekly_matchups: Iterable[Dict]) -> List[MatchupPair]:
    """
    Pairs from the upstream weekly matchup rows, carrying real scores.

    Rows are grouped by matchup_id; groups that are not two known teams are skipped.
    A week where both sides scored counts as final.
    """
    teams_by_id = {team.roster_id: team for team in teams}
    groups: Dict[int, List[Dict]] = {}
    for row in weekly_matchups or []:
        matchup_id = row.get('matchup_id')
        if matchup_id is None:
            continue
        groups.setdefault(matchup_id, []).append(row)

    pairs = []
    for matchup_id in sorted(groups):
        rows = groups[matchup_id]
        if len(rows) != 2:
            continue
        home = teams_by_id.get(rows[0].get('roster_id'))
        away = teams_by_id.get(rows[1].get('roster_id'))
        if home is None or away is None:
            continue
        home_points = rows[0].get('points') or 0
        away_points = rows[1].get('points') or 0
        if home_points > 0 and away_points > 0:
            status = MatchStatus.FINAL
        else:
            status = infer_status(home_points, away_points)
        pairs.append(MatchupPair(home, away, home_points, away_points, status=status, match_id=matchup_id))
    return pairs


def is_valid_week(league_format, week: int, rules: Optional[LeagueRules] = None) -> bool:
    try:
        rules = get_rules(league_format, rules)
    except (KeyError, ValueError):
        return False
    return rules.is_pairing_week(week) or rules.is_playoff_week(week)


def get_matchup_rule(league_format, week: int, rules: Optional[LeagueRules] = None) -> str:
    """
    Stable identifier of the pairing scheme for (format, week).

    "redraft-topx", "dynasty-week<N>" or "<format>-playoffs".
    """
    try:
        rules = get_rules(league_format, rules)
    except (KeyError, ValueError):
        raise UnsupportedWeekError(league_format, week)

    league_format = rules.league_format
    if rules.is_pairing_week(week):
        if league_format == LeagueFormat.REDRAFT:
            return 'redraft-topx'
        return f"dynasty-week{week}"
    if rules.is_playoff_week(week):
        return f"{league_format.value}-playoffs"
    raise UnsupportedWeekError(league_format.value, week, rules.describe_valid_weeks())


def pair_teams(teams: List[Team], league_format, week: int, rules: Optional[LeagueRules] = None,
               bracket: Optional[Iterable] = None,
               scores_by_round: Optional[Dict[int, Dict[int, float]]] = None,
               weekly_matchups: Optional[List[Dict]] = None) -> Tuple[str, List[MatchupPair]]:
    """
    Pair ranked teams for a week.

    Args:
        teams: teams in rank order
        league_format: LeagueFormat or its string value
        week: requested week
        rules: overrides the format's default LeagueRules
        bracket: winners-bracket records, needed for playoff weeks
        scores_by_round: round -> {roster_id: points}, for playoff weeks
        weekly_matchups: upstream rows for the week; when present on a
            fixed-table week, real pairings and scores win over the table

    Returns:
        (rule, pairs)

    Raises:
        UnsupportedWeekError: the week is not valid for the format
        InvalidScheduleError: the fixed table cannot be applied
    """
    try:
        rules = get_rules(league_format, rules)
    except (KeyError, ValueError):
        raise UnsupportedWeekError(league_format, week)
    rule = get_matchup_rule(rules.league_format, week, rules)

    if rules.is_pairing_week(week):
        if rules.league_format == LeagueFormat.REDRAFT:
            return rule, pair_consecutive(teams)
        if weekly_matchups:
            pairs = pair_from_weekly_matchups(teams, weekly_matchups)
            if pairs:
                return rule, pairs
        return rule, pair_fixed_table(teams, week)

    rounds = reconstruct_bracket(bracket or [], teams, scores_by_round)
    return rule, current_round_pairs(rounds, week, rules.playoff_start_week)
