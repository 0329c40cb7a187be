"""
Past-season summaries and head-to-head records.
"""
from typing import Dict, Iterable, List, Optional

from core.models import Team
from core.playoffs import determine_playoff_final
from core.standings import apply_rankings


def _champion_entry(team: Optional[Team]) -> Optional[Dict]:
    if team is None:
        return None
    return {
        'roster_id': team.roster_id,
        'display_name': team.display_name,
        'wins': team.wins,
        'losses': team.losses,
        'ties': team.ties,
        'points_for': team.points_for,
        'seed': team.rank,
    }


def build_season_summary(year: str, league_id: str, teams: Iterable[Team], bracket_matches: Iterable = (),
                         scores_by_round: Optional[Dict[int, Dict[int, float]]] = None) -> Dict:
    """
    Standings plus champion and runner-up for one season.

    The playoff final decides the title; without one, the top two seeds stand in.
    """
    ranked = apply_rankings(teams)
    by_id = {team.roster_id: team for team in ranked}
    result = determine_playoff_final(list(bracket_matches), scores_by_round)

    if result is not None:
        champion = by_id.get(result.champion_roster_id)
        runner_up = by_id.get(result.runner_up_roster_id)
        bracket = {'final_round': result.final_round}
    else:
        champion = ranked[0] if len(ranked) > 0 else None
        runner_up = ranked[1] if len(ranked) > 1 else None
        bracket = None

    return {
        'year': str(year),
        'league_id': league_id,
        'champion': _champion_entry(champion),
        'runner_up': _champion_entry(runner_up),
        'standings': [
            {key: team.to_dict()[key] for key in
             ('rank', 'roster_id', 'display_name', 'wins', 'losses', 'ties', 'points_for', 'points_against')}
            for team in ranked
        ],
        'bracket': bracket,
    }


def champions_list(seasons: Iterable[Dict]) -> List[Dict]:
    """Champion per season, newest season first; seasons without one are skipped."""
    entries = []
    for season in sorted(seasons, key=lambda s: int(s['year']), reverse=True):
        if season.get('champion'):
            entries.append({
                'year': season['year'],
                'champion': season['champion']['display_name'],
                'runner_up': season['runner_up']['display_name'] if season.get('runner_up') else None,
            })
    return entries


def matches_from_week(season: str, week: int, rows: Iterable[Dict], teams: Iterable[Team]) -> List[Dict]:
    """Owner-vs-owner results for one week of upstream matchup rows."""
    teams_by_id = {team.roster_id: team for team in teams}
    groups: Dict[int, List[Dict]] = {}
    for row in rows or []:
        if row.get('matchup_id') is not None:
            groups.setdefault(row['matchup_id'], []).append(row)

    matches = []
    for matchup_id in sorted(groups):
        pair = groups[matchup_id]
        if len(pair) != 2:
            continue
        team_a = teams_by_id.get(pair[0].get('roster_id'))
        team_b = teams_by_id.get(pair[1].get('roster_id'))
        if team_a is None or team_b is None:
            continue
        score_a = pair[0].get('points') or 0
        score_b = pair[1].get('points') or 0
        if score_a > score_b:
            winner = team_a.owner_id
        elif score_b > score_a:
            winner = team_b.owner_id
        else:
            winner = None
        matches.append({
            'season': str(season),
            'week': week,
            'user_a': {'user_id': team_a.owner_id, 'display_name': team_a.display_name, 'score': score_a},
            'user_b': {'user_id': team_b.owner_id, 'display_name': team_b.display_name, 'score': score_b},
            'winner_user_id': winner,
        })
    return matches


def head_to_head(matches: Iterable[Dict], user_a: str, user_b: str) -> Dict:
    """
    Record between two owners.

    ``matches`` are dicts with season, week, user_a/user_b ({user_id, score})
    and winner_user_id (None for a tie).
    """
    relevant = [
        m for m in matches
        if {m['user_a']['user_id'], m['user_b']['user_id']} == {user_a, user_b}
    ]
    relevant.sort(key=lambda m: (int(m['season']), m['week']), reverse=True)

    stats = {'wins_a': 0, 'wins_b': 0, 'ties': 0, 'points_a': 0.0, 'points_b': 0.0, 'matches': relevant}
    for match in relevant:
        a_is_first = match['user_a']['user_id'] == user_a
        score_a = match['user_a']['score'] if a_is_first else match['user_b']['score']
        score_b = match['user_b']['score'] if a_is_first else match['user_a']['score']
        stats['points_a'] += score_a or 0
        stats['points_b'] += score_b or 0

        winner = match.get('winner_user_id')
        if winner == user_a:
            stats['wins_a'] += 1
        elif winner == user_b:
            stats['wins_b'] += 1
        else:
            stats['ties'] += 1

    stats['points_a'] = round(stats['points_a'], 2)
    stats['points_b'] = round(stats['points_b'], 2)
    return stats
