"""
Rookie draft order derived from the final standings and the playoff bracket.
"""
from typing import Dict, Iterable, List, Optional

from core.models import BracketMatch, Team


def _record_key(team: Team):
    # Worst record picks first
    return (team.wins, team.points_for, team.roster_id)


def _bracket_buckets(matches: List[BracketMatch]) -> Dict:
    """Champion, runner-up and early-round losers read off the winners bracket."""
    buckets = {
        'champion': None,
        'runner_up': None,
        'semifinal_losers': set(),
        'quarterfinal_losers': set(),
        'playoff_teams': set(),
    }
    if not matches:
        return buckets

    max_round = max(m.round for m in matches)
    finals = sorted(
        (m for m in matches if m.round == max_round and (not m.placement or m.placement == 1)),
        key=lambda m: m.match_id
    )
    if finals:
        buckets['champion'] = finals[0].winner
        buckets['runner_up'] = finals[0].loser

    for match in matches:
        if match.round == max_round - 1 and match.loser:
            buckets['semifinal_losers'].add(match.loser)
        elif match.round == max_round - 2 and match.loser:
            buckets['quarterfinal_losers'].add(match.loser)
        for slot in (match.slot1, match.slot2):
            if slot.roster_id:
                buckets['playoff_teams'].add(slot.roster_id)
    return buckets


def find_team(teams: Iterable[Team], owner: str) -> Optional[Team]:
    """Match by exact owner id, then by a case-insensitive display-name fragment."""
    teams = list(teams)
    for team in teams:
        if team.owner_id == owner:
            return team
    needle = owner.lower()
    for team in teams:
        if needle in team.display_name.lower():
            return team
    return None


def compute_draft_order(teams: Iterable[Team], bracket_matches: Iterable = (),
                        draft_order: Optional[Dict[str, int]] = None,
                        draft_status: Optional[str] = None,
                        first_pick_owner: Optional[str] = None) -> List[Team]:
    """
    Order teams for round one of the next draft.

    While the draft is running and the upstream slot order is known, that order
    wins. Otherwise non-playoff teams pick first, then quarter-final losers,
    then semi-final losers (any other playoff team is grouped with them), each
    group by record, worst first. The runner-up and the champion pick last.
    ``first_pick_owner`` moves one team to the first pick.
    """
    teams = list(teams)
    if draft_status == 'drafting' and draft_order:
        return sorted(teams, key=lambda t: (draft_order.get(t.owner_id, 999), t.roster_id))

    matches = [m if isinstance(m, BracketMatch) else BracketMatch.from_sleeper(m) for m in bracket_matches]
    buckets = _bracket_buckets(matches)

    non_playoff = []
    quarterfinal = []
    semifinal = []
    for team in teams:
        if team.roster_id in (buckets['champion'], buckets['runner_up']):
            continue
        if team.roster_id not in buckets['playoff_teams']:
            non_playoff.append(team)
        elif team.roster_id in buckets['quarterfinal_losers']:
            quarterfinal.append(team)
        else:
            semifinal.append(team)

    order = (sorted(non_playoff, key=_record_key)
             + sorted(quarterfinal, key=_record_key)
             + sorted(semifinal, key=_record_key))
    teams_by_id = {team.roster_id: team for team in teams}
    for roster_id in (buckets['runner_up'], buckets['champion']):
        if roster_id in teams_by_id:
            order.append(teams_by_id[roster_id])

    if first_pick_owner:
        promoted = find_team(order, first_pick_owner)
        if promoted is not None:
            order.remove(promoted)
            order.insert(0, promoted)
    return order


def resolve_pick_owner(team: Team, traded_picks: Iterable[Dict], teams: Iterable[Team],
                       round_number: int = 1,
                       pick_overrides: Optional[Dict[int, int]] = None) -> Team:
    """
    Current owner of ``team``'s pick in ``round_number``.

    Explicit overrides (original roster id -> owner roster id) come first, then
    the upstream traded-picks list; otherwise the team still owns its pick.
    """
    teams_by_id = {t.roster_id: t for t in teams}
    if pick_overrides and team.roster_id in pick_overrides:
        owner = teams_by_id.get(pick_overrides[team.roster_id])
        if owner is not None:
            return owner

    for pick in traded_picks or []:
        if pick.get('round') == round_number and pick.get('roster_id') == team.roster_id:
            return teams_by_id.get(pick.get('owner_id'), team)
    return team


def build_draft_board(teams: Iterable[Team], bracket_matches: Iterable = (),
                      traded_picks: Iterable[Dict] = (), draft_order: Optional[Dict[str, int]] = None,
                      draft_status: Optional[str] = None, first_pick_owner: Optional[str] = None,
                      pick_overrides: Optional[Dict[int, int]] = None) -> List[Dict]:
    """Round-one picks with labels like "1.01" and the current owner of each."""
    teams = list(teams)
    order = compute_draft_order(teams, bracket_matches, draft_order, draft_status, first_pick_owner)
    board = []
    for index, original in enumerate(order):
        owner = resolve_pick_owner(original, traded_picks, teams, 1, pick_overrides)
        board.append({
            'pick': index + 1,
            'label': f"1.{index + 1:02d}",
            'original': original.to_dict(),
            'owner': owner.to_dict(),
            'traded': owner.roster_id != original.roster_id,
        })
    return board
