"""
Playoff bracket reconstruction from sparse winners-bracket records.

Upstream brackets arrive as a flat list of matches. Later-round slots are
often empty, pointing back at the winner or loser of an earlier match. This
module resolves those slots against the current roster, attaches the round's
scores and surfaces the matches worth showing, titled by their position
relative to the final round.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from core.models import (
    BracketMatch, BracketRound, BracketSlot, MatchStatus, MatchupPair, Team, infer_status,
    placeholder_team,
)


FINAL_TITLE = 'Final'
THIRD_PLACE_TITLE = '3rd Place'
SEMIFINAL_TITLE = 'Semi-Final'
QUARTERFINAL_TITLE = 'Quarter-Final'
TBD = 'TBD'


class PlayoffResult:
    def __init__(self, champion_roster_id, runner_up_roster_id, final_round):
        self.champion_roster_id = champion_roster_id
        self.runner_up_roster_id = runner_up_roster_id
        self.final_round = final_round

    def to_dict(self):
        return {
            'champion_roster_id': self.champion_roster_id,
            'runner_up_roster_id': self.runner_up_roster_id,
            'final_round': self.final_round,
        }

    def __repr__(self):
        return (f"PlayoffResult(champion={self.champion_roster_id}, "
                f"runner_up={self.runner_up_roster_id}, final_round={self.final_round})")


def _as_matches(matches: Iterable) -> List[BracketMatch]:
    return [m if isinstance(m, BracketMatch) else BracketMatch.from_sleeper(m) for m in matches]


def placeholder_name(slot: BracketSlot) -> str:
    if slot.source == BracketSlot.WINNER:
        return f"Winner of Match {slot.source_match}"
    if slot.source == BracketSlot.LOSER:
        return f"Loser of Match {slot.source_match}"
    return TBD


def declared_results(matches: List[BracketMatch]) -> Tuple[Dict[int, int], Dict[int, int]]:
    """Winner and loser roster ids by match id, for matches that have them."""
    winners = {m.match_id: m.winner for m in matches if m.winner}
    losers = {m.match_id: m.loser for m in matches if m.loser}
    return winners, losers


def resolve_slot(slot: BracketSlot, teams_by_id: Dict[int, Team],
                 winners: Optional[Dict[int, int]] = None,
                 losers: Optional[Dict[int, int]] = None) -> Team:
    """
    Turn a bracket slot into a Team.

    A roster id resolves to the live team. An empty slot that references an
    earlier match takes that match's declared winner/loser once it exists.
    Anything still unknown becomes a placeholder named after what it waits on.
    """
    roster_id = slot.roster_id
    if not roster_id and slot.is_reference:
        results = winners if slot.source == BracketSlot.WINNER else losers
        roster_id = (results or {}).get(slot.source_match)

    if roster_id and roster_id in teams_by_id:
        return teams_by_id[roster_id]
    return placeholder_team(placeholder_name(slot), roster_id=roster_id or 0)


def _team_points(team: Team, round_scores: Dict[int, float]) -> float:
    if team.is_placeholder:
        return 0.0
    return round_scores.get(team.roster_id, 0) or 0


def resolve_match(match: BracketMatch, teams_by_id: Dict[int, Team],
                  round_scores: Optional[Dict[int, float]] = None,
                  winners: Optional[Dict[int, int]] = None,
                  losers: Optional[Dict[int, int]] = None,
                  title: Optional[str] = None) -> MatchupPair:
    round_scores = round_scores or {}
    home = resolve_slot(match.slot1, teams_by_id, winners, losers)
    away = resolve_slot(match.slot2, teams_by_id, winners, losers)
    home_points = _team_points(home, round_scores)
    away_points = _team_points(away, round_scores)

    return MatchupPair(
        home=home,
        away=away,
        home_points=home_points,
        away_points=away_points,
        status=infer_status(home_points, away_points, match.winner),
        winner=match.winner,
        title=title or match.title,
        match_id=match.match_id,
    )


def surface_round(round_matches: List[BracketMatch], round_number: int,
                  final_round: int) -> List[Tuple[BracketMatch, str]]:
    """
    Pick and title the matches shown for one round.

    Final round: "Final" then "3rd Place". Penultimate round: the first two
    matches as "Semi-Final" (consolation games dropped). Earlier rounds: every
    match as "Quarter-Final". Matches are taken in match id order.
    """
    ordered = sorted(round_matches, key=lambda m: m.match_id)
    if round_number == final_round:
        return list(zip(ordered[:2], [FINAL_TITLE, THIRD_PLACE_TITLE]))
    if round_number == final_round - 1:
        return [(m, SEMIFINAL_TITLE) for m in ordered[:2]]
    return [(m, QUARTERFINAL_TITLE) for m in ordered]


def reconstruct_bracket(matches: Iterable, teams: Iterable[Team],
                        scores_by_round: Optional[Dict[int, Dict[int, float]]] = None) -> List[BracketRound]:
    """
    Build the displayed bracket, round by round.

    Args:
        matches: BracketMatch objects or raw winners_bracket records
        teams: current roster teams (ranked or not)
        scores_by_round: round -> {roster_id: points} for that round's week

    Returns:
        BracketRound list ordered by round number
    """
    matches = _as_matches(matches)
    if not matches:
        return []

    scores_by_round = scores_by_round or {}
    teams_by_id = {team.roster_id: team for team in teams}
    winners, losers = declared_results(matches)
    final_round = max(m.round for m in matches)

    by_round: Dict[int, List[BracketMatch]] = {}
    for match in matches:
        by_round.setdefault(match.round, []).append(match)

    rounds = []
    for round_number in sorted(by_round):
        round_scores = scores_by_round.get(round_number, {})
        surfaced = [
            resolve_match(match, teams_by_id, round_scores, winners, losers, title)
            for match, title in surface_round(by_round[round_number], round_number, final_round)
        ]
        rounds.append(BracketRound(round_number, surfaced))
    return rounds


def playoff_round_for_week(week: int, playoff_start_week: int) -> int:
    return week - playoff_start_week + 1


def current_round_pairs(rounds: List[BracketRound], week: int, playoff_start_week: int) -> List[MatchupPair]:
    """The surfaced matches of the round played in ``week``; empty if that round does not exist."""
    round_number = playoff_round_for_week(week, playoff_start_week)
    for bracket_round in rounds:
        if bracket_round.round == round_number:
            return list(bracket_round.matches)
    return []


def find_champion_match(matches: Iterable) -> Optional[BracketMatch]:
    """The championship game: placement 1 in the last round, else its lowest match id."""
    matches = _as_matches(matches)
    if not matches:
        return None
    final_round = max(m.round for m in matches)
    finals = sorted((m for m in matches if m.round == final_round), key=lambda m: m.match_id)
    for match in finals:
        if match.placement == 1:
            return match
    unplaced = [m for m in finals if m.placement is None]
    return unplaced[0] if unplaced else finals[0]


def determine_playoff_final(matches: Iterable,
                            scores_by_round: Optional[Dict[int, Dict[int, float]]] = None) -> Optional[PlayoffResult]:
    """
    Champion and runner-up from the championship game.

    A declared winner wins outright; otherwise the higher score for the final
    round decides. Returns None when the final is missing a team, unplayed or tied.
    """
    final_match = find_champion_match(matches)
    if final_match is None:
        return None

    team1 = final_match.slot1.roster_id
    team2 = final_match.slot2.roster_id
    if not team1 or not team2:
        return None

    if final_match.winner:
        champion = final_match.winner
        runner_up = team2 if champion == team1 else team1
        return PlayoffResult(champion, runner_up, final_match.round)

    round_scores = (scores_by_round or {}).get(final_match.round, {})
    points1 = round_scores.get(team1, 0) or 0
    points2 = round_scores.get(team2, 0) or 0
    if points1 > points2:
        return PlayoffResult(team1, team2, final_match.round)
    if points2 > points1:
        return PlayoffResult(team2, team1, final_match.round)
    return None


def bracket_is_complete(rounds: List[BracketRound]) -> bool:
    """True when every surfaced match is final and no placeholder remains."""
    for bracket_round in rounds:
        for pair in bracket_round.matches:
            if pair.status != MatchStatus.FINAL:
                return False
            if pair.home.is_placeholder or pair.away.is_placeholder:
                return False
    return True
