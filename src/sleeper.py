"""
Thin client for the Sleeper public API and the roster/user join.
"""
import logging
from typing import Dict, Iterable, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import SLEEPER_BASE_URL, get_cache_config
from core.models import BracketMatch, Team, combine_points
from core.standings import simple_streak

logger = logging.getLogger(__name__)

USER_AGENT = 'LeagueSnapshot/1.0'


class SleeperAPIError(Exception):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def build_session(retries=3, backoff_factor=0.5):
    """requests Session that retries transient upstream failures."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=('GET',),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    session.headers.update({'User-Agent': USER_AGENT})
    return session


class SleeperClient:
    """
    Fetches league data as parsed JSON.

    Responses go through the injected ResponseCache when one is given, keyed
    by endpoint, so concurrent requests for the same endpoint share one fetch.
    """

    def __init__(self, base_url=SLEEPER_BASE_URL, cache=None, session=None, timeout=10):
        self.base_url = base_url.rstrip('/')
        self.cache = cache
        self.session = session if session is not None else build_session()
        self.timeout = timeout

    def _fetch(self, path):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise SleeperAPIError(f"Request to Sleeper failed for {path}: {e}") from e
        if response.status_code != 200:
            raise SleeperAPIError(f"Sleeper API error {response.status_code} for {path}", response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise SleeperAPIError(f"Invalid JSON from Sleeper for {path}: {e}", response.status_code) from e

    def get_json(self, path, ttl=None, use_cache=True):
        if self.cache is None or not use_cache:
            return self._fetch(path)
        if ttl is None:
            ttl = get_cache_config()['standings_ttl']
        return self.cache.get_or_fetch(path, lambda: self._fetch(path), ttl)

    def get_league(self, league_id, use_cache=True):
        return self.get_json(f"/league/{league_id}", use_cache=use_cache)

    def get_users(self, league_id, use_cache=True):
        users = self.get_json(f"/league/{league_id}/users", use_cache=use_cache)
        return users if isinstance(users, list) else []

    def get_rosters(self, league_id, use_cache=True):
        rosters = self.get_json(f"/league/{league_id}/rosters", use_cache=use_cache)
        return rosters if isinstance(rosters, list) else []

    def get_user(self, user_id):
        return self.get_json(f"/user/{user_id}")

    def get_matchups(self, league_id, week):
        rows = self.get_json(f"/league/{league_id}/matchups/{week}", ttl=get_cache_config()['matchups_ttl'])
        return rows if isinstance(rows, list) else []

    def get_winners_bracket(self, league_id):
        bracket = self.get_json(f"/league/{league_id}/winners_bracket")
        return bracket if isinstance(bracket, list) else []

    def get_drafts(self, league_id):
        drafts = self.get_json(f"/league/{league_id}/drafts")
        return drafts if isinstance(drafts, list) else []

    def get_traded_picks(self, draft_id):
        picks = self.get_json(f"/draft/{draft_id}/traded_picks")
        return picks if isinstance(picks, list) else []

    def get_nfl_state(self):
        return self.get_json('/state/nfl')

    def get_league_data(self, league_id, use_cache=True):
        """League, users and rosters. Raises SleeperAPIError when the league is unknown."""
        league = self.get_league(league_id, use_cache=use_cache)
        if not league:
            raise SleeperAPIError(f"League not found: {league_id}", 404)
        users = self.get_users(league_id, use_cache=use_cache)
        rosters = self.get_rosters(league_id, use_cache=use_cache)
        if not users:
            logger.warning(f"No users found for league {league_id}")
        if not rosters:
            logger.warning(f"No rosters found for league {league_id}")
        return league, users, rosters


def resolve_display_name(user: Optional[Dict], owner_id: Optional[str], roster_id: int) -> str:
    """display_name -> username -> "User-<last 4 of owner id>" -> "Team-<roster id>"."""
    if user:
        name = user.get('display_name') or user.get('username')
        if name:
            return name
    if owner_id:
        return f"User-{str(owner_id)[-4:]}"
    return f"Team-{roster_id}"


def find_orphan_owner_ids(users: Iterable[Dict], rosters: Iterable[Dict]) -> List[str]:
    """Owner ids on rosters with no matching league user."""
    known = {u.get('user_id') for u in users if u}
    orphans = []
    for roster in rosters:
        owner_id = (roster or {}).get('owner_id')
        if owner_id and owner_id not in known and owner_id not in orphans:
            orphans.append(owner_id)
    return orphans


def map_rosters_to_teams(users: Iterable[Dict], rosters: Iterable[Dict],
                         extra_users: Optional[Iterable[Dict]] = None) -> List[Team]:
    """
    Join rosters with their owners into unranked Teams.

    Missing stats count as zero. Points combine the integer and hundredths
    fields. Rosters without a roster_id are dropped.
    """
    users_by_id = {}
    for user in list(users or []) + list(extra_users or []):
        if user and user.get('user_id'):
            users_by_id[user['user_id']] = user

    teams = []
    for roster in rosters or []:
        if not roster or roster.get('roster_id') is None:
            continue
        settings = roster.get('settings') or {}
        owner_id = roster.get('owner_id')
        wins = settings.get('wins') or 0
        losses = settings.get('losses') or 0
        ties = settings.get('ties') or 0
        teams.append(Team(
            roster_id=roster['roster_id'],
            owner_id=owner_id,
            display_name=resolve_display_name(users_by_id.get(owner_id), owner_id, roster['roster_id']),
            wins=wins,
            losses=losses,
            ties=ties,
            points_for=combine_points(settings.get('fpts'), settings.get('fpts_decimal')),
            points_against=combine_points(settings.get('fpts_against'), settings.get('fpts_against_decimal')),
            streak=simple_streak(wins, losses, ties),
        ))
    return teams


def load_league_teams(client: SleeperClient, league_id: str, use_cache=True):
    """
    Fetch a league and its unranked Teams.

    Owners missing from the league user list are looked up one by one; a
    failed lookup only costs that owner their display name.
    """
    league, users, rosters = client.get_league_data(league_id, use_cache=use_cache)
    extra_users = []
    for owner_id in find_orphan_owner_ids(users, rosters):
        try:
            user = client.get_user(owner_id)
        except SleeperAPIError as e:
            logger.warning(f"Could not look up owner {owner_id} for league {league_id}: {e}")
            continue
        if user:
            extra_users.append(user)
    return league, map_rosters_to_teams(users, rosters, extra_users)


def load_bracket(client: SleeperClient, league_id: str) -> List[BracketMatch]:
    return [BracketMatch.from_sleeper(record) for record in client.get_winners_bracket(league_id)]


def playoff_start_week(league: Optional[Dict], default: int) -> int:
    settings = (league or {}).get('settings') or {}
    return settings.get('playoff_week_start') or default


def load_scores_by_round(client: SleeperClient, league_id: str, matches: Iterable[BracketMatch],
                         start_week: int, current_week: Optional[int] = None) -> Dict[int, Dict[int, float]]:
    """
    round -> {roster_id: points} from each playoff round's weekly matchups.

    Rounds after ``current_week`` are not fetched. A round whose matchups
    cannot be fetched is left empty and its scores read as zero.
    """
    scores = {}
    for round_number in sorted({m.round for m in matches}):
        week = start_week + round_number - 1
        if current_week is not None and week > current_week:
            continue
        try:
            rows = client.get_matchups(league_id, week)
        except SleeperAPIError as e:
            logger.warning(f"No scores for league {league_id} week {week}: {e}")
            continue
        scores[round_number] = {
            row['roster_id']: row.get('points') or 0 for row in rows if row.get('roster_id') is not None
        }
    return scores


def load_weekly_matchups(client: SleeperClient, league_id: str, weeks: Iterable[int]) -> Dict[int, List[Dict]]:
    weekly = {}
    for week in weeks:
        try:
            weekly[week] = client.get_matchups(league_id, week)
        except SleeperAPIError as e:
            logger.warning(f"Skipping week {week} for league {league_id}: {e}")
    return weekly


def current_week(league: Optional[Dict]) -> int:
    settings = (league or {}).get('settings') or {}
    return settings.get('leg') or settings.get('week') or 0