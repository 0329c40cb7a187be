"""
Shared pytest fixtures for league snapshot tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Team


BASE_URL = 'https://sleeper.test/v1'
REDRAFT_ID = '1000000000000000001'
DYNASTY_ID = '2000000000000000002'
HISTORY_ID = '3000000000000000003'


def make_team(roster_id, wins=0, losses=0, ties=0, points_for=0.0, points_against=0.0, **kwargs):
    return Team(roster_id=roster_id, owner_id=kwargs.pop('owner_id', f"u{roster_id}"),
                display_name=kwargs.pop('display_name', f"Owner {roster_id}"), wins=wins, losses=losses,
                ties=ties, points_for=points_for, points_against=points_against, **kwargs)


def make_rosters(count):
    """Rosters where roster 1 has the best record and points fall with the roster id."""
    rosters = []
    for i in range(1, count + 1):
        wins = count - i
        rosters.append({
            'roster_id': i,
            'owner_id': f"u{i}",
            'settings': {
                'wins': wins,
                'losses': count - 1 - wins,
                'ties': 0,
                'fpts': 1500 - i * 10,
                'fpts_decimal': 25,
                'fpts_against': 1200 + i * 5,
                'fpts_against_decimal': 50,
            },
        })
    return rosters


def make_users(count, skip=()):
    return [
        {'user_id': f"u{i}", 'display_name': f"Owner {i}"}
        for i in range(1, count + 1) if i not in skip
    ]


# Six-team dynasty bracket: seeds 1 and 2 on byes, nothing played yet.
DYNASTY_BRACKET = [
    {'r': 1, 'm': 1, 't1': 3, 't2': 6, 'w': None, 'l': None},
    {'r': 1, 'm': 2, 't1': 4, 't2': 5, 'w': None, 'l': None},
    {'r': 2, 'm': 3, 't1': 1, 't2': None, 't2_from': {'w': 2}, 'w': None, 'l': None},
    {'r': 2, 'm': 4, 't1': 2, 't2': None, 't2_from': {'w': 1}, 'w': None, 'l': None},
    {'r': 2, 'm': 5, 't1': None, 't2': None, 't1_from': {'l': 1}, 't2_from': {'l': 2}, 'p': 5},
    {'r': 3, 'm': 6, 't1': None, 't2': None, 't1_from': {'w': 3}, 't2_from': {'w': 4}, 'p': 1},
    {'r': 3, 'm': 7, 't1': None, 't2': None, 't1_from': {'l': 3}, 't2_from': {'l': 4}, 'p': 3},
]

# Completed four-team bracket for a past season: roster 2 beats roster 1 in the final.
HISTORY_BRACKET = [
    {'r': 1, 'm': 1, 't1': 1, 't2': 4, 'w': 1, 'l': 4},
    {'r': 1, 'm': 2, 't1': 2, 't2': 3, 'w': 2, 'l': 3},
    {'r': 2, 'm': 3, 't1': 1, 't2': 2, 't1_from': {'w': 1}, 't2_from': {'w': 2}, 'w': 2, 'l': 1, 'p': 1},
    {'r': 2, 'm': 4, 't1': 4, 't2': 3, 't1_from': {'l': 1}, 't2_from': {'l': 2}, 'w': 3, 'l': 4, 'p': 3},
]


def sleeper_routes():
    """Canned upstream responses keyed by API path."""
    routes = {
        f"/league/{REDRAFT_ID}": {'league_id': REDRAFT_ID, 'season': '2024', 'settings': {'week': 14}},
        f"/league/{REDRAFT_ID}/users": make_users(14, skip=(14,)),
        f"/league/{REDRAFT_ID}/rosters": make_rosters(14),
        f"/league/{REDRAFT_ID}/winners_bracket": [],
        f"/league/{REDRAFT_ID}/drafts": [],
        '/user/u14': {'user_id': 'u14', 'username': 'latejoiner'},

        f"/league/{DYNASTY_ID}": {
            'league_id': DYNASTY_ID, 'season': '2024', 'settings': {'week': 10, 'playoff_week_start': 15},
        },
        f"/league/{DYNASTY_ID}/users": make_users(10),
        f"/league/{DYNASTY_ID}/rosters": make_rosters(10),
        f"/league/{DYNASTY_ID}/winners_bracket": DYNASTY_BRACKET,
        f"/league/{DYNASTY_ID}/matchups/15": [
            {'roster_id': 3, 'matchup_id': 1, 'points': 101.5},
            {'roster_id': 6, 'matchup_id': 1, 'points': 88.2},
            {'roster_id': 4, 'matchup_id': 2, 'points': 0},
            {'roster_id': 5, 'matchup_id': 2, 'points': 0},
        ],
        f"/league/{DYNASTY_ID}/drafts": [
            {'draft_id': 'd-old', 'status': 'complete', 'season': '2024', 'start_time': 1},
            {'draft_id': 'd1', 'status': 'pre_draft', 'season': '2025', 'start_time': 2, 'draft_order': None},
        ],
        '/draft/d1/traded_picks': [{'round': 1, 'season': '2025', 'roster_id': 10, 'owner_id': 1}],

        f"/league/{HISTORY_ID}": {'league_id': HISTORY_ID, 'season': '2023', 'settings': {'playoff_week_start': 15}},
        f"/league/{HISTORY_ID}/users": make_users(4),
        f"/league/{HISTORY_ID}/rosters": make_rosters(4),
        f"/league/{HISTORY_ID}/winners_bracket": HISTORY_BRACKET,
        f"/league/{HISTORY_ID}/matchups/1": [
            {'roster_id': 1, 'matchup_id': 1, 'points': 110.0},
            {'roster_id': 2, 'matchup_id': 1, 'points': 95.5},
            {'roster_id': 3, 'matchup_id': 2, 'points': 80.0},
            {'roster_id': 4, 'matchup_id': 2, 'points': 90.0},
        ],
        f"/league/{HISTORY_ID}/matchups/2": [
            {'roster_id': 1, 'matchup_id': 1, 'points': 70.0},
            {'roster_id': 2, 'matchup_id': 1, 'points': 120.0},
        ],
    }
    return routes


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records every requested URL."""

    def __init__(self, routes, base_url=BASE_URL):
        self.routes = routes
        self.base_url = base_url
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        path = url[len(self.base_url):]
        if path in self.routes:
            payload = self.routes[path]
            if isinstance(payload, FakeResponse):
                return payload
            return FakeResponse(200, payload)
        if '/matchups/' in path:
            return FakeResponse(200, [])
        return FakeResponse(404, None)


@pytest.fixture
def fake_session():
    return FakeSession(sleeper_routes())


@pytest.fixture
def sleeper_client(fake_session):
    from sleeper import SleeperClient
    return SleeperClient(base_url=BASE_URL, session=fake_session)


@pytest.fixture
def app_config():
    return {
        'leagues': {'redraft': REDRAFT_ID, 'dynasty': DYNASTY_ID},
        'historical': {'redraft': {'2023': HISTORY_ID}, 'dynasty': {}},
        'playoff_start_weeks': {'redraft': 15, 'dynasty': 15},
        'cache_ttl': 300,
        'cache_enabled': True,
        'log_level': 'WARNING',
        'sleeper_base_url': BASE_URL,
        'first_pick_owner': None,
    }


@pytest.fixture
def app(app_config, fake_session):
    from app import create_app
    from cache import ResponseCache
    from sleeper import SleeperClient

    client = SleeperClient(base_url=BASE_URL, cache=ResponseCache(), session=fake_session)
    app = create_app(app_config, client)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client backed by canned Sleeper responses."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def ten_teams():
    """Ten unranked teams; roster 1 has the best record, points fall with the roster id."""
    return [make_team(i, wins=10 - i, losses=i - 1, points_for=1500 - i * 10, points_against=1200)
            for i in range(1, 11)]


@pytest.fixture
def fourteen_teams():
    return [make_team(i, wins=14 - i, losses=i - 1, points_for=1500 - i * 10, points_against=1200)
            for i in range(1, 15)]
