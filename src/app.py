"""
Flask web application for League Snapshot.

JSON endpoints for standings, matchups, playoff bracket, draft order and
league history, backed by the Sleeper public API.
"""
from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from cache import ResponseCache
from config import configure_logging, get_cache_config, is_in_season, league_format_for, load_config
from core.draft import build_draft_board
from core.errors import InvalidScheduleError, UnsupportedWeekError
from core.history import build_season_summary, champions_list, head_to_head, matches_from_week
from core.matchups import DEFAULT_RULES, LeagueRules, is_valid_week, pair_teams
from core.models import LeagueFormat
from core.playoffs import bracket_is_complete, determine_playoff_final, reconstruct_bracket
from core.points_race import points_race
from core.standings import calculate_streak, rank_league
from sleeper import (
    SleeperAPIError, SleeperClient, current_week, load_bracket, load_league_teams, load_scores_by_round,
    load_weekly_matchups, playoff_start_week,
)

STREAK_LOOKBACK_WEEKS = 10
DRAFT_STATUS_PRIORITY = {'drafting': 3, 'paused': 3, 'pre_draft': 2, 'complete': 1}
HISTORY_REGULAR_SEASON_WEEKS = 14


def create_app(config=None, client=None):
    """
    Build the Flask app.

    Args:
        config: dict from config.load_config(); loaded from the environment if omitted
        client: SleeperClient; one sharing a fresh ResponseCache is built if omitted
    """
    config = config if config is not None else load_config()
    configure_logging(config.get('log_level', 'INFO'))

    app = Flask(__name__)
    app.config['LEAGUES'] = config
    if client is None:
        cache = ResponseCache(default_ttl=config.get('cache_ttl', 300), enabled=config.get('cache_enabled', True))
        client = SleeperClient(base_url=config['sleeper_base_url'], cache=cache)
    app.extensions['sleeper'] = client

    register_routes(app)
    register_error_handlers(app)
    return app


def _settings():
    return current_app.config['LEAGUES']


def _client():
    return current_app.extensions['sleeper']


def league_rules(league_format, league=None):
    """Default rules for the format, with the configured or league-reported playoff start."""
    league_format = LeagueFormat.parse(league_format)
    rules = DEFAULT_RULES[league_format]
    start = _settings().get('playoff_start_weeks', {}).get(league_format.value, rules.playoff_start_week)
    return rules.with_playoff_start(playoff_start_week(league, start))


def cached_json(payload, ttl_key, status=200, extra_headers=None):
    """JSON response with browser and shared-cache headers for the season."""
    cache_config = get_cache_config()
    response = jsonify(payload)
    response.status_code = status
    in_season = is_in_season()
    response.headers['Cache-Control'] = (
        f"public, max-age={cache_config['browser_max_age']}, s-maxage={cache_config[ttl_key]}"
    )
    response.headers['X-Cache-TTL'] = str(cache_config[ttl_key])
    response.headers['X-In-Season'] = str(in_season).lower()
    for key, value in (extra_headers or {}).items():
        response.headers[key] = value
    return response


def error_response(message, status):
    return jsonify({'error': message}), status


def _resolve_league_param():
    """(league_id, LeagueFormat) from ?league=, or an error response tuple."""
    league_id = request.args.get('league')
    if not league_id:
        return None, error_response('Parameter "league" is required', 400)
    league_format = league_format_for(_settings(), league_id)
    if league_format is None:
        return None, error_response('League is not one of the configured leagues', 400)
    return (league_id, league_format), None


def annotate_seeds(teams, rules: LeagueRules):
    rows = []
    for team in teams:
        row = team.to_dict()
        row['is_playoff_seed'] = team.rank <= rules.playoff_seeds
        row['is_bye_seed'] = team.rank <= rules.bye_seeds
        rows.append(row)
    return rows


def attach_real_streaks(client, league_id, league, teams):
    week = current_week(league)
    weeks = range(max(1, week - STREAK_LOOKBACK_WEEKS), week)
    weekly = load_weekly_matchups(client, league_id, weeks)
    return [team.copy(streak=calculate_streak(team.roster_id, weekly)) for team in teams]


def select_relevant_draft(drafts, league, team_count):
    """
    The draft to show: live drafts first, then upcoming, then completed,
    newest season first. Without an upcoming draft a virtual one for next
    season stands in.
    """
    ordered = sorted(
        drafts,
        key=lambda d: (
            DRAFT_STATUS_PRIORITY.get(d.get('status'), 0),
            str(d.get('season') or ''),
            d.get('start_time') or 0,
        ),
        reverse=True
    )
    draft = ordered[0] if ordered else None
    if draft is None or draft.get('status') == 'complete':
        next_season = str(int(league.get('season') or 0) + 1)
        current_app.logger.info(f"No upcoming draft for league {league.get('league_id')}, using virtual {next_season} draft")
        draft = {
            'draft_id': 'virtual-draft',
            'league_id': league.get('league_id'),
            'season': next_season,
            'status': 'pre_draft',
            'type': 'linear',
            'settings': {'rounds': 3, 'teams': team_count},
            'draft_order': None,
        }
    return draft


def register_routes(app):

    @app.route('/')
    def index():
        """Configured leagues and available history."""
        settings = _settings()
        return jsonify({
            'leagues': settings['leagues'],
            'history': {fmt: sorted(seasons) for fmt, seasons in settings['historical'].items()},
            'in_season': is_in_season(),
        })

    @app.route('/api/standings')
    def api_standings():
        """Ranked standings; ?view=points_race for the points-race order."""
        resolved, error = _resolve_league_param()
        if error:
            return error
        league_id, league_format = resolved
        view = request.args.get('view', 'standings')
        if view not in ('standings', 'points_race'):
            return error_response('Parameter "view" must be "standings" or "points_race"', 400)

        client = _client()
        league, teams = load_league_teams(client, league_id)
        if request.args.get('streaks') == 'real':
            teams = attach_real_streaks(client, league_id, league, teams)

        if view == 'points_race':
            ranked = points_race(teams)
        else:
            ranked = rank_league(teams, league_format)

        rules = league_rules(league_format, league)
        return cached_json({
            'league_id': league.get('league_id', league_id),
            'season': league.get('season'),
            'week': (league.get('settings') or {}).get('week', 0),
            'format': league_format.value,
            'view': view,
            'playoffs': {'seeds': rules.playoff_seeds, 'byes': rules.bye_seeds},
            'teams': annotate_seeds(ranked, rules),
        }, 'standings_ttl')

    @app.route('/api/matchups')
    def api_matchups():
        """Pairings for ?week= under the league's rule for that week."""
        resolved, error = _resolve_league_param()
        if error:
            return error
        league_id, league_format = resolved

        week_param = request.args.get('week')
        if not week_param:
            return error_response('Parameter "week" is required', 400)
        try:
            week = int(week_param)
        except ValueError:
            return error_response('Parameter "week" must be a number', 400)

        client = _client()
        league, teams = load_league_teams(client, league_id)
        rules = league_rules(league_format, league)
        if not is_valid_week(league_format, week, rules):
            raise UnsupportedWeekError(league_format.value, week, rules.describe_valid_weeks())
        if not teams:
            return error_response('No teams found for this league', 404)

        ranked = rank_league(teams, league_format)
        bracket = None
        scores = None
        weekly = None
        if rules.is_pairing_week(week):
            if league_format == LeagueFormat.DYNASTY:
                weekly = load_weekly_matchups(client, league_id, [week]).get(week)
        else:
            bracket = load_bracket(client, league_id)
            scores = load_scores_by_round(client, league_id, bracket, rules.playoff_start_week)

        rule, pairs = pair_teams(ranked, league_format, week, rules, bracket=bracket,
                                 scores_by_round=scores, weekly_matchups=weekly)
        return cached_json({
            'league_id': league_id,
            'week': week,
            'rule': rule,
            'pairs': [pair.to_dict() for pair in pairs],
        }, 'matchups_ttl', extra_headers={'X-League-Type': league_format.value, 'X-Week': str(week)})

    @app.route('/api/bracket')
    def api_bracket():
        """Full playoff bracket with titles, scores and the champion when decided."""
        resolved, error = _resolve_league_param()
        if error:
            return error
        league_id, league_format = resolved

        client = _client()
        league, teams = load_league_teams(client, league_id)
        rules = league_rules(league_format, league)
        bracket = load_bracket(client, league_id)
        scores = load_scores_by_round(client, league_id, bracket, rules.playoff_start_week)
        rounds = reconstruct_bracket(bracket, rank_league(teams, league_format), scores)
        result = determine_playoff_final(bracket, scores)

        return cached_json({
            'league_id': league_id,
            'playoff_start_week': rules.playoff_start_week,
            'rounds': [r.to_dict() for r in rounds],
            'complete': bool(rounds) and bracket_is_complete(rounds),
            'result': result.to_dict() if result else None,
        }, 'matchups_ttl')

    @app.route('/api/draft')
    def api_draft():
        """Round-one draft order with traded picks applied."""
        resolved, error = _resolve_league_param()
        if error:
            return error
        league_id, league_format = resolved

        client = _client()
        league, teams = load_league_teams(client, league_id)
        bracket = load_bracket(client, league_id)
        draft = select_relevant_draft(client.get_drafts(league_id), league, len(teams))
        traded = [] if draft['draft_id'] == 'virtual-draft' else client.get_traded_picks(draft['draft_id'])

        board = build_draft_board(
            teams, bracket, traded,
            draft_order=draft.get('draft_order'),
            draft_status=draft.get('status'),
            first_pick_owner=_settings().get('first_pick_owner'),
        )
        return cached_json({
            'league_id': league_id,
            'format': league_format.value,
            'season': draft.get('season'),
            'status': draft.get('status'),
            'picks': board,
        }, 'standings_ttl')

    @app.route('/api/history')
    def api_history():
        """Past seasons with champions; ?owner_a=&owner_b= adds a head-to-head record."""
        league_type = request.args.get('leagueType')
        try:
            league_format = LeagueFormat.parse(league_type)
        except ValueError:
            return error_response('Parameter "leagueType" must be "redraft" or "dynasty"', 400)

        seasons_config = _settings()['historical'].get(league_format.value, {})
        if not seasons_config:
            return error_response(f"No league ids configured for {league_format.value}", 404)

        owner_a = request.args.get('owner_a')
        owner_b = request.args.get('owner_b')
        client = _client()
        seasons = []
        matches = []
        for year, league_id in seasons_config.items():
            try:
                league, teams = load_league_teams(client, league_id, use_cache=False)
            except SleeperAPIError as e:
                current_app.logger.warning(f"Skipping {league_format.value} season {year}: {e}")
                continue
            if not teams:
                current_app.logger.warning(f"No teams for {league_format.value} season {year} ({league_id})")
                continue
            bracket = load_bracket(client, league_id)
            start = playoff_start_week(league, league_rules(league_format).playoff_start_week)
            scores = load_scores_by_round(client, league_id, bracket, start)
            seasons.append(build_season_summary(year, league_id, teams, bracket, scores))

            if owner_a and owner_b:
                weekly = load_weekly_matchups(client, league_id, range(1, HISTORY_REGULAR_SEASON_WEEKS + 1))
                for week, rows in weekly.items():
                    matches.extend(matches_from_week(year, week, rows, teams))

        seasons.sort(key=lambda s: int(s['year']), reverse=True)
        payload = {
            'league_type': league_format.value,
            'seasons': seasons,
            'champions': champions_list(seasons),
        }
        if owner_a and owner_b:
            payload['head_to_head'] = head_to_head(matches, owner_a, owner_b)
        return jsonify(payload)

    @app.route('/api/clear-cache', methods=['POST'])
    def api_clear_cache():
        """Drop every cached upstream response."""
        cache = getattr(_client(), 'cache', None)
        cleared = cache.clear() if cache is not None else 0
        current_app.logger.info(f"Cache cleared ({cleared} entries)")
        return jsonify({'success': True, 'cleared': cleared})


def register_error_handlers(app):

    @app.errorhandler(UnsupportedWeekError)
    def handle_unsupported_week(e):
        return error_response(str(e), 400)

    @app.errorhandler(InvalidScheduleError)
    def handle_invalid_schedule(e):
        app.logger.warning(f"Pairing unavailable: {e}")
        return error_response(f"Pairing unavailable: {e}", 422)

    @app.errorhandler(SleeperAPIError)
    def handle_sleeper_error(e):
        app.logger.error(f"Sleeper API failure: {e}")
        if e.status_code == 404:
            return error_response(str(e), 404)
        return error_response('Error fetching data from Sleeper', 502)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        app.logger.exception(f"Unhandled error on {request.path}")
        return error_response('Internal server error', 500)
