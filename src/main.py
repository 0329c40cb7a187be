# Command-line entry point: print league tables or serve the web app

import argparse
import sys

from cache import ResponseCache
from config import ConfigError, configure_logging, load_config
from core.draft import build_draft_board
from core.errors import PairingError
from core.matchups import DEFAULT_RULES, pair_teams
from core.models import LeagueFormat
from core.playoffs import determine_playoff_final, reconstruct_bracket
from core.points_race import points_race
from core.standings import rank_league
from sleeper import (
    SleeperAPIError, SleeperClient, load_bracket, load_league_teams, load_scores_by_round,
    load_weekly_matchups, playoff_start_week,
)


def build_parser():
    parser = argparse.ArgumentParser(description='Standings, matchups, bracket and draft order for Sleeper leagues')
    parser.add_argument('--format', choices=[f.value for f in LeagueFormat], default=LeagueFormat.REDRAFT.value,
                        help='which configured league to read (default: redraft)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    standings = subparsers.add_parser('standings', help='print ranked standings')
    standings.add_argument('--points-race', action='store_true', help='order non-qualifiers by points for')

    matchups = subparsers.add_parser('matchups', help='print pairings for a week')
    matchups.add_argument('--week', type=int, required=True)

    subparsers.add_parser('bracket', help='print the playoff bracket')
    subparsers.add_parser('draft', help='print round-one draft order')

    serve = subparsers.add_parser('serve', help='run the web app')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', type=int, default=5000)
    return parser


def rules_for(config, league_format, league):
    rules = DEFAULT_RULES[league_format]
    start = config['playoff_start_weeks'].get(league_format.value, rules.playoff_start_week)
    return rules.with_playoff_start(playoff_start_week(league, start))


def format_record(team):
    record = f"{team.wins}-{team.losses}"
    if team.ties:
        record += f"-{team.ties}"
    return record


def print_standings(teams):
    print(f"{'#':>3}  {'Team':<24} {'Record':<8} {'PF':>8} {'PA':>8}  Streak")
    for team in teams:
        print(f"{team.rank:>3}  {team.display_name:<24} {format_record(team):<8} "
              f"{team.points_for:>8.2f} {team.points_against:>8.2f}  {team.streak}")


def print_pairs(pairs):
    if not pairs:
        print("  No matchups.")
        return
    for pair in pairs:
        title = f"[{pair.title}] " if pair.title else ""
        print(f"  {title}{pair.home.display_name} ({pair.home_points:.2f}) vs "
              f"{pair.away.display_name} ({pair.away_points:.2f})  {pair.status.value}")


def run_standings(client, config, league_format, league_id, args):
    _, teams = load_league_teams(client, league_id)
    ranked = points_race(teams) if args.points_race else rank_league(teams, league_format)
    print_standings(ranked)


def run_matchups(client, config, league_format, league_id, args):
    league, teams = load_league_teams(client, league_id)
    rules = rules_for(config, league_format, league)
    ranked = rank_league(teams, league_format)
    bracket = None
    scores = None
    weekly = None
    if rules.is_pairing_week(args.week):
        if league_format == LeagueFormat.DYNASTY:
            weekly = load_weekly_matchups(client, league_id, [args.week]).get(args.week)
    elif rules.is_playoff_week(args.week):
        bracket = load_bracket(client, league_id)
        scores = load_scores_by_round(client, league_id, bracket, rules.playoff_start_week)

    rule, pairs = pair_teams(ranked, league_format, args.week, rules, bracket=bracket,
                             scores_by_round=scores, weekly_matchups=weekly)
    print(f"\n--- Week {args.week} ({rule}) ---")
    print_pairs(pairs)


def run_bracket(client, config, league_format, league_id, args):
    league, teams = load_league_teams(client, league_id)
    rules = rules_for(config, league_format, league)
    bracket = load_bracket(client, league_id)
    scores = load_scores_by_round(client, league_id, bracket, rules.playoff_start_week)
    rounds = reconstruct_bracket(bracket, rank_league(teams, league_format), scores)
    if not rounds:
        print("No playoff bracket yet.")
        return
    for bracket_round in rounds:
        print(f"\n--- Round {bracket_round.round} (week {rules.playoff_start_week + bracket_round.round - 1}) ---")
        print_pairs(bracket_round.matches)

    result = determine_playoff_final(bracket, scores)
    if result:
        names = {team.roster_id: team.display_name for team in teams}
        print(f"\nChampion: {names.get(result.champion_roster_id, result.champion_roster_id)}")


def run_draft(client, config, league_format, league_id, args):
    _, teams = load_league_teams(client, league_id)
    bracket = load_bracket(client, league_id)
    board = build_draft_board(teams, bracket, first_pick_owner=config.get('first_pick_owner'))
    for pick in board:
        via = f" (via {pick['original']['display_name']})" if pick['traded'] else ""
        print(f"  {pick['label']}  {pick['owner']['display_name']}{via}")


COMMANDS = {
    'standings': run_standings,
    'matchups': run_matchups,
    'bracket': run_bracket,
    'draft': run_draft,
}


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(config['log_level'])

    if args.command == 'serve':
        from app import create_app
        create_app(config).run(host=args.host, port=args.port)
        return 0

    league_format = LeagueFormat(args.format)
    league_id = config['leagues'][league_format.value]
    client = SleeperClient(
        base_url=config['sleeper_base_url'],
        cache=ResponseCache(default_ttl=config['cache_ttl'], enabled=config['cache_enabled']),
    )
    try:
        COMMANDS[args.command](client, config, league_format, league_id, args)
    except PairingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SleeperAPIError as e:
        print(f"Error fetching data from Sleeper: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
