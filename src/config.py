"""
Configuration from environment variables and an optional leagues.yaml file.
"""
import logging
import os
import re
from datetime import date

import yaml

from core.matchups import DEFAULT_RULES
from core.models import LeagueFormat

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('LEAGUE_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LEAGUES_FILE = os.path.join(DATA_DIR, 'leagues.yaml')
SLEEPER_BASE_URL = 'https://api.sleeper.app/v1'

LEAGUE_ID_PATTERN = re.compile(r'^\d{16,20}$')
HISTORICAL_ENV_PATTERN = re.compile(r'^LEAGUE_ID_(REDRAFT|DYNASTY)_(\d{4})$')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


def validate_league_id(value, name):
    """Return the id if it looks like a Sleeper league id (16-20 digits)."""
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    value = str(value).strip()
    if not LEAGUE_ID_PATTERN.match(value):
        raise ConfigError(f"Invalid league id for {name}: {value}. Expected 16-20 digits.")
    return value


def _env_bool(environ, key, default):
    value = environ.get(key)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(environ, key, default, minimum=0):
    value = environ.get(key)
    if value is None or value == '':
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if parsed < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {parsed}")
    return parsed


def load_leagues_file(path=None):
    """Historical league ids from YAML: {historical: {redraft: {2023: '...'}}}."""
    path = path or LEAGUES_FILE
    if not os.path.exists(path):
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    return data if data else {}


def load_historical_leagues(environ=None, leagues_file=None):
    """
    Historical league ids by format and year.

    Environment variables LEAGUE_ID_<FORMAT>_<YEAR> override entries from the
    YAML file. Empty or malformed ids are skipped with a warning.
    """
    environ = os.environ if environ is None else environ
    historical = {fmt.value: {} for fmt in LeagueFormat}

    file_data = load_leagues_file(leagues_file).get('historical') or {}
    for fmt_name, seasons in file_data.items():
        if fmt_name not in historical:
            logger.warning(f"Ignoring unknown league format in leagues file: {fmt_name}")
            continue
        for year, league_id in (seasons or {}).items():
            historical[fmt_name][str(year)] = str(league_id)

    for key, value in environ.items():
        m = HISTORICAL_ENV_PATTERN.match(key)
        if m and value:
            historical[m.group(1).lower()][m.group(2)] = value.strip()

    for fmt_name, seasons in historical.items():
        for year in list(seasons):
            if not LEAGUE_ID_PATTERN.match(seasons[year]):
                logger.warning(
                    f"Skipping invalid {fmt_name} league id for {year}: {seasons[year]}"
                )
                del seasons[year]
    return historical


def load_config(environ=None, leagues_file=None):
    """Build the application config dict. Raises ConfigError on invalid values."""
    environ = os.environ if environ is None else environ

    log_level = environ.get('LOG_LEVEL', 'INFO').upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level}")
    if _env_bool(environ, 'DEBUG_LOGS', False):
        log_level = 'DEBUG'

    playoff_start_weeks = {}
    for fmt in LeagueFormat:
        playoff_start_weeks[fmt.value] = _env_int(
            environ, f"PLAYOFF_START_WEEK_{fmt.value.upper()}", DEFAULT_RULES[fmt].playoff_start_week,
            minimum=1
        )

    return {
        'leagues': {
            LeagueFormat.REDRAFT.value: validate_league_id(environ.get('LEAGUE_ID_REDRAFT'), 'LEAGUE_ID_REDRAFT'),
            LeagueFormat.DYNASTY.value: validate_league_id(environ.get('LEAGUE_ID_DYNASTY'), 'LEAGUE_ID_DYNASTY'),
        },
        'historical': load_historical_leagues(environ, leagues_file),
        'playoff_start_weeks': playoff_start_weeks,
        'cache_ttl': _env_int(environ, 'CACHE_TTL', 300),
        'cache_enabled': _env_bool(environ, 'ENABLE_CACHE', True),
        'log_level': log_level,
        'sleeper_base_url': environ.get('SLEEPER_BASE_URL', SLEEPER_BASE_URL).rstrip('/'),
        'first_pick_owner': environ.get('DRAFT_FIRST_PICK_OWNER') or None,
    }


def configure_logging(level='INFO'):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )


def is_in_season(today=None):
    """The NFL fantasy season runs September through January."""
    today = today or date.today()
    return today.month >= 9 or today.month <= 1


def get_cache_config(today=None):
    """Server TTLs and browser max-age, tighter during the season."""
    if is_in_season(today):
        return {'standings_ttl': 60, 'matchups_ttl': 60, 'browser_max_age': 30}
    return {'standings_ttl': 300, 'matchups_ttl': 600, 'browser_max_age': 180}


def league_format_for(config, league_id):
    """LeagueFormat for a configured current league id, or None."""
    for fmt_name, configured_id in config['leagues'].items():
        if configured_id == league_id:
            return LeagueFormat(fmt_name)
    return None
