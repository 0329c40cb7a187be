"""
Unit tests for weekly matchup pairing.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import DYNASTY_BRACKET, make_team
from core.errors import InvalidScheduleError, PairingError, UnsupportedWeekError
from core.matchups import (
    DEFAULT_RULES, FIXED_WEEK_PAIRINGS, LeagueRules, get_matchup_rule, is_valid_week, pair_consecutive,
    pair_fixed_table, pair_from_weekly_matchups, pair_teams,
)
from core.models import LeagueFormat, MatchStatus
from core.standings import rank_league


def pair_ids(pairs):
    return [(p.home.roster_id, p.away.roster_id) for p in pairs]


class TestMatchupRule:
    """Tests for rule selection."""

    def test_redraft_week_14(self):
        """Redraft week 14 uses consecutive pairing."""
        assert get_matchup_rule('redraft', 14) == 'redraft-topx'

    @pytest.mark.parametrize("week", [10, 11, 12, 13])
    def test_dynasty_fixed_weeks(self, week):
        """Dynasty weeks 10-13 name their fixed table."""
        assert get_matchup_rule(LeagueFormat.DYNASTY, week) == f"dynasty-week{week}"

    def test_playoff_weeks(self):
        """Weeks from the playoff start name the bracket rule."""
        assert get_matchup_rule('dynasty', 15) == 'dynasty-playoffs'
        assert get_matchup_rule('dynasty', 17) == 'dynasty-playoffs'
        assert get_matchup_rule('redraft', 16) == 'redraft-playoffs'

    @pytest.mark.parametrize("league_format,week", [('redraft', 10), ('redraft', 13), ('dynasty', 9), ('dynasty', 14)])
    def test_unsupported_weeks(self, league_format, week):
        """Weeks outside every set raise UnsupportedWeekError."""
        with pytest.raises(UnsupportedWeekError) as exc:
            get_matchup_rule(league_format, week)
        assert str(week) in str(exc.value)

    def test_unknown_format(self):
        """An unknown format is an unsupported week too."""
        with pytest.raises(UnsupportedWeekError):
            get_matchup_rule('keeper', 14)

    def test_is_valid_week(self):
        """Validity follows the same week sets."""
        assert is_valid_week('redraft', 14)
        assert is_valid_week('dynasty', 12)
        assert not is_valid_week('dynasty', 14)
        assert not is_valid_week('keeper', 14)

    def test_custom_playoff_start(self):
        """Rules with an earlier playoff start accept that week."""
        rules = DEFAULT_RULES[LeagueFormat.DYNASTY].with_playoff_start(14)
        assert get_matchup_rule('dynasty', 14, rules) == 'dynasty-playoffs'

    def test_errors_are_value_errors(self):
        """Pairing errors can be caught as ValueError."""
        assert issubclass(InvalidScheduleError, PairingError)
        assert issubclass(UnsupportedWeekError, ValueError)


class TestConsecutivePairing:
    """Tests for 1v2, 3v4 pairing."""

    def test_fourteen_teams(self, fourteen_teams):
        """Fourteen teams make seven pairs in rank order."""
        ranked = rank_league(fourteen_teams, 'redraft')
        pairs = pair_consecutive(ranked)
        assert pair_ids(pairs) == [(1, 2), (3, 4), (5, 6), (7, 8), (9, 10), (11, 12), (13, 14)]
        assert all(p.status == MatchStatus.SCHEDULED for p in pairs)

    def test_odd_team_dropped(self, ten_teams):
        """An odd team out gets no pair."""
        pairs = pair_consecutive(ten_teams[:5])
        assert len(pairs) == 2

    def test_each_team_at_most_once(self, fourteen_teams):
        """No team appears twice."""
        ids = [rid for pair in pair_ids(pair_consecutive(fourteen_teams)) for rid in pair]
        assert len(ids) == len(set(ids))


class TestFixedTable:
    """Tests for the literal dynasty schedule."""

    def test_week_10(self, ten_teams):
        """Week 10 pairs 1v2, 4v5, 6v7, 8v9 and 3v10."""
        pairs = pair_fixed_table(ten_teams, 10)
        assert pair_ids(pairs) == [(1, 2), (4, 5), (6, 7), (8, 9), (3, 10)]

    def test_week_11(self, ten_teams):
        """Week 11 pairs 1v3, 2v10, 4v6, 5v7 and 8v9."""
        assert pair_ids(pair_fixed_table(ten_teams, 11)) == [(1, 3), (2, 10), (4, 6), (5, 7), (8, 9)]

    def test_every_week_covers_all_ten(self, ten_teams):
        """Every table week uses each rank exactly once."""
        for week in FIXED_WEEK_PAIRINGS:
            ids = [rid for pair in pair_ids(pair_fixed_table(ten_teams, week)) for rid in pair]
            assert sorted(ids) == list(range(1, 11))

    def test_wrong_team_count(self, ten_teams):
        """Anything but ten teams is an invalid schedule."""
        with pytest.raises(InvalidScheduleError):
            pair_fixed_table(ten_teams[:9], 10)
        with pytest.raises(InvalidScheduleError):
            pair_fixed_table(ten_teams + [make_team(11)], 10)

    def test_week_without_table(self, ten_teams):
        """Weeks outside the table are an invalid schedule."""
        with pytest.raises(InvalidScheduleError):
            pair_fixed_table(ten_teams, 9)


class TestWeeklyMatchups:
    """Tests for pairing from upstream weekly rows."""

    def test_groups_by_matchup_id(self, ten_teams):
        """Rows sharing a matchup id form a pair with their points."""
        rows = [
            {'roster_id': 2, 'matchup_id': 2, 'points': 0},
            {'roster_id': 1, 'matchup_id': 1, 'points': 101.5},
            {'roster_id': 5, 'matchup_id': 1, 'points': 99.25},
            {'roster_id': 3, 'matchup_id': 2, 'points': 0},
            {'roster_id': 4, 'matchup_id': None, 'points': 0},
        ]
        pairs = pair_from_weekly_matchups(ten_teams, rows)
        assert pair_ids(pairs) == [(1, 5), (2, 3)]
        assert pairs[0].home_points == 101.5
        assert pairs[0].status == MatchStatus.FINAL
        assert pairs[1].status == MatchStatus.SCHEDULED

    def test_incomplete_group_skipped(self, ten_teams):
        """A matchup id with one row is dropped."""
        pairs = pair_from_weekly_matchups(ten_teams, [{'roster_id': 1, 'matchup_id': 1, 'points': 10}])
        assert pairs == []


class TestPairTeams:
    """Tests for the pair_teams dispatcher."""

    def test_redraft_week_14(self, fourteen_teams):
        """Redraft week 14 returns the rule and consecutive pairs."""
        rule, pairs = pair_teams(rank_league(fourteen_teams, 'redraft'), 'redraft', 14)
        assert rule == 'redraft-topx'
        assert pair_ids(pairs)[0] == (1, 2)

    def test_dynasty_falls_back_to_table(self, ten_teams):
        """Without weekly rows the fixed table is used."""
        rule, pairs = pair_teams(ten_teams, 'dynasty', 12, weekly_matchups=[])
        assert rule == 'dynasty-week12'
        assert pair_ids(pairs) == [(1, 4), (2, 5), (3, 6), (7, 8), (9, 10)]

    def test_dynasty_prefers_weekly_rows(self, ten_teams):
        """Real weekly rows win over the table."""
        rows = [{'roster_id': 1, 'matchup_id': 1, 'points': 0}, {'roster_id': 9, 'matchup_id': 1, 'points': 0}]
        _, pairs = pair_teams(ten_teams, 'dynasty', 12, weekly_matchups=rows)
        assert pair_ids(pairs) == [(1, 9)]

    def test_dynasty_table_needs_ten(self, ten_teams):
        """Eight dynasty teams on a table week raise InvalidScheduleError."""
        with pytest.raises(InvalidScheduleError):
            pair_teams(ten_teams[:8], 'dynasty', 10)

    def test_unsupported_week(self, fourteen_teams):
        """Redraft week 10 is rejected."""
        with pytest.raises(UnsupportedWeekError):
            pair_teams(fourteen_teams, 'redraft', 10)

    def test_unknown_format(self, ten_teams):
        """An unknown format is an unsupported week, as with the rule lookup."""
        with pytest.raises(UnsupportedWeekError):
            pair_teams(ten_teams, 'keeper', 14)

    def test_playoff_week_uses_bracket_round(self, ten_teams):
        """Week 15 shows bracket round 1; week 16 resolves back-references to placeholders."""
        rule, pairs = pair_teams(ten_teams, 'dynasty', 15, bracket=DYNASTY_BRACKET)
        assert rule == 'dynasty-playoffs'
        assert pair_ids(pairs) == [(3, 6), (4, 5)]

        _, round_two = pair_teams(ten_teams, 'dynasty', 16, bracket=DYNASTY_BRACKET)
        assert [p.home.roster_id for p in round_two] == [1, 2]
        assert round_two[0].away.display_name == 'Winner of Match 2'

    def test_playoff_week_past_bracket(self, ten_teams):
        """A playoff week beyond the last round has no pairs."""
        _, pairs = pair_teams(ten_teams, 'dynasty', 20, bracket=DYNASTY_BRACKET)
        assert pairs == []

    def test_custom_rules(self, ten_teams):
        """Explicit rules override the format defaults."""
        rules = LeagueRules('redraft', [12, 13], 14, playoff_seeds=4, bye_seeds=0)
        rule, pairs = pair_teams(ten_teams, 'redraft', 12, rules)
        assert rule == 'redraft-topx'
        assert len(pairs) == 5
