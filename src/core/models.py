from enum import Enum


PLACEHOLDER_RANK = 99


class LeagueFormat(Enum):
    REDRAFT = 'redraft'
    DYNASTY = 'dynasty'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown league format: {value}")


class MatchStatus(Enum):
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    FINAL = 'final'


def infer_status(home_points, away_points, winner=None):
    """Derive a match status from its points and declared winner."""
    if winner:
        return MatchStatus.FINAL
    if (home_points or 0) != 0 or (away_points or 0) != 0:
        return MatchStatus.IN_PROGRESS
    return MatchStatus.SCHEDULED


def combine_points(base, decimal):
    """Join the integer and hundredths parts the upstream API sends separately."""
    return round((base or 0) + (decimal or 0) / 100, 2)


class Team:
    def __init__(self, roster_id, owner_id=None, display_name=None, wins=0, losses=0, ties=0,
                 points_for=0.0, points_against=0.0, rank=0, streak='-'):
        self.roster_id = int(roster_id)
        self.owner_id = owner_id or 'unknown'
        self.display_name = display_name or f"Team-{self.roster_id}"
        self.wins = int(wins or 0)
        self.losses = int(losses or 0)
        self.ties = int(ties or 0)
        self.points_for = round(float(points_for or 0), 2)
        self.points_against = round(float(points_against or 0), 2)
        self.rank = int(rank or 0)
        self.streak = streak or '-'

    @property
    def games_played(self):
        return self.wins + self.losses + self.ties

    @property
    def is_placeholder(self):
        return self.rank == PLACEHOLDER_RANK

    def copy(self, **changes):
        """Return a new Team with the given fields replaced."""
        fields = self.to_dict()
        fields.update(changes)
        return Team(**fields)

    def to_dict(self):
        return {
            'roster_id': self.roster_id,
            'owner_id': self.owner_id,
            'display_name': self.display_name,
            'wins': self.wins,
            'losses': self.losses,
            'ties': self.ties,
            'points_for': self.points_for,
            'points_against': self.points_against,
            'rank': self.rank,
            'streak': self.streak,
        }

    def __eq__(self, other):
        if not isinstance(other, Team):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Team(roster_id={self.roster_id}, name={self.display_name}, rank={self.rank}, "
                f"record={self.wins}-{self.losses}-{self.ties}, pf={self.points_for})")


def placeholder_team(display_name='TBD', roster_id=0):
    """Stand-in for a bracket slot whose team is not known yet."""
    return Team(
        roster_id=roster_id or 0,
        owner_id='placeholder',
        display_name=display_name,
        rank=PLACEHOLDER_RANK,
    )


class MatchupPair:
    def __init__(self, home, away, home_points=0.0, away_points=0.0, status=None, winner=None,
                 title=None, match_id=None):
        self.home = home
        self.away = away
        self.home_points = round(float(home_points or 0), 2)
        self.away_points = round(float(away_points or 0), 2)
        self.winner = winner
        self.status = status if status else infer_status(self.home_points, self.away_points, winner)
        self.title = title
        self.match_id = match_id

    def to_dict(self):
        data = {
            'home': self.home.to_dict(),
            'away': self.away.to_dict(),
            'home_points': self.home_points,
            'away_points': self.away_points,
            'status': self.status.value,
        }
        if self.winner is not None:
            data['winner'] = self.winner
        if self.title is not None:
            data['title'] = self.title
        if self.match_id is not None:
            data['match_id'] = self.match_id
        return data

    def __repr__(self):
        return (f"MatchupPair(home={self.home.display_name}, away={self.away.display_name}, "
                f"status={self.status.value})")


class BracketSlot:
    """A bracket participant: a roster id, a winner/loser reference, or nothing yet."""

    WINNER = 'winner'
    LOSER = 'loser'

    def __init__(self, roster_id=None, source=None, source_match=None):
        if source not in (None, self.WINNER, self.LOSER):
            raise ValueError(f"Invalid slot source: {source}")
        self.roster_id = roster_id
        self.source = source
        self.source_match = source_match

    @classmethod
    def from_sleeper(cls, roster_id, origin=None):
        """Build a slot from a ``t1``/``t2`` value and its ``t1_from``/``t2_from`` dict."""
        origin = origin or {}
        if origin.get('w'):
            return cls(roster_id=roster_id, source=cls.WINNER, source_match=origin['w'])
        if origin.get('l'):
            return cls(roster_id=roster_id, source=cls.LOSER, source_match=origin['l'])
        return cls(roster_id=roster_id)

    @property
    def is_reference(self):
        return self.source is not None

    def __repr__(self):
        if self.is_reference:
            return f"BracketSlot(roster_id={self.roster_id}, {self.source}_of={self.source_match})"
        return f"BracketSlot(roster_id={self.roster_id})"


class BracketMatch:
    def __init__(self, round, match_id, slot1=None, slot2=None, winner=None, loser=None,
                 placement=None, title=None):
        self.round = int(round)
        self.match_id = int(match_id)
        self.slot1 = slot1 if slot1 is not None else BracketSlot()
        self.slot2 = slot2 if slot2 is not None else BracketSlot()
        self.winner = winner
        self.loser = loser
        self.placement = placement
        self.title = title

    @classmethod
    def from_sleeper(cls, record):
        """Build a match from a winners_bracket record (keys r, m, t1, t2, w, l, p)."""
        return cls(
            round=record['r'],
            match_id=record['m'],
            slot1=BracketSlot.from_sleeper(record.get('t1'), record.get('t1_from')),
            slot2=BracketSlot.from_sleeper(record.get('t2'), record.get('t2_from')),
            winner=record.get('w'),
            loser=record.get('l'),
            placement=record.get('p'),
        )

    def __repr__(self):
        return (f"BracketMatch(round={self.round}, match_id={self.match_id}, "
                f"slots=({self.slot1}, {self.slot2}), winner={self.winner})")


class BracketRound:
    def __init__(self, round, matches=None):
        self.round = round
        self.matches = matches if matches else []

    def to_dict(self):
        return {
            'round': self.round,
            'matches': [match.to_dict() for match in self.matches],
        }

    def __repr__(self):
        return f"BracketRound(round={self.round}, matches={len(self.matches)})"
