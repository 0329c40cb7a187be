"""
Errors raised by the pairing engine.
"""


class PairingError(ValueError):
    """Base class for pairing failures the caller must report, not guess around."""


class InvalidScheduleError(PairingError):
    """Fixed-table pairing asked for a week it has no table for, or the wrong team count."""


class UnsupportedWeekError(PairingError):
    """The (format, week) combination is outside every known week set."""

    def __init__(self, league_format, week, valid_weeks=None):
        self.league_format = league_format
        self.week = week
        self.valid_weeks = valid_weeks
        message = f"Week {week} is not valid for {league_format} leagues"
        if valid_weeks:
            message += f" (valid weeks: {valid_weeks})"
        super().__init__(message)
