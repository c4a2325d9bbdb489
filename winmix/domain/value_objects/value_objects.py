"""
Domain Value Objects Module

Value objects are immutable objects that are defined by their attributes rather than identity.
They encapsulate validation logic and provide type safety.
"""

import math
from dataclasses import dataclass
from typing import Sequence

from winmix.domain.constants import (
    AWAY,
    DEFAULT_TRANSITION_ROWS,
    DRAW,
    HOME,
    OUTCOMES,
    PROBABILITY_TOLERANCE,
)


@dataclass(frozen=True)
class OutcomeProbabilities:
    """
    A home / draw / away probability triple.

    Values are non-negative and sum to 1.0 within PROBABILITY_TOLERANCE.
    """
    home_win: float
    draw: float
    away_win: float

    def __post_init__(self):
        for value in (self.home_win, self.draw, self.away_win):
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"Probability must be finite and non-negative, got {value}")
        total = self.home_win + self.draw + self.away_win
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"Match outcome probabilities must sum to 1, got {total}")

    @classmethod
    def from_weights(cls, home: float, draw: float, away: float) -> "OutcomeProbabilities":
        """Normalize finite non-negative weights into a probability triple."""
        for value in (home, draw, away):
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"Weight must be finite and non-negative, got {value}")
        total = home + draw + away
        if total <= 0:
            raise ValueError("Cannot normalize an all-zero probability triple")
        return cls(home_win=home / total, draw=draw / total, away_win=away / total)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.home_win, self.draw, self.away_win)

    def get(self, outcome: str) -> float:
        return dict(zip(OUTCOMES, self.as_tuple()))[outcome]

    @property
    def most_likely_outcome(self) -> str:
        """Outcome with the highest probability; ties resolve H > D > A."""
        best = HOME
        for outcome in (DRAW, AWAY):
            if self.get(outcome) > self.get(best):
                best = outcome
        return best


@dataclass(frozen=True)
class TransitionMatrix:
    """
    Half-time state -> full-time outcome conditional probabilities.

    Rows are indexed by half-time state (home lead, draw, away lead), columns by
    full-time outcome (home, draw, away). Each row sums to 1.0.
    """
    ht_h_to_ft_h: float
    ht_h_to_ft_d: float
    ht_h_to_ft_a: float
    ht_d_to_ft_h: float
    ht_d_to_ft_d: float
    ht_d_to_ft_a: float
    ht_a_to_ft_h: float
    ht_a_to_ft_d: float
    ht_a_to_ft_a: float

    def __post_init__(self):
        for state in OUTCOMES:
            row = self.row(state)
            if any(value < 0 for value in row):
                raise ValueError(f"Transition row {state} has negative entries: {row}")
            if abs(sum(row) - 1.0) > PROBABILITY_TOLERANCE:
                raise ValueError(f"Transition row {state} must sum to 1, got {sum(row)}")

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> "TransitionMatrix":
        (hh, hd, ha), (dh, dd, da), (ah, ad, aa) = rows
        return cls(hh, hd, ha, dh, dd, da, ah, ad, aa)

    @classmethod
    def default(cls) -> "TransitionMatrix":
        return cls.from_rows(DEFAULT_TRANSITION_ROWS)

    def row(self, half_time_state: str) -> tuple[float, float, float]:
        """Full-time (home, draw, away) probabilities given a half-time state."""
        if half_time_state == HOME:
            return (self.ht_h_to_ft_h, self.ht_h_to_ft_d, self.ht_h_to_ft_a)
        if half_time_state == DRAW:
            return (self.ht_d_to_ft_h, self.ht_d_to_ft_d, self.ht_d_to_ft_a)
        if half_time_state == AWAY:
            return (self.ht_a_to_ft_h, self.ht_a_to_ft_d, self.ht_a_to_ft_a)
        raise ValueError(f"Unknown half-time state: {half_time_state}")

    def rows(self) -> tuple[tuple[float, float, float], ...]:
        return tuple(self.row(state) for state in OUTCOMES)


@dataclass(frozen=True)
class ScoreProbability:
    """Probability of one exact final score."""
    home_goals: int
    away_goals: int
    probability: float

    def __post_init__(self):
        if self.home_goals < 0 or self.away_goals < 0:
            raise ValueError("Goals cannot be negative")

    def __str__(self) -> str:
        return f"{self.home_goals}-{self.away_goals}"
