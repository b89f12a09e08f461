from __future__ import annotations

"""Possession outcomes, one variant per way a possession can end.

Each variant carries only the fields meaningful for that outcome, so a
Turnover has no zone and a Miss has no points.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .models import LivePlayer


@dataclass(frozen=True)
class Score:
    actor: LivePlayer
    defender: Optional[LivePlayer]
    points: int
    zone: str
    sub_zone: str
    play_type: str
    assister: Optional[LivePlayer] = None
    is_switch: bool = False
    is_mismatch: bool = False
    matchup_effect: float = 0.0

    kind = "score"


@dataclass(frozen=True)
class Miss:
    actor: LivePlayer
    defender: Optional[LivePlayer]
    zone: str
    sub_zone: str
    play_type: str
    rebounder: Optional[LivePlayer] = None
    is_offensive_rebound: bool = False
    blocker: Optional[LivePlayer] = None
    is_switch: bool = False
    is_mismatch: bool = False
    matchup_effect: float = 0.0

    kind = "miss"

    @property
    def is_block(self) -> bool:
        return self.blocker is not None


@dataclass(frozen=True)
class Turnover:
    actor: LivePlayer
    defender: Optional[LivePlayer]
    play_type: str
    stealer: Optional[LivePlayer] = None

    kind = "turnover"

    @property
    def is_steal(self) -> bool:
        return self.stealer is not None


@dataclass(frozen=True)
class Foul:
    """Non-shooting defensive foul outside the bonus (no free throws)."""

    actor: LivePlayer
    defender: LivePlayer
    play_type: str

    kind = "foul"


@dataclass(frozen=True)
class FreeThrow:
    """A trip to the line.

    `shot_points` is the made field goal preceding an and-one (0 otherwise);
    `points` is the total scored on the possession.
    """

    actor: LivePlayer
    defender: Optional[LivePlayer]
    play_type: str
    attempts: int
    made: int
    shot_points: int = 0
    zone: Optional[str] = None
    sub_zone: Optional[str] = None
    assister: Optional[LivePlayer] = None
    is_and_one: bool = False
    is_shooting_foul: bool = True
    is_switch: bool = False
    is_mismatch: bool = False

    kind = "freethrow"

    @property
    def points(self) -> int:
        return self.shot_points + self.made


PossessionResult = Union[Score, Miss, Turnover, Foul, FreeThrow]
