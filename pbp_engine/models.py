from __future__ import annotations

import random
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .engine_config import EngineConfig
from .errors import LineupInvariantError
from .schedule import Interval, RotationSchedule

HOME = "home"
AWAY = "away"

HEALTHY = "Healthy"
INJURED = "Injured"
DAY_TO_DAY = "Day-to-Day"

POSITIONS: Tuple[str, ...] = ("PG", "SG", "SF", "PF", "C")

ATTR_DEFAULT = 50.0

DEFAULT_SLIDERS: Dict[str, float] = {
    "pace": 5, "ballMovement": 5, "offReb": 5,
    "play_pnr": 5, "play_post": 5, "play_iso": 5, "play_cns": 5, "play_drive": 5,
    "shot_3pt": 5, "shot_mid": 5, "shot_rim": 5,
    "defIntensity": 5, "helpDef": 5, "switchFreq": 5, "defReb": 5, "zoneFreq": 5,
    "pnrDefense": 1, "fullCourtPress": 1, "zoneUsage": 5,
}

# 10 shot-chart sub-zones (coarse zone -> sub-zones)
SUB_ZONES: Tuple[str, ...] = (
    "zone_rim", "zone_paint",
    "zone_mid_l", "zone_mid_c", "zone_mid_r",
    "zone_c3_l", "zone_c3_r",
    "zone_atb3_l", "zone_atb3_c", "zone_atb3_r",
)
ZONE_TO_SUB_ZONES: Dict[str, Tuple[str, ...]] = {
    "Rim": ("zone_rim",),
    "Paint": ("zone_paint",),
    "Mid": ("zone_mid_l", "zone_mid_c", "zone_mid_r"),
    "3PT": ("zone_c3_l", "zone_c3_r", "zone_atb3_l", "zone_atb3_c", "zone_atb3_r"),
}

# bench reasons
PERMANENT_BENCH_REASONS = frozenset({"injury", "foul_out", "garbage", "foul_trouble_rest"})

FOUL_OUT_LIMIT = 6


def _empty_zone_stats() -> Dict[str, Dict[str, int]]:
    return {z: {"m": 0, "a": 0} for z in SUB_ZONES}


# -------------------------
# Roster inputs
# -------------------------

@dataclass
class Player:
    id: str
    name: str
    position: str = "SF"
    ovr: float = 60.0
    height: float = 200.0  # cm
    weight: float = 100.0  # kg
    attrs: Dict[str, float] = field(default_factory=dict)
    health: str = HEALTHY
    condition: float = 100.0
    tendencies: Optional[Dict[str, Any]] = None

    def rating(self, key: str, default: float = ATTR_DEFAULT) -> float:
        return float(self.attrs.get(key, default))


@dataclass
class Team:
    id: str
    name: str
    roster: List[Player] = field(default_factory=list)


DepthChart = Dict[str, List[Optional[str]]]


@dataclass
class GameTactics:
    sliders: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SLIDERS))
    starters: Dict[str, str] = field(default_factory=dict)  # position -> player id
    rotation_map: Optional[Dict[str, List[bool]]] = None  # player id -> 48 minute flags
    minutes_limits: Dict[str, float] = field(default_factory=dict)
    stopper_id: Optional[str] = None
    depth_chart: Optional[DepthChart] = None

    def slider(self, key: str) -> float:
        return float(self.sliders.get(key, DEFAULT_SLIDERS.get(key, 5)))

    def snapshot(self) -> Dict[str, Any]:
        return {
            "sliders": dict(self.sliders),
            "starters": dict(self.starters),
            "minutesLimits": dict(self.minutes_limits),
            "stopperId": self.stopper_id,
            "depthChart": {k: list(v) for k, v in (self.depth_chart or {}).items()},
        }


# -------------------------
# Runtime state
# -------------------------

@dataclass(eq=False)
class LivePlayer:
    player_id: str
    name: str
    position: str
    ovr: float
    height: float
    weight: float
    attr: Dict[str, float]
    is_starter: bool = False
    health: str = HEALTHY
    current_condition: float = 100.0
    archetypes: Dict[str, float] = field(default_factory=dict)
    tendencies: Optional[Dict[str, Any]] = None

    # box score
    pts: int = 0
    reb: int = 0
    off_reb: int = 0
    def_reb: int = 0
    ast: int = 0
    stl: int = 0
    blk: int = 0
    tov: int = 0
    fgm: int = 0
    fga: int = 0
    p3m: int = 0
    p3a: int = 0
    ftm: int = 0
    fta: int = 0
    pf: int = 0
    mp: float = 0.0
    gs: int = 0
    plus_minus: int = 0
    zone_stats: Dict[str, Dict[str, int]] = field(default_factory=_empty_zone_stats)

    # scheduling
    last_sub_in_time: int = 0  # elapsed game seconds at last entry
    condition_at_sub_in: float = 100.0
    is_shutdown: bool = False
    needs_deep_recovery: bool = False
    bench_reason: Optional[str] = None
    scheduled_return_minute: Optional[int] = None
    foul_trouble_handled_at: int = 0

    # shooting streak (-1 cold .. +1 hot)
    hot_cold: float = 0.0

    # ace stopper tracking
    is_stopper: bool = False
    is_ace_target: bool = False
    sec_with_stopper: float = 0.0
    sec_without_stopper: float = 0.0
    matchup_effect_sum: float = 0.0
    matchup_effect_count: int = 0

    def rating(self, key: str, default: float = ATTR_DEFAULT) -> float:
        return float(self.attr.get(key, default))

    def arch(self, key: str) -> float:
        return float(self.archetypes.get(key, ATTR_DEFAULT))

    @property
    def is_permanently_out(self) -> bool:
        return (
            self.health == INJURED
            or self.pf >= FOUL_OUT_LIMIT
            or self.bench_reason in PERMANENT_BENCH_REASONS
        )

    @property
    def is_red_zone(self) -> bool:
        return self.needs_deep_recovery


@dataclass(eq=False)
class TeamState:
    id: str
    name: str
    tactics: GameTactics
    depth_chart: DepthChart
    on_court: List[LivePlayer]
    bench: List[LivePlayer]
    schedule: RotationSchedule
    score: int = 0
    timeouts: int = 7
    fouls: int = 0
    is_b2b: bool = False
    ace_id: Optional[str] = None

    def all_players(self) -> List[LivePlayer]:
        return list(self.on_court) + list(self.bench)

    def find(self, pid: str) -> Optional[LivePlayer]:
        for p in self.on_court:
            if p.player_id == pid:
                return p
        for p in self.bench:
            if p.player_id == pid:
                return p
        return None

    def slider(self, key: str) -> float:
        return self.tactics.slider(key)

    @property
    def stopper(self) -> Optional[LivePlayer]:
        sid = self.tactics.stopper_id
        return self.find(sid) if sid else None

    def swap(self, out_player: LivePlayer, in_player: LivePlayer) -> None:
        if out_player not in self.on_court:
            raise LineupInvariantError(f"{self.name}: {out_player.name} is not on court")
        if in_player not in self.bench:
            raise LineupInvariantError(f"{self.name}: {in_player.name} is not on the bench")
        self.on_court[self.on_court.index(out_player)] = in_player
        self.bench.remove(in_player)
        self.bench.append(out_player)

    def set_on_court(self, pids: List[str], strict: bool = False) -> None:
        everyone = self.all_players()
        by_id = {p.player_id: p for p in everyone}
        requested = [str(pid) for pid in (pids or []) if pid is not None]

        seen = set()
        normalized: List[LivePlayer] = []
        dropped: List[str] = []
        for pid in requested:
            if pid in seen or pid not in by_id:
                dropped.append(pid)
                continue
            seen.add(pid)
            normalized.append(by_id[pid])

        filled = []
        if len(normalized) < 5:
            for p in everyone:
                if p.player_id in seen or p.is_permanently_out:
                    continue
                normalized.append(p)
                filled.append(p.player_id)
                seen.add(p.player_id)
                if len(normalized) >= 5:
                    break

        if len(normalized) > 5:
            normalized = normalized[:5]

        issues = []
        if dropped:
            issues.append(f"dropped={dropped}")
        if filled:
            issues.append(f"filled={filled}")
        if len(normalized) != 5:
            issues.append(f"size={len(normalized)}")

        if issues:
            msg = f"{self.name}: on_court normalized ({'; '.join(issues)})"
            if strict:
                raise LineupInvariantError(msg)
            warnings.warn(msg)

        on_ids = {p.player_id for p in normalized}
        self.on_court = normalized
        self.bench = [p for p in everyone if p.player_id not in on_ids]


@dataclass
class ActiveRun:
    side: str
    start_total_sec: int


@dataclass
class MomentumState:
    home_epoch_pts: int = 0
    away_epoch_pts: int = 0
    epoch_start_total_sec: int = 0
    active_run: Optional[ActiveRun] = None


@dataclass
class RotationOverride:
    team_id: str
    out_player_id: str
    filler_id: str
    reason: str
    from_minute: int
    to_minute: Optional[int]
    original_slots: Dict[str, List[Interval]] = field(default_factory=dict)
    active: bool = True


# -------------------------
# Output records
# -------------------------

@dataclass
class PbpLog:
    quarter: int
    time_remaining: str
    team_id: str
    text: str
    type: str  # score | miss | turnover | foul | block | freethrow | info
    points: Optional[int] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "quarter": self.quarter,
            "timeRemaining": self.time_remaining,
            "teamId": self.team_id,
            "text": self.text,
            "type": self.type,
        }
        if self.points is not None:
            out["points"] = self.points
        if self.home_score is not None:
            out["homeScore"] = self.home_score
        if self.away_score is not None:
            out["awayScore"] = self.away_score
        return out


@dataclass
class ShotEvent:
    id: str
    quarter: int
    game_clock: int
    team_id: str
    player_id: str
    x: float
    y: float
    zone: str
    is_make: bool
    play_type: str
    assist_player_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "quarter": self.quarter,
            "gameClock": self.game_clock,
            "teamId": self.team_id,
            "playerId": self.player_id,
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "zone": self.zone,
            "isMake": self.is_make,
            "playType": self.play_type,
        }
        if self.assist_player_id is not None:
            out["assistPlayerId"] = self.assist_player_id
        return out


@dataclass(eq=False)
class GameState:
    home: TeamState
    away: TeamState
    config: EngineConfig
    rng: random.Random
    user_team_id: Optional[str] = None
    quarter: int = 1
    game_clock: int = 720
    shot_clock: int = 24
    possession: str = HOME
    logs: List[PbpLog] = field(default_factory=list)
    shot_events: List[ShotEvent] = field(default_factory=list)
    injuries: List[Dict[str, Any]] = field(default_factory=list)
    momentum: MomentumState = field(default_factory=MomentumState)
    rotation_history: Dict[str, List[Dict[str, Optional[int]]]] = field(default_factory=dict)
    original_schedules: Dict[str, RotationSchedule] = field(default_factory=dict)
    active_overrides: List[RotationOverride] = field(default_factory=list)
    is_home_b2b: bool = False
    is_away_b2b: bool = False
    is_game_over: bool = False
    ghost_points: Dict[str, int] = field(default_factory=dict)
    last_offensive_rebounder_id: Optional[str] = None
    possession_count: int = 0

    def team(self, side: str) -> TeamState:
        return self.home if side == HOME else self.away

    def side_of(self, team: TeamState) -> str:
        return HOME if team is self.home else AWAY

    def team_by_id(self, team_id: str) -> TeamState:
        if self.home.id == team_id:
            return self.home
        if self.away.id == team_id:
            return self.away
        raise LineupInvariantError(f"unknown team_id {team_id!r} (home={self.home.id}, away={self.away.id})")

    def offense(self) -> TeamState:
        return self.team(self.possession)

    def defense(self) -> TeamState:
        return self.team(AWAY if self.possession == HOME else HOME)

    def elapsed_seconds(self) -> int:
        ql = self.config.quarter_length
        reg = self.config.regulation_quarters
        if self.quarter > reg:
            return reg * ql
        return (self.quarter - 1) * ql + (ql - int(self.game_clock))

    def current_minute(self) -> int:
        return min(self.config.regulation_minutes - 1, self.elapsed_seconds() // 60)


@dataclass
class StepResult:
    result: Optional[Any]  # PossessionResult
    is_quarter_end: bool = False
    is_game_end: bool = False
    is_timeout: bool = False
    timeout_team_id: Optional[str] = None
    new_logs: List[PbpLog] = field(default_factory=list)
