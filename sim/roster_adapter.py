"""roster_adapter.py

Roster spreadsheet rows -> engine Player / Team.

- Input: a pandas DataFrame (one row per player, 2K-style rating columns)
- Output: pbp_engine.models.Player with ratings clamped to [0, 100]

Missing columns fall back to 50; a missing three-point split falls back to
the single "Three-Point Shot" column inside the engine.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from pbp_engine.errors import RosterError
from pbp_engine.models import DAY_TO_DAY, HEALTHY, INJURED, Player, Team

logger = logging.getLogger(__name__)
_WARN_COUNTS: Dict[str, int] = {}


def _warn_limited(code: str, msg: str, *, limit: int = 3) -> None:
    """Log warning, but cap repeats per code."""
    n = _WARN_COUNTS.get(code, 0)
    if n < limit:
        logger.warning("%s %s", code, msg)
    _WARN_COUNTS[code] = n + 1


COL_TEAM = "Team"
COL_PLAYER_ID = "PlayerID"

# engine rating key -> spreadsheet column
COL = {
    "ins": "Close Shot",
    "out": "Three-Point Shot",
    "mid": "Mid-Range Shot",
    "ft": "Free Throw",
    "three_corner": "Corner Three",
    "three_45": "Wing Three",
    "three_top": "Top Three",
    "shot_iq": "Shot IQ",
    "off_consist": "Offensive Consistency",
    "layup": "Layup",
    "dunk": "Driving Dunk",
    "post_play": "Post Control",
    "draw_foul": "Draw Foul",
    "hands": "Hands",
    "pass_acc": "Pass Accuracy",
    "handling": "Ball Handle",
    "spd_ball": "Speed with Ball",
    "pass_iq": "Pass IQ",
    "pass_vision": "Pass Vision",
    "int_def": "Interior Defense",
    "per_def": "Perimeter Defense",
    "steal": "Steal",
    "blk": "Block",
    "help_def_iq": "Help Defense IQ",
    "pass_perc": "Pass Perception",
    "def_consist": "Defensive Consistency",
    "off_reb": "Offensive Rebound",
    "def_reb": "Defensive Rebound",
    "speed": "Speed",
    "agility": "Agility",
    "strength": "Strength",
    "vertical": "Vertical",
    "stamina": "Stamina",
    "hustle": "Hustle",
    "durability": "Overall Durability",
    "intangibles": "Intangibles",
}

# shot tendency bucket -> column (percent of attempts)
TEND_COL = {
    "rim": "Tend Rim",
    "paint": "Tend Paint",
    "mid": "Tend Mid",
    "corner3": "Tend Corner 3",
    "wing3": "Tend Wing 3",
    "top3": "Tend Top 3",
}
COL_LATERAL = "Lateral Bias"

_HEIGHT_RE = re.compile(r"^\s*(\d+)\s*'\s*(\d+)")
_WEIGHT_RE = re.compile(r"^\s*(\d+)")

_HEALTH_ALIASES = {
    "healthy": HEALTHY,
    "injured": INJURED,
    "out": INJURED,
    "day-to-day": DAY_TO_DAY,
    "dtd": DAY_TO_DAY,
}


def _get(row, col: str, default: Optional[float] = 50.0) -> Optional[float]:
    if col in row and pd.notna(row[col]):
        try:
            return float(row[col])
        except (TypeError, ValueError):
            _warn_limited("ROSTER_BAD_NUMBER", f"col={col!r} value={row[col]!r}")
            return default
    return default


def _text(row, col: str, default: str) -> str:
    v = row.get(col)
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return default
    s = str(v).strip()
    return s or default


def _clamp100(x: float) -> float:
    return float(np.clip(x, 0, 100))


def parse_height_cm(value: Any) -> Optional[float]:
    """6' 7" -> 200.7; a bare number is taken as inches when < 100, else cm."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)):
        v = float(value)
        return v * 2.54 if v < 100 else v
    m = _HEIGHT_RE.match(str(value))
    if not m:
        return None
    return (int(m.group(1)) * 12 + int(m.group(2))) * 2.54


def parse_weight_kg(value: Any) -> Optional[float]:
    """205 lbs -> 93.0"""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)):
        return float(value) * 0.4536
    m = _WEIGHT_RE.match(str(value).replace(",", ""))
    if not m:
        return None
    return int(m.group(1)) * 0.4536


def _tendencies(row) -> Optional[Dict[str, Any]]:
    if not any(c in row and pd.notna(row[c]) for c in TEND_COL.values()):
        return None
    zones = {k: max(0.0, _get(row, c, 0.0)) for k, c in TEND_COL.items()}
    lateral = _get(row, COL_LATERAL, 1.0)
    return {"zones": zones, "lateral_bias": int(np.clip(lateral, 0, 3))}


def player_from_row(row) -> Player:
    pid = row.get(COL_PLAYER_ID)
    if pid is None or (isinstance(pid, float) and pd.isna(pid)) or not str(pid).strip():
        raise RosterError(f"roster row without {COL_PLAYER_ID}: {dict(row)!r}")

    attrs = {}
    for key, col in COL.items():
        v = _get(row, col, None)
        if v is not None:
            attrs[key] = _clamp100(v)

    health_raw = _text(row, "Health", "Healthy").lower()
    health = _HEALTH_ALIASES.get(health_raw, HEALTHY)

    ovr = _get(row, "OVR", None)
    if ovr is None:
        ovr = float(np.mean(list(attrs.values()))) if attrs else 50.0

    return Player(
        id=str(pid).strip(),
        name=_text(row, "Name", str(pid).strip()),
        position=_text(row, "POS", "SF"),
        ovr=_clamp100(ovr),
        height=parse_height_cm(row.get("HT")) or 200.0,
        weight=parse_weight_kg(row.get("WT")) or 100.0,
        attrs=attrs,
        health=health,
        condition=_clamp100(_get(row, "Condition", 100.0)),
        tendencies=_tendencies(row),
    )


def team_from_frame(df: pd.DataFrame, team_id: str, name: Optional[str] = None) -> Team:
    if COL_TEAM not in df.columns:
        raise RosterError(f"roster frame has no {COL_TEAM!r} column")
    rows = df[df[COL_TEAM].astype(str).str.strip().str.upper() == str(team_id).upper()]
    if rows.empty:
        raise RosterError(f"team {team_id!r} not found in roster frame")

    roster = [player_from_row(row) for _, row in rows.iterrows()]
    ids = [p.id for p in roster]
    if len(set(ids)) != len(ids):
        raise RosterError(f"team {team_id!r}: duplicate {COL_PLAYER_ID} values")
    return Team(id=str(team_id).upper(), name=name or str(team_id).upper(), roster=roster)


def read_roster(path: str, sheet_name: Optional[str] = None) -> pd.DataFrame:
    if str(path).lower().endswith((".xlsx", ".xls")):
        return pd.read_excel(path, sheet_name=(sheet_name if sheet_name is not None else 0))
    return pd.read_csv(path)
