from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .archetypes import compute_archetypes
from .attributes import live_attributes
from .core import clamp
from .models import DEFAULT_SLIDERS, INJURED, POSITIONS, DepthChart, GameTactics, Player
from .schedule import RotationSchedule

logger = logging.getLogger(__name__)
_WARN_COUNTS: Dict[str, int] = {}


def _warn_limited(code: str, msg: str, *, limit: int = 3) -> None:
    """Log warning, but cap repeats per code."""
    n = _WARN_COUNTS.get(code, 0)
    if n < limit:
        logger.warning("%s %s", code, msg)
    _WARN_COUNTS[code] = n + 1


SLIDER_BOUNDS: Dict[str, tuple] = {k: (1.0, 10.0) for k in DEFAULT_SLIDERS}
SLIDER_BOUNDS["pnrDefense"] = (0.0, 2.0)

DEPTH = 3

# neighbours used when a position has no natural fit left
_ADJACENT: Dict[str, tuple] = {
    "PG": ("SG",),
    "SG": ("PG", "SF"),
    "SF": ("SG", "PF"),
    "PF": ("SF", "C"),
    "C": ("PF",),
}

# minute spans per depth rank for the generated schedule
_RANK_SPANS = {
    0: [(0, 12), (18, 36), (42, 48)],
    1: [(12, 18), (36, 42)],
    2: [],
}


def primary_position(pos: str) -> str:
    p = (pos or "").upper().split("/")[0].strip()
    if p in POSITIONS:
        return p
    if p == "G":
        return "SG"
    if p == "F":
        return "SF"
    return "SF"


def normalize_sliders(sliders: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    out = dict(DEFAULT_SLIDERS)
    for key, value in (sliders or {}).items():
        if key not in SLIDER_BOUNDS:
            _warn_limited("TACTICS_UNKNOWN_SLIDER", f"key={key!r}")
            continue
        try:
            v = float(value)
        except (TypeError, ValueError):
            _warn_limited("TACTICS_BAD_SLIDER", f"key={key!r} value={value!r}")
            continue
        lo, hi = SLIDER_BOUNDS[key]
        out[key] = clamp(v, lo, hi)
    return out


# -------------------------
# Depth chart / schedule generation
# -------------------------

def auto_depth_chart(players: List[Player]) -> DepthChart:
    """Fill PG..C ranks 0-2 from an OVR-sorted roster; each player appears once."""
    pool = sorted((p for p in players if p.health != INJURED), key=lambda p: -float(p.ovr))
    used: set = set()
    chart: DepthChart = {pos: [None] * DEPTH for pos in POSITIONS}

    def take(pos: str) -> Optional[str]:
        for candidates in ((pos,), _ADJACENT[pos]):
            for p in pool:
                if p.id not in used and primary_position(p.position) in candidates:
                    used.add(p.id)
                    return p.id
        for p in pool:
            if p.id not in used:
                used.add(p.id)
                return p.id
        return None

    for rank in range(DEPTH):
        for pos in POSITIONS:
            chart[pos][rank] = take(pos)
    return chart


def default_schedule(depth_chart: DepthChart, length: int = 48) -> RotationSchedule:
    spans: Dict[str, list] = {}
    for pos in POSITIONS:
        for rank, pid in enumerate(depth_chart.get(pos, [])[:DEPTH]):
            if pid:
                spans.setdefault(pid, []).extend(_RANK_SPANS.get(rank, []))
    return RotationSchedule(spans, length=length)


def default_rotation_map(depth_chart: DepthChart, length: int = 48) -> Dict[str, List[bool]]:
    return default_schedule(depth_chart, length).to_minute_map()


def generate_auto_sliders(players: List[Player]) -> Dict[str, float]:
    """Coach-style sliders derived from the eight best healthy players."""
    top = sorted((p for p in players if p.health != INJURED), key=lambda p: -float(p.ovr))[:8]
    if not top:
        return dict(DEFAULT_SLIDERS)

    def avg(fn) -> float:
        return sum(fn(p) for p in top) / len(top)

    def to_slider(r: float, pivot: float = 65.0) -> float:
        return float(round(clamp(5.0 + (r - pivot) / 5.0, 1.0, 10.0)))

    archs = [compute_archetypes(live_attributes(p), p.height, p.weight) for p in top]

    def arch_avg(key: str) -> float:
        return sum(a[key] for a in archs) / len(archs)

    sliders = dict(DEFAULT_SLIDERS)
    sliders["pace"] = to_slider(avg(lambda p: p.rating("speed")))
    sliders["play_cns"] = to_slider(arch_avg("spacer"), 60.0)
    sliders["play_post"] = to_slider(max(a["postScorer"] for a in archs), 70.0)
    sliders["play_iso"] = to_slider(max(a["isoScorer"] for a in archs), 70.0)
    sliders["play_pnr"] = to_slider(max(a["handler"] for a in archs), 70.0)
    sliders["play_drive"] = to_slider(arch_avg("driver"), 60.0)
    sliders["defIntensity"] = to_slider(avg(lambda p: p.rating("per_def")))
    sliders["helpDef"] = to_slider(avg(lambda p: p.rating("help_def_iq")))
    sliders["offReb"] = to_slider(avg(lambda p: p.rating("off_reb")), 55.0)
    sliders["defReb"] = to_slider(avg(lambda p: p.rating("def_reb")), 60.0)
    return sliders


# -------------------------
# Normalization
# -------------------------

def _clean_depth_chart(chart: Mapping[str, Any], valid_ids: set) -> DepthChart:
    out: DepthChart = {}
    seen: set = set()
    for pos in POSITIONS:
        ranks = list(chart.get(pos) or [])[:DEPTH]
        cleaned: List[Optional[str]] = []
        for pid in ranks:
            pid = str(pid) if pid is not None else None
            if pid is None or pid not in valid_ids or pid in seen:
                cleaned.append(None)
                continue
            seen.add(pid)
            cleaned.append(pid)
        cleaned += [None] * (DEPTH - len(cleaned))
        out[pos] = cleaned
    return out


def normalize_tactics(
    tactics: Optional[GameTactics],
    players: List[Player],
    depth_chart: Optional[DepthChart] = None,
    team_label: str = "",
) -> GameTactics:
    """Return a complete GameTactics; every missing piece gets a documented fallback."""
    healthy = [p for p in players if p.health != INJURED]
    valid_ids = {p.id for p in healthy}
    src = tactics or GameTactics(sliders=generate_auto_sliders(players))

    chart_src = depth_chart or src.depth_chart
    if chart_src:
        chart = _clean_depth_chart(chart_src, valid_ids)
    else:
        _warn_limited("TACTICS_NO_DEPTH_CHART", f"team={team_label!r}: generated from OVR")
        chart = auto_depth_chart(players)

    starters: Dict[str, str] = {}
    used: set = set()
    for pos in POSITIONS:
        pid = (src.starters or {}).get(pos)
        if pid is None or pid not in valid_ids or pid in used:
            pid = chart[pos][0] if chart[pos][0] not in used else None
        if pid is not None:
            starters[pos] = pid
            used.add(pid)
    if len(starters) < 5:
        for p in sorted(healthy, key=lambda p: -float(p.ovr)):
            if len(starters) >= 5:
                break
            if p.id in used:
                continue
            missing = [pos for pos in POSITIONS if pos not in starters]
            starters[missing[0]] = p.id
            used.add(p.id)

    # depth chart rank 0 follows the chosen starters
    for pos, pid in starters.items():
        if chart[pos][0] != pid:
            for other in POSITIONS:
                chart[other] = [None if x == pid else x for x in chart[other]]
            ranks = [pid] + [x for x in chart[pos] if x is not None]
            chart[pos] = (ranks + [None] * DEPTH)[:DEPTH]

    if src.rotation_map:
        rotation_map = {
            str(pid): [bool(x) for x in flags]
            for pid, flags in src.rotation_map.items()
            if str(pid) in valid_ids
        }
    else:
        rotation_map = default_rotation_map(chart)

    stopper_id = src.stopper_id if src.stopper_id in valid_ids else None
    if src.stopper_id and stopper_id is None:
        _warn_limited("TACTICS_BAD_STOPPER", f"team={team_label!r} stopper={src.stopper_id!r}")

    return GameTactics(
        sliders=normalize_sliders(src.sliders),
        starters=starters,
        rotation_map=rotation_map,
        minutes_limits={str(k): float(v) for k, v in (src.minutes_limits or {}).items()},
        stopper_id=stopper_id,
        depth_chart=chart,
    )
