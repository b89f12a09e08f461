from __future__ import annotations

"""Rotation manager.

Keeps exactly five players on the floor for each team while following the
per-minute schedule (RotationSchedule). Handles succession after permanent
exits, temporary overrides (foul trouble / shutdown) and user substitutions.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .errors import InvalidSubstitutionError, LineupInvariantError
from .models import (
    FOUL_OUT_LIMIT,
    INJURED,
    GameState,
    LivePlayer,
    PbpLog,
    RotationOverride,
    TeamState,
)
from .schedule import Interval, clip_intervals, subtract_interval
from .stats import add_log
from .substitutions import SubRequest, check_substitutions
from .tactics import primary_position

logger = logging.getLogger(__name__)
_WARN_COUNTS: Dict[str, int] = {}


def _warn_limited(code: str, msg: str, *, limit: int = 3) -> None:
    """Log warning, but cap repeats per code."""
    n = _WARN_COUNTS.get(code, 0)
    if n < limit:
        logger.warning("%s %s", code, msg)
    _WARN_COUNTS[code] = n + 1


EXIT_TEXT = {
    "injury": "{name} leaves the game (injury)",
    "foul_out": "{name} fouled out",
    "garbage": "{name} sits for the rest of the game (garbage time)",
    "foul_trouble_rest": "{name} sits for the rest of the game (foul trouble)",
    "foul_trouble": "{name} goes to the bench (foul trouble)",
    "shutdown": "{name} goes to the bench (exhausted)",
}


# -------------------------
# Eligibility helpers
# -------------------------

def can_play(p: LivePlayer) -> bool:
    """Physically able to take the floor (not injured, not fouled out)."""
    return p.health != INJURED and p.pf < FOUL_OUT_LIMIT


def is_fresh(p: LivePlayer) -> bool:
    return can_play(p) and p.bench_reason is None and not p.is_shutdown


def _over_limit(team: TeamState, p: LivePlayer) -> bool:
    limit = team.tactics.minutes_limits.get(p.player_id)
    return limit is not None and p.mp >= limit


def best_available(
    team: TeamState,
    pos: Optional[str] = None,
    exclude: Tuple[LivePlayer, ...] = (),
) -> Optional[LivePlayer]:
    """Best fresh bench player, preferring the same position, then rested, then OVR."""
    pool = [p for p in team.bench if is_fresh(p) and p not in exclude]
    if not pool:
        return None
    return min(
        pool,
        key=lambda p: (
            p.is_red_zone,
            pos is not None and primary_position(p.position) != pos,
            -p.ovr,
            -p.current_condition,
        ),
    )


def _depth_slot(team: TeamState, pid: str) -> Tuple[Optional[str], Optional[int]]:
    for pos, ranks in team.depth_chart.items():
        for rank, x in enumerate(ranks):
            if x == pid:
                return pos, rank
    return None, None


# -------------------------
# History / swap
# -------------------------

def open_stint(state: GameState, p: LivePlayer, sec: int) -> None:
    state.rotation_history.setdefault(p.player_id, []).append({"in": sec, "out": None})


def close_stint(state: GameState, p: LivePlayer, sec: int) -> None:
    hist = state.rotation_history.get(p.player_id)
    if hist and hist[-1]["out"] is None:
        hist[-1]["out"] = sec


def swap_players(
    state: GameState,
    team: TeamState,
    out_player: LivePlayer,
    in_player: LivePlayer,
    note: str = "",
) -> PbpLog:
    team.swap(out_player, in_player)
    sec = state.elapsed_seconds()
    close_stint(state, out_player, sec)
    open_stint(state, in_player, sec)
    in_player.last_sub_in_time = sec
    in_player.condition_at_sub_in = in_player.current_condition
    text = f"SUB: {in_player.name} in, {out_player.name} out"
    if note:
        text += f" ({note})"
    logger.debug("%s %s", team.id, text)
    return add_log(state, team, text, "info")


# -------------------------
# Scheduled rotation
# -------------------------

def desired_lineup(team: TeamState, minute: int) -> List[LivePlayer]:
    """Five players the schedule wants at `minute`, topped up by fallback tiers."""
    chosen: List[LivePlayer] = []
    for pid in team.schedule.scheduled_at(minute):
        p = team.find(pid)
        if p is None or not is_fresh(p) or p.is_red_zone:
            continue
        if _over_limit(team, p) and p not in team.on_court:
            continue
        chosen.append(p)

    if len(chosen) > 5:
        chosen = sorted(chosen, key=lambda p: (p not in team.on_court, -p.ovr))[:5]

    if len(chosen) < 5:
        rest = [p for p in team.all_players() if p not in chosen and can_play(p)]
        tiers = (
            [p for p in rest if is_fresh(p)],
            [p for p in rest if p.bench_reason == "foul_trouble"],
            [p for p in rest if p.is_shutdown],
            [p for p in rest if p.bench_reason in ("garbage", "foul_trouble_rest")],
        )
        taken = set(id(p) for p in chosen)
        for tier in tiers:
            ordered = sorted(
                tier,
                key=lambda p: (
                    p.is_red_zone,
                    _over_limit(team, p),
                    p not in team.on_court,
                    -p.ovr,
                    -p.current_condition,
                ),
            )
            for p in ordered:
                if len(chosen) >= 5:
                    break
                if id(p) in taken:
                    continue
                chosen.append(p)
                taken.add(id(p))
            if len(chosen) >= 5:
                break
    return chosen


def check_and_apply_rotation(state: GameState, team: TeamState, minute: int) -> List[PbpLog]:
    target = desired_lineup(team, minute)
    if len(target) < 5:
        _warn_limited("ROTATION_SHORT_HANDED", f"team={team.id} available={len(target)}")
        return []

    outs = [p for p in team.on_court if p not in target]
    ins = [p for p in target if p not in team.on_court]
    logs = []
    for out_player, in_player in zip(outs, ins):
        logs.append(swap_players(state, team, out_player, in_player))
    return logs


# -------------------------
# Permanent exits
# -------------------------

def _promote(team: TeamState, out_pid: str, minute: int) -> Optional[str]:
    """Hand the leaving player's remaining minutes down the depth chart.

    Returns the id of the player who inherited the schedule, if any.
    """
    sched = team.schedule
    pos, rank = _depth_slot(team, out_pid)
    out_player = team.find(out_pid)
    heir: Optional[str] = None

    def fallback() -> Optional[str]:
        repl = best_available(team, pos, exclude=(out_player,) if out_player else ())
        return repl.player_id if repl is not None else None

    if pos is None:
        heir = fallback()
        if heir:
            sched.transfer(out_pid, heir, minute)
        return heir

    ranks = team.depth_chart[pos]
    r1 = ranks[1] if len(ranks) > 1 else None
    r2 = ranks[2] if len(ranks) > 2 else None

    def usable(pid: Optional[str]) -> bool:
        p = team.find(pid) if pid else None
        return p is not None and is_fresh(p)

    if rank == 0:
        if usable(r1):
            if usable(r2):
                sched.transfer(r1, r2, minute)
            sched.transfer(out_pid, r1, minute)
            heir = r1
        else:
            heir = fallback()
            if heir:
                sched.transfer(out_pid, heir, minute)
    elif rank == 1:
        heir = r2 if usable(r2) else fallback()
        if heir:
            sched.transfer(out_pid, heir, minute)
    else:
        heir = fallback()
        if heir:
            sched.transfer(out_pid, heir, minute)

    team.depth_chart[pos] = [x for x in ranks if x != out_pid] + [None]
    return heir


def _inherited_spans(team: TeamState, ov: RotationOverride, filler_id: str, start: int) -> List[Interval]:
    """Minutes the filler holds only because the benched player is out, from `start` on."""
    end = ov.to_minute if ov.to_minute is not None else team.schedule.length
    spans = clip_intervals(ov.original_slots.get(ov.out_player_id, []), start, end)
    for s, e in ov.original_slots.get(filler_id, []):
        spans = subtract_interval(spans, s, e)
    return spans


def handle_filler_exit(state: GameState, team: TeamState, filler: LivePlayer, minute: int) -> None:
    """A filler is leaving for good: hand their inherited slots to a new filler.

    The filler's own minutes stay with them and go down the depth chart in _promote.
    """
    for ov in state.active_overrides:
        if not ov.active or ov.team_id != team.id or ov.filler_id != filler.player_id:
            continue
        out_player = team.find(ov.out_player_id)
        exclude = tuple(p for p in (filler, out_player) if p is not None)
        pos = primary_position(out_player.position) if out_player else None
        new_filler = best_available(team, pos, exclude=exclude)
        if new_filler is None:
            _warn_limited("ROTATION_NO_REFILL", f"team={team.id} out={ov.out_player_id}")
            continue
        inherited = _inherited_spans(team, ov, filler.player_id, minute)
        ov.original_slots.pop(filler.player_id, None)
        ov.original_slots[new_filler.player_id] = team.schedule.intervals(new_filler.player_id)
        for s, e in inherited:
            team.schedule.transfer(filler.player_id, new_filler.player_id, s, e)
        ov.filler_id = new_filler.player_id


def force_substitution(state: GameState, team: TeamState, player: LivePlayer, reason: str, minute: int) -> None:
    player.bench_reason = reason
    handle_filler_exit(state, team, player, minute)
    for ov in state.active_overrides:
        if ov.active and ov.out_player_id == player.player_id:
            ov.active = False

    heir = _promote(team, player.player_id, minute)
    text = EXIT_TEXT.get(reason, "{name} leaves the game").format(name=player.name)
    add_log(state, team, text, "info")

    if player not in team.on_court:
        return
    incoming = None
    if heir:
        cand = team.find(heir)
        if cand is not None and cand in team.bench and is_fresh(cand):
            incoming = cand
    if incoming is None:
        for pid in team.schedule.scheduled_at(minute):
            cand = team.find(pid)
            if cand is not None and cand in team.bench and is_fresh(cand):
                incoming = cand
                break
    if incoming is None:
        incoming = best_available(team, primary_position(player.position))
    if incoming is None:
        _warn_limited("ROTATION_NO_REPLACEMENT", f"team={team.id} out={player.player_id} reason={reason}")
        return
    swap_players(state, team, player, incoming, reason)


# -------------------------
# Temporary exits
# -------------------------

def bench_with_override(
    state: GameState,
    team: TeamState,
    player: LivePlayer,
    reason: str,
    minute: int,
    return_minute: Optional[int] = None,
) -> bool:
    filler = best_available(team, primary_position(player.position), exclude=(player,))
    if filler is None:
        _warn_limited("ROTATION_NO_FILLER", f"team={team.id} out={player.player_id} reason={reason}")
        return False

    sched = team.schedule
    snapshot = {
        player.player_id: sched.intervals(player.player_id),
        filler.player_id: sched.intervals(filler.player_id),
    }
    sched.transfer(player.player_id, filler.player_id, minute, return_minute)
    state.active_overrides.append(
        RotationOverride(
            team_id=team.id,
            out_player_id=player.player_id,
            filler_id=filler.player_id,
            reason=reason,
            from_minute=minute,
            to_minute=return_minute,
            original_slots=snapshot,
        )
    )
    player.bench_reason = reason
    player.scheduled_return_minute = return_minute
    add_log(state, team, EXIT_TEXT[reason].format(name=player.name), "info")
    if player in team.on_court:
        swap_players(state, team, player, filler, reason)
    return True


def check_temporary_returns(state: GameState, minute: int) -> List[PbpLog]:
    logs = []
    for ov in state.active_overrides:
        if not ov.active:
            continue
        team = state.team_by_id(ov.team_id)
        p = team.find(ov.out_player_id)
        if p is None or not can_play(p):
            ov.active = False
            continue
        if ov.reason == "foul_trouble":
            ready = ov.to_minute is not None and minute >= ov.to_minute
        else:
            ready = not p.is_shutdown
        if not ready:
            continue
        for s, e in _inherited_spans(team, ov, ov.filler_id, minute):
            team.schedule.set_range(ov.filler_id, s, e, on=False)
        team.schedule.replace_from(p.player_id, minute, ov.original_slots.get(p.player_id, []))
        p.bench_reason = None
        p.scheduled_return_minute = None
        ov.active = False
        logs.append(add_log(state, team, f"{p.name} is available again", "info"))
    state.active_overrides = [ov for ov in state.active_overrides if ov.active]
    return logs


def process_substitutions(state: GameState, team: TeamState, minute: int) -> List[SubRequest]:
    requests = check_substitutions(state, team, minute)
    for req in requests:
        if req.reason in ("foul_trouble", "foul_trouble_rest"):
            req.player.foul_trouble_handled_at = req.player.pf
        if req.permanent:
            force_substitution(state, team, req.player, req.reason, minute)
        else:
            bench_with_override(state, team, req.player, req.reason, minute, req.return_minute)
    return requests


# -------------------------
# User substitution
# -------------------------

def apply_manual_substitution(state: GameState, team_id: str, out_id: str, in_id: str) -> PbpLog:
    team = state.team_by_id(team_id)
    out_player = team.find(str(out_id))
    in_player = team.find(str(in_id))
    if out_player is None or out_player not in team.on_court:
        raise LineupInvariantError(f"{team.name}: player {out_id!r} is not on court")
    if in_player is None or in_player not in team.bench:
        raise LineupInvariantError(f"{team.name}: player {in_id!r} is not on the bench")
    if in_player.pf >= FOUL_OUT_LIMIT:
        raise InvalidSubstitutionError(f"{in_player.name} has fouled out")
    if in_player.health == INJURED:
        raise InvalidSubstitutionError(f"{in_player.name} is injured")
    if in_player.bench_reason:
        raise InvalidSubstitutionError(f"{in_player.name} is unavailable ({in_player.bench_reason})")

    minute = state.current_minute()
    # at the quarter-end pause the swap applies to the quarter about to start
    upcoming = state.quarter + 1 if state.game_clock <= 0 else state.quarter
    quarter = min(upcoming, state.config.regulation_quarters)
    quarter_end = min(team.schedule.length, quarter * state.config.quarter_length // 60)
    sched = team.schedule
    sched.transfer(out_player.player_id, in_player.player_id, minute, quarter_end)
    sched.set_range(in_player.player_id, minute, quarter_end, on=True)
    sched.set_range(out_player.player_id, minute, quarter_end, on=False)
    return swap_players(state, team, out_player, in_player, "manual")
