from __future__ import annotations

"""Possession resolver.

resolve_possession() reads GameState and returns one PossessionResult plus the
seconds it consumed. It never touches score, box-score counters or logs; the
game loop applies the result afterwards (stats.apply_possession_result).
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .archetypes import scoring_gravity
from .clock import calculate_possession_time
from .core import clamp, weighted_choice
from .defense import best_rebounder, get_opponent_defensive_metrics, resolve_rebound
from .errors import LineupInvariantError
from .models import AWAY, HOME, GameState, LivePlayer, TeamState
from .results import Foul, FreeThrow, Miss, PossessionResult, Score, Turnover
from .shot_model import calculate_hit_rate, draw_sub_zone, draw_zone
from .tactics import primary_position

logger = logging.getLogger(__name__)

PLAY_TYPES = (
    "Iso", "PnR_Handler", "PnR_Roll", "PnR_Pop", "PostUp",
    "CatchShoot", "Cut", "Handoff", "Transition", "Putback",
)

PLAY_ZONE: Dict[str, str] = {
    "Iso": "Mid", "PnR_Handler": "Mid", "PnR_Roll": "Rim", "PnR_Pop": "3PT",
    "PostUp": "Paint", "CatchShoot": "3PT", "Cut": "Rim", "Handoff": "Mid",
    "Transition": "Rim", "Putback": "Rim",
}

PLAY_BONUS: Dict[str, float] = {
    "Iso": 0.05, "PnR_Handler": 0.10, "PnR_Roll": 0.15, "PnR_Pop": 0.08,
    "PostUp": 0.05, "CatchShoot": 0.12, "Cut": 0.15, "Handoff": 0.10,
    "Transition": 0.20, "Putback": 0.10,
}

ASSIST_CHANCE: Dict[str, float] = {
    "Iso": 0.05, "PnR_Handler": 0.20, "PnR_Roll": 0.85, "PnR_Pop": 0.85,
    "PostUp": 0.30, "CatchShoot": 0.90, "Cut": 0.80, "Handoff": 0.60,
    "Transition": 0.50, "Putback": 0.0,
}

# plays whose shot location follows the actor's own attempt distribution
REDRAW_PLAYS = frozenset({"Iso", "PnR_Handler", "Handoff"})
SCREEN_PLAYS = frozenset({"PnR_Handler", "PnR_Roll", "PnR_Pop", "Handoff"})

TOV_CONTEXT = {"Transition": 0.03, "Iso": 0.01, "PostUp": 0.02}
TOV_BOUNDS = (0.02, 0.25)

BLOCK_BASE = {"Rim": 0.05, "Paint": 0.03, "Mid": 0.015, "3PT": 0.005}

_FIT_SCALE = {"Iso": 1.5, "Cut": 1.5, "Handoff": 1.5, "Transition": 2.0}


# -------------------------
# Clutch context
# -------------------------

@dataclass(frozen=True)
class ClutchContext:
    is_clutch: bool = False
    is_super_clutch: bool = False
    trailing_side: Optional[str] = None
    desperation: float = 0.0


def clutch_context(state: GameState) -> ClutchContext:
    if state.quarter < state.config.regulation_quarters:
        return ClutchContext()
    diff = abs(state.home.score - state.away.score)
    clock = float(state.game_clock)
    if clock > 300 or diff > 10:
        return ClutchContext()
    trailing = None
    if state.home.score < state.away.score:
        trailing = HOME
    elif state.away.score < state.home.score:
        trailing = AWAY
    desperation = min(1.0, (1.0 - clock / 300.0) * 0.6 + min(1.0, diff / 10.0) * 0.4)
    return ClutchContext(
        is_clutch=True,
        is_super_clutch=clock <= 120 and diff <= 5,
        trailing_side=trailing,
        desperation=desperation,
    )


# -------------------------
# Play selection
# -------------------------

def _star_play(p: LivePlayer) -> str:
    fits = {
        "Iso": p.arch("isoScorer"),
        "PostUp": p.arch("postScorer"),
        "PnR_Handler": p.arch("handler"),
        "CatchShoot": p.arch("spacer"),
        "Cut": p.arch("driver"),
    }
    return max(fits, key=fits.get)


def play_weights(state: GameState, offense: TeamState, clutch: ClutchContext) -> Dict[str, float]:
    s = offense.slider
    pnr = s("play_pnr")
    # pace tilts the half-court menu toward perimeter plays
    perimeter = max(0.3, 1.0 + (s("pace") - 5.0) * 0.15)
    weights = {
        "Iso": s("play_iso"),
        "PnR_Handler": pnr * 0.6,
        "PnR_Roll": pnr * 0.2,
        "PnR_Pop": pnr * 0.2 * perimeter,
        "PostUp": s("play_post"),
        "CatchShoot": s("play_cns") * perimeter,
        "Cut": s("play_drive"),
        "Handoff": 2.0,
        "Transition": 0.0,
    }

    if offense.on_court:
        star = max(offense.on_court, key=lambda p: scoring_gravity(p.attr, p.current_condition))
        boost = max(0.0, scoring_gravity(star.attr, star.current_condition) - 60.0) * 0.02
        if boost > 0:
            weights[_star_play(star)] *= 1.0 + boost

    side = state.possession
    if clutch.is_clutch and clutch.trailing_side == side:
        k = 1.0 + clutch.desperation * 0.6 + (0.2 if clutch.is_super_clutch else 0.0)
        weights["CatchShoot"] *= k
        weights["PnR_Pop"] *= k
    elif clutch.is_clutch and clutch.trailing_side is not None:
        weights["Iso"] *= 1.3
        weights["PostUp"] *= 1.3
        weights["Transition"] = 0.0
    return weights


def select_play_type(rng: random.Random, state: GameState, offense: TeamState, clutch: ClutchContext) -> str:
    cfg = state.config
    if state.shot_clock == cfg.orb_shot_clock and state.game_clock < cfg.quarter_length:
        if rng.random() < 0.15 + offense.slider("offReb") * 0.02:
            return "Putback"

    leading_in_clutch = (
        clutch.is_clutch and clutch.trailing_side is not None and clutch.trailing_side != state.possession
    )
    if not leading_in_clutch and rng.random() < offense.slider("pace") * 0.03:
        return "Transition"

    return weighted_choice(rng, play_weights(state, offense, clutch))


# -------------------------
# Actor selection
# -------------------------

def play_fit(p: LivePlayer, play: str) -> float:
    if play == "Iso":
        return p.arch("isoScorer") + p.arch("handler") * 0.5
    if play == "PnR_Handler":
        return p.arch("handler")
    if play == "PnR_Roll":
        return p.arch("roller")
    if play == "PnR_Pop":
        return p.arch("popper")
    if play == "PostUp":
        return p.arch("postScorer")
    if play == "CatchShoot":
        return p.arch("spacer")
    if play == "Cut":
        return p.arch("driver") + p.rating("shot_iq") * 0.5
    if play == "Handoff":
        return p.arch("spacer") + p.arch("driver") * 0.5
    if play == "Transition":
        return p.rating("speed") + p.arch("driver")
    return p.arch("rebounder")


def usage_weight(p: LivePlayer, play: str, power: float = 3.0) -> float:
    fit = play_fit(p, play) / _FIT_SCALE.get(play, 1.0)
    w = max(1.0, fit * 0.7 + p.ovr * 0.3) ** power
    if p.current_condition < 50:
        w *= 0.7
    return w


def _pick(
    rng: random.Random,
    players: List[LivePlayer],
    score: Callable[[LivePlayer], float],
    power: float = 2.0,
) -> Optional[LivePlayer]:
    if not players:
        return None
    idx = weighted_choice(rng, {i: max(1.0, score(p)) ** power for i, p in enumerate(players)})
    return players[idx]


def _passer_score(p: LivePlayer) -> float:
    return p.arch("handler") + p.arch("connector")


def select_actors(
    rng: random.Random,
    state: GameState,
    offense: TeamState,
    play: str,
) -> Tuple[LivePlayer, Optional[LivePlayer]]:
    players = list(offense.on_court)
    if not players:
        raise LineupInvariantError(f"{offense.name}: cannot select an actor from an empty on-court list")

    if play == "Putback":
        actor = next(
            (p for p in players if p.player_id == state.last_offensive_rebounder_id),
            None,
        ) or best_rebounder(players)
        return actor, None

    idx = weighted_choice(rng, {i: usage_weight(p, play) for i, p in enumerate(players)})
    actor = players[idx]
    others = [p for p in players if p is not actor]

    if play in ("PnR_Handler", "Handoff"):
        secondary = _pick(rng, others, lambda p: p.arch("screener"))
    elif play in ("PnR_Roll", "PnR_Pop"):
        secondary = _pick(rng, others, lambda p: p.arch("handler"))
    else:
        secondary = _pick(rng, others, _passer_score)
    return actor, secondary


# -------------------------
# Defender identification
# -------------------------

def _by_position(players: List[LivePlayer], pos: str, exclude: Optional[LivePlayer] = None) -> Optional[LivePlayer]:
    for p in players:
        if p is not exclude and primary_position(p.position) == pos:
            return p
    return None


def identify_defender(
    rng: random.Random,
    offense: TeamState,
    defense: TeamState,
    actor: LivePlayer,
    secondary: Optional[LivePlayer],
    play: str,
    zone: str,
    is_zone: bool,
) -> Tuple[LivePlayer, bool, bool]:
    """Return (defender, is_switch, is_mismatch)."""
    defenders = list(defense.on_court)
    if not defenders:
        raise LineupInvariantError(f"{defense.name}: cannot select a defender from an empty on-court list")

    if is_zone and zone in ("Rim", "Paint"):
        anchor = _by_position(defenders, "C") or _by_position(defenders, "PF")
        if anchor is not None:
            return anchor, False, False

    stopper = defense.stopper
    if not is_zone and stopper is not None and stopper in defenders and offense.ace_id == actor.player_id:
        return stopper, False, False

    defender = _by_position(defenders, primary_position(actor.position)) or rng.choice(defenders)
    is_switch = False
    is_mismatch = False
    if play in SCREEN_PLAYS and secondary is not None:
        if rng.random() < defense.slider("switchFreq") * 0.05:
            switched = _by_position(defenders, primary_position(secondary.position), exclude=defender)
            if switched is not None:
                defender = switched
                is_switch = True
            if rng.random() < max(0.0, (10.0 - defense.slider("helpDef")) * 0.02):
                is_mismatch = True

    if play == "PostUp" and actor.height - defender.height >= 10:
        is_mismatch = True
    return defender, is_switch, is_mismatch


# -------------------------
# Foul / turnover / block / free throws
# -------------------------

def foul_probability(defense: TeamState, defender: LivePlayer) -> float:
    p = min(0.18, 0.08 + defense.slider("defIntensity") * 0.015)
    if defender.pf >= 5:
        p *= 0.30
    elif defender.pf == 4:
        p *= 0.60
    elif defender.pf == 3:
        p *= 0.85
    return p


def shooting_foul_share(zone: str, def_intensity: float) -> float:
    bonus = max(0.0, def_intensity - 5.0)
    if zone in ("Rim", "Paint"):
        return min(0.60, 0.45 + bonus * 0.015)
    if zone == "Mid":
        return min(0.35, 0.25 + bonus * 0.012)
    return min(0.20, 0.10 + bonus * 0.008)


def turnover_probability(offense: TeamState, defense: TeamState, actor: LivePlayer, play: str) -> float:
    p = 0.08
    p += max(0.0, (offense.slider("ballMovement") - 5.0) * 0.004)
    p += max(0.0, (defense.slider("defIntensity") - 5.0) * 0.008)
    p += (70.0 - actor.rating("handling")) * 0.001
    p += (70.0 - actor.rating("pass_iq")) * 0.001
    p += TOV_CONTEXT.get(play, 0.0)
    return clamp(p, *TOV_BOUNDS)


def steal_ratio(defender: LivePlayer) -> float:
    r = 0.45
    stl = defender.rating("steal")
    if stl >= 90:
        r += 0.15
    elif stl >= 80:
        r += 0.08
    if defender.rating("pass_perc") >= 85 and defender.rating("agility") >= 85:
        r += 0.10
    return r


def block_probability(shooter: LivePlayer, defender: LivePlayer, zone: str) -> float:
    h = defender.height
    blk = defender.rating("blk")
    vert = defender.rating("vertical")
    p = BLOCK_BASE.get(zone, 0.01)
    p += max(0.0, (h - 200.0) * 0.0005) + (blk - 70.0) * 0.0005 + (vert - 70.0) * 0.00025
    if blk >= 97:
        p += 0.045
    elif h >= 216 and blk >= 80:
        p += 0.03
    elif vert >= 95 and blk >= 75:
        p += 0.025
    elif defender.rating("help_def_iq") >= 92 and blk >= 80:
        p += 0.015
    p -= max(0.0, (shooter.rating("shot_iq") - 70.0) * 0.001 + (shooter.height - 190.0) * 0.0005)
    return clamp(p, 0.0, 0.25)


def resolve_block(
    rng: random.Random,
    shooter: LivePlayer,
    defender: Optional[LivePlayer],
    defense: TeamState,
    zone: str,
) -> Optional[LivePlayer]:
    if defender is not None and rng.random() < block_probability(shooter, defender, zone):
        return defender
    if zone not in ("Rim", "Paint"):
        return None
    helpers = [p for p in defense.on_court if p is not defender]
    if not helpers:
        return None
    helper = max(helpers, key=lambda p: p.rating("blk"))
    p = 0.01
    if helper.rating("blk") >= 90:
        p += 0.02
    if helper.arch("rimProtector") > 80:
        p += 0.02
    return helper if rng.random() < p else None


def resolve_free_throws(rng: random.Random, shooter: LivePlayer, attempts: int) -> int:
    pct = clamp(shooter.rating("ft") / 100.0, 0.0, 1.0)
    return sum(1 for _ in range(int(attempts)) if rng.random() < pct)


def _shadow_stealer(rng: random.Random, defense: TeamState, defender: LivePlayer) -> Optional[LivePlayer]:
    shadows = [
        p for p in defense.on_court
        if p is not defender and p.rating("steal") >= 85 and p.rating("help_def_iq") >= 90
    ]
    if shadows and rng.random() < 0.20:
        return max(shadows, key=lambda p: p.rating("steal"))
    return None


def _shot_zone(rng: random.Random, actor: LivePlayer, offense: TeamState, play: str) -> str:
    if play in REDRAW_PLAYS:
        return draw_zone(rng, actor, offense.tactics.sliders)
    if play == "Transition":
        pull_up = min(0.5, 0.15 + max(0.0, actor.arch("spacer") - 60.0) * 0.01)
        return "3PT" if rng.random() < pull_up else "Rim"
    return PLAY_ZONE[play]


# -------------------------
# Main entry
# -------------------------

def resolve_possession(
    rng: random.Random,
    state: GameState,
    *,
    min_hit_rate: Optional[float] = None,
) -> Tuple[PossessionResult, int]:
    offense = state.offense()
    defense = state.defense()
    if not offense.on_court or not defense.on_court:
        raise LineupInvariantError("resolve_possession(): empty on-court list")

    clutch = clutch_context(state)
    play = select_play_type(rng, state, offense, clutch)
    actor, secondary = select_actors(rng, state, offense, play)
    zone = _shot_zone(rng, actor, offense, play)
    is_zone = rng.random() < defense.slider("zoneFreq") * 0.08
    defender, is_switch, is_mismatch = identify_defender(
        rng, offense, defense, actor, secondary, play, zone, is_zone
    )
    elapsed = calculate_possession_time(rng, offense.slider("pace"), state.game_clock, play)

    def_intensity = defense.slider("defIntensity")

    # foul
    if rng.random() < foul_probability(defense, defender):
        in_bonus = defense.fouls >= 4
        if rng.random() < shooting_foul_share(zone, def_intensity):
            made = resolve_free_throws(rng, actor, 2)
            return FreeThrow(
                actor=actor, defender=defender, play_type=play, attempts=2, made=made,
                zone=zone, is_shooting_foul=True, is_switch=is_switch, is_mismatch=is_mismatch,
            ), elapsed
        if in_bonus:
            made = resolve_free_throws(rng, actor, 2)
            return FreeThrow(
                actor=actor, defender=defender, play_type=play, attempts=2, made=made,
                is_shooting_foul=False,
            ), elapsed
        return Foul(actor=actor, defender=defender, play_type=play), elapsed

    # turnover
    if rng.random() < turnover_probability(offense, defense, actor, play):
        stealer = None
        if rng.random() < steal_ratio(defender):
            stealer = _shadow_stealer(rng, defense, defender) or defender
        return Turnover(actor=actor, defender=defender, play_type=play, stealer=stealer), elapsed

    # shot
    modifier = 0.0
    if is_zone:
        modifier += (5.0 - defense.slider("zoneUsage")) * 0.003
    if defender.pf == 4:
        modifier += 0.02
    elif defender.pf >= 5:
        modifier += 0.04
    run = state.momentum.active_run
    if run is not None and run.side == state.possession:
        modifier += 0.02

    is_ace_matchup = defense.stopper is defender and offense.ace_id == actor.player_id
    hit = calculate_hit_rate(
        actor, defender, zone,
        offense_sliders=offense.tactics.sliders,
        defense_sliders=defense.tactics.sliders,
        metrics=get_opponent_defensive_metrics(defense, zone_active=is_zone),
        is_home=state.possession == HOME,
        home_advantage=state.config.home_advantage,
        play_bonus=PLAY_BONUS[play],
        modifier=modifier,
        is_mismatch=is_mismatch,
        is_ace_matchup=is_ace_matchup,
        min_hit_rate=min_hit_rate,
    )
    sub_zone = draw_sub_zone(rng, actor, zone)

    if rng.random() < hit.rate:
        points = 3 if zone == "3PT" else 2
        assister = secondary if secondary is not None and rng.random() < ASSIST_CHANCE[play] else None
        if zone in ("Rim", "Paint") and rng.random() < 0.03 + max(0.0, (def_intensity - 5.0) * 0.004):
            made = resolve_free_throws(rng, actor, 1)
            return FreeThrow(
                actor=actor, defender=defender, play_type=play, attempts=1, made=made,
                shot_points=points, zone=zone, sub_zone=sub_zone, assister=assister,
                is_and_one=True, is_shooting_foul=True, is_switch=is_switch, is_mismatch=is_mismatch,
            ), elapsed
        return Score(
            actor=actor, defender=defender, points=points, zone=zone, sub_zone=sub_zone,
            play_type=play, assister=assister, is_switch=is_switch,
            is_mismatch=hit.is_mismatch, matchup_effect=hit.matchup_effect,
        ), elapsed

    blocker = resolve_block(rng, actor, defender, defense, zone)
    rebounder, is_orb = resolve_rebound(rng, offense, defense, actor)
    return Miss(
        actor=actor, defender=defender, zone=zone, sub_zone=sub_zone, play_type=play,
        rebounder=rebounder, is_offensive_rebound=is_orb, blocker=blocker,
        is_switch=is_switch, is_mismatch=hit.is_mismatch, matchup_effect=hit.matchup_effect,
    ), elapsed
