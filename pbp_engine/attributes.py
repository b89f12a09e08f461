from __future__ import annotations

from typing import Dict

from .archetypes import compute_archetypes
from .models import LivePlayer, Player

# Rating keys consumed by the simulation (0-100 scale unless noted)
RATING_KEYS = (
    "ins", "out", "mid", "ft", "three_corner", "three_45", "three_top",
    "shot_iq", "off_consist", "layup", "dunk", "post_play", "draw_foul", "hands",
    "pass_acc", "handling", "spd_ball", "pass_iq", "pass_vision",
    "int_def", "per_def", "steal", "blk", "help_def_iq", "pass_perc", "def_consist",
    "off_reb", "def_reb",
    "speed", "agility", "strength", "vertical", "stamina", "hustle", "durability",
    "intangibles",
)


def live_attributes(player: Player) -> Dict[str, float]:
    """Flatten roster ratings into the attribute view used during a game.

    Adds the composite keys `three_val` (mean of the three 3PT ratings, falling
    back to `out`), `reb` and `def` (on-ball pressure).
    """
    attr = {k: player.rating(k) for k in RATING_KEYS}
    threes = [player.attrs[k] for k in ("three_corner", "three_45", "three_top") if k in player.attrs]
    attr["three_val"] = float(sum(threes) / len(threes)) if threes else player.rating("out")
    attr["reb"] = (attr["off_reb"] + attr["def_reb"]) / 2.0
    attr["def"] = attr["per_def"] * 0.5 + attr["steal"] * 0.25 + attr["def_consist"] * 0.25
    for k, v in player.attrs.items():
        attr.setdefault(k, float(v))
    return attr


def build_live_player(player: Player, is_starter: bool = False) -> LivePlayer:
    attr = live_attributes(player)
    condition = float(player.condition)
    return LivePlayer(
        player_id=str(player.id),
        name=player.name,
        position=player.position,
        ovr=float(player.ovr),
        height=float(player.height),
        weight=float(player.weight),
        attr=attr,
        is_starter=is_starter,
        health=player.health,
        current_condition=condition,
        condition_at_sub_in=condition,
        archetypes=compute_archetypes(attr, player.height, player.weight, condition),
        tendencies=player.tendencies,
        gs=1 if is_starter else 0,
    )


def refresh_archetypes(p: LivePlayer) -> None:
    p.archetypes = compute_archetypes(p.attr, p.height, p.weight, p.current_condition)
