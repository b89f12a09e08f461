from __future__ import annotations

import argparse
import random
import sys
from typing import Any, Dict, List, Optional

from .attributes import RATING_KEYS
from .core import clamp
from .engine import simulate_full_game
from .engine_config import build_engine_config
from .models import GameTactics, Player, Team


# -------------------------
# Pretty printing (player boxscore table)
# -------------------------

def _safe_div(n: float, d: float) -> float:
    return (n / d) if d else 0.0


def _fmt_pct(made: float, att: float) -> str:
    return f"{_safe_div(made, att) * 100:.1f}" if att else "0.0"


HEADERS = ["PLAYER", "MIN", "PTS", "FG", "FG%", "3P", "3P%", "FT", "FT%", "ORB", "DRB", "REB", "AST", "TOV", "PF", "+/-"]
WIDTHS = {
    "PLAYER": 14, "MIN": 5, "PTS": 4, "FG": 7, "FG%": 5, "3P": 7, "3P%": 5, "FT": 7, "FT%": 5,
    "ORB": 4, "DRB": 4, "REB": 4, "AST": 4, "TOV": 4, "PF": 3, "+/-": 4,
}


def print_player_boxscore_table(team_name: str, box: List[Dict[str, Any]]) -> None:
    rows = []
    tot = {k: 0.0 for k in ("mp", "pts", "fgm", "fga", "p3m", "p3a", "ftm", "fta", "offReb", "defReb", "ast", "tov", "pf")}
    for st in box:
        for k in tot:
            tot[k] += float(st.get(k, 0))
        rows.append({
            "PLAYER": st["playerName"],
            "MIN": f"{st['mp']:.1f}",
            "PTS": st["pts"],
            "FG": f"{st['fgm']}-{st['fga']}",
            "FG%": _fmt_pct(st["fgm"], st["fga"]),
            "3P": f"{st['p3m']}-{st['p3a']}",
            "3P%": _fmt_pct(st["p3m"], st["p3a"]),
            "FT": f"{st['ftm']}-{st['fta']}",
            "FT%": _fmt_pct(st["ftm"], st["fta"]),
            "ORB": st["offReb"],
            "DRB": st["defReb"],
            "REB": st["reb"],
            "AST": st["ast"],
            "TOV": st["tov"],
            "PF": st["pf"],
            "+/-": st["plusMinus"],
        })

    rows.append({
        "PLAYER": "TOTAL",
        "MIN": f"{tot['mp']:.1f}",
        "PTS": int(tot["pts"]),
        "FG": f"{int(tot['fgm'])}-{int(tot['fga'])}",
        "FG%": _fmt_pct(tot["fgm"], tot["fga"]),
        "3P": f"{int(tot['p3m'])}-{int(tot['p3a'])}",
        "3P%": _fmt_pct(tot["p3m"], tot["p3a"]),
        "FT": f"{int(tot['ftm'])}-{int(tot['fta'])}",
        "FT%": _fmt_pct(tot["ftm"], tot["fta"]),
        "ORB": int(tot["offReb"]),
        "DRB": int(tot["defReb"]),
        "REB": int(tot["offReb"] + tot["defReb"]),
        "AST": int(tot["ast"]),
        "TOV": int(tot["tov"]),
        "PF": int(tot["pf"]),
        "+/-": "",
    })

    def fmt_row(r: dict) -> str:
        return " ".join(str(r.get(h, "")).ljust(WIDTHS[h])[:WIDTHS[h]] for h in HEADERS)

    line = "-" * (sum(WIDTHS.values()) + (len(HEADERS) - 1))
    print(f"\n[{team_name}] Player Boxscore")
    print(fmt_row({h: h for h in HEADERS}))
    print(line)
    for i, r in enumerate(rows):
        if i == len(rows) - 1:
            print(line)
        print(fmt_row(r))


# -------------------------
# Sample rosters
# -------------------------

ARCHETYPE_BUMPS = {
    "PG_SHOOT": (
        ["three_corner", "three_45", "three_top", "handling", "pass_iq", "pass_vision", "pass_acc", "speed", "shot_iq"],
        ["per_def", "stamina", "ft"],
    ),
    "WING_3D": (
        ["three_corner", "three_45", "per_def", "steal", "help_def_iq", "stamina"],
        ["handling", "agility", "def_consist"],
    ),
    "SLASH": (
        ["ins", "layup", "dunk", "speed", "agility", "vertical", "draw_foul"],
        ["handling", "mid", "stamina"],
    ),
    "BIG_SKILL": (
        ["mid", "post_play", "pass_iq", "hands", "strength"],
        ["help_def_iq", "def_reb", "off_consist"],
    ),
    "BIG_RIM": (
        ["int_def", "blk", "def_reb", "off_reb", "strength", "vertical"],
        ["ins", "dunk", "hustle"],
    ),
}

ARCHETYPE_BODY = {
    "PG_SHOOT": ("PG", 188.0, 86.0),
    "WING_3D": ("SF", 201.0, 98.0),
    "SLASH": ("SG", 196.0, 93.0),
    "BIG_SKILL": ("PF", 208.0, 109.0),
    "BIG_RIM": ("C", 213.0, 116.0),
}

LINEUP_ORDER = ("PG_SHOOT", "SLASH", "WING_3D", "BIG_SKILL", "BIG_RIM")


def make_sample_player(
    rng: random.Random,
    pid: str,
    name: str,
    archetype: str,
    level: float = 0.0,
    position: Optional[str] = None,
) -> Player:
    """Random ratings around 55, pushed up along the archetype's strengths."""
    base = {k: clamp(55.0 + rng.uniform(-8, 8) + level, 25, 99) for k in RATING_KEYS}

    def bump(ks, lo, hi):
        for k in ks:
            base[k] = clamp(base[k] + rng.uniform(lo, hi), 25, 99)

    major, minor = ARCHETYPE_BUMPS.get(archetype, ([], []))
    bump(major, 12, 25)
    bump(minor, 5, 12)

    pos, height, weight = ARCHETYPE_BODY.get(archetype, ("SF", 200.0, 100.0))
    ovr = sum(base.values()) / len(base) + 8.0
    return Player(
        id=pid,
        name=name,
        position=position or pos,
        ovr=round(clamp(ovr, 40, 99), 1),
        height=height + rng.uniform(-3, 3),
        weight=weight + rng.uniform(-4, 4),
        attrs={k: round(v, 1) for k, v in base.items()},
    )


def make_sample_team(rng: random.Random, team_id: str, name: str, size: int = 12) -> Team:
    """Starters first (level +8), then reserves cycling through the archetypes."""
    roster = []
    for i in range(size):
        arch = LINEUP_ORDER[i % len(LINEUP_ORDER)]
        level = 8.0 if i < 5 else (0.0 if i < 10 else -6.0)
        roster.append(make_sample_player(rng, f"{team_id}{i + 1}", f"{team_id}{i + 1}_{arch.split('_')[0]}", arch, level))
    return Team(id=team_id, name=name, roster=roster)


def demo(seed: int = 7, home_pace: float = 5.0, away_pace: float = 5.0, injuries: bool = False) -> Dict[str, Any]:
    rng = random.Random(seed)
    home = make_sample_team(rng, "A", "A_Spread")
    away = make_sample_team(rng, "B", "B_Bully")
    tactics = {
        "A": GameTactics(sliders={"pace": home_pace, "play_cns": 7, "play_pnr": 7}),
        "B": GameTactics(sliders={"pace": away_pace, "play_post": 7, "defIntensity": 7}),
    }
    config = build_engine_config({"injury_model": "enabled" if injuries else "disabled"})
    res = simulate_full_game(home, away, tactics=tactics, config=config, rng=rng)

    print(f"\n=== Seed {seed} ===")
    print(f"Final Score: {home.name} {res['homeScore']} - {away.name} {res['awayScore']}")
    if res["ghostPoints"]:
        print("Decided at the buzzer:", res["ghostPoints"])
    print_player_boxscore_table(home.name, res["homeBox"])
    print_player_boxscore_table(away.name, res["awayBox"])
    print("Shot events:", len(res["shotEvents"]), "| Log lines:", len(res["pbpLogs"]))
    if res["injuries"]:
        print("Injuries:", [i["playerName"] for i in res["injuries"]])
    return res


# -------------------------
# CLI entrypoint
# -------------------------

def main(argv=None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    ap = argparse.ArgumentParser(description="pbp_engine demo")
    ap.add_argument("--seed", type=int, default=7, help="RNG seed for reproducibility.")
    ap.add_argument("--home-pace", type=float, default=5.0, help="Pace slider for the home team (1-10).")
    ap.add_argument("--away-pace", type=float, default=5.0, help="Pace slider for the away team (1-10).")
    ap.add_argument("--injuries", action="store_true", help="Enable the in-game injury model.")
    args = ap.parse_args(argv)

    demo(seed=args.seed, home_pace=args.home_pace, away_pace=args.away_pace, injuries=args.injuries)


if __name__ == "__main__":
    main()
