from __future__ import annotations

"""Rotation schedule stored as half-open minute intervals per player.

A player is scheduled on court for minute m when some interval (start, end)
satisfies start <= m < end. The external shape (a 48-entry boolean list per
player) is still accepted and produced via from_minute_map / to_minute_map.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

Interval = Tuple[int, int]


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort, drop empty spans and merge overlapping/adjacent spans."""
    spans = sorted((int(s), int(e)) for s, e in intervals if int(e) > int(s))
    out: List[Interval] = []
    for s, e in spans:
        if out and s <= out[-1][1]:
            out[-1] = (out[-1][0], max(out[-1][1], e))
        else:
            out.append((s, e))
    return out


def clip_intervals(intervals: Iterable[Interval], start: int, end: int) -> List[Interval]:
    return merge_intervals((max(s, start), min(e, end)) for s, e in intervals)


def subtract_interval(intervals: Iterable[Interval], start: int, end: int) -> List[Interval]:
    out: List[Interval] = []
    for s, e in intervals:
        if e <= start or s >= end:
            out.append((s, e))
            continue
        if s < start:
            out.append((s, start))
        if e > end:
            out.append((end, e))
    return merge_intervals(out)


class RotationSchedule:
    def __init__(self, intervals_by_pid: Optional[Mapping[str, Iterable[Interval]]] = None, length: int = 48):
        self.length = int(length)
        self._spans: Dict[str, List[Interval]] = {}
        for pid, spans in (intervals_by_pid or {}).items():
            self._spans[str(pid)] = clip_intervals(spans, 0, self.length)

    # -------------------------
    # Conversions
    # -------------------------
    @classmethod
    def from_minute_map(cls, minute_map: Mapping[str, Sequence[bool]], length: int = 48) -> "RotationSchedule":
        sched = cls(length=length)
        for pid, flags in minute_map.items():
            spans: List[Interval] = []
            start: Optional[int] = None
            for minute in range(length):
                on = bool(flags[minute]) if minute < len(flags) else False
                if on and start is None:
                    start = minute
                elif not on and start is not None:
                    spans.append((start, minute))
                    start = None
            if start is not None:
                spans.append((start, length))
            sched._spans[str(pid)] = merge_intervals(spans)
        return sched

    def to_minute_map(self) -> Dict[str, List[bool]]:
        return {
            pid: [self.is_scheduled(pid, m) for m in range(self.length)]
            for pid in self._spans
        }

    def copy(self) -> "RotationSchedule":
        return RotationSchedule(self._spans, length=self.length)

    # -------------------------
    # Queries
    # -------------------------
    def intervals(self, pid: str) -> List[Interval]:
        return list(self._spans.get(str(pid), []))

    def is_scheduled(self, pid: str, minute: int) -> bool:
        return any(s <= minute < e for s, e in self._spans.get(str(pid), []))

    def scheduled_at(self, minute: int) -> List[str]:
        return [pid for pid in self._spans if self.is_scheduled(pid, minute)]

    def minutes(self, pid: str) -> int:
        return sum(e - s for s, e in self._spans.get(str(pid), []))

    # -------------------------
    # Mutations (interval splicing)
    # -------------------------
    def _bounds(self, start: int, end: Optional[int]) -> Interval:
        lo = max(0, min(int(start), self.length))
        hi = self.length if end is None else max(lo, min(int(end), self.length))
        return lo, hi

    def set_range(self, pid: str, start: int, end: Optional[int] = None, on: bool = True) -> None:
        lo, hi = self._bounds(start, end)
        cur = self._spans.get(str(pid), [])
        if on:
            self._spans[str(pid)] = merge_intervals(list(cur) + [(lo, hi)])
        else:
            self._spans[str(pid)] = subtract_interval(cur, lo, hi)

    def transfer(self, from_pid: str, to_pid: str, start: int, end: Optional[int] = None) -> List[Interval]:
        """Move from_pid's spans inside [start, end) to to_pid; both sides change together."""
        lo, hi = self._bounds(start, end)
        src = self._spans.get(str(from_pid), [])
        moved = clip_intervals(src, lo, hi)
        self._spans[str(from_pid)] = subtract_interval(src, lo, hi)
        self._spans[str(to_pid)] = merge_intervals(self._spans.get(str(to_pid), []) + moved)
        return moved

    def replace_from(self, pid: str, start: int, snapshot: Iterable[Interval]) -> None:
        """Overwrite pid's spans from `start` onward with the same slice of `snapshot`."""
        lo, hi = self._bounds(start, None)
        kept = clip_intervals(self._spans.get(str(pid), []), 0, lo)
        restored = clip_intervals(snapshot, lo, hi)
        self._spans[str(pid)] = merge_intervals(kept + restored)
