"""
wardley/changes.py

Change cues between successive parses.

After each re-parse the new element list is compared with the previous one;
elements that appeared, or moved further than a small tolerance, get a short
"glitch" highlight.  The tracker owns the set of active cues and reports
per-element animation progress for rendering.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Iterable, List, Optional

from debug_trace import trace
from models import GlitchEntry, GlitchInfo, MapElement, WardleyMap

POSITION_EPSILON = 1e-3


def detect_changes(
    previous: Optional[Iterable[MapElement]],
    current: Iterable[MapElement],
    now: float = 0.0,
    active_names: Iterable[str] = (),
    epsilon: float = POSITION_EPSILON,
) -> List[GlitchEntry]:
    """Return new cues for elements that appeared or moved.

    Args:
        previous: Elements of the prior document; None on first load, which
            yields no cues.
        current: Elements of the new document.
        now: Start time stamped on new cues.
        active_names: Names that already have a running cue; they are skipped.
        epsilon: Moves at or below this in both axes are ignored.

    Returns:
        One entry per changed element, in ``current`` order.
    """
    if previous is None:
        return []

    # First declaration of a duplicated name wins
    before: Dict[str, MapElement] = {}
    for el in previous:
        before.setdefault(el.name, el)

    skip = set(active_names)
    cues: List[GlitchEntry] = []
    for el in current:
        if el.name in skip:
            continue
        old = before.get(el.name)
        if old is None:
            cues.append(GlitchEntry(el.name, now, True))
        elif (abs(el.visibility - old.visibility) > epsilon
              or abs(el.maturity - old.maturity) > epsilon):
            cues.append(GlitchEntry(el.name, now, False))
    return cues


class GlitchTracker:
    """Active change cues with expiry.

    Args:
        duration: Cue lifetime in seconds.
        epsilon: Movement tolerance passed to ``detect_changes``.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, duration: float = GlitchEntry.DURATION,
                 epsilon: float = POSITION_EPSILON,
                 clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self.epsilon = epsilon
        self._clock = clock
        self._entries: List[GlitchEntry] = []

    def record(self, previous: Optional[WardleyMap], current: WardleyMap,
               now: Optional[float] = None) -> List[GlitchEntry]:
        """Diff two documents and start cues for the changed elements.

        Expired cues are pruned first so an element can glitch again once
        its previous cue has finished.
        """
        now = self._clock() if now is None else now
        self.prune(now)
        before = None if previous is None else previous.elements
        cues = detect_changes(before, current.elements, now, self.active_names(), self.epsilon)
        self._entries.extend(cues)
        if cues:
            trace(f"glitch cues: {[c.element_name for c in cues]}", "GLITCH")
        return cues

    def prune(self, now: Optional[float] = None) -> None:
        now = self._clock() if now is None else now
        self._entries = [e for e in self._entries if not e.expired(now, self.duration)]

    def sample(self, now: Optional[float] = None) -> Dict[str, GlitchInfo]:
        """Progress of every live cue, keyed by element name."""
        now = self._clock() if now is None else now
        self.prune(now)
        info = {}
        for e in self._entries:
            progress = (now - e.start_time) / self.duration if self.duration > 0 else 1.0
            info[e.element_name] = GlitchInfo(min(max(progress, 0.0), 1.0), e.is_new)
        return info

    def active_names(self) -> List[str]:
        return [e.element_name for e in self._entries]

    def is_active(self, name: str) -> bool:
        return any(e.element_name == name for e in self._entries)

    def clear(self) -> None:
        self._entries = []

    @property
    def entries(self) -> List[GlitchEntry]:
        return list(self._entries)
