"""Snapshot differ: turns two successive scans into change events.

Pure functions only; the caller owns the retained collection and feeds it
back in on the next cycle.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from zcnotify.models import ChangeEvent, ChangeType, ServiceSnapshot

logger = logging.getLogger(__name__)


def diff(
    previous: Sequence[ServiceSnapshot],
    current: Sequence[ServiceSnapshot],
    *,
    timestamp: datetime | None = None,
) -> list[ChangeEvent]:
    """Return the ordered change events that turn *previous* into *current*.

    ADD and MODIFY events come first, in *current*'s order.  REMOVE events
    follow, walking *previous* from the end.  Unchanged instances produce
    nothing.  Every event of one call carries the same *timestamp*
    (default: now, UTC).
    """
    ts = timestamp or datetime.now(timezone.utc)
    known = {snap.instance_key: snap for snap in previous}

    events: list[ChangeEvent] = []
    seen: set[str] = set()
    for snap in current:
        if snap.instance_key in seen:
            logger.debug("Ignoring repeated instance %s in one scan", snap.instance_key)
            continue
        seen.add(snap.instance_key)

        old = known.get(snap.instance_key)
        if old is None:
            events.append(ChangeEvent(ChangeType.ADD, ts, snap))
        elif not old.same_payload(snap):
            events.append(ChangeEvent(ChangeType.MODIFY, ts, snap))

    for old in reversed(previous):
        if old.instance_key not in seen:
            events.append(ChangeEvent(ChangeType.REMOVE, ts, old))

    return events


def apply_changes(
    previous: Sequence[ServiceSnapshot],
    events: Sequence[ChangeEvent],
) -> list[ServiceSnapshot]:
    """Apply *events* to *previous* and return the new retained collection.

    MODIFY replaces the matching entry in place, REMOVE deletes it and ADD
    appends.  Events naming a key that is not present (REMOVE / MODIFY) or
    already present (ADD) are ignored.
    """
    # dict keeps insertion order: replacing a value keeps its slot
    retained = {snap.instance_key: snap for snap in previous}

    for event in events:
        key = event.entry.instance_key
        if event.change_type is ChangeType.ADD:
            retained.setdefault(key, event.entry)
        elif event.change_type is ChangeType.MODIFY:
            if key in retained:
                retained[key] = event.entry
        elif event.change_type is ChangeType.REMOVE:
            retained.pop(key, None)

    return list(retained.values())
