"""
View State Reconciler
=====================

Every dashboard shows ONE current reading. It hears about new readings from
two places that do not coordinate with each other:

- the push channel (WebSocket "sensor-data" events)
- the poll timer (GET /api/readings/latest every 30 seconds)

A poll response can arrive after a newer push, so "last one wins" would make
the dashboard jump backwards. Instead both sources go through merge(), which
only ever moves forward in time:

    replace current with incoming  ONLY IF  current is empty
                                        OR  incoming.timestamp > current.timestamp

Equal or older readings are dropped, so applying the same reading twice, or
applying readings in any order, ends in the same place.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from airwatch.models import StoredReading, air_quality_category


def merge(current: Optional[StoredReading], incoming: StoredReading) -> StoredReading:
    """
    Pick the reading a view should show.

    Args:
        current: What the view shows now (None if nothing yet)
        incoming: A reading from a push or a poll

    Returns:
        incoming if it is strictly newer than current, otherwise current
    """
    if current is None or incoming.timestamp > current.timestamp:
        return incoming
    return current


@dataclass
class CurrentView:
    """
    The latest known reading held by one viewer session.

    Owned by the session; nothing else writes to it.
    """
    reading: Optional[StoredReading] = None
    updated_at: Optional[datetime] = None
    applied: int = field(default=0, repr=False)

    @property
    def is_empty(self) -> bool:
        return self.reading is None

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.reading.timestamp if self.reading is not None else None

    @property
    def air_quality(self) -> Optional[str]:
        if self.reading is None:
            return None
        return air_quality_category(self.reading.pm25)

    def apply(self, incoming: StoredReading) -> bool:
        """
        Merge a reading into the view.

        Returns:
            True if the view changed
        """
        winner = merge(self.reading, incoming)
        if winner is self.reading:
            return False

        self.reading = winner
        self.updated_at = datetime.now(timezone.utc)
        self.applied += 1
        return True
