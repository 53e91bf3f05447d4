"""Presentation sinks for lane events.

:class:`LaneListener` is the callback surface the core drives; subclasses
override the hooks they care about. :class:`BusLaneListener` republishes
every hook on the event bus so renderers, launchers and recorders can
consume them independently.

Bus topics and payloads (msgpack):

- ``lane.selecting``: ``{"entry": <entry dict> | None}``
- ``lane.selected``: ``{"entry": <entry dict>}``
- ``lane.state``: ``{"old": "<state>", "new": "<state>"}``
- ``lane.entries``: ``{"transitions": [[index, "<state>", delay_ms], ...]}``
- ``launch``: ``{"entry": <entry dict>}``
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Sequence

from paperlaunch.core.entries import Entry
from paperlaunch.core.events import EventBus, pack

if TYPE_CHECKING:
    from paperlaunch.core.lane import EntryTransition, LaneState

__all__ = [
    "LaneListener",
    "BusLaneListener",
    "RecordingListener",
    "TOPIC_SELECTING",
    "TOPIC_SELECTED",
    "TOPIC_STATE",
    "TOPIC_ENTRIES",
    "TOPIC_LAUNCH",
]

logger = logging.getLogger(__name__)

TOPIC_SELECTING = "lane.selecting"
TOPIC_SELECTED = "lane.selected"
TOPIC_STATE = "lane.state"
TOPIC_ENTRIES = "lane.entries"
TOPIC_LAUNCH = "launch"


class LaneListener:
    """No-op base; the core only decides *when* and *with what entry*."""

    def on_item_selecting(self, entry: Optional[Entry]) -> None:
        pass

    def on_item_selected(self, entry: Entry) -> None:
        pass

    def on_state_changed(self, old: "LaneState", new: "LaneState") -> None:
        pass

    def on_entry_states(self, transitions: Sequence["EntryTransition"]) -> None:
        pass

    def on_launch(self, entry: Entry) -> None:
        pass


def _entry_payload(entry: Optional[Entry]) -> Optional[dict[str, Any]]:
    if entry is None:
        return None
    # Children are not needed by consumers and can be large.
    return entry.model_dump(mode="json", exclude={"entries"})


class BusLaneListener(LaneListener):
    def __init__(self, bus: EventBus) -> None:
        self._bus = bus

    def _publish(self, topic: str, obj: Any) -> None:
        if self._bus.closed:
            logger.debug("bus closed, dropping %s", topic)
            return
        self._bus.publish_nowait(topic, pack(obj))

    def on_item_selecting(self, entry: Optional[Entry]) -> None:
        self._publish(TOPIC_SELECTING, {"entry": _entry_payload(entry)})

    def on_item_selected(self, entry: Entry) -> None:
        self._publish(TOPIC_SELECTED, {"entry": _entry_payload(entry)})

    def on_state_changed(self, old: "LaneState", new: "LaneState") -> None:
        self._publish(TOPIC_STATE, {"old": old.value, "new": new.value})

    def on_entry_states(self, transitions: Sequence["EntryTransition"]) -> None:
        self._publish(
            TOPIC_ENTRIES,
            {"transitions": [[t.index, t.state.value, t.delay_ms] for t in transitions]},
        )

    def on_launch(self, entry: Entry) -> None:
        self._publish(TOPIC_LAUNCH, {"entry": _entry_payload(entry)})


class RecordingListener(LaneListener):
    """Keeps every callback as ``(name, args)`` in :attr:`calls`.

    Used by the ``replay`` command to print what a gesture produced, and
    handy in tests.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def of(self, name: str) -> list[tuple[Any, ...]]:
        return [args for n, args in self.calls if n == name]

    def on_item_selecting(self, entry: Optional[Entry]) -> None:
        self.calls.append(("selecting", (entry,)))

    def on_item_selected(self, entry: Entry) -> None:
        self.calls.append(("selected", (entry,)))

    def on_state_changed(self, old: "LaneState", new: "LaneState") -> None:
        self.calls.append(("state", (old, new)))

    def on_entry_states(self, transitions: Sequence["EntryTransition"]) -> None:
        self.calls.append(("entries", (tuple(transitions),)))

    def on_launch(self, entry: Entry) -> None:
        self.calls.append(("launch", (entry,)))
