"""Editable list of tour waypoints with undo/redo."""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Optional

from ...models.domain import Waypoint, WaypointType

MAX_HISTORY_SIZE = 50


def assign_waypoint_types(waypoints: list[Waypoint]) -> list[Waypoint]:
    """First is ``start``, last is ``end``, the rest ``via``; ``order`` is 0..n-1."""
    last = len(waypoints) - 1
    assigned = []
    for index, waypoint in enumerate(waypoints):
        if index == 0:
            kind = WaypointType.START
        elif index == last:
            kind = WaypointType.END
        else:
            kind = WaypointType.VIA
        assigned.append(replace(waypoint, type=kind, order=index))
    return assigned


class WaypointPlan:
    def __init__(self, max_history: int = MAX_HISTORY_SIZE) -> None:
        self.max_history = max_history
        self._waypoints: list[Waypoint] = []
        self._history: list[list[Waypoint]] = [[]]
        self._history_index = 0

    @property
    def waypoints(self) -> list[Waypoint]:
        return [replace(waypoint) for waypoint in self._waypoints]

    @property
    def can_undo(self) -> bool:
        return self._history_index > 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    def _commit(self, waypoints: list[Waypoint]) -> None:
        self._waypoints = assign_waypoint_types(waypoints)
        history = self._history[: self._history_index + 1]
        history.append([replace(waypoint) for waypoint in self._waypoints])
        if len(history) > self.max_history:
            history.pop(0)
        self._history = history
        self._history_index = len(history) - 1

    def _index_of(self, waypoint_id: str) -> int:
        for index, waypoint in enumerate(self._waypoints):
            if waypoint.id == waypoint_id:
                return index
        raise KeyError(f"Unknown waypoint {waypoint_id}")

    def add(self, latitude: float, longitude: float, name: Optional[str] = None) -> Waypoint:
        waypoint = Waypoint(
            id=uuid.uuid4().hex,
            order=len(self._waypoints),
            type=WaypointType.END,
            latitude=latitude,
            longitude=longitude,
            name=name,
        )
        self._commit([*self._waypoints, waypoint])
        return replace(self._waypoints[-1])

    def remove(self, waypoint_id: str) -> None:
        index = self._index_of(waypoint_id)
        self._commit(self._waypoints[:index] + self._waypoints[index + 1:])

    def move(self, waypoint_id: str, latitude: float, longitude: float) -> None:
        index = self._index_of(waypoint_id)
        updated = list(self._waypoints)
        updated[index] = replace(updated[index], latitude=latitude, longitude=longitude)
        self._commit(updated)

    def reorder(self, from_index: int, to_index: int) -> None:
        if not (0 <= from_index < len(self._waypoints)) or not (0 <= to_index < len(self._waypoints)):
            raise IndexError(f"Cannot move waypoint {from_index} to {to_index}")
        updated = list(self._waypoints)
        moved = updated.pop(from_index)
        updated.insert(to_index, moved)
        self._commit(updated)

    def clear(self) -> None:
        self._commit([])

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._history_index -= 1
        self._waypoints = [replace(waypoint) for waypoint in self._history[self._history_index]]
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._history_index += 1
        self._waypoints = [replace(waypoint) for waypoint in self._history[self._history_index]]
        return True

    def as_coordinates(self) -> list[tuple[float, float]]:
        """Waypoints as ``(longitude, latitude)`` pairs in travel order."""
        return [(waypoint.longitude, waypoint.latitude) for waypoint in self._waypoints]
