"""
Pending photo selection and folder navigation state.

A selection is bounded by the destination stage's remaining quota before
any move is attempted. Changing the open folder always drops the
pending selection.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.core.errors import QuotaExceededError
from app.core.stage_definitions import next_stage
from app.db.enums import PhotoStage
from app.services.stage_transition_service import Capacity


@dataclass
class PhotoSelection:
    """File names picked for the next move, in pick order."""

    capacity: Capacity | None = None
    _names: list[str] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def can_add(self, count: int = 1) -> bool:
        """True while current + selected + count stays within the quota."""
        if self.capacity is None:
            return True
        return self.capacity.fits(len(self._names) + count)

    def add(self, name: str) -> None:
        if name in self._names:
            return
        if not self.can_add():
            raise QuotaExceededError(
                max_allowed=self.capacity.max_allowed,
                current=self.capacity.current,
                requested=len(self._names) + 1,
            )
        self._names.append(name)

    def remove(self, name: str) -> None:
        if name in self._names:
            self._names.remove(name)

    def toggle(self, name: str) -> bool:
        """Flip membership; returns whether the name is now selected."""
        if name in self._names:
            self.remove(name)
            return False
        self.add(name)
        return True

    def clear(self) -> None:
        self._names.clear()


@dataclass
class WorkspaceState:
    """Which folder a client view has open, and what is selected in it."""

    current_stage: PhotoStage = PhotoStage.ALL_PHOTOS
    selection: PhotoSelection = field(default_factory=PhotoSelection)

    @property
    def move_target(self) -> PhotoStage | None:
        return next_stage(self.current_stage)

    def open_folder(self, stage: PhotoStage, capacity: Capacity | None = None) -> None:
        """Switch folders; the pending selection never carries over."""
        self.current_stage = stage
        self.selection = PhotoSelection(capacity=capacity)
