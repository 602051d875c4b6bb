"""In-memory owner task board."""

import logging
import threading
from typing import Dict, List, Optional

from .collaborators import TaskCollaborator
from .task import OwnerRecord, can_transition

logger = logging.getLogger(__name__)


class InMemoryTaskBoard(TaskCollaborator):
    """
    Holds owner tasks for a single process.

    Status changes go through the task transition table; an illegal move is
    logged and refused rather than raised, since the orchestrator treats
    owner transitions as best effort.
    """

    def __init__(self, owners: Optional[List[OwnerRecord]] = None):
        self._owners: Dict[str, OwnerRecord] = {}
        self._lock = threading.Lock()
        for owner in owners or []:
            self.add_owner(owner)

    def add_owner(self, owner: OwnerRecord) -> None:
        with self._lock:
            if owner.id in self._owners:
                raise ValueError(f"Task {owner.id} already exists")
            self._owners[owner.id] = owner

    def get_owner(self, owner_id: str) -> Optional[OwnerRecord]:
        with self._lock:
            return self._owners.get(owner_id)

    def set_result(self, owner_id: str, result: Optional[str]) -> bool:
        with self._lock:
            owner = self._owners.get(owner_id)
            if owner is None:
                return False
            owner.result = result
            return True

    def transition_owner(self, owner_id: str, new_phase: str, note: str = "") -> bool:
        with self._lock:
            owner = self._owners.get(owner_id)
            if owner is None:
                logger.warning(f"Cannot transition unknown task {owner_id} to {new_phase}")
                return False

            if owner.status == new_phase:
                return True

            if not can_transition(owner.status, new_phase):
                logger.warning(
                    f"Refusing transition of task {owner_id}: {owner.status} -> {new_phase}"
                )
                return False

            owner.record_transition(new_phase, note)
            logger.debug(f"Task {owner_id} moved to {new_phase}: {note}")
            return True

    def list_owners(self) -> List[OwnerRecord]:
        with self._lock:
            return list(self._owners.values())
