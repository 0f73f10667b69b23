from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Direction
from .model import Worker


class WorkerRepository(Protocol):
    def get_by_id(self, worker_id: int) -> Optional[Worker]:
        raise NotImplementedError

    def list_active_for_site(self, site_id: int) -> Sequence[Worker]:
        raise NotImplementedError

    def update_direction(self, *, worker_id: int, direction: Direction, at: datetime) -> None:
        """Set current direction and the matching last check-in/out timestamp."""

        raise NotImplementedError
