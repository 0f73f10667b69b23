from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import SalaryRecord


class SalaryRepository(Protocol):
    def get_by_id(self, salary_id: int) -> Optional[SalaryRecord]:
        raise NotImplementedError

    def get_for_worker_and_month(self, worker_id: int, month: str) -> Optional[SalaryRecord]:
        raise NotImplementedError

    def list_for_site_and_month(self, site_id: int, month: str) -> Sequence[SalaryRecord]:
        raise NotImplementedError

    def save(self, record: SalaryRecord, *, expected_version: Optional[int]) -> SalaryRecord:
        """Insert when ``expected_version`` is None, else compare-and-swap on ``version``.

        Raises ConflictError when another writer got there first.
        """

        raise NotImplementedError
