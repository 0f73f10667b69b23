from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import RunSummary, SitePolicy


class SitePolicyRepository(Protocol):
    def get_for_site(self, site_id: int) -> Optional[SitePolicy]:
        raise NotImplementedError

    def list_auto_close_site_ids(self) -> Sequence[int]:
        """Sites whose policy has auto-close enabled."""

        raise NotImplementedError

    def save(self, policy: SitePolicy) -> None:
        raise NotImplementedError

    def record_run_summary(self, *, site_id: int, summary: RunSummary) -> None:
        raise NotImplementedError
