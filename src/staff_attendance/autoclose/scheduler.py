from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional

from ..common.datetime_utils import today_local
from .service import AutoCloseResult, AutoCloseService

logger = logging.getLogger(__name__)


class DailyAutoCloseTrigger:
    """Entry point for whatever drives the daily close (cron, timer, CLI).

    Holds no timing logic: each call closes one calendar day for every site
    with auto-close enabled.
    """

    def __init__(self, service: AutoCloseService, *, today: Callable[[], date] = today_local):
        self._service = service
        self._today = today

    def today(self) -> date:
        return self._today()

    def fire(self, run_date: Optional[date] = None) -> List[AutoCloseResult]:
        run_date = run_date or self.today()
        results = self._service.run_for_all_sites(run_date)
        failed = [r for r in results if not r.ok and not r.skipped]
        logger.info(
            "Daily auto-close for %s: %d sites, %d failed",
            run_date,
            len(results),
            len(failed),
        )
        return results
