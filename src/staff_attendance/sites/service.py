from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from ..common.validators import require_non_empty
from .model import Holiday, SitePolicy, default_policy
from .repository import SitePolicyRepository

logger = logging.getLogger(__name__)


def load_site_policy(policies: SitePolicyRepository, site_id: int) -> SitePolicy:
    """Read the policy for a site, falling back to the built-in defaults.

    A missing or unreadable policy never fails the caller; the fallback is
    logged so misconfigured sites can be found.
    """

    try:
        policy = policies.get_for_site(int(site_id))
    except Exception:
        logger.exception("Failed to load site policy for site %s, using defaults", site_id)
        return default_policy(site_id)

    if policy is None:
        logger.warning("No site policy stored for site %s, using defaults", site_id)
        return default_policy(site_id)
    return policy


class SitePolicyService:
    """Administrative edits to a site's holiday list."""

    def __init__(self, policies: SitePolicyRepository):
        self._policies = policies

    def get(self, site_id: int) -> SitePolicy:
        return load_site_policy(self._policies, site_id)

    def add_holiday(self, *, site_id: int, day: date, name: str, is_paid: bool = True) -> SitePolicy:
        name = require_non_empty(name, "Holiday name")
        policy = self.get(site_id)
        kept = tuple(h for h in policy.holidays if h.date != day)
        holidays = tuple(sorted(kept + (Holiday(date=day, name=name, is_paid=is_paid),), key=lambda h: h.date))
        updated = replace(policy, holidays=holidays)
        self._policies.save(updated)
        logger.info("Holiday %s (%s) set for site %s", day, name, site_id)
        return updated

    def remove_holiday(self, *, site_id: int, day: date) -> SitePolicy:
        policy = self.get(site_id)
        updated = replace(policy, holidays=tuple(h for h in policy.holidays if h.date != day))
        self._policies.save(updated)
        return updated
