from __future__ import annotations

import json
from typing import Optional

import click
from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, ok, require_field
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/sites/<int:site_id>/auto-close", methods=["POST"], endpoint="api_auto_close_site")
    def api_auto_close_site(site_id: int):
        data = json_body()
        run_date = parse_iso_date(require_field(data, "date"))
        result = container.autoclose_service.run_for_site(site_id, run_date)
        return ok(result.to_dict(), message=result.message)

    @app.route("/api/sites/<int:site_id>/auto-close/range", methods=["POST"], endpoint="api_auto_close_range")
    def api_auto_close_range(site_id: int):
        """Sequential backfill, one day after another."""
        data = json_body()
        results = container.autoclose_service.run_for_date_range(
            site_id,
            parse_iso_date(require_field(data, "start_date")),
            parse_iso_date(require_field(data, "end_date")),
        )
        return ok([r.to_dict() for r in results])

    @app.cli.command("auto-close")
    @click.option("--date", "run_date", default=None, help="Day to close (YYYY-MM-DD), defaults to today.")
    @click.option("--site", "site_id", type=int, default=None, help="Close a single site instead of all sites.")
    @click.option("--until", "until", default=None, help="With --site: backfill from --date through this day.")
    def auto_close_command(run_date: Optional[str], site_id: Optional[int], until: Optional[str]):
        """Close out attendance for one day (or a range with --site/--until)."""
        day = parse_iso_date(run_date) if run_date else None

        if site_id is None:
            results = container.autoclose_trigger.fire(day)
        elif until:
            if day is None:
                raise click.UsageError("--until requires --date")
            results = container.autoclose_service.run_for_date_range(site_id, day, parse_iso_date(until))
        else:
            results = [container.autoclose_service.run_for_site(site_id, day or container.autoclose_trigger.today())]

        for result in results:
            click.echo(json.dumps(result.to_dict()))
