"""Management command to fetch a temperature using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from backend.api.views import fetch_temperature


class Command(BaseCommand):
    help = "Fetch the average temperature of a city across all configured providers"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--city", type=str, required=True, help="City name")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        city = (options.get("city") or "").strip()
        if not city:
            raise CommandError("--city must not be empty")
        try:
            payload = fetch_temperature(city)
        except Exception as exc:  # noqa: BLE001 - reported as a command failure
            raise CommandError(f"Temperature lookup failed: {exc}") from exc
        self.stdout.write(json.dumps(payload))
