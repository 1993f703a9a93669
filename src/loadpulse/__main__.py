"""Allow ``python -m loadpulse``."""

from __future__ import annotations

from loadpulse.cli.app import app

app(prog_name="loadpulse")
