"""Shared click parameter helpers."""

from __future__ import annotations

import click

# Naive values are read as UTC by the domain.
DATETIME = click.DateTime(formats=["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%Y-%m-%d"])
