"""Datetime helpers."""

from __future__ import annotations

from datetime import datetime

import pendulum


def utc_now() -> pendulum.DateTime:
    return pendulum.now("UTC")


def format_timestamp(value: datetime) -> str:
    return value.isoformat()
