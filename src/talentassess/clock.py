"""Timestamp helpers."""

from __future__ import annotations

from typing import Callable

import pendulum

Clock = Callable[[], pendulum.DateTime]


def utc_now() -> pendulum.DateTime:
    return pendulum.now("UTC")


def to_iso(moment: pendulum.DateTime) -> str:
    return moment.in_timezone("UTC").to_iso8601_string()


def stamp_after(previous: str | None, *, clock: Clock = utc_now) -> str:
    """Return an ISO-8601 timestamp strictly later than ``previous``."""
    current = clock()
    if previous:
        before = pendulum.parse(previous)
        if current <= before:
            current = before.add(microseconds=1)
    return to_iso(current)
