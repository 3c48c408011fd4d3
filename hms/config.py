"""
Clinic business configuration.

The ``CLINIC`` settings dict is parsed once at application start-up
(see :class:`hms.apps.HmsConfig`) into an immutable :class:`ClinicConfig`
which services receive explicitly.  Nothing here reads settings lazily.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import time
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured

HHMM_RE = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')


def parse_hhmm(value: str) -> time:
    """Parse ``"HH:MM"`` into a :class:`datetime.time`."""
    m = HHMM_RE.match((value or '').strip())
    if not m:
        raise ValueError(f'invalid time {value!r}, expected HH:MM')
    return time(int(m.group(1)), int(m.group(2)))


@dataclass(frozen=True)
class ShiftWindow:
    """A daily working window.  ``end`` is exclusive.

    A window whose end is earlier than its start wraps midnight: it opens
    on the day it is registered for and runs into the next day.  The
    two halves are matched separately, :meth:`contains` for the day
    itself and :meth:`spills_into` for the early hours of the next day.
    """
    start: time
    end: time
    name: str = ''

    @property
    def wraps(self) -> bool:
        return self.end < self.start

    def contains(self, t: time) -> bool:
        if self.wraps:
            return t >= self.start
        return self.start <= t < self.end

    def spills_into(self, t: time) -> bool:
        return self.wraps and t < self.end


@dataclass(frozen=True)
class ClinicConfig:
    tz: ZoneInfo
    default_shifts: tuple[ShiftWindow, ...] = ()
    default_working_days: frozenset[int] = field(default_factory=lambda: frozenset({1, 2, 3, 4, 5, 6}))
    max_daily_tokens: int = 50
    allow_past_bookings: bool = False
    receipt_prefix: str = 'RCP'
    patient_code_prefix: str = 'P'


def load_clinic_config(raw: dict[str, Any], *, time_zone: str) -> ClinicConfig:
    """Build a :class:`ClinicConfig` from the ``CLINIC`` settings dict."""
    try:
        shifts = tuple(
            ShiftWindow(start=parse_hhmm(s['start']), end=parse_hhmm(s['end']), name=s.get('name', ''))
            for s in raw.get('DEFAULT_SHIFTS', [])
        )
    except (KeyError, ValueError) as exc:
        raise ImproperlyConfigured(f'CLINIC.DEFAULT_SHIFTS is invalid: {exc}') from exc

    days = frozenset(int(d) for d in raw.get('DEFAULT_WORKING_DAYS', [1, 2, 3, 4, 5, 6]))
    if any(d < 0 or d > 6 for d in days):
        raise ImproperlyConfigured('CLINIC.DEFAULT_WORKING_DAYS must be within 0..6')

    max_tokens = int(raw.get('MAX_DAILY_TOKENS', 50))
    if max_tokens < 1:
        raise ImproperlyConfigured('CLINIC.MAX_DAILY_TOKENS must be >= 1')

    return ClinicConfig(
        tz=ZoneInfo(time_zone),
        default_shifts=shifts,
        default_working_days=days,
        max_daily_tokens=max_tokens,
        allow_past_bookings=bool(raw.get('ALLOW_PAST_BOOKINGS', False)),
        receipt_prefix=str(raw.get('RECEIPT_PREFIX', 'RCP')),
        patient_code_prefix=str(raw.get('PATIENT_CODE_PREFIX', 'P')),
    )


def get_clinic_config() -> ClinicConfig:
    """Return the configuration loaded by the app registry."""
    return apps.get_app_config('hms').clinic


def shifts_from_rows(rows: Iterable[Any]) -> list[ShiftWindow]:
    """Turn availability rows (objects with start_time/end_time) into windows."""
    return [ShiftWindow(start=r.start_time, end=r.end_time) for r in rows]


def day_of_week(d) -> int:
    """Sunday-based weekday index (0 = Sunday ... 6 = Saturday)."""
    return (d.weekday() + 1) % 7


__all__ = [
    'ClinicConfig',
    'ShiftWindow',
    'load_clinic_config',
    'get_clinic_config',
    'parse_hhmm',
    'shifts_from_rows',
    'day_of_week',
]
