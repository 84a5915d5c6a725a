"""
In-memory queries over loaded appointments: filtering and dashboard stats.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

import pytz
from pydantic import BaseModel, Field

from models.appointment import Appointment, AppointmentStatus
from utils.constants import DEFAULT_TIMEZONE
from utils.datetime_utils import business_now, combine_local


class AppointmentFilters(BaseModel):
    """Owner dashboard filters. Unset fields match everything."""

    statuses: List[AppointmentStatus] = Field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    customer_email: Optional[str] = None
    service_ids: List[str] = Field(default_factory=list)
    search: Optional[str] = None

    class Config:
        use_enum_values = True


class AppointmentStats(BaseModel):
    """Dashboard summary."""

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    today_count: int = 0
    upcoming_count: int = 0
    this_week_revenue: float = 0.0
    this_month_revenue: float = 0.0


def _matches_search(appointment: Appointment, search: str) -> bool:
    needle = search.lower()
    haystacks = [
        appointment.customer_name.lower(),
        (appointment.customer_email or "").lower(),
        appointment.customer_phone or "",
        (appointment.notes or "").lower(),
    ]
    return any(needle in h for h in haystacks)


def filter_appointments(
    appointments: Iterable[Appointment], filters: AppointmentFilters
) -> List[Appointment]:
    """Apply every set filter; an appointment must pass all of them."""
    result = []
    for apt in appointments:
        if filters.statuses and apt.status not in filters.statuses:
            continue
        if filters.date_from and apt.date < filters.date_from:
            continue
        if filters.date_to and apt.date > filters.date_to:
            continue
        if filters.customer_email and (
            (apt.customer_email or "").lower() != filters.customer_email.lower()
        ):
            continue
        if filters.service_ids and not any(
            s.id in filters.service_ids for s in apt.services
        ):
            continue
        if filters.search and not _matches_search(apt, filters.search):
            continue
        result.append(apt)
    return result


def get_appointment_stats(
    appointments: Iterable[Appointment],
    now: Optional[datetime] = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> AppointmentStats:
    """
    Summarize appointments for the owner dashboard.

    Today and upcoming counts skip cancelled appointments. Revenue counts
    completed appointments whose service date falls in the current week
    (starting Monday) or month.
    """
    tz = pytz.timezone(tz_name)
    if now is None:
        current = business_now(tz_name)
    elif now.tzinfo is None:
        current = tz.localize(now)
    else:
        current = now.astimezone(tz)

    today = current.date()
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)

    stats = AppointmentStats(by_status={s.value: 0 for s in AppointmentStatus})

    for apt in appointments:
        stats.total += 1
        stats.by_status[apt.status] = stats.by_status.get(apt.status, 0) + 1

        if apt.is_active:
            if apt.date == today:
                stats.today_count += 1
            if combine_local(apt.date, apt.time, tz_name) >= current:
                stats.upcoming_count += 1

        if apt.status == AppointmentStatus.COMPLETED and apt.date <= today:
            if apt.date >= week_start:
                stats.this_week_revenue += apt.total_price
            if apt.date >= month_start:
                stats.this_month_revenue += apt.total_price

    return stats
