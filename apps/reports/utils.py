# apps/reports/utils.py

from datetime import datetime, time, timedelta
from typing import Dict, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.core.exceptions import ValidationError
from apps.core.models import TimeLog
from apps.core.utils import format_duration

OTHER_PHASE = 'Other'


def parse_date_param(value, name):
    """Parses a YYYY-MM-DD query parameter; None when absent"""
    if not value:
        return None
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f'{name} must be a date (YYYY-MM-DD)')
    return parsed


def filter_time_logs(user_id=None, board_id=None, start_date=None, end_date=None, closed_only=False):
    """
    Time logs filtered by user, board and start date range
    Dates are inclusive and read in the current time zone
    """
    queryset = TimeLog.objects.select_related('user', 'list', 'card__list__board')

    if user_id is not None:
        queryset = queryset.filter(user_id=user_id)
    if board_id is not None:
        queryset = queryset.filter(card__list__board_id=board_id)
    if start_date is not None:
        queryset = queryset.filter(start_time__gte=_start_of_day(start_date))
    if end_date is not None:
        queryset = queryset.filter(start_time__lt=_start_of_day(end_date + timedelta(days=1)))
    if closed_only:
        queryset = queryset.filter(end_time__isnull=False)

    return queryset.order_by('-start_time')


def _start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def week_start(now):
    """Midnight of the last Sunday, local time"""
    local = timezone.localtime(now)
    days_since_sunday = (local.weekday() + 1) % 7
    return (local - timedelta(days=days_since_sunday)).replace(hour=0, minute=0, second=0, microsecond=0)


def month_start(now):
    local = timezone.localtime(now)
    return local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def build_time_stats(logs, now: Optional[datetime] = None) -> Dict:
    """
    Totals of a set of time logs
    Open entries count as zero
    """
    now = now or timezone.now()
    this_week = week_start(now)
    this_month = month_start(now)

    total_ms = 0
    this_week_ms = 0
    this_month_ms = 0
    by_phase: Dict[str, int] = {}

    for log in logs:
        ms = log.duration_ms or 0
        total_ms += ms
        if log.start_time >= this_week:
            this_week_ms += ms
        if log.start_time >= this_month:
            this_month_ms += ms

        phase = (log.list.phase if log.list else None) or OTHER_PHASE
        by_phase[phase] = by_phase.get(phase, 0) + ms

    return {
        'totalMs': total_ms,
        'totalFormatted': format_duration(total_ms),
        'thisWeekMs': this_week_ms,
        'thisWeekFormatted': format_duration(this_week_ms),
        'thisMonthMs': this_month_ms,
        'thisMonthFormatted': format_duration(this_month_ms),
        'timeByPhase': [
            {'phase': phase, 'ms': ms, 'formatted': format_duration(ms)}
            for phase, ms in by_phase.items()
        ],
    }
