# apps/reports/views.py

import csv
import logging
from io import BytesIO

import xlsxwriter
from django.http import HttpResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from apps.core.api import ApiErrors, api_success, error_response
from apps.core.exceptions import ValidationError
from apps.core.models import User
from apps.core.permissions import FalloPermissions, api_login_required
from apps.core.utils import format_duration

from .utils import build_time_stats, filter_time_logs, parse_date_param

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 50

EXPORT_HEADERS = [
    'User', 'Board', 'Card', 'List', 'Start', 'End',
    'Duration (h)', 'Duration', 'Manual', 'Notes'
]


def _parse_int(value, name):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


def _report_filters(request):
    """
    Reads userId, boardId, startDate and endDate from the query string
    Users see their own time; admins may ask for anyone's
    """
    user_id = _parse_int(request.GET.get('userId'), 'userId')
    is_admin = FalloPermissions.is_admin(request.user)

    if user_id is None and not is_admin:
        user_id = request.user.id

    return {
        'user_id': user_id,
        'board_id': _parse_int(request.GET.get('boardId'), 'boardId'),
        'start_date': parse_date_param(request.GET.get('startDate'), 'startDate'),
        'end_date': parse_date_param(request.GET.get('endDate'), 'endDate'),
    }, is_admin


def _serialize_log(log):
    board = log.card.list.board
    return {
        'id': log.id,
        'card': {'id': log.card_id, 'title': log.card.title},
        'board': {'id': board.id, 'name': board.name},
        'list': {'id': log.list.id, 'name': log.list.name} if log.list else None,
        'startTime': log.start_time.isoformat(),
        'endTime': log.end_time.isoformat() if log.end_time else None,
        'durationMs': log.duration_ms,
        'isManual': log.is_manual,
        'notes': log.notes,
    }


@require_GET
@api_login_required
def time_report(request):
    """
    Time summary of one user
    Defaults to the current user; ?userId for someone else (admin only)
    """
    try:
        filters, is_admin = _report_filters(request)
        limit = _parse_int(request.GET.get('limit'), 'limit') or DEFAULT_LOG_LIMIT
    except ValidationError as exc:
        return error_response(exc)

    if filters['user_id'] is None:
        filters['user_id'] = request.user.id

    if filters['user_id'] != request.user.id and not is_admin:
        return ApiErrors.admin_required()

    if not User.objects.filter(id=filters['user_id']).exists():
        return ApiErrors.not_found('User')

    logs = list(filter_time_logs(**filters))

    return api_success({
        'logs': [_serialize_log(log) for log in logs[:max(limit, 1)]],
        'stats': build_time_stats(logs),
    })


@require_GET
@api_login_required
def time_report_export(request):
    """
    Exports closed time logs as XLSX (default) or CSV (?format=csv)
    Admins without ?userId get every user's logs
    """
    try:
        filters, is_admin = _report_filters(request)
    except ValidationError as exc:
        return error_response(exc)

    if filters['user_id'] not in (None, request.user.id) and not is_admin:
        return ApiErrors.admin_required()

    logs = filter_time_logs(closed_only=True, **filters)
    rows = [_export_row(log) for log in logs]

    logger.info("Time report exported by user %s (%s rows)", request.user.id, len(rows))

    if request.GET.get('format') == 'csv':
        return _csv_response(rows)
    return _xlsx_response(rows)


def _export_row(log):
    local_start = timezone.localtime(log.start_time)
    local_end = timezone.localtime(log.end_time)
    return [
        log.user.display_name,
        log.card.list.board.name,
        log.card.title,
        log.list.name if log.list else '',
        local_start,
        local_end,
        round((log.duration_ms or 0) / 3_600_000, 2),
        format_duration(log.duration_ms),
        'yes' if log.is_manual else 'no',
        log.notes or '',
    ]


def _csv_response(rows):
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = 'attachment; filename="time_report.csv"'
    response.write('\ufeff')

    writer = csv.writer(response)
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        row = list(row)
        row[4] = row[4].strftime('%Y-%m-%d %H:%M')
        row[5] = row[5].strftime('%Y-%m-%d %H:%M')
        row[6] = f"{row[6]:.2f}"
        writer.writerow(row)

    return response


def _xlsx_response(rows):
    output = BytesIO()
    workbook = xlsxwriter.Workbook(output, {'in_memory': True, 'remove_timezone': True})

    header_format = workbook.add_format({
        'bold': True,
        'font_color': 'white',
        'bg_color': '#366092',
        'border': 1
    })
    cell_format = workbook.add_format({'border': 1})
    datetime_format = workbook.add_format({'num_format': 'yyyy-mm-dd hh:mm', 'border': 1})
    number_format = workbook.add_format({'num_format': '0.00', 'border': 1})

    sheet = workbook.add_worksheet('Time logs')
    for col, header in enumerate(EXPORT_HEADERS):
        sheet.write(0, col, header, header_format)

    total_hours = 0
    for row_idx, row in enumerate(rows, 1):
        for col, value in enumerate(row):
            if col in (4, 5):
                sheet.write_datetime(row_idx, col, value, datetime_format)
            elif col == 6:
                sheet.write_number(row_idx, col, value, number_format)
            else:
                sheet.write(row_idx, col, value, cell_format)
        total_hours += row[6]

    total_row = len(rows) + 1
    sheet.write(total_row, 5, 'Total', header_format)
    sheet.write_number(total_row, 6, round(total_hours, 2), number_format)

    sheet.set_column('A:D', 20)
    sheet.set_column('E:F', 17)
    sheet.set_column('G:I', 12)
    sheet.set_column('J:J', 40)

    workbook.close()
    output.seek(0)

    response = HttpResponse(
        output.read(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = 'attachment; filename="time_report.xlsx"'
    return response
