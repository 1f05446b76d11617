# apps/board/forms.py

from django import forms
from django.utils import timezone

from apps.core.models import TimeLog

from .reorder_service import ReorderRequest


def _duration_ms(start, end):
    return int((end - start).total_seconds() * 1000)


class ReorderForm(forms.Form):
    """Body of POST /api/boards/<id>/cards/reorder/"""

    cardId = forms.IntegerField()
    sourceListId = forms.IntegerField()
    destinationListId = forms.IntegerField()
    newPosition = forms.IntegerField(min_value=0)

    def to_request(self):
        data = self.cleaned_data
        return ReorderRequest(
            card_id=data['cardId'],
            source_list_id=data['sourceListId'],
            destination_list_id=data['destinationListId'],
            new_position=data['newPosition'],
        )


class TimeLogCreateForm(forms.Form):
    """Manual time log entry; times default to now"""

    userId = forms.IntegerField()
    listId = forms.IntegerField()
    startTime = forms.DateTimeField(required=False)
    endTime = forms.DateTimeField(required=False)
    durationMs = forms.IntegerField(required=False, min_value=0)
    notes = forms.CharField(required=False, max_length=2000)

    def clean(self):
        cleaned_data = super().clean()
        now = timezone.now()
        start = cleaned_data.get('startTime') or now
        end = cleaned_data.get('endTime') or now

        if end < start:
            raise forms.ValidationError('End time must be after start time')

        cleaned_data['startTime'] = start
        cleaned_data['endTime'] = end
        if cleaned_data.get('durationMs') is None:
            cleaned_data['durationMs'] = _duration_ms(start, end)
        return cleaned_data

    def build(self, card, user, board_list):
        data = self.cleaned_data
        return TimeLog(
            card=card,
            user=user,
            list=board_list,
            start_time=data['startTime'],
            end_time=data['endTime'],
            duration_ms=data['durationMs'],
            is_manual=True,
            notes=(data.get('notes') or '').strip() or None,
        )


class TimeLogUpdateForm(forms.Form):
    """
    Partial update of a time log

    Only the keys present in the body are touched. The duration is
    recomputed from the times when both are sent without a durationMs.
    """

    startTime = forms.DateTimeField(required=False)
    endTime = forms.DateTimeField(required=False)
    durationMs = forms.IntegerField(required=False, min_value=0)
    notes = forms.CharField(required=False, max_length=2000)

    def __init__(self, *args, instance, **kwargs):
        super().__init__(*args, **kwargs)
        self.instance = instance

    def _sent(self, name):
        return name in self.data

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('startTime') if self._sent('startTime') else self.instance.start_time
        end = cleaned_data.get('endTime') if self._sent('endTime') else self.instance.end_time

        if start is None:
            raise forms.ValidationError('Start time cannot be empty')
        if end is not None and end < start:
            raise forms.ValidationError('End time must be after start time')
        return cleaned_data

    def apply_to(self, time_log: TimeLog):
        data = self.cleaned_data

        if self._sent('startTime'):
            time_log.start_time = data['startTime']
        if self._sent('endTime'):
            time_log.end_time = data.get('endTime')
        if self._sent('notes'):
            time_log.notes = (data.get('notes') or '').strip() or None

        if data.get('durationMs') is not None:
            time_log.duration_ms = data['durationMs']
        elif data.get('startTime') and data.get('endTime'):
            time_log.duration_ms = _duration_ms(data['startTime'], data['endTime'])

        return time_log
