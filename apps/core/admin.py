# apps/core/admin.py

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db import transaction
from django.utils.html import format_html

from apps.board.positions import compact_list
from apps.core.utils import format_duration

from .models import (
    Board, BoardMember, Card, CardAssignee, Evaluation, List,
    Notification, ReviewCycle, TimeLog, User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin for the Fallo user model"""

    list_display = [
        'username', 'email', 'get_full_name', 'permission_badge',
        'is_active', 'date_joined'
    ]
    list_filter = ['permission', 'is_staff', 'is_active', 'date_joined']
    search_fields = ['username', 'first_name', 'last_name', 'email']
    ordering = ['-date_joined']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Fallo', {
            'fields': ('permission', 'slack_user_id', 'avatar')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Fallo', {
            'fields': ('permission',)
        }),
    )

    def permission_badge(self, obj):
        """Permission level with a coloured badge"""
        colors = {
            'SUPER_ADMIN': '#7C3AED',
            'ADMIN': '#EF4444',
            'MEMBER': '#3B82F6',
            'VIEWER': '#6B7280',
        }
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            colors.get(obj.permission, '#6B7280'), obj.get_permission_display()
        )

    permission_badge.short_description = 'Permission'


class BoardMemberInline(admin.TabularInline):
    model = BoardMember
    extra = 0
    fields = ['user', 'permission', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Board)
class BoardAdmin(admin.ModelAdmin):
    """Admin for kanban boards"""

    list_display = ['name', 'created_by', 'lists_count', 'cards_count', 'archived_at', 'created_at']
    list_filter = ['created_at', 'archived_at']
    search_fields = ['name', 'description']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [BoardMemberInline]

    def lists_count(self, obj):
        return obj.lists.count()

    lists_count.short_description = 'Lists'

    def cards_count(self, obj):
        return Card.objects.filter(list__board=obj).count()

    cards_count.short_description = 'Cards'


class CardInline(admin.TabularInline):
    model = Card
    extra = 0
    fields = ['title', 'type', 'position']
    ordering = ['position']


@admin.register(List)
class ListAdmin(admin.ModelAdmin):
    """Admin for board lists"""

    list_display = ['name', 'board', 'position', 'phase', 'view_type', 'cards_count', 'color_preview']
    list_filter = ['phase', 'view_type', 'board']
    search_fields = ['name', 'board__name']
    ordering = ['board', 'position']
    actions = ['repair_positions']

    inlines = [CardInline]

    def cards_count(self, obj):
        return obj.cards.count()

    cards_count.short_description = 'Cards'

    def color_preview(self, obj):
        if not obj.color:
            return '-'
        return format_html(
            '<div style="width: 20px; height: 20px; background-color: {}; '
            'border: 1px solid #ccc; border-radius: 3px;"></div>',
            obj.color
        )

    color_preview.short_description = 'Color'

    def repair_positions(self, request, queryset):
        """Renumbers the card positions of the selected lists to 0..N-1"""
        renumbered = 0
        for board_list in queryset:
            with transaction.atomic():
                renumbered += compact_list(board_list.id)
        self.message_user(request, f'{renumbered} card(s) renumbered', messages.SUCCESS)

    repair_positions.short_description = 'Repair card positions'


class CardAssigneeInline(admin.TabularInline):
    model = CardAssignee
    extra = 0


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    """Admin for cards"""

    list_display = ['id', 'title', 'type', 'list', 'position', 'story_points', 'archived_at']
    list_filter = ['type', 'list__board', 'created_at']
    search_fields = ['title', 'description']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'updated_at', 'created_by']
    inlines = [CardAssigneeInline]


@admin.register(TimeLog)
class TimeLogAdmin(admin.ModelAdmin):
    """Admin for time logs"""

    list_display = ['user', 'card', 'list', 'start_time', 'end_time', 'formatted_duration', 'status', 'is_manual']
    list_filter = ['is_manual', 'user', 'start_time']
    search_fields = ['notes', 'user__username', 'card__title']
    date_hierarchy = 'start_time'

    def formatted_duration(self, obj):
        if obj.duration_ms is None:
            return '-'
        return format_duration(obj.duration_ms)

    formatted_duration.short_description = 'Duration'

    def status(self, obj):
        if obj.end_time:
            return format_html('<span style="color: green;">Closed</span>')
        return format_html('<span style="color: orange;">Running</span>')

    status.short_description = 'Status'


class EvaluationInline(admin.TabularInline):
    model = Evaluation
    extra = 0
    readonly_fields = ['created_at']


@admin.register(ReviewCycle)
class ReviewCycleAdmin(admin.ModelAdmin):
    list_display = ['card', 'cycle_number', 'opened_at', 'closed_at', 'is_final', 'locked_at']
    list_filter = ['is_final']
    search_fields = ['card__title']
    inlines = [EvaluationInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'is_read', 'created_at']
    list_filter = ['type', 'is_read', 'created_at']
    search_fields = ['title', 'message', 'user__username']


admin.site.site_header = "Fallo - Administration"
admin.site.site_title = "Fallo Admin"
