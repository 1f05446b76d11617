# apps/core/models.py

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class PermissionLevel(models.TextChoices):
    VIEWER = 'VIEWER', 'Viewer'
    MEMBER = 'MEMBER', 'Member'
    ADMIN = 'ADMIN', 'Admin'
    SUPER_ADMIN = 'SUPER_ADMIN', 'Super admin'


PERMISSION_HIERARCHY = {
    PermissionLevel.VIEWER: 0,
    PermissionLevel.MEMBER: 1,
    PermissionLevel.ADMIN: 2,
    PermissionLevel.SUPER_ADMIN: 3,
}


def has_permission(user_permission, required_permission):
    """True if `user_permission` is at least `required_permission`"""
    return PERMISSION_HIERARCHY.get(user_permission, -1) >= PERMISSION_HIERARCHY[required_permission]


class User(AbstractUser):
    """
    Fallo user

    The global `permission` level governs studio-wide administration;
    per-board access is granted through BoardMember.
    """

    permission = models.CharField(
        max_length=20,
        choices=PermissionLevel.choices,
        default=PermissionLevel.MEMBER,
    )
    avatar = models.ImageField(upload_to='avatars/', blank=True, null=True)
    slack_user_id = models.CharField(
        max_length=32,
        blank=True,
        null=True,
        help_text="Slack member ID used for direct-message notifications",
    )

    # === METADATA ===
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'fallo_user'

    @property
    def is_admin(self):
        return has_permission(self.permission, PermissionLevel.ADMIN)

    @property
    def is_super_admin(self):
        return self.permission == PermissionLevel.SUPER_ADMIN

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    def __str__(self):
        return self.display_name


class Board(models.Model):
    """Kanban board - container of lists"""

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    # reviewListIds, projectRoleAssignments and other per-board options
    settings = models.JSONField(default=dict, blank=True)
    members = models.ManyToManyField(
        User,
        through='BoardMember',
        related_name='boards',
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='boards_created',
    )
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    DEFAULT_LISTS = ['Backlog', 'To Do', 'In Progress', 'Review', 'Done']

    class Meta:
        db_table = 'board'
        ordering = ['name']

    def __str__(self):
        return self.name

    def get_settings(self):
        """Board settings as a dict, whatever was stored"""
        return self.settings if isinstance(self.settings, dict) else {}

    def create_default_lists(self):
        """Creates the default lists for a new board"""
        phases = {
            'Backlog': List.Phase.BACKLOG,
            'To Do': List.Phase.TODO,
            'In Progress': List.Phase.IN_PROGRESS,
            'Review': List.Phase.REVIEW,
            'Done': List.Phase.DONE,
        }
        for idx, name in enumerate(self.DEFAULT_LISTS):
            List.objects.create(
                board=self,
                name=name,
                position=idx,
                phase=phases.get(name),
            )


class BoardMember(models.Model):
    """Membership of a user in a board"""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='board_memberships',
    )
    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='memberships',
    )
    permission = models.CharField(
        max_length=20,
        choices=PermissionLevel.choices,
        default=PermissionLevel.MEMBER,
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'board_member'
        unique_together = ['user', 'board']

    def __str__(self):
        return f"{self.user} @ {self.board} ({self.permission})"


class List(models.Model):
    """Ordered list of cards inside a board"""

    class Phase(models.TextChoices):
        BACKLOG = 'BACKLOG', 'Backlog'
        TODO = 'TODO', 'To do'
        IN_PROGRESS = 'IN_PROGRESS', 'In progress'
        REVIEW = 'REVIEW', 'Review'
        DONE = 'DONE', 'Done'

    class ViewType(models.TextChoices):
        TASKS = 'TASKS', 'Tasks'
        PLANNING = 'PLANNING', 'Planning'

    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='lists',
    )
    name = models.CharField(max_length=100)
    position = models.IntegerField(default=0)
    phase = models.CharField(max_length=20, choices=Phase.choices, null=True, blank=True)
    view_type = models.CharField(max_length=20, choices=ViewType.choices, default=ViewType.TASKS)
    color = models.CharField(max_length=7, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'list'
        ordering = ['position', 'id']

    def __str__(self):
        return f"{self.name} - {self.board.name}"


class Card(models.Model):
    """
    Unit of work on a board

    `position` is zero-based and dense within the owning list: a list with
    N cards holds exactly the positions 0..N-1.
    """

    class Type(models.TextChoices):
        TASK = 'TASK', 'Task'
        USER_STORY = 'USER_STORY', 'User story'
        EPIC = 'EPIC', 'Epic'
        UTILITY = 'UTILITY', 'Utility'

    list = models.ForeignKey(
        List,
        on_delete=models.CASCADE,
        related_name='cards',
    )
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.TASK)
    title = models.CharField(max_length=500)
    description = models.TextField(blank=True)
    position = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    color = models.CharField(max_length=7, blank=True)
    story_points = models.PositiveIntegerField(null=True, blank=True)
    assignees = models.ManyToManyField(
        User,
        through='CardAssignee',
        related_name='assigned_cards',
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='cards_created',
    )
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'card'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['list', 'position'], name='card_list_id_9b1f3e_idx'),
        ]

    def __str__(self):
        return f"{self.get_type_display()} - {self.title}"


class CardAssignee(models.Model):
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name='card_assignees')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='card_assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'card_assignee'
        unique_together = ['card', 'user']


class TimeLog(models.Model):
    """
    One continuous interval of a user working a card

    `end_time` null means the timer is still running. At most one open
    entry exists per (card, user); the ledger closes before it opens.
    """

    card = models.ForeignKey(
        Card,
        on_delete=models.CASCADE,
        related_name='time_logs',
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='time_logs',
    )
    # List the card sat in when tracking started
    list = models.ForeignKey(
        List,
        on_delete=models.SET_NULL,
        null=True,
        related_name='time_logs',
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    duration_ms = models.BigIntegerField(null=True, blank=True)
    is_manual = models.BooleanField(default=False)
    notes = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'time_log'
        ordering = ['-start_time']
        indexes = [
            models.Index(fields=['card', 'user', 'end_time'], name='time_log_card_id_4c2d7a_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.card.title}"

    @property
    def is_open(self):
        return self.end_time is None

    @property
    def duration_hours(self):
        """Duration in hours, 0 while the entry is open"""
        if self.duration_ms:
            return round(self.duration_ms / 3_600_000, 2)
        if self.end_time:
            delta = self.end_time - self.start_time
            return round(delta.total_seconds() / 3600, 2)
        return 0

    def close(self, now=None):
        """Stops the timer and records the duration in milliseconds"""
        self.end_time = now or timezone.now()
        self.duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

    def clean(self):
        from django.core.exceptions import ValidationError

        if self.end_time and self.end_time < self.start_time:
            raise ValidationError("End time must not be before start time")


class ReviewCycle(models.Model):
    """Quality-review round of a card, opened when it enters a review list"""

    card = models.ForeignKey(
        Card,
        on_delete=models.CASCADE,
        related_name='review_cycles',
    )
    cycle_number = models.PositiveIntegerField()
    opened_at = models.DateTimeField()
    closed_at = models.DateTimeField(null=True, blank=True)
    locked_at = models.DateTimeField(null=True, blank=True)
    is_final = models.BooleanField(default=False)

    class Meta:
        db_table = 'review_cycle'
        ordering = ['cycle_number']
        unique_together = ['card', 'cycle_number']

    def __str__(self):
        return f"{self.card.title} - cycle {self.cycle_number}"

    @property
    def is_open(self):
        return self.closed_at is None


class Evaluation(models.Model):
    """Reviewer evaluation submitted within a review cycle"""

    class EvaluatorRole(models.TextChoices):
        LEAD = 'LEAD', 'Lead'
        PO = 'PO', 'Product owner'
        HEAD_OF_ART = 'HEAD_OF_ART', 'Head of art'

    review_cycle = models.ForeignKey(
        ReviewCycle,
        on_delete=models.CASCADE,
        related_name='evaluations',
    )
    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='evaluations',
    )
    role = models.CharField(max_length=20, choices=EvaluatorRole.choices)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'evaluation'
        unique_together = ['review_cycle', 'reviewer', 'role']


class Notification(models.Model):
    """In-app notification, optionally mirrored as a Slack DM"""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
    )
    type = models.CharField(max_length=50)
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notificatio_user_id_8e5b21_idx'),
        ]

    def __str__(self):
        return f"{self.user.username}: {self.title}"
