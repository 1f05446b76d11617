# apps/core/management/commands/seed.py

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.core.models import (
    Board, BoardMember, Card, CardAssignee, List, PermissionLevel, User,
)

DEMO_PASSWORD = 'fallo-demo'

DEMO_USERS = [
    # username, first name, global permission, project role
    ('admin', 'Ada', PermissionLevel.SUPER_ADMIN, None),
    ('lead', 'Linus', PermissionLevel.ADMIN, 'Tech Lead'),
    ('po', 'Paula', PermissionLevel.MEMBER, 'Product Owner'),
    ('dev', 'Dani', PermissionLevel.MEMBER, 'Developer'),
    ('guest', 'Gabe', PermissionLevel.VIEWER, None),
]

DEMO_CARDS = {
    'Backlog': ['Export board as CSV', 'Dark mode'],
    'To Do': ['Card cover images', 'Keyboard shortcuts', 'Bulk archive'],
    'In Progress': ['Drag-and-drop reorder'],
    'Review': ['Slack DM on review'],
    'Done': ['Board membership'],
}


class Command(BaseCommand):
    help = 'Creates a demo board with users, lists and cards (DEBUG only)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--board-name',
            type=str,
            default='Fallo Demo',
            help='Name of the demo board'
        )
        parser.add_argument(
            '--force',
            action='store_true',
            help='Run even when DEBUG is off'
        )

    def handle(self, *args, **options):
        if not settings.DEBUG and not options['force']:
            raise CommandError('seed only runs with DEBUG=True (use --force to override)')

        name = options['board_name']
        if Board.objects.filter(name=name).exists():
            self.stdout.write(self.style.WARNING(f'Board "{name}" already exists, nothing to do'))
            return

        with transaction.atomic():
            users = self._create_users()
            board = self._create_board(name, users)
            cards = self._create_cards(board, users)

        self.stdout.write(
            self.style.SUCCESS(
                f'Demo board "{board.name}" created (id={board.id}) with '
                f'{board.lists.count()} lists and {cards} cards.\n'
                f'Users: {", ".join(u.username for u in users.values())} '
                f'(password: {DEMO_PASSWORD})'
            )
        )

    def _create_users(self):
        users = {}
        for username, first_name, permission, _role in DEMO_USERS:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={
                    'first_name': first_name,
                    'email': f'{username}@fallo.local',
                    'permission': permission,
                    'is_staff': permission == PermissionLevel.SUPER_ADMIN,
                    'is_superuser': permission == PermissionLevel.SUPER_ADMIN,
                },
            )
            if created:
                user.set_password(DEMO_PASSWORD)
                user.save(update_fields=['password'])
            users[username] = user
        return users

    def _create_board(self, name, users):
        role_assignments = [
            {'userId': users[username].id, 'roleName': role}
            for username, _first, _perm, role in DEMO_USERS
            if role
        ]
        # Default lists come from the post_save signal
        board = Board.objects.create(
            name=name,
            description='Demo board created by the seed command',
            created_by=users['admin'],
            settings={'projectRoleAssignments': role_assignments},
        )

        board_permissions = {
            'admin': PermissionLevel.ADMIN,
            'lead': PermissionLevel.ADMIN,
            'po': PermissionLevel.MEMBER,
            'dev': PermissionLevel.MEMBER,
            'guest': PermissionLevel.VIEWER,
        }
        for username, permission in board_permissions.items():
            BoardMember.objects.create(board=board, user=users[username], permission=permission)

        return board

    def _create_cards(self, board, users):
        total = 0
        lists = {board_list.name: board_list for board_list in board.lists.all()}

        for list_name, titles in DEMO_CARDS.items():
            board_list = lists.get(list_name) or List.objects.create(
                board=board, name=list_name, position=len(lists)
            )
            for position, title in enumerate(titles):
                card = Card.objects.create(
                    list=board_list,
                    title=title,
                    position=position,
                    created_by=users['admin'],
                )
                CardAssignee.objects.create(card=card, user=users['dev'])
                total += 1

        return total
