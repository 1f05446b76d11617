# apps/core/management/commands/repair_positions.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.board.positions import compact_list, positions_are_dense
from apps.core.models import Board, List


class Command(BaseCommand):
    help = 'Renumbers card positions to 0..N-1 in every list (or one board)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--board',
            type=int,
            help='Only repair the lists of this board id'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report lists with gaps or duplicates without changing them'
        )

    def handle(self, *args, **options):
        lists = List.objects.order_by('board_id', 'position', 'id')

        board_id = options.get('board')
        if board_id is not None:
            if not Board.objects.filter(id=board_id).exists():
                raise CommandError(f'Board {board_id} does not exist')
            lists = lists.filter(board_id=board_id)

        broken = 0
        renumbered = 0
        for board_list in lists:
            if positions_are_dense(board_list.id):
                continue

            broken += 1
            if options['dry_run']:
                self.stdout.write(f'  List {board_list.id} "{board_list.name}" needs repair')
                continue

            with transaction.atomic():
                renumbered += compact_list(board_list.id)

        if options['dry_run']:
            self.stdout.write(self.style.WARNING(f'{broken} list(s) need repair'))
        else:
            self.stdout.write(
                self.style.SUCCESS(f'{broken} list(s) repaired, {renumbered} card(s) renumbered')
            )
