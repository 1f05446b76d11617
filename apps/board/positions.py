# apps/board/positions.py

"""
Position model of cards within a list

Positions are plain zero-based integers, dense and unique per list. Every
function here expects to run inside a transaction opened by the caller;
none of them opens one itself.
"""

import logging

from django.db.models import F

from apps.core.exceptions import NotFoundError
from apps.core.models import Card

logger = logging.getLogger(__name__)


def list_length(list_id, exclude_card_id=None):
    """Number of cards in the list, optionally ignoring one card"""
    queryset = Card.objects.filter(list_id=list_id)
    if exclude_card_id is not None:
        queryset = queryset.exclude(id=exclude_card_id)
    return queryset.count()


def resolve_target_position(requested, length):
    """
    Applies the out-of-range policy to a requested position

    `length` is the number of cards the target list holds without the
    moved card, so `length` itself means "append". Anything past it is
    clamped to an append. Negative values never reach this point; the
    request form rejects them.
    """
    if requested < 0:
        raise ValueError('position must be non-negative')
    return min(requested, length)


def get_card_in_list(card_id, list_id, lock=False):
    """Fetches the card, requiring it to sit in the given list"""
    queryset = Card.objects.filter(id=card_id, list_id=list_id)
    if lock:
        queryset = queryset.select_for_update()
    card = queryset.first()
    if card is None:
        raise NotFoundError.for_resource('Card')
    return card


def move_within_list(list_id, card_id, old_position, new_position):
    """
    Moves a card inside its list, shifting only the affected sub-range

    Moving down (old < new) pulls the cards in (old, new] up by one;
    moving up (old > new) pushes the cards in [new, old) down by one.
    """
    if old_position == new_position:
        return 0

    siblings = Card.objects.filter(list_id=list_id).exclude(id=card_id)

    if old_position < new_position:
        shifted = siblings.filter(
            position__gt=old_position,
            position__lte=new_position,
        ).update(position=F('position') - 1)
    else:
        shifted = siblings.filter(
            position__gte=new_position,
            position__lt=old_position,
        ).update(position=F('position') + 1)

    Card.objects.filter(id=card_id).update(position=new_position)

    logger.debug(
        "Card %s moved within list %s: %s -> %s (%s siblings shifted)",
        card_id, list_id, old_position, new_position, shifted,
    )
    return shifted


def compact_list(list_id):
    """
    Renumbers the list to 0..N-1 in current order

    Only rows whose position actually changes are written. Returns the
    number of cards renumbered.
    """
    renumbered = 0
    cards = Card.objects.filter(list_id=list_id).order_by('position', 'id').values_list('id', 'position')
    for index, (card_id, position) in enumerate(cards):
        if position != index:
            Card.objects.filter(id=card_id).update(position=index)
            renumbered += 1
    return renumbered


def move_across_lists(source_list_id, destination_list_id, card_id, new_position):
    """
    Moves a card into another list at `new_position`

    Makes room in the destination, relocates the card with one UPDATE,
    then compacts the source list to close the hole the card left.
    """
    Card.objects.filter(
        list_id=destination_list_id,
        position__gte=new_position,
    ).exclude(id=card_id).update(position=F('position') + 1)

    updated = Card.objects.filter(id=card_id, list_id=source_list_id).update(
        list_id=destination_list_id,
        position=new_position,
    )
    if not updated:
        raise NotFoundError.for_resource('Card')

    renumbered = compact_list(source_list_id)

    logger.debug(
        "Card %s moved from list %s to list %s at %s (%s source cards renumbered)",
        card_id, source_list_id, destination_list_id, new_position, renumbered,
    )


def positions_are_dense(list_id):
    """True if the list holds exactly the positions 0..N-1"""
    positions = sorted(Card.objects.filter(list_id=list_id).values_list('position', flat=True))
    return positions == list(range(len(positions)))
