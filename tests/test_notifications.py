"""Tests for approver resolution, reviewer notifications and the dispatcher."""

import httpx
import pytest

from apps.board import notifications
from apps.board.notifications import (
    create_notification_with_slack_dm,
    dispatch_background,
    notify_reviewers,
    resolve_approvers,
)
from apps.core.models import Notification
from apps.core.slack import SlackError, post_slack_message

from .conftest import _get_list, _make_board, _make_card, _make_user


@pytest.mark.parametrize('role_name, roles', [
    ('PO', ['PO']),
    ('P.O.', ['PO']),
    ('Product Owner', ['PO']),
    ('product_owner', ['PO']),
    ('Lead', ['LEAD']),
    ('Tech Lead', ['LEAD']),
    ('lead-artist', ['LEAD']),
    ('Composer', []),
    ('Leader', []),
    ('Developer', []),
])
def test_resolve_approvers_roles(role_name, roles):
    approvers = resolve_approvers([{'userId': 7, 'roleName': role_name}])
    assert [a['role'] for a in approvers] == roles


def test_resolve_approvers_skips_incomplete_assignments():
    assignments = [
        {'userId': 1},
        {'roleName': 'PO'},
        'garbage',
        {'userId': 2, 'roleName': 'PO'},
    ]
    assert resolve_approvers(assignments) == [{'role': 'PO', 'userId': 2, 'roleName': 'PO'}]
    assert resolve_approvers(None) == []


@pytest.mark.django_db
def test_notify_reviewers_once_per_user(owner):
    po = _make_user('po')
    board = _make_board(owner, settings={'projectRoleAssignments': [
        {'userId': po.id, 'roleName': 'PO'},
        {'userId': po.id, 'roleName': 'Product Owner'},
        {'userId': 123456, 'roleName': 'Lead'},
    ]})
    review = _get_list(board, 'Review')
    card = _make_card(review, 'Boss fight')

    created = notify_reviewers(board.id, card.id, owner.id, review.id)

    assert len(created) == 1
    notification = Notification.objects.get(user=po)
    assert notification.data == {'boardId': board.id, 'cardId': card.id, 'listId': review.id}
    assert notification.message == 'owner moved "Boss fight" to Review'


@pytest.mark.django_db
def test_notify_reviewers_without_approvers(board, owner):
    card = _make_card(_get_list(board, 'Review'), 'Boss fight')

    assert notify_reviewers(board.id, card.id, owner.id, card.list_id) == []
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_notify_reviewers_for_missing_card(board, owner):
    assert notify_reviewers(board.id, 999_999, owner.id, 1) == []


@pytest.mark.django_db
def test_slack_dm_sent_when_configured(settings, monkeypatch):
    settings.SLACK_BOT_TOKEN = 'xoxb-test'
    user = _make_user('po', slack_user_id='U123')
    sent = []
    monkeypatch.setattr(notifications, 'post_slack_message', lambda channel, text: sent.append((channel, text)))

    create_notification_with_slack_dm(user.id, 'CARD_IN_REVIEW', 'Title', 'Hello', slack_user_id='U123')

    assert sent == [('U123', 'Hello')]
    assert Notification.objects.filter(user=user).count() == 1


@pytest.mark.django_db
def test_slack_failure_keeps_in_app_notification(settings, monkeypatch):
    settings.SLACK_BOT_TOKEN = 'xoxb-test'
    user = _make_user('po')

    def fail(channel, text):
        raise SlackError('channel_not_found')

    monkeypatch.setattr(notifications, 'post_slack_message', fail)

    notification = create_notification_with_slack_dm(user.id, 'X', 'Title', 'Hello', slack_user_id='U999')

    assert notification.pk is not None


@pytest.mark.django_db
def test_slack_skipped_without_token(monkeypatch):
    user = _make_user('po')

    def unexpected(*args):
        raise AssertionError('Slack must not be called')

    monkeypatch.setattr(notifications, 'post_slack_message', unexpected)

    create_notification_with_slack_dm(user.id, 'X', 'Title', 'Hello', slack_user_id='U1')


def test_dispatch_background_swallows_job_errors(settings):
    settings.FALLO_NOTIFICATIONS_INLINE = True
    calls = []

    def job(value):
        calls.append(value)
        raise RuntimeError('boom')

    dispatch_background(job, 42)

    assert calls == [42]


def test_post_slack_message_sends_bearer_token(settings):
    settings.SLACK_BOT_TOKEN = 'xoxb-test'
    seen = {}

    def handler(request):
        seen['auth'] = request.headers['Authorization']
        seen['url'] = str(request.url)
        return httpx.Response(200, json={'ok': True})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    post_slack_message('U123', 'Hello', client=client)

    assert seen['auth'] == 'Bearer xoxb-test'
    assert seen['url'].endswith('/chat.postMessage')


def test_post_slack_message_raises_on_not_ok(settings):
    settings.SLACK_BOT_TOKEN = 'xoxb-test'
    client = httpx.Client(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json={'ok': False, 'error': 'invalid_auth'})
    ))

    with pytest.raises(SlackError, match='invalid_auth'):
        post_slack_message('U123', 'Hello', client=client)


def test_post_slack_message_requires_token(settings):
    settings.SLACK_BOT_TOKEN = ''

    with pytest.raises(SlackError):
        post_slack_message('U123', 'Hello')


def _html_client():
    return httpx.Client(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, text='<html>Gateway</html>')
    ))


def test_post_slack_message_rejects_non_json_reply(settings):
    settings.SLACK_BOT_TOKEN = 'xoxb-test'

    with pytest.raises(SlackError):
        post_slack_message('U123', 'Hello', client=_html_client())


@pytest.mark.django_db
def test_slack_html_reply_does_not_stop_other_approvers(settings, monkeypatch, owner):
    settings.SLACK_BOT_TOKEN = 'xoxb-test'
    po = _make_user('po', slack_user_id='U1')
    lead = _make_user('lead', slack_user_id='U2')
    board = _make_board(owner, settings={'projectRoleAssignments': [
        {'userId': po.id, 'roleName': 'PO'},
        {'userId': lead.id, 'roleName': 'Lead'},
    ]})
    review = _get_list(board, 'Review')
    card = _make_card(review, 'Boss fight')
    monkeypatch.setattr(
        notifications,
        'post_slack_message',
        lambda channel, text: post_slack_message(channel, text, client=_html_client()),
    )

    created = notify_reviewers(board.id, card.id, owner.id, review.id)

    assert {n.user_id for n in created} == {po.id, lead.id}
