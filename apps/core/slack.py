# apps/core/slack.py

"""
Minimal Slack Web API client

Only what the notification flow needs: checking configuration and
posting a message to a channel or a user's DM.
"""

import logging

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

SLACK_API_URL = 'https://slack.com/api'


class SlackError(Exception):
    """Slack call failed or Slack answered ok=false"""


def get_slack_bot_token():
    return getattr(settings, 'SLACK_BOT_TOKEN', '') or None


def is_slack_configured():
    return bool(get_slack_bot_token())


def _api_url(method):
    base = getattr(settings, 'SLACK_API_URL', SLACK_API_URL).rstrip('/')
    return f'{base}/{method}'


def post_slack_message(channel_id, text, client=None):
    """
    Posts `text` to a channel (a Slack user ID opens the bot's DM)

    Raises SlackError on transport errors, non-2xx answers and ok=false.
    """
    token = get_slack_bot_token()
    if not token:
        raise SlackError('SLACK_BOT_TOKEN is not configured')

    timeout = getattr(settings, 'SLACK_TIMEOUT_SECONDS', 10)
    owns_client = client is None
    client = client or httpx.Client(timeout=timeout)

    try:
        response = client.post(
            _api_url('chat.postMessage'),
            headers={'Authorization': f'Bearer {token}'},
            json={'channel': channel_id, 'text': text},
        )
    except httpx.HTTPError as exc:
        raise SlackError(f'Slack postMessage failed: {exc}') from exc
    finally:
        if owns_client:
            client.close()

    if not response.is_success:
        raise SlackError(f'Slack postMessage failed ({response.status_code})')

    try:
        result = response.json()
    except ValueError as exc:
        raise SlackError('Slack postMessage answered with a non-JSON body') from exc
    if not isinstance(result, dict):
        raise SlackError('Slack postMessage answered with an unexpected body')
    if not result.get('ok'):
        raise SlackError(result.get('error') or 'Slack postMessage failed')

    logger.debug("Slack message posted to %s", channel_id)
