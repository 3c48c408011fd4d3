"""
Notifications and the event publisher seam.

Services never talk to the Channels layer directly.  They call
:func:`notify`, which stores a :class:`~hms.models.Notification` row and
hands an event to the publisher created at start-up from the
``HMS_EVENT_PUBLISHER`` setting.  Publishing is fire-and-forget: a
failing transport is logged and the request carries on.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Protocol

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.apps import apps
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from hms.models import Notification, User

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    def publish(self, event: dict[str, Any]) -> None:
        ...


class ChannelLayerPublisher:
    """Forward events to the ``user.<id>`` group of every recipient."""

    def publish(self, event: dict[str, Any]) -> None:
        layer = get_channel_layer()
        if layer is None:
            logger.debug('no channel layer configured, dropping %s', event.get('event'))
            return
        message = {'type': 'notify.event', 'payload': _jsonable(event)}
        for user_id in event.get('recipients', []):
            try:
                async_to_sync(layer.group_send)(f'user.{user_id}', message)
            except Exception:
                logger.warning('failed to publish %s to user %s', event.get('event'), user_id, exc_info=True)


class NullPublisher:
    def publish(self, event: dict[str, Any]) -> None:
        return None


class MemoryPublisher:
    """Keeps published events in a list.  Handy in tests and shells."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []

    def publish(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e['event'] for e in self.events]


def get_event_publisher() -> EventPublisher:
    return apps.get_app_config('hms').publisher


def _jsonable(value):
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def notify(recipients: Iterable[User], *, event: str, category: str, title: str,
           message: str = '', data: dict[str, Any] | None = None,
           publisher: EventPublisher | None = None) -> list[Notification]:
    """Persist one notification per recipient and publish ``event`` after commit."""
    people = {u.pk: u for u in recipients if u is not None and u.pk}
    data = _jsonable(data or {})
    rows = [
        Notification.objects.create(recipient=u, category=category, title=title, message=message, data=data)
        for u in people.values()
    ]
    if not rows:
        return rows
    publisher = publisher or get_event_publisher()
    payload = {
        'event': event,
        'category': category,
        'title': title,
        'message': message,
        'data': data,
        'recipients': list(people),
    }
    transaction.on_commit(lambda: publisher.publish(payload))
    return rows


def format_notification(n: Notification) -> dict:
    return {
        'id': n.id,
        'category': n.category,
        'title': n.title,
        'message': n.message,
        'data': n.data,
        'isRead': n.is_read,
        'createdAt': n.created_at.isoformat(),
    }
