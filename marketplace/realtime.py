"""
Publishing lifecycle events to the real-time transport.

The transport itself (websocket server, push gateway) lives outside this
project. It is reached through a publisher backend named by the
``MARKETPLACE_REALTIME_BACKEND`` setting, in the same way Django picks an email
backend. Publishing is fire-and-forget: a failing backend is logged and never
breaks the request that produced the event.
"""

import logging
from abc import ABC, abstractmethod

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = 'marketplace.realtime.LoggingPublisher'

# Populated by InMemoryPublisher, mirrors django.core.mail.outbox.
outbox = []


class BasePublisher(ABC):
    """Interface every publisher backend implements."""

    @abstractmethod
    def publish(self, user_id, event_type, payload):
        """Deliver ``event_type`` with ``payload`` to the user ``user_id``."""


class LoggingPublisher(BasePublisher):
    """Writes events to the log. Used when no transport is configured."""

    def publish(self, user_id, event_type, payload):
        logger.info(f"Realtime event {event_type} for user {user_id}: {payload}")


class InMemoryPublisher(BasePublisher):
    """Collects events in ``marketplace.realtime.outbox``. Intended for tests."""

    def publish(self, user_id, event_type, payload):
        outbox.append({
            'user_id': user_id,
            'event_type': event_type,
            'payload': payload,
        })


def get_publisher():
    backend = getattr(settings, 'MARKETPLACE_REALTIME_BACKEND', DEFAULT_BACKEND)
    return import_string(backend)()


def publish(user_id, event_type, payload):
    """
    Publish an event to a single user immediately.

    Args:
        user_id: Recipient user ID
        event_type: Event name, e.g. 'listing_reserved'
        payload: JSON-serializable dict
    """
    try:
        get_publisher().publish(user_id, event_type, payload)
    except Exception:
        logger.exception(
            f"Failed to publish realtime event {event_type} to user {user_id}"
        )


def publish_on_commit(user_id, event_type, payload):
    """
    Publish once the surrounding database transaction commits.

    Events for rolled-back changes are dropped, so subscribers only ever hear
    about persisted state.
    """
    transaction.on_commit(lambda: publish(user_id, event_type, payload))
