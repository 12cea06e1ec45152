"""
Post-commit side effects of bed state changes.

Once a transaction that moved a bed commits, the cached occupancy
snapshot is dropped and an ``occupancy.changed`` event is pushed to the
``occupancy`` channels group so dashboards can re-query.  Nothing here
runs for a rolled-back transaction.
"""
import logging
from typing import Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

OCCUPANCY_GROUP = "occupancy"
OCCUPANCY_CACHE_KEY = "ipd:occupancy"


def broadcast(event: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(OCCUPANCY_GROUP, event)


def _publish(reason: str, ward_ids: list, bed_ids: list) -> None:
    cache.delete(OCCUPANCY_CACHE_KEY)
    event = {
        "type": "occupancy.changed",
        "reason": reason,
        "wardIds": ward_ids,
        "bedIds": bed_ids,
        "ts": timezone.now().isoformat(),
    }
    try:
        broadcast(event)
    except Exception:
        # best effort; dashboards also poll
        logger.warning("occupancy broadcast failed for %s", reason, exc_info=True)


def occupancy_changed(reason: str, *, ward_ids: Optional[Iterable[int]]=None, bed_ids: Optional[Iterable[int]]=None) -> None:
    """Schedule cache invalidation and a push once the current transaction commits."""
    wards = sorted({w for w in (ward_ids or []) if w is not None})
    beds = sorted({b for b in (bed_ids or []) if b is not None})
    transaction.on_commit(lambda: _publish(reason, wards, beds))
