import json

from channels.generic.websocket import AsyncWebsocketConsumer

from inpatient.services.events import OCCUPANCY_GROUP


class OccupancyConsumer(AsyncWebsocketConsumer):
    """Pushes ``occupancy.changed`` events to dashboards.

    Events carry no figures; clients re-query ``/api/ipd/occupancy``.
    """
    GROUP = OCCUPANCY_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "group": self.GROUP}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def occupancy_changed(self, event):
        # event: {"type": "occupancy.changed", "reason": ..., "wardIds": [...], "bedIds": [...], "ts": ...}
        await self.send(json.dumps(event))
