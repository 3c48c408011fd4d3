import json

from channels.generic.websocket import AsyncWebsocketConsumer

from hms.permissions import STAFF_ROLES


class NotificationsConsumer(AsyncWebsocketConsumer):
    """Relays events published for the connected staff member."""

    async def connect(self):
        user = self.scope.get('user')
        if not (user and user.is_authenticated and user.is_active and getattr(user, 'role', None) in STAFF_ROLES):
            await self.close(code=4001)
            return
        self.group_name = f'user.{user.id}'
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({'type': 'welcome', 'message': 'connected'}))

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def notify_event(self, event):
        # event: {"type": "notify.event", "payload": {"event": ..., "title": ..., "data": {...}}}
        payload = dict(event.get('payload') or {})
        payload.pop('recipients', None)
        await self.send(json.dumps({'type': 'notification', **payload}))
