import json

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from clinic.models import Appointment
from clinic.services.telehealth import can_join, group_name


async def _ws_error(ws, code: int, message: str, *, close: bool = False):
    """Error frame; 4xxx are client errors."""
    payload = {"type": "error", "code": code, "message": message}
    try:
        await ws.send(json.dumps(payload))
    finally:
        if close:
            await ws.close(code=code)


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes appointment changes to signed-in clients."""
    GROUP = "updates"

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return
        self.user_id, self.role = user.id, user.role
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        if hasattr(self, "user_id"):
            await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def appointments_changed(self, event):
        # admins see everything, others only their own appointments
        if self.role != "admin" and self.user_id not in (event.get("patientId"), event.get("doctorId")):
            return
        await self.send(json.dumps(event))

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))


class TelehealthConsumer(AsyncWebsocketConsumer):
    """Presence and signalling relay for one telehealth appointment."""

    async def connect(self):
        try:
            self.appointment_id = int(self.scope["url_route"]["kwargs"].get("appointment_id"))
        except (KeyError, TypeError, ValueError):
            await self.close(code=4000)
            return

        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return

        try:
            appointment = await sync_to_async(Appointment.objects.get)(id=self.appointment_id)
        except Appointment.DoesNotExist:
            await self.close(code=4004)
            return

        if appointment.type != Appointment.TYPE_TELEHEALTH or not can_join(user, appointment):
            await self.close(code=4003)
            return

        self.user = user
        self.group_name = group_name(self.appointment_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await _ws_error(self, 4000, "invalid_json")
            return
        if not isinstance(data, dict):
            await _ws_error(self, 4001, "invalid_payload")
            return
        if data.get("type") != "signal":
            await _ws_error(self, 4002, "unsupported_type")
            return

        await self.channel_layer.group_send(self.group_name, {
            "type": "telehealth.event",
            "event": "signal",
            "appointmentId": self.appointment_id,
            "userId": self.user.id,
            "userRole": self.user.role,
            "payload": data.get("payload"),
        })

    async def telehealth_event(self, event):
        await self.send(json.dumps(event))
