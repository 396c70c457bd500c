from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import User
from clinic.services.analytics import dashboard, dashboard_cache_key


class Command(BaseCommand):
    help = "Rebuild cached analytics dashboards for staff; broadcast WebSocket refresh event."

    def add_arguments(self, parser):
        parser.add_argument('--all', action='store_true', help='also warm patient dashboards')

    def handle(self, *args, **options):
        now = timezone.now()
        roles = [User.ROLE_ADMIN, User.ROLE_DOCTOR]
        if options['all']:
            roles.append(User.ROLE_PATIENT)

        keys_refreshed = []
        for user in User.objects.filter(role__in=roles, is_active=True):
            key = dashboard_cache_key(user)
            cache.delete(key)
            dashboard(user, now=now)
            keys_refreshed.append(key)

        channel_layer = get_channel_layer()
        if channel_layer is not None:
            event = {"type": "broadcast.refresh", "version": int(now.timestamp()), "ts": now.isoformat(), "keys": keys_refreshed[:50]}
            async_to_sync(channel_layer.group_send)("updates", event)

        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
