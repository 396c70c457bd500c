from portal.config import PortalConfig
from portal.http import ApiClient
from portal.services import build_services
from portal.slices import appointments, auth, ehr, users
from portal.store import Store

ROOT_REDUCERS = {
    "auth": auth.reducer,
    "users": users.reducer,
    "appointments": appointments.reducer,
    "ehr": ehr.reducer,
}


def configure_store(config=None, client=None, services=None, storage=None, preloaded_state=None) -> Store:
    """Wire the four slices to the HTTP services."""
    config = config or PortalConfig.from_env()
    if services is None:
        client = client or ApiClient(config)
        services = build_services(client, config=config, storage=storage)
    return Store(ROOT_REDUCERS, extra=services, preloaded_state=preloaded_state)
