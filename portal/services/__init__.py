from portal.services.appointments import AppointmentService
from portal.services.auth import AuthService
from portal.services.ehr import EhrService
from portal.services.users import UserService

__all__ = ["AppointmentService", "AuthService", "EhrService", "UserService", "build_services"]


def build_services(client, config=None, storage=None) -> dict:
    """Services keyed the way thunks look them up in ``extra``."""
    return {
        "auth": AuthService(client, config=config, storage=storage),
        "appointments": AppointmentService(client),
        "ehr": EhrService(client),
        "users": UserService(client),
    }
