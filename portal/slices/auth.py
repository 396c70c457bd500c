"""Session state: the logged-in payload as returned by the auth service."""
from portal.store import STATUS, async_status_cases, create_async_thunk, create_slice

initial_state = {"user": None, **STATUS}

register = create_async_thunk("auth/register", lambda data, api: api.service("auth").register(data))
login = create_async_thunk("auth/login", lambda data, api: api.service("auth").login(data))
logout = create_async_thunk("auth/logout", lambda _, api: api.service("auth").logout())
check_auth = create_async_thunk("auth/checkAuth", lambda _, api: api.service("auth").current_user())


def _set_user(draft, act):
    draft["user"] = act["payload"]


def _clear_user(draft, _act):
    draft["user"] = None


extra_reducers = {}
extra_reducers.update(async_status_cases(register, _set_user, _clear_user))
extra_reducers.update(async_status_cases(login, _set_user, _clear_user))
extra_reducers.update(async_status_cases(logout, _clear_user))
extra_reducers.update(async_status_cases(check_auth, _set_user, _clear_user))

auth_slice = create_slice("auth", initial_state, extra_reducers=extra_reducers)
reset = auth_slice.reset
reducer = auth_slice.reducer
