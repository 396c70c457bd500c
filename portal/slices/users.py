from portal.normalizers import entity_id, extract_list
from portal.store import STATUS, async_status_cases, create_async_thunk, create_slice

initial_state = {"users": [], "user": None, **STATUS}


def _service(api):
    return api.service("users")


get_users = create_async_thunk("users/getAll", lambda _, api: _service(api).list(api.token()))
get_user = create_async_thunk("users/get", lambda user_id, api: _service(api).get(user_id, api.token()))
update_user = create_async_thunk(
    "users/update", lambda arg, api: _service(api).update(arg["user_id"], arg["user_data"], api.token()))


def _users(draft, act):
    draft["users"] = extract_list(act["payload"], "users")


def _user(draft, act):
    draft["user"] = act["payload"]


def _updated(draft, act):
    updated = act["payload"]
    key = entity_id(updated)
    draft["user"] = updated
    draft["users"] = [updated if entity_id(u) == key else u for u in draft["users"]]


extra_reducers = {}
extra_reducers.update(async_status_cases(get_users, _users))
extra_reducers.update(async_status_cases(get_user, _user))
extra_reducers.update(async_status_cases(update_user, _updated))

user_slice = create_slice("users", initial_state, extra_reducers=extra_reducers)
reset = user_slice.reset
reducer = user_slice.reducer
