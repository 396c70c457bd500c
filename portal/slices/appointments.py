from portal.normalizers import entity_id, extract_appointments
from portal.store import STATUS, async_status_cases, create_async_thunk, create_slice

initial_state = {"appointments": [], "appointment": None, **STATUS}


def _service(api):
    return api.service("appointments")


get_appointments = create_async_thunk(
    "appointments/getAll", lambda _, api: _service(api).list(api.token()))
create_appointment = create_async_thunk(
    "appointments/create", lambda data, api: _service(api).create(data, api.token()))
get_appointment = create_async_thunk(
    "appointments/get", lambda appointment_id, api: _service(api).get(appointment_id, api.token()))
update_appointment = create_async_thunk(
    "appointments/update",
    lambda arg, api: _service(api).update(arg["appointment_id"], arg["appointment_data"], api.token()))
delete_appointment = create_async_thunk(
    "appointments/delete", lambda appointment_id, api: _service(api).delete(appointment_id, api.token()))


def _loaded(draft, act):
    draft["appointments"] = extract_appointments(act["payload"])


def _created(draft, act):
    draft["appointments"].append(act["payload"])


def _fetched(draft, act):
    draft["appointment"] = act["payload"]


def _updated(draft, act):
    updated = act["payload"]
    key = entity_id(updated)
    draft["appointments"] = [updated if entity_id(a) == key else a for a in draft["appointments"]]


def _deleted(draft, act):
    # the server echoes {"id": ...}; fall back to the id the thunk was called with
    key = entity_id(act["payload"]) or entity_id(act.get("meta", {}).get("arg"))
    draft["appointments"] = [a for a in draft["appointments"] if entity_id(a) != key]


extra_reducers = {}
extra_reducers.update(async_status_cases(get_appointments, _loaded))
extra_reducers.update(async_status_cases(create_appointment, _created))
extra_reducers.update(async_status_cases(get_appointment, _fetched))
extra_reducers.update(async_status_cases(update_appointment, _updated))
extra_reducers.update(async_status_cases(delete_appointment, _deleted))

appointment_slice = create_slice("appointment", initial_state, extra_reducers=extra_reducers)
reset = appointment_slice.reset
reducer = appointment_slice.reducer
