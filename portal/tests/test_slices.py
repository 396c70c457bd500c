import pytest

from portal.config import PortalConfig
from portal.http import ApiError
from portal.slices import appointments, auth, configure_store, ehr, users
from portal.store import action


class FakeAuth:
    def __init__(self):
        self.stored = None

    def login(self, data):
        if data.get("password") != "pw":
            raise ApiError("Incorrect email or password", status=401)
        self.stored = {"token": "tok", "data": {"user": {"id": 1, "role": "doctor"}}}
        return self.stored

    def register(self, data):
        return {"token": "tok", "data": {"user": {"id": 2, "role": "patient"}}}

    def logout(self):
        self.stored = None
        return {"success": True}

    def current_user(self):
        return self.stored


class FakeAppointments:
    def __init__(self):
        self.calls = []
        self.rows = [{"id": 1, "status": "scheduled"}, {"id": 2, "status": "scheduled"}]

    def list(self, token):
        self.calls.append(("list", token))
        return {"appointments": list(self.rows)}

    def create(self, data, token):
        return dict(data, id=3)

    def get(self, appointment_id, token):
        return {"id": appointment_id, "status": "scheduled"}

    def update(self, appointment_id, data, token):
        return dict(data, id=appointment_id)

    def delete(self, appointment_id, token):
        return {"id": appointment_id}


class FakeEhr:
    def patients(self, token):
        return [{"id": 1}]

    def patient(self, patient_id, token):
        return {"id": patient_id}

    def create_patient(self, data, token):
        return dict(data, id=9)

    def patient_records(self, patient_id, token):
        return [{"id": 11, "patient": patient_id}]


class FakeUsers:
    def list(self, token):
        return [{"id": 1, "firstName": "A"}, {"id": 2, "firstName": "B"}]

    def get(self, user_id, token):
        return {"id": user_id}

    def update(self, user_id, data, token):
        return dict(data, id=user_id)


@pytest.fixture
def store():
    services = {"auth": FakeAuth(), "appointments": FakeAppointments(), "ehr": FakeEhr(), "users": FakeUsers()}
    return configure_store(config=PortalConfig(), services=services)


@pytest.fixture
def logged_in(store):
    store.dispatch(auth.login({"email": "d@example.com", "password": "pw"}))
    return store


# auth

def test_login_success_keeps_whole_payload(store):
    result = store.dispatch(auth.login({"email": "d@example.com", "password": "pw"}))
    state = store.get_state()["auth"]
    assert result["type"] == "auth/login/fulfilled"
    assert state["user"]["token"] == "tok"
    assert state["is_success"] and not state["is_error"] and not state["is_loading"]


def test_login_failure_clears_user(store):
    store.dispatch(auth.login({"email": "d@example.com", "password": "bad"}))
    state = store.get_state()["auth"]
    assert state["user"] is None
    assert state["is_error"] is True
    assert state["message"] == "Incorrect email or password"


def test_register_and_logout(store):
    store.dispatch(auth.register({"email": "p@example.com"}))
    assert store.get_state()["auth"]["user"]["data"]["user"]["role"] == "patient"
    store.dispatch(auth.logout())
    assert store.get_state()["auth"]["user"] is None


def test_check_auth_restores_session(logged_in):
    logged_in.dispatch(auth.reset())
    logged_in.dispatch(auth.check_auth())
    assert logged_in.get_state()["auth"]["user"]["token"] == "tok"


def test_auth_reset_keeps_user(logged_in):
    logged_in.dispatch(auth.login({"email": "d@example.com", "password": "bad"}))
    logged_in.dispatch(auth.login({"email": "d@example.com", "password": "pw"}))
    logged_in.dispatch(auth.reset())
    state = logged_in.get_state()["auth"]
    assert state["user"] is not None
    assert (state["is_loading"], state["is_success"], state["is_error"], state["message"]) == (False, False, False, "")


# appointments

def test_appointments_require_login(store):
    store.dispatch(appointments.get_appointments())
    state = store.get_state()["appointments"]
    assert state["is_error"] is True
    assert state["message"] == "Not authorized, no token"


def test_appointment_lifecycle(logged_in):
    fake = logged_in.extra["appointments"]
    logged_in.dispatch(appointments.get_appointments())
    assert fake.calls == [("list", "tok")]
    assert [a["id"] for a in logged_in.get_state()["appointments"]["appointments"]] == [1, 2]

    logged_in.dispatch(appointments.create_appointment({"doctor": 5}))
    assert logged_in.get_state()["appointments"]["appointments"][-1] == {"doctor": 5, "id": 3}

    logged_in.dispatch(appointments.get_appointment(2))
    assert logged_in.get_state()["appointments"]["appointment"]["id"] == 2

    logged_in.dispatch(appointments.update_appointment(
        {"appointment_id": 2, "appointment_data": {"status": "confirmed"}}))
    rows = logged_in.get_state()["appointments"]["appointments"]
    assert rows[1] == {"status": "confirmed", "id": 2}
    assert rows[0]["status"] == "scheduled"

    logged_in.dispatch(appointments.delete_appointment(1))
    assert [a["id"] for a in logged_in.get_state()["appointments"]["appointments"]] == [2, 3]


def test_delete_reducer_falls_back_to_arg():
    state = dict(appointments.initial_state, appointments=[{"id": "a"}, {"id": "b"}])
    act = action(appointments.delete_appointment.fulfilled, None, arg="a")
    assert appointments.reducer(state, act)["appointments"] == [{"id": "b"}]
    assert state["appointments"] == [{"id": "a"}, {"id": "b"}]


def test_update_reducer_matches_mongo_style_ids():
    state = dict(appointments.initial_state, appointments=[{"_id": "x", "status": "scheduled"}])
    act = action(appointments.update_appointment.fulfilled, {"_id": "x", "status": "cancelled"})
    assert appointments.reducer(state, act)["appointments"] == [{"_id": "x", "status": "cancelled"}]


def test_appointments_loaded_from_envelope():
    act = action(appointments.get_appointments.fulfilled, {"ok": True, "data": {"appointments": [{"id": 1}]}})
    assert appointments.reducer(None, act)["appointments"] == [{"id": 1}]


# ehr

def test_ehr_thunks(logged_in):
    logged_in.dispatch(ehr.get_patients())
    logged_in.dispatch(ehr.create_patient({"email": "n@example.com"}))
    logged_in.dispatch(ehr.get_patient(1))
    logged_in.dispatch(ehr.get_patient_records(1))
    state = logged_in.get_state()["ehr"]
    assert state["patients"] == [{"id": 1}, {"email": "n@example.com", "id": 9}]
    assert state["patient"] == {"id": 1}
    assert state["records"] == [{"id": 11, "patient": 1}]
    assert state["is_success"] is True


# users

def test_user_thunks(logged_in):
    logged_in.dispatch(users.get_users())
    logged_in.dispatch(users.get_user(2))
    assert logged_in.get_state()["users"]["user"] == {"id": 2}

    logged_in.dispatch(users.update_user({"user_id": 1, "user_data": {"firstName": "Z"}}))
    state = logged_in.get_state()["users"]
    assert state["user"] == {"firstName": "Z", "id": 1}
    assert state["users"] == [{"firstName": "Z", "id": 1}, {"id": 2, "firstName": "B"}]


def test_configure_store_builds_services():
    store = configure_store(config=PortalConfig(demo_mode=True), storage={})
    assert set(store.extra) == {"auth", "appointments", "ehr", "users"}
    assert set(store.get_state()) == {"auth", "users", "appointments", "ehr"}

    store.dispatch(auth.login({"email": "admin@example.com", "password": "password123"}))
    assert store.get_state()["auth"]["user"]["user"]["role"] == "admin"
