from portal.normalizers import extract_list
from portal.store import STATUS, async_status_cases, create_async_thunk, create_slice

initial_state = {"patients": [], "patient": None, "records": [], "record": None, **STATUS}


def _service(api):
    return api.service("ehr")


get_patients = create_async_thunk(
    "ehr/getAllPatients", lambda _, api: _service(api).patients(api.token()))
get_patient = create_async_thunk(
    "ehr/getPatient", lambda patient_id, api: _service(api).patient(patient_id, api.token()))
create_patient = create_async_thunk(
    "ehr/createPatient", lambda data, api: _service(api).create_patient(data, api.token()))
get_patient_records = create_async_thunk(
    "ehr/getPatientRecords", lambda patient_id, api: _service(api).patient_records(patient_id, api.token()))


def _patients(draft, act):
    draft["patients"] = extract_list(act["payload"], "patients")


def _patient(draft, act):
    draft["patient"] = act["payload"]


def _created(draft, act):
    draft["patients"].append(act["payload"])


def _records(draft, act):
    draft["records"] = extract_list(act["payload"], "records")


extra_reducers = {}
extra_reducers.update(async_status_cases(get_patients, _patients))
extra_reducers.update(async_status_cases(get_patient, _patient))
extra_reducers.update(async_status_cases(create_patient, _created))
extra_reducers.update(async_status_cases(get_patient_records, _records))

ehr_slice = create_slice("ehr", initial_state, extra_reducers=extra_reducers)
reset = ehr_slice.reset
reducer = ehr_slice.reducer
