from portal.http import unwrap

API = "api/ehr/patients"


class EhrService:
    def __init__(self, client):
        self.client = client

    def patients(self, token):
        return unwrap(self.client.get(API, token=token), "patients")

    def patient(self, patient_id, token):
        return unwrap(self.client.get(f"{API}/{patient_id}", token=token), "patient")

    def create_patient(self, data, token):
        return unwrap(self.client.post(API, data, token=token), "patient")

    def patient_records(self, patient_id, token):
        return unwrap(self.client.get(f"{API}/{patient_id}/records", token=token), "records")
