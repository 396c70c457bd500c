from portal.http import unwrap

API = "api/appointments"


class AppointmentService:
    def __init__(self, client):
        self.client = client

    def list(self, token, **params):
        return unwrap(self.client.get(API, token=token, params=params or None))

    def create(self, data, token):
        return unwrap(self.client.post(API, data, token=token), "appointment")

    def get(self, appointment_id, token):
        return unwrap(self.client.get(f"{API}/{appointment_id}", token=token), "appointment")

    def update(self, appointment_id, data, token):
        return unwrap(self.client.put(f"{API}/{appointment_id}", data, token=token), "appointment")

    def delete(self, appointment_id, token):
        return unwrap(self.client.delete(f"{API}/{appointment_id}", token=token))

    def cancel(self, appointment_id, reason, token):
        body = self.client.patch(f"{API}/{appointment_id}/cancel", {"reason": reason}, token=token)
        return unwrap(body, "appointment")

    def availability(self, doctor_id, date, token):
        return unwrap(self.client.get(f"{API}/doctor-availability", token=token,
                                      params={"doctorId": doctor_id, "date": date}))

    def suggestions(self, doctor_id, token, patient_id=None):
        params = {"doctorId": doctor_id}
        if patient_id is not None:
            params["patientId"] = patient_id
        return unwrap(self.client.get(f"{API}/suggest-slots", token=token, params=params))
