from portal.http import unwrap

API = "api/users"


class UserService:
    def __init__(self, client):
        self.client = client

    def list(self, token):
        return unwrap(self.client.get(API, token=token), "users")

    def get(self, user_id, token):
        return unwrap(self.client.get(f"{API}/{user_id}", token=token), "user")

    def update(self, user_id, data, token):
        return unwrap(self.client.put(f"{API}/{user_id}", data, token=token), "user")

    def doctors(self, token, limit=50):
        return unwrap(self.client.get(f"{API}/doctors", token=token, params={"limit": limit}), "doctors")
