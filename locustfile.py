from locust import HttpUser, task, between
import os
import random
from requests.auth import HTTPBasicAuth


STAGES = ["instar_1", "instar_2", "instar_3", "pupa", "adult"]


def get_auth():
    username = os.getenv("LOADTEST_USER")
    password = os.getenv("LOADTEST_PASS")
    if username and password:
        return HTTPBasicAuth(username, password)
    return None


class ForensicDashboardUser(HttpUser):
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.auth = get_auth()
        self.case_id = os.getenv("LOADTEST_CASE_ID")
        self.upload_id = os.getenv("LOADTEST_UPLOAD_ID")

    @task(1)
    def health(self):
        self.client.get("/health")

    @task(6)
    def dashboard(self):
        params = {}
        if random.random() < 0.5:
            params = {"start_date": "2024-01-01", "end_date": "2025-12-31"}
        for path in (
            "/dashboard/metrics",
            "/dashboard/confidence-distribution",
            "/dashboard/life-stage-distribution",
        ):
            self.client.get(path, params=params, auth=self.auth)

    @task(3)
    def add_then_delete_detection(self):
        if not (self.case_id and self.upload_id):
            return
        url = f"/cases/{self.case_id}/uploads/{self.upload_id}/detections"
        added = {
            "label": random.choice(STAGES),
            "confidence": round(random.random(), 2),
            "x_min": 10, "y_min": 10, "x_max": 60, "y_max": 60,
        }
        with self.client.post(url, json={"added": [added]}, auth=self.auth, catch_response=True) as resp:
            if resp.status_code != 200:
                resp.failure(f"save failed: {resp.status_code}")
                return
            detections = resp.json().get("detections", [])
        # Keep the image's detection set from growing
        created = [d["id"] for d in detections if d["status"] == "user_created"]
        if created and os.getenv("LOADTEST_DELETE", "true").lower() == "true":
            self.client.post(url, json={"deleted": created[-1:]}, auth=self.auth)
