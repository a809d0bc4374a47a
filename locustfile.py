import random

from locust import HttpUser, task, constant

from settings import get_settings

SYMBOLS = get_settings().feed.symbols


class FallbackViewer(HttpUser):
    """A viewer without a socket, leaning on the REST fallback once a second."""
    wait_time = constant(1.0)

    @task(10)
    def get_history(self):
        self.client.get("/api/history", params={"symbol": random.choice(SYMBOLS)}, name="/api/history")

    @task(1)
    def get_unknown_history(self):
        with self.client.get("/api/history", params={"symbol": "ZZZZ"}, name="/api/history [404]",
                             catch_response=True) as resp:
            if resp.status_code == 404:
                resp.success()

    @task(1)
    def get_status(self):
        self.client.get("/api/status")
