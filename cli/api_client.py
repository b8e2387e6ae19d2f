"""REST API client for the flashround server."""

import requests


class FlashroundAPIClient:
    """Client for communicating with the flashround REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        if params is None:
            params = {}
        params['user_id'] = self.user_id
        response = self.session.get(f"{self.base_url}{endpoint}", params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        data = dict(data or {})
        data['user_id'] = self.user_id
        response = self.session.post(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        response = self.session.get(f"{self.base_url}/health")
        response.raise_for_status()
        return response.json()

    def get_users(self) -> dict:
        response = self.session.get(f"{self.base_url}/api/users")
        response.raise_for_status()
        return response.json()

    def get_topics(self) -> dict:
        return self._get("/api/topics")

    def get_state(self) -> dict:
        """Get phase, counters and the current question."""
        return self._get("/api/state")

    def start_or_advance(self) -> dict:
        return self._post("/api/start")

    def advance(self) -> dict:
        return self._post("/api/advance")

    def submit_answer(self, option_index: int) -> dict:
        return self._post("/api/answer", {'option_index': option_index})

    def set_topic(self, topic: str | None) -> dict:
        return self._post("/api/topic", {'topic': topic})

    def set_round_size(self, round_size: int) -> dict:
        return self._post("/api/round-size", {'round_size': round_size})

    def toggle_adaptive(self) -> dict:
        return self._post("/api/adaptive")

    def enter_review(self, source_texts: list[str] | None = None) -> dict:
        return self._post("/api/review", {'source_texts': source_texts})

    def restart(self) -> dict:
        return self._post("/api/restart")

    def get_summary(self) -> dict:
        return self._get("/api/summary")

    def get_hardest(self, count: int = 3) -> dict:
        return self._get("/api/hardest", {'count': count})

    def get_topic_stats(self, topic: str) -> dict:
        return self._get(f"/api/stats/{topic}")
