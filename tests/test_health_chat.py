from unittest.mock import patch

from service_modules.health_chat_service import compute_bmi, latest_value

POST = "service_modules.health_chat_service.requests.post"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


def _answer(text):
    return FakeResponse(200, {"choices": [{"message": {"content": f"  {text}  "}}]})


def test_bmi_and_latest_value():
    assert compute_bmi(70, 175) == 22.86
    assert compute_bmi(None, 175) is None
    entries = [{"date": "2026-01-01", "value": 80}, {"date": "2026-03-01", "value": 76}]
    assert latest_value(entries) == 76
    assert latest_value([]) is None


def test_missing_api_key(client, make_user, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    user = make_user()
    with patch(POST) as mock_post:
        response = client.post("/api/ask-health", json={"question": "How much protein?"}, headers=user["headers"])
    assert response.status_code == 500
    assert response.json()["detail"] == "API key is not configured"
    mock_post.assert_not_called()


def test_answer_includes_profile_context(client, make_user, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    user = make_user(height=180, weight_json='[{"date": "2026-01-01", "value": 81}]')

    with patch(POST, return_value=_answer("Aim for 1.6 g per kg.")) as mock_post:
        response = client.post("/api/ask-health", json={"question": "How much protein?"}, headers=user["headers"])

    assert response.status_code == 200
    assert response.json() == {"answer": "Aim for 1.6 g per kg."}
    kwargs = mock_post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer test-key"
    assert kwargs["timeout"] == 10
    prompt = kwargs["json"]["messages"][1]["content"]
    assert "BMI: 25.0" in prompt
    assert "Question: How much protein?" in prompt


def test_upstream_rate_limit(client, make_user, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    user = make_user()
    with patch(POST, return_value=FakeResponse(429)):
        response = client.post("/api/ask-health", json={"question": "Best warmup?"}, headers=user["headers"])
    assert response.status_code == 429
    assert response.json()["detail"] == "Too many requests. Please try again later."


def test_upstream_error(client, make_user, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    user = make_user()
    with patch(POST, return_value=FakeResponse(503)):
        response = client.post("/api/ask-health", json={"question": "Best warmup?"}, headers=user["headers"])
    assert response.status_code == 500
    assert response.json()["detail"] == "Error fetching the answer. Please try again later."


def test_local_rate_limit(client, make_user, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    user = make_user()
    with patch(POST, return_value=_answer("Stretch.")):
        first = client.post("/api/ask-health", json={"question": "Best warmup?"}, headers=user["headers"])
        second = client.post("/api/ask-health", json={"question": "And cooldown?"}, headers=user["headers"])
    assert first.status_code == 200
    assert second.status_code == 429
    assert second.json()["detail"] == "Please wait a moment before sending another message."
