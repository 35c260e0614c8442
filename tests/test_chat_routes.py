"""End-to-end tests for the chat endpoint."""

import pytest
from fastapi.testclient import TestClient

from src.app import app
from src.shared.chat.service import ChatResponder, ChatResponderError, install_chat_responder
from src.shared.security.outcomes import RouteClass
from src.shared.security.policy import RateLimitConfig


class EchoResponder(ChatResponder):

    def __init__(self):
        self.messages = []

    async def generate_reply(self, message: str) -> str:
        self.messages.append(message)
        return f"You asked: {message}"


class BrokenResponder(ChatResponder):

    async def generate_reply(self, message: str) -> str:
        raise ChatResponderError("model timed out")


@pytest.fixture
def responder():
    echo = EchoResponder()
    install_chat_responder(app, echo)
    return echo


class TestChat:

    def test_reply(self, client, responder):
        response = client.post("/api/chat", json={"message": "  What do you build?  ", "turnstile_token": "tok"})
        assert response.status_code == 200
        assert response.json() == {"reply": "You asked: What do you build?"}
        assert responder.messages == ["What do you build?"]

    def test_null_token_rejected_in_production(self, production_client, responder, siteverify):
        response = production_client.post("/api/chat", json={"message": "hi", "turnstile_token": None})
        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "token_missing"
        assert responder.messages == []
        assert siteverify.calls == []

    def test_null_token_allowed_in_development(self, client, responder):
        response = client.post("/api/chat", json={"message": "hi", "turnstile_token": None})
        assert response.status_code == 200

    def test_production_fails_closed_when_service_is_down(self, production_client, responder, siteverify):
        siteverify.status_code = 503
        response = production_client.post("/api/chat", json={"message": "hi", "turnstile_token": "tok"})
        assert response.status_code == 503
        assert responder.messages == []

    def test_form_heuristics_do_not_apply(self, client, responder):
        # No timing token and a stray honeypot-named field are fine on chat
        response = client.post("/api/chat", json={"message": "hi", "fax": "123"})
        assert response.status_code == 200

    def test_sixteenth_message_in_window_is_refused(self, client, responder):
        body = {"message": "hi", "client_uuid": "chatty"}
        for _ in range(15):
            assert client.post("/api/chat", json=body).status_code == 200
        response = client.post("/api/chat", json=body)
        assert response.status_code == 429
        assert response.headers["RateLimit-Remaining"] == "0"
        assert len(responder.messages) == 15

    def test_custom_limit(self, configure_app, responder):
        configure_app(rate_limits={RouteClass.CHAT: RateLimitConfig(window_seconds=60, max_requests=1)})
        test_client = TestClient(app)
        assert test_client.post("/api/chat", json={"message": "hi"}).status_code == 200
        assert test_client.post("/api/chat", json={"message": "hi"}).status_code == 429

    def test_empty_message_is_validation_error(self, client, responder):
        assert client.post("/api/chat", json={"message": "   "}).status_code == 422

    def test_unavailable_without_responder(self, client):
        response = client.post("/api/chat", json={"message": "hi"})
        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "assistant_unavailable"

    def test_responder_failure_is_bad_gateway(self, client):
        install_chat_responder(app, BrokenResponder())
        response = client.post("/api/chat", json={"message": "hi"})
        assert response.status_code == 502
        assert "timed out" not in response.text

    def test_responder_without_reply_method_cannot_be_constructed(self):
        class SilentResponder(ChatResponder):
            pass

        with pytest.raises(TypeError):
            SilentResponder()
