# FILE: tests/test_chats_api.py
"""
Tests for ragchat/api/v1/chats.py
Chat CRUD, message round trips (streamed and JSON) and title generation.
"""
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from ragchat import models
from ragchat.main import app
from ragchat.services.chat_service import ChatService


def _create_chat(client, title=None):
    resp = client.post("/api/v1/chats", json={"title": title} if title else {})
    assert resp.status_code == 200
    return resp.json()


class TestChatCrud:

    def test_create_defaults_title(self, client):
        chat = _create_chat(client)
        assert chat["title"] == "New Chat"
        assert chat["message_count"] == 0

    def test_create_with_title(self, client):
        assert _create_chat(client, "Contracts")["title"] == "Contracts"

    def test_get_missing_chat(self, client):
        resp = client.get("/api/v1/chats/999")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Chat not found"

    def test_rename(self, client):
        chat = _create_chat(client)
        resp = client.patch(f"/api/v1/chats/{chat['id']}", json={"title": "  Renamed  "})
        assert resp.status_code == 200
        assert resp.json()["title"] == "Renamed"

    def test_rename_blank_rejected(self, client):
        chat = _create_chat(client)
        resp = client.patch(f"/api/v1/chats/{chat['id']}", json={"title": "   "})
        assert resp.status_code == 400

    def test_list_newest_activity_first(self, client):
        first = _create_chat(client, "first")
        second = _create_chat(client, "second")
        client.post(f"/api/v1/chats/{first['id']}/messages", json={"content": "hello", "stream": False})

        listed = client.get("/api/v1/chats").json()
        assert [c["id"] for c in listed] == [first["id"], second["id"]]
        assert listed[0]["message_count"] == 2
        assert listed[1]["message_count"] == 0

    def test_delete_cascades_messages_keeps_documents(self, client, db_session, upload):
        chat = _create_chat(client)
        doc = upload("policy.txt", "Remote work is allowed two days a week.", chat_id=chat["id"]).json()
        client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "remote work?", "stream": False})

        resp = client.delete(f"/api/v1/chats/{chat['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get(f"/api/v1/chats/{chat['id']}").status_code == 404

        assert db_session.query(models.Message).count() == 0
        remaining = client.get(f"/api/v1/documents/{doc['id']}").json()
        assert remaining["chat_ids"] == []
        assert remaining["is_global"] is True

    def test_delete_missing_chat(self, client):
        assert client.delete("/api/v1/chats/42").status_code == 404


class TestSendMessage:

    def test_json_reply_persists_both_messages(self, client, fake_openai):
        chat = _create_chat(client)
        resp = client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "Hi there", "stream": False})
        assert resp.status_code == 200
        body = resp.json()
        assert body["answer"] == fake_openai.reply_text
        assert body["sources"] == []

        detail = client.get(f"/api/v1/chats/{chat['id']}").json()
        assert [(m["role"], m["content"]) for m in detail["messages"]] == [
            ("user", "Hi there"),
            ("assistant", fake_openai.reply_text),
        ]

    def test_streamed_reply(self, client, fake_openai):
        chat = _create_chat(client)
        with client.stream("POST", f"/api/v1/chats/{chat['id']}/messages", json={"content": "Stream please"}) as resp:
            assert resp.status_code == 200
            assert resp.headers["content-type"].startswith("text/plain")
            text = "".join(resp.iter_text())
        assert text == fake_openai.reply_text

        messages = client.get(f"/api/v1/chats/{chat['id']}").json()["messages"]
        assert messages[-1] == {**messages[-1], "role": "assistant", "content": fake_openai.reply_text}
        assert fake_openai.reply_calls[0]["stream"] is True

    def test_no_context_without_documents(self, client, fake_openai):
        chat = _create_chat(client)
        client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "Hello", "stream": False})
        sent = fake_openai.reply_calls[0]["messages"]
        assert sent == [{"role": "user", "content": "Hello"}]

    def test_context_prepended_as_system_message(self, client, fake_openai, upload):
        chat = _create_chat(client)
        upload("benefits.txt", "Dental insurance covers two cleanings per year.", chat_id=chat["id"])

        resp = client.post(
            f"/api/v1/chats/{chat['id']}/messages",
            json={"content": "What does dental insurance cover?", "stream": False},
        )
        sources = resp.json()["sources"]
        assert sources and sources[0]["filename"] == "benefits.txt"

        sent = fake_openai.reply_calls[0]["messages"]
        assert sent[0]["role"] == "system"
        assert "## From: benefits.txt" in sent[0]["content"]
        assert "Dental insurance covers two cleanings per year." in sent[0]["content"]
        assert sent[-1] == {"role": "user", "content": "What does dental insurance cover?"}

    def test_history_sent_in_order(self, client, fake_openai):
        chat = _create_chat(client)
        url = f"/api/v1/chats/{chat['id']}/messages"
        client.post(url, json={"content": "first question", "stream": False})
        client.post(url, json={"content": "second question", "stream": False})

        sent = fake_openai.reply_calls[-1]["messages"]
        assert [m["content"] for m in sent] == [
            "first question",
            fake_openai.reply_text,
            "second question",
        ]

    def test_unknown_chat(self, client):
        resp = client.post("/api/v1/chats/123/messages", json={"content": "hi"})
        assert resp.status_code == 404

    def test_blank_message_rejected(self, client):
        chat = _create_chat(client)
        assert client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": ""}).status_code == 400
        assert client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "   "}).status_code == 400

    def test_stream_failure_stores_nothing(self, client, db_session, fake_openai, monkeypatch, caplog):
        chat = _create_chat(client)
        before = db_session.get(models.Chat, chat["id"]).updated_at

        def broken_stream(*args, **kwargs):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="Partial "))])
            raise RuntimeError("connection reset")

        monkeypatch.setattr(fake_openai.chat.completions, "create", broken_stream)
        deltas = ChatService(db_session).stream_reply(chat["id"], "Will this finish?")
        received = []
        with pytest.raises(RuntimeError, match="connection reset"):
            for delta in deltas:
                received.append(delta)
        assert received == ["Partial "]
        assert "Streaming reply failed" in caplog.text

        db_session.expire_all()
        stored = db_session.get(models.Chat, chat["id"])
        assert [(m.role, m.content) for m in stored.messages] == [("user", "Will this finish?")]
        assert stored.title == "New Chat"
        assert stored.updated_at == before


class TestTitles:

    def test_first_exchange_generates_title(self, client, fake_openai):
        chat = _create_chat(client)
        client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "Explain our leave policy", "stream": False})
        assert client.get(f"/api/v1/chats/{chat['id']}").json()["title"] == fake_openai.title_text

    def test_custom_title_kept(self, client, fake_openai):
        chat = _create_chat(client, "Mine")
        client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "hello", "stream": False})
        assert client.get(f"/api/v1/chats/{chat['id']}").json()["title"] == "Mine"

    def test_title_failure_does_not_lose_reply(self, client, fake_openai):
        chat = _create_chat(client)
        with patch("ragchat.services.chat_service.generate_title", side_effect=RuntimeError("boom")):
            resp = client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "hello", "stream": False})
        assert resp.status_code == 200
        detail = client.get(f"/api/v1/chats/{chat['id']}").json()
        assert detail["title"] == "New Chat"
        assert detail["message_count"] == 2

    def test_regenerate_title(self, client, fake_openai):
        chat = _create_chat(client, "Old")
        client.post(f"/api/v1/chats/{chat['id']}/messages", json={"content": "hello", "stream": False})
        fake_openai.title_text = "Greeting Exchange"
        resp = client.post(f"/api/v1/chats/{chat['id']}/title")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Greeting Exchange"

    def test_regenerate_title_needs_messages(self, client):
        chat = _create_chat(client)
        assert client.post(f"/api/v1/chats/{chat['id']}/title").status_code == 400


class TestErrorBoundary:

    def test_unexpected_error_returns_generic_500(self, client):
        safe_client = TestClient(app, raise_server_exceptions=False)
        with patch("ragchat.services.chat_service.ChatService.list_chats", side_effect=RuntimeError("db down")):
            resp = safe_client.get("/api/v1/chats")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error"}

    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}
