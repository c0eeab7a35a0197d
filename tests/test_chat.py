def _open_chat(client, headers=None, **body):
    resp = client.post("/api/chat/session", json=body, headers=headers or {})
    assert resp.status_code == 201
    return resp.get_json()["sessionId"]


def test_guest_session_gets_welcome_message(client):
    session_id = _open_chat(client, subject="  ", message="Есть ли размер XL?")

    chat = client.get(f"/api/chat/session?sessionId={session_id}").get_json()["session"]

    assert chat["subject"] == "Общий вопрос"
    assert chat["status"] == "ACTIVE"
    by_type = {m["senderType"]: m for m in chat["messages"]}
    assert by_type["USER"]["senderName"] == "Анонимный пользователь"
    assert by_type["USER"]["content"] == "Есть ли размер XL?"
    assert by_type["SYSTEM"]["content"].startswith("Здравствуйте!")


def test_signed_in_user_details_are_copied(client, user, user_headers):
    session_id = _open_chat(client, user_headers, subject="Доставка")
    chat = client.get(f"/api/chat/session?sessionId={session_id}").get_json()["session"]
    assert (chat["userId"], chat["userName"], chat["userPhone"]) == (user["id"], "Анна", "+79001112233")


def test_unknown_session_is_404(client):
    assert client.get("/api/chat/session?sessionId=missing").status_code == 404
    assert client.get("/api/chat/session").status_code == 400


def test_message_notifies_staff(client, fakes):
    session_id = _open_chat(client)

    resp = client.post("/api/chat/messages", json={"sessionId": session_id, "content": " Привет "})

    assert resp.status_code == 201
    message = resp.get_json()["message"]
    assert message["content"] == "Привет"
    assert message["senderType"] == "USER"
    assert fakes["notifier"].chat_messages == [
        {"sessionId": session_id, "sender": "Анонимный пользователь", "message": "Привет", "fromUser": True}
    ]


def test_admin_reply_is_marked_as_staff(client, admin_headers, fakes):
    session_id = _open_chat(client)
    resp = client.post("/api/chat/messages", json={"sessionId": session_id, "content": "Добрый день"},
                       headers=admin_headers)
    assert resp.get_json()["message"]["senderType"] == "ADMIN"
    assert fakes["notifier"].chat_messages[-1]["fromUser"] is False


def test_message_validation(client):
    session_id = _open_chat(client)
    assert client.post("/api/chat/messages", json={"sessionId": session_id, "content": "  "}).status_code == 400
    assert client.post("/api/chat/messages",
                       json={"sessionId": session_id, "content": "x", "messageType": "VIDEO"}).status_code == 400
    assert client.post("/api/chat/messages", json={"sessionId": "nope", "content": "x"}).status_code == 404


def test_polling_after_last_message(client):
    session_id = _open_chat(client)
    first = client.post("/api/chat/messages", json={"sessionId": session_id, "content": "один"}).get_json()["message"]
    client.post("/api/chat/messages", json={"sessionId": session_id, "content": "два"})

    newer = client.get(f"/api/chat/messages?sessionId={session_id}&lastMessageId={first['id']}").get_json()

    assert [m["content"] for m in newer["messages"]] == ["два"]


def test_mark_read(client):
    session_id = _open_chat(client, message="вопрос")

    result = client.patch("/api/chat/messages", json={"sessionId": session_id}).get_json()

    assert result["success"] is True
    assert result["updated"] == 2
    messages = client.get(f"/api/chat/messages?sessionId={session_id}").get_json()["messages"]
    assert all(m["isRead"] for m in messages)


def test_admin_lists_and_closes_sessions(client, admin_headers):
    session_id = _open_chat(client, message="нужна помощь")

    listing = client.get("/api/admin/chat", headers=admin_headers).get_json()
    assert listing["pagination"]["total"] == 1
    entry = listing["sessions"][0]
    assert entry["sessionId"] == session_id
    assert entry["messageCount"] == 2
    assert entry["unreadCount"] == 1

    closed = client.patch("/api/admin/chat", json={"sessionId": session_id, "status": "CLOSED"},
                          headers=admin_headers).get_json()
    assert closed["session"]["status"] == "CLOSED"
    assert closed["session"]["closedAt"] is not None
    assert client.get("/api/admin/chat?status=ACTIVE", headers=admin_headers).get_json()["sessions"] == []
    assert client.patch("/api/admin/chat", json={"sessionId": session_id, "status": "DONE"},
                        headers=admin_headers).status_code == 400


def test_admin_chat_requires_admin(client, user_headers):
    assert client.get("/api/admin/chat", headers=user_headers).status_code == 403
