import asyncio
import pathlib
import sys

from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

# Allow importing the app package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from app.main import app
from app.database import get_session
from app.models import Message
from app.routes import messages as messages_routes


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    return TestSession


async def _login(client, email: str) -> dict:
    resp = await client.post("/login", json={"email": email, "password": "pass"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def _create_portal_users(client) -> dict:
    """Bootstrap an admin and let it create one profile per other role."""
    resp = await client.post(
        "/register",
        json={"first_name": "Sam", "last_name": "Admin", "email": "admin@example.com", "password": "pass"},
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    ids = {"admin": resp.json()["id"]}
    headers = {"admin": await _login(client, "admin@example.com")}

    for role, first_name in (("teacher", "Tola"), ("parent", "Rita"), ("student", "Kemi")):
        resp = await client.post(
            "/users/",
            headers=headers["admin"],
            json={
                "first_name": first_name,
                "last_name": role.title(),
                "email": f"{role}@example.com",
                "password": "pass",
                "role": role,
            },
        )
        assert resp.status_code == 200
        ids[role] = resp.json()["id"]
        headers[role] = await _login(client, f"{role}@example.com")
    return {"ids": ids, "headers": headers}


def test_basic_messaging_flow():
    async def run():
        TestSession = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            users = await _create_portal_users(client)
            ids, headers = users["ids"], users["headers"]

            # Registration closes once the admin exists
            resp = await client.post(
                "/register",
                json={"first_name": "Eve", "email": "eve@example.com", "password": "pass"},
            )
            assert resp.status_code == 404

            # Admin sends a direct message to the parent
            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={
                    "mode": "direct",
                    "recipient_id": ids["parent"],
                    "subject": "Fees due",
                    "body": "Fees due",
                },
            )
            assert resp.status_code == 200
            root_id = resp.json()["id"]
            assert resp.json()["is_read"] is False

            resp = await client.get("/messages/inbox", headers=headers["parent"])
            assert resp.status_code == 200
            data = resp.json()
            assert data["unread_count"] == 1
            assert [m["id"] for m in data["messages"]] == [root_id]
            assert data["messages"][0]["counterpart"] == "Sam Admin"
            assert data["messages"][0]["display_time"]

            resp = await client.get("/messages/inbox", headers=headers["admin"])
            assert resp.json()["messages"] == []
            resp = await client.get("/messages/sent", headers=headers["admin"])
            assert [m["id"] for m in resp.json()["messages"]] == [root_id]
            assert resp.json()["messages"][0]["counterpart"] == "Rita Parent"

            # A teacher who is not part of the conversation cannot open it
            resp = await client.get(f"/messages/{root_id}", headers=headers["teacher"])
            assert resp.status_code == 403

            # Opening the thread marks it read for the parent only once
            resp = await client.get(f"/messages/{root_id}", headers=headers["parent"])
            assert resp.status_code == 200
            thread = resp.json()
            assert thread["root"]["is_read"] is True
            assert thread["root"]["is_mine"] is False
            assert thread["other_party_id"] == ids["admin"]
            assert thread["can_reply"] is True
            resp = await client.get("/messages/inbox", headers=headers["parent"])
            assert resp.json()["unread_count"] == 0
            resp = await client.get(f"/messages/{root_id}", headers=headers["parent"])
            assert resp.status_code == 200
            resp = await client.get("/messages/inbox", headers=headers["parent"])
            assert resp.json()["unread_count"] == 0

            # Parent replies; the admin sees the reply in the thread
            resp = await client.post(
                f"/messages/{root_id}/reply",
                headers=headers["parent"],
                json={"body": "Noted, will pay Friday."},
            )
            assert resp.status_code == 200
            reply = resp.json()
            assert reply["recipient_id"] == ids["admin"]
            assert reply["parent_message_id"] == root_id
            assert reply["subject"] == "Re: Fees due"

            resp = await client.get(f"/messages/{root_id}", headers=headers["admin"])
            thread = resp.json()
            assert len(thread["replies"]) == 1
            assert thread["replies"][0]["sender_id"] == ids["parent"]
            assert thread["replies"][0]["sender_name"] == "Rita Parent"
            assert thread["replies"][0]["is_mine"] is False
            assert thread["root"]["is_mine"] is True

            # Admin broadcasts to teachers
            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "broadcast", "target_role": "teacher", "body": "Staff meeting Friday"},
            )
            assert resp.status_code == 200
            broadcast_id = resp.json()["id"]
            assert resp.json()["subject"] == "(No subject)"
            assert resp.json()["recipient_id"] is None

            resp = await client.get("/messages/inbox", headers=headers["teacher"])
            assert [m["id"] for m in resp.json()["messages"]] == [broadcast_id]
            assert resp.json()["unread_count"] == 0
            resp = await client.get("/messages/inbox", headers=headers["parent"])
            assert broadcast_id not in [m["id"] for m in resp.json()["messages"]]
            resp = await client.get("/messages/sent", headers=headers["admin"])
            sent = resp.json()["messages"]
            assert sent[0]["id"] == broadcast_id
            assert sent[0]["counterpart"] == "All teachers"

            # Opening a broadcast does not set its read flag
            resp = await client.get(f"/messages/{broadcast_id}", headers=headers["teacher"])
            assert resp.status_code == 200
            assert resp.json()["root"]["is_read"] is False
            resp = await client.get(f"/messages/{broadcast_id}", headers=headers["parent"])
            assert resp.status_code == 403

            # The admin cannot reply to their own broadcast
            resp = await client.post(
                f"/messages/{broadcast_id}/reply",
                headers=headers["admin"],
                json={"body": "Anyone?"},
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["code"] == "message_no_reply_target"

            # Search narrows the list
            resp = await client.get(
                "/messages/sent", headers=headers["admin"], params={"search": "staff"}
            )
            assert [m["id"] for m in resp.json()["messages"]] == [broadcast_id]

            async with TestSession() as session:
                result = await session.execute(select(Message))
                assert len(result.scalars().all()) == 3

    asyncio.run(run())


def test_compose_errors():
    async def run():
        TestSession = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            users = await _create_portal_users(client)
            ids, headers = users["ids"], users["headers"]

            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "broadcast", "subject": "Hi", "body": "No audience"},
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["code"] == "message_missing_audience"

            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "direct", "subject": "Hi", "body": "No recipient"},
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["code"] == "message_missing_recipient"

            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "direct", "recipient_id": ids["parent"], "body": "   "},
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["code"] == "message_empty_body"

            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "direct", "recipient_id": ids["admin"], "body": "Note to self"},
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["code"] == "message_invalid_addressee"

            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "direct", "recipient_id": 999, "body": "Hello?"},
            )
            assert resp.status_code == 404

            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "broadcast", "target_role": "janitors", "body": "Hello"},
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["code"] == "message_invalid_audience"

            resp = await client.post(
                "/messages/",
                headers=headers["parent"],
                json={"mode": "broadcast", "target_role": "parent", "body": "Bake sale"},
            )
            assert resp.status_code == 403
            assert resp.json()["detail"]["code"] == "message_audience_not_permitted"

            resp = await client.get("/messages/inbox")
            assert resp.status_code == 401

            async with TestSession() as session:
                result = await session.execute(select(Message))
                assert result.scalars().all() == []

    asyncio.run(run())


def test_recipient_choices_follow_role():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            users = await _create_portal_users(client)
            headers = users["headers"]

            resp = await client.get("/messages/recipients", headers=headers["parent"])
            assert resp.status_code == 200
            data = resp.json()
            assert sorted(r["role"] for r in data["recipients"]) == ["admin", "teacher"]
            assert data["audiences"] == []

            resp = await client.get("/messages/recipients", headers=headers["teacher"])
            data = resp.json()
            assert sorted(r["role"] for r in data["recipients"]) == ["admin", "parent"]
            assert data["audiences"] == ["parent", "student"]

            resp = await client.get("/messages/recipients", headers=headers["admin"])
            data = resp.json()
            assert sorted(r["role"] for r in data["recipients"]) == ["parent", "student", "teacher"]
            assert data["audiences"] == ["teacher", "parent", "student", "all"]

    asyncio.run(run())


def test_read_flag_failure_does_not_block_viewing(monkeypatch):
    async def failing_mark_read(db, message, viewer, view=None):
        raise OperationalError("UPDATE message", {}, Exception("database is locked"))

    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            users = await _create_portal_users(client)
            ids, headers = users["ids"], users["headers"]
            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "direct", "recipient_id": ids["parent"], "subject": "Trip", "body": "Museum visit"},
            )
            msg_id = resp.json()["id"]

            monkeypatch.setattr(messages_routes, "mark_read", failing_mark_read)
            resp = await client.get(f"/messages/{msg_id}", headers=headers["parent"])
            assert resp.status_code == 200
            assert resp.json()["root"]["body"] == "Museum visit"
            assert resp.json()["root"]["is_read"] is False

    asyncio.run(run())


def test_replies_cannot_be_opened_as_threads():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            users = await _create_portal_users(client)
            ids, headers = users["ids"], users["headers"]
            resp = await client.post(
                "/messages/",
                headers=headers["admin"],
                json={"mode": "direct", "recipient_id": ids["parent"], "subject": "Fees", "body": "Fees due"},
            )
            root_id = resp.json()["id"]
            resp = await client.post(
                f"/messages/{root_id}/reply", headers=headers["parent"], json={"body": "Paid"}
            )
            assert resp.status_code == 200
            reply_id = resp.json()["id"]

            # the reply's recipient and its sender get the same answer
            for role in ("admin", "parent"):
                resp = await client.get(f"/messages/{reply_id}", headers=headers[role])
                assert resp.status_code == 400
                assert resp.json()["detail"]["code"] == "message_not_thread_root"
                resp = await client.post(
                    f"/messages/{reply_id}/reply", headers=headers[role], json={"body": "again"}
                )
                assert resp.status_code == 400
                assert resp.json()["detail"]["code"] == "message_not_thread_root"

            resp = await client.get(f"/messages/{root_id}", headers=headers["teacher"])
            assert resp.status_code == 403
            resp = await client.post(
                f"/messages/{root_id}/reply", headers=headers["teacher"], json={"body": "hi"}
            )
            assert resp.status_code == 403

    asyncio.run(run())


def test_root_and_openapi_are_served():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/")
            assert resp.status_code == 200
            assert resp.json() == {"message": "Welcome to School Portal Messaging API"}

            resp = await client.get("/openapi.json")
            assert resp.status_code == 200
            schema = resp.json()
            assert "servers" not in schema
            assert "/messages/inbox" in schema["paths"]
            assert "/messages/{message_id}/reply" in schema["paths"]

            resp = await client.get("/docs")
            assert resp.status_code == 200
            assert "/openapi.json" in resp.text

    asyncio.run(run())
