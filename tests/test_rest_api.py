import asyncio
from datetime import timedelta

from fastapi import status

from models.models import Identity

BUILTIN_ROOMS = ["main", "chil", "work", "fun"]


class TestRoomsAPI:
    def test_list_rooms(self, client):
        response = client.get("/rooms")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == BUILTIN_ROOMS

    def test_create_room(self, client):
        response = client.post("/rooms", json={"name": "design"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "rooms": BUILTIN_ROOMS + ["design"]}
        assert client.get("/rooms").json()[-1] == "design"

    def test_create_room_broadcasts_to_sockets(self, client, token_for):
        with client.websocket_connect(f"/ws?token={token_for('alice')}") as ws:
            ws.receive_json()

            client.post("/rooms", json={"name": "design"})

            assert ws.receive_json() == {"type": "roomsUpdated", "data": BUILTIN_ROOMS + ["design"]}

    def test_create_duplicate_room(self, client):
        response = client.post("/rooms", json={"name": "main"})

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["error"] == "already_exists"
        assert body["message"] == "Room already exists"

    def test_create_room_without_name(self, client):
        response = client.post("/rooms", json={"name": "   "})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "invalid_name"

    def test_delete_room(self, client):
        client.post("/rooms", json={"name": "design"})

        response = client.delete("/rooms/design")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rooms"] == BUILTIN_ROOMS

    def test_delete_protected_room(self, client):
        response = client.delete("/rooms/main")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "protected"

    def test_delete_missing_room(self, client):
        response = client.delete("/rooms/ghost")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestHistoryAPI:
    def test_history_requires_auth(self, client):
        response = client.get("/rooms/main/messages")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"

    def test_history_oldest_first_with_limit(self, client, chat, token_for):
        for text in ("one", "two", "three"):
            asyncio.run(chat.message_store.append("main", "bob", text))
        headers = {"Authorization": f"Bearer {token_for('alice')}"}

        everything = client.get("/rooms/main/messages", headers=headers).json()
        latest_two = client.get("/rooms/main/messages?limit=2", headers=headers).json()

        assert [m["text"] for m in everything] == ["one", "two", "three"]
        assert [m["text"] for m in latest_two] == ["two", "three"]
        assert set(everything[0]) == {"room", "username", "text", "createdAt"}

    def test_history_limit_is_clamped(self, client, chat, token_for):
        for i in range(205):
            asyncio.run(chat.message_store.append("main", "bob", f"m{i}"))
        headers = {"Authorization": f"Bearer {token_for('alice')}"}

        capped = client.get("/rooms/main/messages?limit=500", headers=headers).json()
        floor = client.get("/rooms/main/messages?limit=0", headers=headers).json()

        assert len(capped) == 200
        assert capped[-1]["text"] == "m204"
        assert len(floor) == 1


class TestAuthAPI:
    def test_register_and_login(self, client):
        registered = client.post("/auth/register", json={"username": "alice", "password": "s3cret!", "email": "a@example.com"})
        assert registered.status_code == status.HTTP_200_OK
        user = registered.json()["user"]
        assert user["username"] == "alice"
        assert user["email"] == "a@example.com"

        login = client.post("/auth/login", json={"username": "alice", "password": "s3cret!"})
        assert login.status_code == status.HTTP_200_OK
        assert login.json()["user"]["id"] == user["id"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {login.json()['token']}"})
        assert me.json() == {"authenticated": True, "user": {"id": user["id"], "username": "alice"}}

    def test_register_duplicate_username(self, client):
        client.post("/auth/register", json={"username": "alice", "password": "pw"})

        response = client.post("/auth/register", json={"username": "alice", "password": "other"})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_register_validation(self, client):
        assert client.post("/auth/register", json={"username": "alice"}).status_code == 400
        assert client.post("/auth/register", json={"username": "al", "password": "pw"}).status_code == 400
        assert client.post("/auth/register", json={"username": "a" * 25, "password": "pw"}).status_code == 400

    def test_login_with_wrong_password(self, client):
        client.post("/auth/register", json={"username": "alice", "password": "right"})

        assert client.post("/auth/login", json={"username": "alice", "password": "wrong"}).status_code == 401
        assert client.post("/auth/login", json={"username": "nobody", "password": "x"}).status_code == 401
        assert client.post("/auth/login", json={"username": "alice"}).status_code == 400

    def test_guest_login(self, client):
        response = client.post("/auth/guest", json={"username": "  carol  "})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"] == {"id": "guest:carol", "username": "carol", "email": None}

    def test_guest_name_too_short(self, client):
        assert client.post("/auth/guest", json={"username": " ab "}).status_code == 400

    def test_expired_token_is_rejected(self, client, chat):
        token = chat.auth.issue_token(Identity(id="1", username="alice"), ttl=timedelta(seconds=-5))

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestServiceAPI:
    def test_root(self, client):
        assert client.get("/").json()["endpoints"]["websocket"] == "/ws"

    def test_health(self, client, token_for):
        with client.websocket_connect(f"/ws?token={token_for('alice')}") as ws:
            ws.receive_json()
            body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["connections"] == 1
        assert body["rooms"] == 4
        assert body["message_store"] == "memory"
