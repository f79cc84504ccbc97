import pytest
from fastapi.testclient import TestClient

from taskreward.api.deps import get_session_factory
from taskreward.main import create_app
from taskreward.services.user_service import UserService


@pytest.fixture
def client(session_factory):
    app = create_app(create_schema=False)
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as c:
        yield c


def _signup(client, username, role="parent"):
    r = client.post(
        "/auth/signup",
        json={"username": username, "email": f"{username}@example.com", "password": "secret123", "role": role},
    )
    assert r.status_code == 201, r.text
    return r.json()


def _login(client, username):
    r = client.post("/auth/token", data={"username": username, "password": "secret123"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def family(client):
    _signup(client, "mom")
    mom = _login(client, "mom")
    r = client.post(
        "/parents/children",
        json={"username": "ava", "email": "ava@example.com", "password": "secret123"},
        headers=mom,
    )
    assert r.status_code == 201, r.text
    return {"mom": mom, "ava": _login(client, "ava"), "ava_id": r.json()["id"]}


def test_signup_and_me(client) -> None:
    created = _signup(client, "mom")
    headers = _login(client, "mom")

    r = client.get("/auth/me", headers=headers)

    assert r.status_code == 200
    assert r.json()["id"] == created["id"]
    assert r.json()["role"] == "parent"


def test_bad_credentials_and_tokens(client) -> None:
    _signup(client, "mom")

    assert client.post("/auth/token", data={"username": "mom", "password": "nope"}).status_code == 401
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_duplicate_signup_is_conflict(client) -> None:
    _signup(client, "mom")

    r = client.post(
        "/auth/signup",
        json={"username": "mom", "email": "mom2@example.com", "password": "secret123"},
    )

    assert r.status_code == 409
    assert r.json() == {"success": False, "error": "conflict", "message": "username or email already registered"}


def test_task_to_reward_round_trip(client, family) -> None:
    mom, ava = family["mom"], family["ava"]

    task = client.post("/parents/tasks", json={"name": "Wash dishes", "points": 100}, headers=mom).json()
    r = client.post("/parents/assignments", json={"task_id": task["id"], "child_id": family["ava_id"]}, headers=mom)
    assert r.status_code == 201
    user_task_id = r.json()["user_task_id"]

    r = client.post(f"/children/me/tasks/{user_task_id}/submit", headers=ava)
    assert r.json()["status"] == "submitted"

    r = client.post(f"/parents/assignments/{user_task_id}/verify", json={"decision": "approved"}, headers=mom)
    assert r.json()["status"] == "approved"
    assert client.get("/children/me/balance", headers=ava).json()["balance"] == 100

    r = client.post(f"/parents/assignments/{user_task_id}/verify", json={"decision": "approved"}, headers=mom)
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_state"

    reward = client.post("/parents/rewards", json={"name": "Movie night", "points": 60}, headers=mom).json()
    assert [x["id"] for x in client.get("/children/me/rewards", headers=ava).json()["items"]] == [reward["id"]]
    first = client.post("/children/me/claims", json={"reward_id": reward["id"]}, headers=ava).json()["claim_id"]
    second = client.post("/children/me/claims", json={"reward_id": reward["id"]}, headers=ava).json()["claim_id"]

    pending = client.get("/parents/claims/pending", headers=mom).json()
    assert pending["total"] == 2

    r = client.post(f"/parents/claims/{first}/review", json={"decision": "approved"}, headers=mom)
    assert r.json()["status"] == "approved"
    r = client.post(f"/parents/claims/{second}/review", json={"decision": "approved"}, headers=mom)
    assert r.status_code == 400
    assert r.json()["error"] == "insufficient_points"

    balance = client.get(f"/parents/children/{family['ava_id']}/balance", headers=mom).json()
    assert balance["balance"] == 40
    history = client.get("/children/me/transactions", headers=ava).json()
    assert [t["change_amount"] for t in history["items"]] == [-60, 100]


def test_role_guards(client, family) -> None:
    assert client.get("/parents/children", headers=family["ava"]).status_code == 403
    assert client.get("/children/me/tasks", headers=family["mom"]).status_code == 403


def test_manual_adjustment(client, family) -> None:
    url = f"/parents/children/{family['ava_id']}/points"

    r = client.post(url, json={"delta": 25, "notes": "good week"}, headers=family["mom"])
    assert r.status_code == 200
    assert r.json()["balance"] == 25

    r = client.post(url, json={"delta": -10}, headers=family["mom"])
    assert r.json()["balance"] == 15

    r = client.post(url, json={"delta": -30}, headers=family["mom"])
    assert r.status_code == 400
    assert r.json()["error"] == "insufficient_points"


def test_invitation_flow(client, family) -> None:
    _signup(client, "dad")
    dad = _login(client, "dad")

    r = client.post("/invitations", json={"child_id": family["ava_id"]}, headers=family["mom"])
    assert r.status_code == 201
    code = r.json()["code"]

    r = client.post("/invitations/redeem", json={"code": code}, headers=family["ava"])
    assert r.status_code == 403
    assert r.json()["error"] == "not_parent_role"

    r = client.post("/invitations/redeem", json={"code": code}, headers=dad)
    assert r.status_code == 200
    assert r.json()["child_id"] == family["ava_id"]
    assert [c["username"] for c in client.get("/parents/children", headers=dad).json()] == ["ava"]

    r = client.post("/invitations/redeem", json={"code": code}, headers=dad)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_code"


def test_unrelated_parent_cannot_see_balance(client, family) -> None:
    _signup(client, "stranger")
    stranger = _login(client, "stranger")

    r = client.get(f"/parents/children/{family['ava_id']}/balance", headers=stranger)

    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"


def test_health(client) -> None:
    r = client.get("/health")

    assert r.status_code == 200
    assert r.json() == {"status": "UP"}


def test_verify_accepts_status_vocabulary_only(client, family) -> None:
    mom, ava = family["mom"], family["ava"]
    task = client.post("/parents/tasks", json={"name": "Feed cat", "points": 5}, headers=mom).json()
    user_task_id = client.post(
        "/parents/assignments", json={"task_id": task["id"], "child_id": family["ava_id"]}, headers=mom
    ).json()["user_task_id"]
    client.post(f"/children/me/tasks/{user_task_id}/submit", headers=ava)

    r = client.post(f"/parents/assignments/{user_task_id}/verify", json={"decision": "approve"}, headers=mom)
    assert r.status_code == 422

    r = client.post(f"/parents/assignments/{user_task_id}/verify", json={"decision": "rejected"}, headers=mom)
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"


def test_profile_and_password(client) -> None:
    _signup(client, "mom")
    _signup(client, "dad")
    mom = _login(client, "mom")

    r = client.patch("/users/me", json={"full_name": "Maria Lopez"}, headers=mom)
    assert r.status_code == 200
    assert r.json()["full_name"] == "Maria Lopez"
    assert client.get("/users/me", headers=mom).json()["full_name"] == "Maria Lopez"

    r = client.patch("/users/me", json={"username": "dad"}, headers=mom)
    assert r.status_code == 409

    r = client.patch("/users/me/password", json={"current_password": "nope", "new_password": "better456"}, headers=mom)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"

    r = client.patch(
        "/users/me/password", json={"current_password": "secret123", "new_password": "better456"}, headers=mom
    )
    assert r.status_code == 200
    assert client.post("/auth/token", data={"username": "mom", "password": "secret123"}).status_code == 401
    assert client.post("/auth/token", data={"username": "mom", "password": "better456"}).status_code == 200


def test_admin_user_management(client, session_factory, family) -> None:
    UserService(session_factory).create_admin(username="root", email="root@example.com", password="secret123")
    root = _login(client, "root")
    _signup(client, "dad")
    dad_id = client.get("/auth/me", headers=_login(client, "dad")).json()["id"]

    assert client.get("/admin/users", headers=family["mom"]).status_code == 403

    r = client.get("/admin/users", params={"role": "parent"}, headers=root)
    assert r.status_code == 200
    assert {u["username"] for u in r.json()["items"]} == {"mom", "dad"}

    assert client.get(f"/admin/users/{family['ava_id']}", headers=root).json()["username"] == "ava"
    assert client.get("/admin/users/missing", headers=root).status_code == 404

    r = client.patch(f"/admin/users/{dad_id}", json={"full_name": "Dan"}, headers=root)
    assert r.status_code == 200
    assert r.json()["full_name"] == "Dan"

    r = client.patch(f"/admin/users/{family['ava_id']}", json={"role": "parent"}, headers=root)
    assert r.status_code == 409

    assert client.delete(f"/admin/users/{dad_id}", headers=root).status_code == 204
    assert client.post("/auth/token", data={"username": "dad", "password": "secret123"}).status_code == 401
