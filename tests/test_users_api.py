def signup(client, **overrides):
    body = {"username": "kim", "password": "kim123", "name": "Kim Mongado", "email": "kim.mongado@csu.local"}
    body.update(overrides)
    return client.post("/users", json=body)


def test_signup_defaults_to_client(client):
    res = signup(client)

    assert res.status_code == 200
    user = res.json()["user"]
    assert user == {
        "username": "kim",
        "name": "Kim Mongado",
        "role": "CLIENT",
        "email": "kim.mongado@csu.local",
        "phone": "",
    }


def test_signup_never_returns_password(client):
    body = signup(client, role="dentist").json()
    assert body["user"]["role"] == "DENTIST"
    assert "password" not in str(body).lower()


def test_duplicate_username(client):
    assert signup(client).status_code == 200
    res = signup(client, name="Someone Else")
    assert res.status_code == 409
    assert res.json()["message"] == "username_already_exists"

    # fixture account
    assert signup(client, username="drsantos").status_code == 409


def test_signup_requires_username_and_password(client):
    assert client.post("/users", json={"password": "x"}).status_code == 422
    assert client.post("/users", json={"username": "kim"}).status_code == 422
    assert signup(client, username="  ").status_code == 422
    assert signup(client, password="").status_code == 422


def test_login(client):
    signup(client)

    res = client.post("/session", json={"username": "kim", "password": "kim123"})

    assert res.status_code == 200
    body = res.json()
    assert body["user"]["username"] == "kim"
    assert body["tokenType"] == "bearer"
    assert body["accessToken"]


def test_login_with_fixture_account(client):
    res = client.post("/session", json={"username": "drsantos", "password": "drpass"})
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "DENTIST"


def test_bad_credentials(client):
    assert client.post("/session", json={"username": "kylle", "password": "nope"}).status_code == 401
    assert client.post("/session", json={"username": "ghost", "password": "kylle123"}).status_code == 401


def test_session_me(client):
    token = client.post("/session", json={"username": "kylle", "password": "kylle123"}).json()["accessToken"]

    res = client.get("/session/me", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 200
    assert res.json()["user"]["name"] == "Kylle Cruz"
    assert client.get("/session/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
    assert client.get("/session/me").status_code == 401


def test_list_users(client):
    users = client.get("/users").json()["users"]
    assert [u["username"] for u in users] == ["admin", "kylle", "drsantos", "drreyes"]
    assert all("password" not in u and "passwordHash" not in u for u in users)

    providers = client.get("/users", params={"providersOnly": "true"}).json()["users"]
    assert [u["username"] for u in providers] == ["drsantos", "drreyes"]

    dentists = client.get("/users", params={"role": "DENTIST"}).json()["users"]
    assert [u["name"] for u in dentists] == ["Dr. Santos"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/health/db").json() == {"status": "ok", "database": "sqlite"}
