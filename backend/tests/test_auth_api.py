from wheretoeat.core.security import create_session_token, decode_session_token, hash_password, verify_password


def test_register_login_and_current_user(client):
    r = client.post(
        "/api/auth/register",
        json={"email": "Owner@Example.com", "password": "secret123", "firstName": "Luc"},
    )
    assert r.status_code == 201
    assert r.json()["user"]["email"] == "owner@example.com"
    assert "session" in r.cookies

    r = client.post("/api/auth/login", json={"email": "owner@example.com", "password": "secret123"})
    assert r.status_code == 200
    token = r.json()["token"]

    me = client.get("/api/auth/user", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["firstName"] == "Luc"


def test_session_cookie_authenticates(client):
    client.post("/api/auth/register", json={"email": "cookie@example.com", "password": "secret123"})
    assert client.get("/api/auth/user").status_code == 200
    client.post("/api/auth/logout")
    client.cookies.clear()
    assert client.get("/api/auth/user").status_code == 401


def test_duplicate_email_and_bad_credentials(client):
    client.post("/api/auth/register", json={"email": "dup@example.com", "password": "secret123"})
    r = client.post("/api/auth/register", json={"email": "dup@example.com", "password": "another1"})
    assert r.status_code == 400
    r = client.post("/api/auth/login", json={"email": "dup@example.com", "password": "wrong-pass"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"})
    assert r.status_code == 401


def test_short_password_rejected(client):
    r = client.post("/api/auth/register", json={"email": "short@example.com", "password": "123"})
    assert r.status_code == 400


def test_garbage_token_is_401(client):
    r = client.get("/api/auth/user", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)
    assert not verify_password("secret123", None)


def test_session_token_round_trip_and_secret_binding():
    token = create_session_token("user-1", secret="s1")
    assert decode_session_token(token, secret="s1") == "user-1"
    assert decode_session_token(token, secret="s2") is None
    expired = create_session_token("user-1", secret="s1", ttl_days=-1)
    assert decode_session_token(expired, secret="s1") is None
