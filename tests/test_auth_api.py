from datetime import datetime, timedelta, timezone


def _register(client, email="alice@example.com", password="secret123", name="Alice"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def test_register_issues_otp_without_token(client, mailer):
    response = _register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["requiresVerification"] is True
    assert body["email"] == "alice@example.com"
    assert "token" not in body
    assert mailer.last_code("alice@example.com").isdigit()


def test_register_rejects_duplicate_email_case_insensitively(client):
    assert _register(client).status_code == 201
    response = _register(client, email="ALICE@Example.com", password="different-pass")
    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this email"


def test_register_validates_payload(client):
    response = client.post("/api/auth/register", json={"name": "A", "email": "nope", "password": "123"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    fields = {error["field"] for error in body["errors"]}
    assert {"name", "email", "password"} <= fields


def test_register_rolls_back_when_mail_fails(client, mailer, container):
    mailer.fail = True
    response = _register(client)
    assert response.status_code == 500
    assert response.json()["message"] == "Failed to send verification email. Please try again."
    assert container.persistence.get_user_by_email("alice@example.com") is None


def test_login_requires_verified_email(client, mailer):
    _register(client)
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert response.status_code == 401
    body = response.json()
    assert body["requiresVerification"] is True
    assert body["email"] == "alice@example.com"


def test_verify_email_rejects_wrong_code(client, mailer):
    _register(client)
    code = mailer.last_code("alice@example.com")
    wrong = "100000" if code != "100000" else "100001"
    response = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "otp": wrong})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"


def test_verify_email_rejects_expired_code(client, mailer, container):
    _register(client)
    user = container.persistence.get_user_by_email("alice@example.com")
    container.persistence.update_user(
        user.id,
        {"email_verification_otp_expires": datetime.now(timezone.utc) - timedelta(seconds=1)},
    )
    response = client.post(
        "/api/auth/verify-email",
        json={"email": "alice@example.com", "otp": mailer.last_code("alice@example.com")},
    )
    assert response.status_code == 400


def test_verify_email_consumes_code(client, mailer, container):
    _register(client)
    code = mailer.last_code("alice@example.com")
    response = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "otp": code})
    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["user"]["isEmailVerified"] is True

    stored = container.persistence.get_user_by_email("alice@example.com", include_secrets=True)
    assert stored.email_verification_otp is None
    assert stored.email_verification_otp_expires is None

    again = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "otp": code})
    assert again.status_code == 400
    assert again.json()["message"] == "Email is already verified"


def test_verify_email_unknown_user(client):
    response = client.post("/api/auth/verify-email", json={"email": "ghost@example.com", "otp": "123456"})
    assert response.status_code == 404


def test_resend_verification_replaces_code(client, mailer):
    _register(client)
    first = mailer.last_code("alice@example.com")
    response = client.post("/api/auth/resend-verification-otp", json={"email": "alice@example.com"})
    assert response.status_code == 200
    assert len([sent for sent in mailer.sent if sent[1] == "alice@example.com"]) == 2

    latest = mailer.last_code("alice@example.com")
    response = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "otp": latest})
    assert response.status_code == 200
    assert first.isdigit()


def test_login_marks_user_online(client, make_user, container):
    user = make_user()
    response = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["user"]["isOnline"] is True
    stored = container.persistence.get_user_by_id(user["id"])
    assert stored.is_online is True
    assert stored.last_login is not None


def test_login_rejects_bad_password_and_unknown_user(client, make_user):
    user = make_user()
    wrong = client.post("/api/auth/login", json={"email": user["email"], "password": "not-it"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid email or password"

    unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"})
    assert unknown.status_code == 401
    assert unknown.json()["message"] == "Invalid email or password"


def test_login_rejects_deactivated_account(client, make_user, container):
    user = make_user()
    container.persistence.update_user(user["id"], {"is_active": False})
    response = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"


def test_logout_marks_user_offline(client, make_user, container):
    user = make_user()
    login = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert container.persistence.get_user_by_id(user["id"]).is_online is False


def test_protected_routes_require_token(client):
    assert client.get("/api/auth/me").status_code == 401
    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid or expired token"


def test_me_returns_profile(client, make_user):
    user = make_user()
    response = client.get("/api/auth/me", headers=user["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["email"] == user["email"]


def test_password_reset_flow(client, make_user, mailer, container):
    user = make_user()
    response = client.post("/api/auth/forgot-password", json={"email": user["email"]})
    assert response.status_code == 200
    code = mailer.last_code(user["email"], kind="reset")

    verified = client.post("/api/auth/verify-reset-otp", json={"email": user["email"], "otp": code})
    assert verified.status_code == 200
    assert verified.json()["resetToken"] == code

    reset = client.post(
        "/api/auth/reset-password",
        json={"email": user["email"], "otp": code, "newPassword": "brand-new-pass"},
    )
    assert reset.status_code == 200

    stored = container.persistence.get_user_by_email(user["email"], include_secrets=True)
    assert stored.password_reset_otp is None

    old = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": user["email"], "password": "brand-new-pass"})
    assert new.status_code == 200

    reuse = client.post(
        "/api/auth/reset-password",
        json={"email": user["email"], "otp": code, "newPassword": "another-pass"},
    )
    assert reuse.status_code == 400


def test_forgot_password_edge_cases(client):
    missing = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert missing.status_code == 404
    assert missing.json()["message"] == "User not found with this email"

    _register(client)
    unverified = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    assert unverified.status_code == 400
    assert unverified.json()["message"] == "Please verify your email first"


def test_reset_password_validates_new_password(client, make_user, mailer):
    user = make_user()
    client.post("/api/auth/forgot-password", json={"email": user["email"]})
    code = mailer.last_code(user["email"], kind="reset")
    response = client.post(
        "/api/auth/reset-password",
        json={"email": user["email"], "otp": code, "newPassword": "123"},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "newPassword"
