"""
Integration tests for the auth endpoints.

Covers sign-up, login, refresh rotation, logout, password reset and
email / phone verification, through the HTTP surface.
"""

import pytest

from core.security import TokenKind
from conftest import (
    API,
    DEFAULT_PASSWORD,
    REFRESH_COOKIE,
    bearer,
    live_refresh_tokens,
    log_in,
    post_with_refresh_cookie,
    set_flags,
    sign_up,
    unique_email,
)


# ---------------------------------------------------------------------------
# Sign-up
# ---------------------------------------------------------------------------


class TestSignUp:

    def test_creates_user_and_session(self, client, app, db):
        email = unique_email()
        resp = sign_up(client, email=email, name="Alice", isFreelancer=True)

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"

        user = body["data"]["user"]
        assert user["email"] == email
        assert user["name"] == "Alice"
        assert user["isFreelancer"] is True
        assert user["isClient"] is False
        assert user["isEmailVerified"] is False
        assert "password" not in user

        # The access token names the created user
        claims = app.state.token_codec.verify(TokenKind.ACCESS, body["data"]["accessToken"])
        assert claims.user_id == user["id"]

        # The paired refresh token is in the ledger
        refresh = resp.cookies.get(REFRESH_COOKIE)
        assert refresh
        assert [row.token for row in live_refresh_tokens(db, user["id"])] == [refresh]

    def test_refresh_cookie_attributes(self, client):
        resp = sign_up(client)
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith(f"{REFRESH_COOKIE}=")
        assert "HttpOnly" in cookie
        assert "Path=/api/v1/auth" in cookie
        assert "Max-Age=604800" in cookie
        assert "samesite=lax" in cookie.lower()
        # Not production
        assert "Secure" not in cookie

    def test_secure_cookie_in_production(self, make_app):
        from fastapi.testclient import TestClient

        with TestClient(make_app(environment="production")) as prod_client:
            resp = sign_up(prod_client)
        assert "Secure" in resp.headers["set-cookie"]

    def test_refresh_token_never_in_body(self, client):
        resp = sign_up(client)
        assert resp.cookies.get(REFRESH_COOKIE) not in resp.text
        assert "refreshToken" not in resp.json()["data"]

    def test_sends_verification_email(self, client, mailer):
        email = unique_email()
        sign_up(client, email=email)
        assert len(mailer.tokens("email_verification", email)) == 1

    def test_duplicate_email(self, client):
        email = unique_email()
        sign_up(client, email=email)
        resp = sign_up(client, email=email)
        assert resp.status_code == 409
        assert resp.json() == {"success": False, "message": "User with this email already exists"}

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"password": "short"}, "password"),
            ({"email": "not-an-email"}, "email"),
            ({"name": "A"}, "name"),
            ({"password": "x" * 73}, "password"),
        ],
    )
    def test_validation(self, client, overrides, field):
        body = {"name": "Alice", "email": unique_email(), "password": DEFAULT_PASSWORD}
        body.update(overrides)
        resp = client.post(f"{API}/auth/sign-up", json=body)

        assert resp.status_code == 400
        data = resp.json()
        assert data["success"] is False
        assert data["message"] == "Validation error"
        assert field in [e["field"] for e in data["errors"]]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogIn:

    def test_success(self, client, db, registered):
        user_id, email, _, _ = registered
        resp = log_in(client, email)

        assert resp.status_code == 200
        assert resp.json()["message"] == "Login successful"
        assert resp.json()["data"]["user"]["id"] == user_id
        assert resp.cookies.get(REFRESH_COOKIE)
        # One session from sign-up, one from login
        assert len(live_refresh_tokens(db, user_id)) == 2

    def test_wrong_password_and_unknown_email_look_the_same(self, client, registered):
        _, email, _, _ = registered
        wrong_password = log_in(client, email, "wrongpass")
        unknown_email = log_in(client, "nobody@x.com", DEFAULT_PASSWORD)

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json() == {
            "success": False,
            "message": "Invalid email or password",
        }

    @pytest.mark.parametrize("flag", ["is_deleted", "is_suspended", "is_blocked"])
    @pytest.mark.parametrize("password", [DEFAULT_PASSWORD, "wrongpass"])
    def test_inactive_account(self, client, db, registered, flag, password):
        user_id, email, _, _ = registered
        set_flags(db, user_id, **{flag: True})

        resp = log_in(client, email, password)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Account is inactive or suspended"

    def test_each_login_issues_new_tokens(self, client, registered):
        _, email, signup_access, signup_refresh = registered
        resp = log_in(client, email)
        assert resp.json()["data"]["accessToken"] != signup_access
        assert resp.cookies.get(REFRESH_COOKIE) != signup_refresh


# ---------------------------------------------------------------------------
# Refresh rotation
# ---------------------------------------------------------------------------


class TestRefresh:

    def test_rotation_is_single_use(self, client, app, registered):
        user_id, _, _, original = registered

        first = post_with_refresh_cookie(client, "/auth/refresh-token", original)
        assert first.status_code == 200
        assert first.json()["message"] == "Token refreshed successfully"
        rotated = first.cookies.get(REFRESH_COOKIE)
        assert rotated and rotated != original
        claims = app.state.token_codec.verify(TokenKind.ACCESS, first.json()["data"]["accessToken"])
        assert claims.user_id == user_id

        replay = post_with_refresh_cookie(client, "/auth/refresh-token", original)
        assert replay.status_code == 400
        assert replay.json()["message"] == "Invalid or expired refresh token"

        second = post_with_refresh_cookie(client, "/auth/refresh-token", rotated)
        assert second.status_code == 200

    def test_rotation_replaces_ledger_row(self, client, db, registered):
        user_id, _, _, original = registered
        resp = post_with_refresh_cookie(client, "/auth/refresh-token", original)
        assert [row.token for row in live_refresh_tokens(db, user_id)] == [resp.cookies.get(REFRESH_COOKIE)]

    def test_missing_cookie(self, client):
        resp = post_with_refresh_cookie(client, "/auth/refresh-token", None)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Refresh token is required"

    @pytest.mark.parametrize("token_source", ["access", "garbage"])
    def test_wrong_token_gets_generic_message(self, client, registered, token_source):
        _, _, access, _ = registered
        token = access if token_source == "access" else "abc.def.ghi"
        resp = post_with_refresh_cookie(client, "/auth/refresh-token", token)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid or expired refresh token"

    def test_inactive_user_cannot_refresh(self, client, db, registered):
        user_id, _, _, refresh = registered
        set_flags(db, user_id, is_suspended=True)
        resp = post_with_refresh_cookie(client, "/auth/refresh-token", refresh)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Account is inactive or suspended"


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------


class TestLogOut:

    def test_deletes_session_and_clears_cookie(self, client, db, registered):
        user_id, _, _, refresh = registered
        resp = post_with_refresh_cookie(client, "/auth/log-out", refresh)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Logout successful"}
        assert "Max-Age=0" in resp.headers["set-cookie"]
        assert live_refresh_tokens(db, user_id) == []

        after = post_with_refresh_cookie(client, "/auth/refresh-token", refresh)
        assert after.status_code == 400

    def test_idempotent(self, client, registered):
        _, _, _, refresh = registered
        assert post_with_refresh_cookie(client, "/auth/log-out", refresh).status_code == 200
        assert post_with_refresh_cookie(client, "/auth/log-out", refresh).status_code == 200
        assert post_with_refresh_cookie(client, "/auth/log-out", "never-issued").status_code == 200
        assert post_with_refresh_cookie(client, "/auth/log-out", None).status_code == 200

    def test_token_in_body(self, client, db, registered):
        user_id, _, _, refresh = registered
        client.cookies.clear()
        resp = client.post(f"{API}/auth/log-out", json={"refreshToken": refresh})
        assert resp.status_code == 200
        assert live_refresh_tokens(db, user_id) == []

    def test_log_out_all(self, client, db, registered):
        user_id, email, access, first = registered
        second = log_in(client, email).cookies.get(REFRESH_COOKIE)

        resp = client.post(f"{API}/auth/log-out-all", headers=bearer(access))
        assert resp.status_code == 200
        assert resp.json()["data"] == {"revokedSessions": 2}
        assert live_refresh_tokens(db, user_id) == []

        for token in (first, second):
            assert post_with_refresh_cookie(client, "/auth/refresh-token", token).status_code == 400

    def test_log_out_all_requires_auth(self, client):
        assert client.post(f"{API}/auth/log-out-all").status_code == 401


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


class TestPasswordReset:

    def test_forgot_password_does_not_reveal_accounts(self, client, mailer, registered):
        _, email, _, _ = registered
        known = client.post(f"{API}/auth/forgot-password", json={"email": email})
        unknown = client.post(f"{API}/auth/forgot-password", json={"email": "nonexistent@x.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {
            "success": True,
            "message": "If the email exists, a password reset link has been sent",
        }
        assert len(mailer.tokens("password_reset", email)) == 1
        assert mailer.tokens("password_reset", "nonexistent@x.com") == []
        assert mailer.tokens("password_reset", email)[0] not in known.text

    def test_reset_changes_password(self, client, mailer, registered):
        _, email, _, _ = registered
        client.post(f"{API}/auth/forgot-password", json={"email": email})
        token = mailer.tokens("password_reset", email)[0]

        resp = client.post(f"{API}/auth/reset-password", json={"token": token, "password": "newpass1"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Password reset successfully"

        assert log_in(client, email, DEFAULT_PASSWORD).status_code == 401
        assert log_in(client, email, "newpass1").status_code == 200

    @pytest.mark.parametrize("kind", ["access", "garbage"])
    def test_invalid_token(self, client, registered, kind):
        _, _, access, _ = registered
        token = access if kind == "access" else "garbage"
        resp = client.post(f"{API}/auth/reset-password", json={"token": token, "password": "newpass1"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid or expired reset token"

    def test_short_password(self, client):
        resp = client.post(f"{API}/auth/reset-password", json={"token": "t", "password": "abc"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "password"

    def test_sessions_survive_reset_by_default(self, client, mailer, registered):
        # Known limitation unless REVOKE_SESSIONS_ON_PASSWORD_RESET is enabled
        _, email, _, refresh = registered
        client.post(f"{API}/auth/forgot-password", json={"email": email})
        token = mailer.tokens("password_reset", email)[0]
        client.post(f"{API}/auth/reset-password", json={"token": token, "password": "newpass1"})

        assert post_with_refresh_cookie(client, "/auth/refresh-token", refresh).status_code == 200

    def test_reset_can_revoke_sessions(self, make_app, mailer):
        from fastapi.testclient import TestClient

        with TestClient(make_app(revoke_sessions_on_password_reset=True)) as c:
            email = unique_email()
            refresh = sign_up(c, email=email).cookies.get(REFRESH_COOKIE)
            c.post(f"{API}/auth/forgot-password", json={"email": email})
            token = mailer.tokens("password_reset", email)[0]
            assert c.post(f"{API}/auth/reset-password", json={"token": token, "password": "newpass1"}).status_code == 200

            assert post_with_refresh_cookie(c, "/auth/refresh-token", refresh).status_code == 400


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------


class TestEmailVerification:

    def test_verify(self, client, mailer, registered):
        _, email, access, _ = registered
        token = mailer.tokens("email_verification", email)[0]

        resp = client.post(f"{API}/auth/verify-email", json={"token": token})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Email verified successfully"
        me = client.get(f"{API}/auth/me", headers=bearer(access)).json()["data"]
        assert me["isEmailVerified"] is True

        again = client.post(f"{API}/auth/verify-email", json={"token": token})
        assert again.status_code == 409
        assert again.json()["message"] == "Email verification already exists"

    def test_invalid_token(self, client, registered):
        _, _, access, _ = registered
        resp = client.post(f"{API}/auth/verify-email", json={"token": access})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid or expired verification token"

    def test_resend(self, client, mailer, registered):
        _, email, access, _ = registered
        resp = client.post(f"{API}/auth/send-verification-email", headers=bearer(access))
        assert resp.status_code == 200
        assert len(mailer.tokens("email_verification", email)) == 2

        client.post(f"{API}/auth/verify-email", json={"token": mailer.tokens("email_verification", email)[-1]})
        resp = client.post(f"{API}/auth/send-verification-email", headers=bearer(access))
        assert resp.status_code == 409


# ---------------------------------------------------------------------------
# Phone verification
# ---------------------------------------------------------------------------


class TestPhoneVerification:

    PHONE = "5551234567"

    def test_verify(self, client, db, registered):
        user_id, _, access, _ = registered
        set_flags(db, user_id, phone=self.PHONE)

        resp = client.post(f"{API}/auth/verify-phone", json={"phone": self.PHONE, "code": "1234"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Phone number verified successfully"

        again = client.post(f"{API}/auth/verify-phone", json={"phone": self.PHONE, "code": "1234"})
        assert again.status_code == 409
        assert again.json()["message"] == "Phone verification already exists"

    def test_wrong_code(self, client, db, registered):
        user_id, _, _, _ = registered
        set_flags(db, user_id, phone=self.PHONE)
        resp = client.post(f"{API}/auth/verify-phone", json={"phone": self.PHONE, "code": "9999"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid verification code"

    def test_unknown_phone(self, client):
        resp = client.post(f"{API}/auth/verify-phone", json={"phone": "5550000000", "code": "1234"})
        assert resp.status_code == 404
        assert resp.json()["message"] == "User with this phone number not found"

    def test_validation(self, client):
        resp = client.post(f"{API}/auth/verify-phone", json={"phone": "123", "code": "12"})
        assert resp.status_code == 400
        assert {e["field"] for e in resp.json()["errors"]} == {"phone", "code"}


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------


class TestMe:

    def test_returns_identity(self, client, registered):
        user_id, email, access, _ = registered
        resp = client.get(f"{API}/auth/me", headers=bearer(access))
        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "id": user_id,
            "email": email,
            "name": "Alice",
            "isFreelancer": False,
            "isClient": False,
            "isEmailVerified": False,
            "isPhoneVerified": False,
        }

    def test_requires_token(self, client):
        resp = client.get(f"{API}/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Access token is required"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_rejects_password_reset_token(self, client, mailer, registered):
        _, email, _, _ = registered
        client.post(f"{API}/auth/forgot-password", json={"email": email})
        reset_token = mailer.tokens("password_reset", email)[0]

        resp = client.get(f"{API}/auth/me", headers=bearer(reset_token))
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid or expired access token"


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


class TestScenarios:

    def test_sign_up_log_in_refresh(self, client):
        signup = sign_up(client, name="Alice", email="alice@x.com", password="secret1")
        assert signup.status_code == 201
        signup_access = signup.json()["data"]["accessToken"]

        login = log_in(client, "alice@x.com", "secret1")
        assert login.status_code == 200
        assert login.json()["data"]["accessToken"] != signup_access
        cookie = login.cookies.get(REFRESH_COOKIE)
        assert cookie

        refreshed = post_with_refresh_cookie(client, "/auth/refresh-token", cookie)
        assert refreshed.status_code == 200
        assert refreshed.json()["data"]["accessToken"]

        assert post_with_refresh_cookie(client, "/auth/refresh-token", cookie).status_code == 400

    def test_forgot_password_bodies_match(self, client):
        sign_up(client, name="Alice", email="alice@x.com", password="secret1")
        missing = client.post(f"{API}/auth/forgot-password", json={"email": "nonexistent@x.com"})
        present = client.post(f"{API}/auth/forgot-password", json={"email": "alice@x.com"})
        assert missing.status_code == present.status_code == 200
        assert missing.json() == present.json()
