"""
API tests for signup, login, logout and password recovery.
"""
import pytest

from api.dependencies import get_mail_channel
from main import app


pytestmark = [pytest.mark.api, pytest.mark.auth]


class TestSignupAndLogin:

    def test_root_redirects_to_login(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_forms_render(self, client):
        for path, page in (("/signup", "signup"), ("/login", "login"), ("/forgot", "forgot")):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json()["page"] == page
            assert response.headers["cache-control"].startswith("no-store")

    def test_signup_starts_session(self, client, signup_user, email):
        response = signup_user(email)

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"
        assert client.cookies.get("internboard_session")

        dashboard = client.get("/dashboard")
        assert dashboard.status_code == 200
        assert dashboard.json()["user_name"] == email.lower()

    def test_signup_duplicate(self, client, signup_user, email):
        signup_user(email)
        client.cookies.clear()

        response = signup_user(email, "otherpass")

        assert response.status_code == 409
        body = response.json()
        assert body["page"] == "signup"
        assert body["error"] == "Email already exists"
        assert "internboard_session" not in client.cookies

    @pytest.mark.parametrize("username,password,error", [
        ("not-an-email", "secret1", "Invalid email format"),
        ("user@test.com", "12345", "Password must be at least 6 characters long"),
    ])
    def test_signup_validation(self, client, signup_user, username, password, error):
        response = signup_user(username, password)

        assert response.status_code == 400
        assert response.json()["error"] == error

    def test_login(self, client, signup_user, email, password):
        signup_user(email, password)
        client.cookies.clear()

        response = client.post("/login", data={"username": email, "password": password}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"
        assert client.get("/dashboard").json()["page"] == "dashboard"

    def test_login_wrong_password(self, client, signup_user, email):
        signup_user(email)
        client.cookies.clear()

        response = client.post("/login", data={"username": email, "password": "wrongpass"}, follow_redirects=False)

        assert response.status_code == 401
        assert response.json()["error"] == "Wrong password"
        assert "internboard_session" not in client.cookies

    def test_login_unknown_email(self, client):
        response = client.post("/login", data={"username": "ghost@test.com", "password": "secret1"})

        assert response.status_code == 404
        assert response.json()["error"] == "Invalid Email"


class TestSessionGating:

    @pytest.mark.parametrize("path", ["/dashboard", "/post-internship", "/internship/1"])
    def test_gated_routes_redirect_to_login(self, client, path):
        response = client.get(path, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_tampered_cookie_redirects(self, client):
        client.cookies.set("internboard_session", "tampered")

        response = client.get("/dashboard", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_logout_ends_session(self, client, signup_user, email):
        signup_user(email)
        cookie_value = client.cookies.get("internboard_session")

        response = client.post("/logout", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

        # replaying the old cookie does not revive the session
        client.cookies.set("internboard_session", cookie_value)
        assert client.get("/dashboard", follow_redirects=False).status_code == 303

    def test_logout_without_session(self, client):
        response = client.post("/logout", follow_redirects=False)
        assert response.status_code == 303


class TestPasswordRecovery:

    def test_full_flow(self, client, signup_user, mailer, email, password):
        signup_user(email, password)
        client.cookies.clear()

        forgot = client.post("/forgot", data={"username": email})
        assert forgot.status_code == 200
        assert forgot.json() == {"page": "verify", "username": email.lower(), "error": None}
        code = mailer.last_code

        verify = client.post("/verify", data={"username": email, "otp": code})
        assert verify.json()["page"] == "reset"

        reset = client.post("/reset", data={"username": email, "password": "newpass12", "confirmPassword": "newpass12"})
        assert reset.status_code == 200
        assert reset.json()["message"] == "Password successfully changed!"

        old_login = client.post("/login", data={"username": email, "password": password}, follow_redirects=False)
        assert old_login.status_code == 401
        new_login = client.post("/login", data={"username": email, "password": "newpass12"}, follow_redirects=False)
        assert new_login.status_code == 303

    def test_forgot_unknown_email(self, client, mailer):
        response = client.post("/forgot", data={"username": "ghost@test.com"})

        assert response.status_code == 404
        assert response.json()["page"] == "forgot"
        assert mailer.sent == []

    def test_forgot_dispatch_failure(self, client, signup_user, mailer, failing_mailer, email):
        signup_user(email)
        app.dependency_overrides[get_mail_channel] = lambda: failing_mailer

        response = client.post("/forgot", data={"username": email})

        assert response.status_code == 503
        assert response.json()["error"] == "Failed to send OTP. Try again."
        assert len(failing_mailer.sent) == 1

        # a retry through a working channel succeeds
        app.dependency_overrides[get_mail_channel] = lambda: mailer
        retry = client.post("/forgot", data={"username": email})
        assert retry.status_code == 200
        assert retry.json()["page"] == "verify"
        assert mailer.last_code is not None

    def test_verify_wrong_code(self, client, signup_user, mailer, email):
        signup_user(email)
        client.post("/forgot", data={"username": email})
        wrong = "100000" if mailer.last_code != "100000" else "100001"

        response = client.post("/verify", data={"username": email, "otp": wrong})

        assert response.status_code == 400
        assert response.json() == {"page": "verify", "username": email, "error": "Invalid or expired OTP"}

    def test_reset_without_verification(self, client, signup_user, email):
        signup_user(email)

        response = client.post("/reset", data={"username": email, "password": "newpass12", "confirmPassword": "newpass12"})

        assert response.status_code == 401
        assert response.json()["error"] == "Session expired or unauthorized."

    def test_reset_mismatch(self, client, signup_user, mailer, email):
        signup_user(email)
        client.post("/forgot", data={"username": email})
        client.post("/verify", data={"username": email, "otp": mailer.last_code})

        response = client.post("/reset", data={"username": email, "password": "newpass12", "confirmPassword": "newpass13"})

        assert response.status_code == 400
        assert response.json()["error"] == "Passwords do not match."
