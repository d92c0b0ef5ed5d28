"""
End-to-end scenarios across the HTTP surface.
"""
from datetime import timedelta

import pytest

from core.exceptions import BadCredential, InvalidOrExpired, PasswordMismatch
from services.user_service import create_user, authenticate_user, get_user_by_email
from services.session_service import create_session, login, require_session
from services.password_reset_service import request_password_reset, verify_password_reset_otp, complete_password_reset
from utils.timing import utcnow


pytestmark = pytest.mark.integration


def post_listing(client, deadline, **overrides):
    data = {
        "company": "Acme",
        "batch": "2026",
        "description": "Backend internship",
        "link": "https://acme.example/jobs/1",
        "deadline": deadline.isoformat(timespec="minutes"),
    }
    data.update(overrides)
    return client.post("/post-internship", data=data, follow_redirects=False)


class TestInternshipBoard:

    def test_post_view_and_delete(self, client, signup_user):
        signup_user("owner@test.com")

        response = post_listing(client, utcnow() + timedelta(days=2))
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

        listings = client.get("/dashboard").json()["internships"]
        assert len(listings) == 1
        listing_id = listings[0]["id"]

        detail = client.get(f"/internship/{listing_id}")
        assert detail.status_code == 200
        assert detail.json()["internship"]["company"] == "Acme"
        assert detail.json()["can_delete"] is True

        deleted = client.delete(f"/internship/{listing_id}", follow_redirects=False)
        assert deleted.status_code == 303
        assert deleted.headers["location"] == "/dashboard"
        assert client.get(f"/internship/{listing_id}").status_code == 404

    def test_past_deadline_rejected(self, client, signup_user):
        signup_user("owner@test.com")

        response = post_listing(client, utcnow() - timedelta(hours=1))

        assert response.status_code == 400
        body = response.json()
        assert body["page"] == "post-internship"
        assert body["error"] == "Deadline must be in the future"
        assert body["company"] == "Acme"
        assert client.get("/dashboard").json()["internships"] == []

    def test_unparseable_deadline(self, client, signup_user):
        signup_user("owner@test.com")

        response = client.post("/post-internship", data={
            "company": "Acme", "batch": "2026", "description": "x",
            "link": "https://acme.example", "deadline": "next tuesday",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Please enter a valid deadline"

    def test_non_owner_cannot_delete(self, client, signup_user):
        signup_user("owner@test.com")
        post_listing(client, utcnow() + timedelta(days=2))
        listing_id = client.get("/dashboard").json()["internships"][0]["id"]

        signup_user("intruder@test.com")
        assert client.get(f"/internship/{listing_id}").json()["can_delete"] is False

        response = client.delete(f"/internship/{listing_id}", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard?error=not-authorized"
        assert client.get(f"/internship/{listing_id}").status_code == 200
        assert client.get("/dashboard?error=not-authorized").json()["error"] == "not-authorized"

    def test_unknown_listing(self, client, signup_user):
        signup_user("owner@test.com")

        assert client.get("/internship/999").status_code == 404
        assert client.delete("/internship/999", follow_redirects=False).status_code == 404


class TestRecoveryScenario:

    async def test_signup_to_password_change(self, mailer):
        # signup establishes a session
        user = await create_user("user@test.com", "secret1")
        cookie_value = await create_session(user.user_id, user.email)
        assert (await require_session(cookie_value)).email == "user@test.com"

        # wrong password: no session
        with pytest.raises(BadCredential):
            await login("user@test.com", "wrong-one")

        # request reset: OTP stored and dispatched
        await request_password_reset("user@test.com", mailer)
        assert len(mailer.sent) == 1
        code = mailer.last_code

        wrong = "100000" if code != "100000" else "100001"
        with pytest.raises(InvalidOrExpired):
            await verify_password_reset_otp("user@test.com", wrong)
        await verify_password_reset_otp("user@test.com", code, now=utcnow())
        assert (await get_user_by_email("user@test.com")).reset_authorized is True

        with pytest.raises(PasswordMismatch):
            await complete_password_reset("user@test.com", "newpass1", "newpass2")
        assert (await get_user_by_email("user@test.com")).reset_authorized is True

        await complete_password_reset("user@test.com", "eightchr", "eightchr")
        assert (await get_user_by_email("user@test.com")).reset_authorized is False
        await authenticate_user("user@test.com", "eightchr")
