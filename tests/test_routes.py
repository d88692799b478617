from datetime import timedelta

from zinderr.models.mutual_rating import MutualRating
from zinderr.services import lifecycle
from zinderr.utils.dates import utcnow


def _place(client, auth_headers, errand, runner, amount=45):
    res = client.post(
        f"/api/v1/errands/{errand.id}/bids",
        json={"amount": amount, "message": "On my way"},
        headers=auth_headers(runner),
    )
    assert res.status_code == 201
    return res.get_json()["bid"]


# ------------------------------------------------------------
# Auth
# ------------------------------------------------------------

def test_register_login_and_me(client):
    res = client.post("/api/v1/auth/register", json={
        "full_name": "Yaw Mensah",
        "email": "yaw@example.com",
        "password": "s3cret-pass",
        "role": "runner",
    })
    assert res.status_code == 201
    assert res.get_json()["user"]["role"] == "runner"

    res = client.post("/api/v1/auth/login", json={"email": "yaw@example.com", "password": "s3cret-pass"})
    assert res.status_code == 200
    token = res.get_json()["access_token"]

    res = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.get_json()["user"]["email"] == "yaw@example.com"


def test_register_rejects_admin_role(client):
    res = client.post("/api/v1/auth/register", json={
        "full_name": "Sneaky",
        "email": "sneaky@example.com",
        "password": "pw",
        "role": "admin",
    })
    assert res.status_code == 403


def test_duplicate_registration(client, poster):
    res = client.post("/api/v1/auth/register", json={
        "full_name": "Again",
        "email": poster.email,
        "password": "pw",
    })
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "USER_EXISTS"


def test_wrong_password_is_401(client, poster):
    res = client.post("/api/v1/auth/login", json={"email": poster.email, "password": "nope"})
    assert res.status_code == 401
    assert res.get_json()["error"]["code"] == "AUTH_FAILED"


# ------------------------------------------------------------
# Errands and bids
# ------------------------------------------------------------

def test_post_and_browse_errands(client, auth_headers, poster, runner):
    res = client.post("/api/v1/errands", json={
        "title": "Buy printer ink",
        "amount": "35.5",
        "category": "Shopping",
        "location": "East Legon",
    }, headers=auth_headers(poster))
    assert res.status_code == 201
    created = res.get_json()["errand"]
    assert created["status"] == "open"
    assert created["amount"] == 35.5

    res = client.get("/api/v1/errands?category=Shopping", headers=auth_headers(runner))
    body = res.get_json()
    assert [e["id"] for e in body["errands"]] == [created["id"]]
    assert body["errands"][0]["bids_count"] == 0
    assert body["pagination"]["total"] == 1


def test_post_errand_validation_envelope(client, auth_headers, poster):
    res = client.post("/api/v1/errands", json={"title": "Free", "amount": 0}, headers=auth_headers(poster))
    assert res.status_code == 422
    error = res.get_json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["field"] == "amount"


def test_bid_without_amount_is_422(client, auth_headers, errand, runner):
    res = client.post(f"/api/v1/errands/{errand.id}/bids", json={}, headers=auth_headers(runner))
    assert res.status_code == 422


def test_unknown_errand_is_404(client, auth_headers, runner):
    res = client.get("/api/v1/errands/ERR-missing", headers=auth_headers(runner))
    assert res.status_code == 404
    assert res.get_json()["error"]["code"] == "NOT_FOUND"


def test_accept_flow_and_conflict_envelope(client, auth_headers, errand, poster, runner, other_runner):
    mine = _place(client, auth_headers, errand, runner)
    theirs = _place(client, auth_headers, errand, other_runner, amount=40)

    res = client.post(f"/api/v1/bids/{mine['id']}/accept", headers=auth_headers(poster))
    assert res.status_code == 200
    body = res.get_json()
    assert body["errand"]["status"] == "in_progress"
    assert body["errand"]["assigned_runner_id"] == runner.id
    statuses = {b["id"]: b["status"] for b in body["changed_bids"]}
    assert statuses == {mine["id"]: "accepted", theirs["id"]: "rejected"}

    res = client.post(f"/api/v1/bids/{theirs['id']}/accept", headers=auth_headers(poster))
    assert res.status_code == 409
    error = res.get_json()["error"]
    assert error["code"] == "INVALID_STATE"
    assert error["details"]["transition"] == "accept bid"


def test_runner_cannot_accept_bids(client, auth_headers, errand, runner, other_runner):
    bid = _place(client, auth_headers, errand, runner)
    res = client.post(f"/api/v1/bids/{bid['id']}/accept", headers=auth_headers(other_runner))
    assert res.status_code == 403
    assert res.get_json()["error"]["code"] == "FORBIDDEN"


def test_runner_cannot_list_bids_on_errand(client, auth_headers, errand, poster, runner):
    _place(client, auth_headers, errand, runner)

    assert client.get(f"/api/v1/errands/{errand.id}/bids", headers=auth_headers(runner)).status_code == 403

    res = client.get(f"/api/v1/errands/{errand.id}/bids", headers=auth_headers(poster))
    assert res.status_code == 200
    assert res.get_json()["bids"][0]["runner"]["id"] == runner.id


def test_retract_accepted_bid_reopens_errand(client, auth_headers, errand, poster, runner):
    bid = _place(client, auth_headers, errand, runner)
    client.post(f"/api/v1/bids/{bid['id']}/accept", headers=auth_headers(poster))

    res = client.post(
        f"/api/v1/bids/{bid['id']}/retract",
        json={"reason": "Car broke down"},
        headers=auth_headers(runner),
    )
    assert res.status_code == 200
    body = res.get_json()
    assert body["bid"]["status"] == "retracted"
    assert body["errand"]["status"] == "open"
    assert body["errand"]["assigned_runner_id"] is None

    res = client.get("/api/v1/bids?status=retracted", headers=auth_headers(runner))
    assert res.get_json()["bids"][0]["errand_title"] == errand.title


def test_complete_and_rate_over_http(client, auth_headers, errand, poster, runner):
    bid = _place(client, auth_headers, errand, runner)
    client.post(f"/api/v1/bids/{bid['id']}/accept", headers=auth_headers(poster))

    res = client.post(f"/api/v1/errands/{errand.id}/complete", headers=auth_headers(runner))
    assert res.status_code == 200
    assert res.get_json()["errand"]["status"] == "completed"

    res = client.get("/api/v1/wallet", headers=auth_headers(runner))
    assert res.get_json()["wallet"]["total_earned"] == 50.0
    assert res.get_json()["wallet"]["completed_errands"] == 1
    assert client.get("/api/v1/wallet", headers=auth_headers(poster)).status_code == 403

    res = client.get("/api/v1/wallet/transactions", headers=auth_headers(poster))
    assert len(res.get_json()["transactions"]) == 1

    res = client.post(f"/api/v1/errands/{errand.id}/ratings", json={"rating": 5}, headers=auth_headers(poster))
    assert res.status_code == 201
    assert res.get_json()["rating"]["rated_id"] == runner.id

    # not revealed until the runner rates back
    res = client.get("/api/v1/ratings/received", headers=auth_headers(runner))
    assert res.get_json()["ratings"] == []

    res = client.post(f"/api/v1/errands/{errand.id}/ratings", json={"rating": 4}, headers=auth_headers(runner))
    assert res.status_code == 201

    res = client.get("/api/v1/ratings/received", headers=auth_headers(runner))
    body = res.get_json()
    assert len(body["ratings"]) == 1
    assert body["average_rating"] == 5.0

    res = client.post(f"/api/v1/errands/{errand.id}/ratings", json={"rating": 3}, headers=auth_headers(poster))
    assert res.status_code == 409


def test_outsider_cannot_rate(client, auth_headers, errand, other_runner):
    res = client.post(f"/api/v1/errands/{errand.id}/ratings", json={"rating": 1}, headers=auth_headers(other_runner))
    assert res.status_code == 403


# ------------------------------------------------------------
# Chat and location
# ------------------------------------------------------------

def test_chat_between_poster_and_bidder(client, auth_headers, errand, poster, runner, other_runner):
    _place(client, auth_headers, errand, runner)

    res = client.post(
        f"/api/v1/errands/{errand.id}/messages",
        json={"content": "Can you also get bread?"},
        headers=auth_headers(runner),
    )
    assert res.status_code == 201
    assert res.get_json()["message"]["recipient_id"] == poster.id

    res = client.get("/api/v1/chats/unread", headers=auth_headers(poster))
    assert res.get_json()["total"] == 1

    res = client.get(f"/api/v1/errands/{errand.id}/messages?with={runner.id}", headers=auth_headers(poster))
    assert [m["content"] for m in res.get_json()["messages"]] == ["Can you also get bread?"]

    res = client.get("/api/v1/chats/unread", headers=auth_headers(poster))
    assert res.get_json()["total"] == 0

    # no bid, no conversation
    res = client.post(
        f"/api/v1/errands/{errand.id}/messages",
        json={"content": "hello"},
        headers=auth_headers(other_runner),
    )
    assert res.status_code == 403


def test_location_only_while_in_progress(client, auth_headers, errand, poster, runner):
    bid = _place(client, auth_headers, errand, runner)
    url = f"/api/v1/errands/{errand.id}/locations"

    res = client.post(url, json={"latitude": 5.6, "longitude": -0.18}, headers=auth_headers(runner))
    assert res.status_code == 403

    client.post(f"/api/v1/bids/{bid['id']}/accept", headers=auth_headers(poster))

    res = client.post(url, json={"latitude": 5.6, "longitude": -0.18}, headers=auth_headers(runner))
    assert res.status_code == 201

    res = client.post(url, json={"latitude": 95, "longitude": 0}, headers=auth_headers(runner))
    assert res.status_code == 422

    res = client.get(url, headers=auth_headers(poster))
    assert len(res.get_json()["locations"]) == 1

    client.post(f"/api/v1/errands/{errand.id}/complete", headers=auth_headers(poster))
    res = client.post(url, json={"latitude": 5.6, "longitude": -0.18}, headers=auth_headers(runner))
    assert res.status_code == 409


# ------------------------------------------------------------
# Notifications
# ------------------------------------------------------------

def test_notifications_for_new_bid(client, auth_headers, errand, poster, runner):
    _place(client, auth_headers, errand, runner)

    res = client.get("/api/v1/notifications?is_read=false", headers=auth_headers(poster))
    notes = res.get_json()["notifications"]
    assert [n["type"] for n in notes] == ["new_bid"]

    res = client.post(f"/api/v1/notifications/{notes[0]['id']}/read", headers=auth_headers(runner))
    assert res.status_code == 403

    res = client.post(f"/api/v1/notifications/{notes[0]['id']}/read", headers=auth_headers(poster))
    assert res.get_json()["notification"]["is_read"] is True


# ------------------------------------------------------------
# Admin
# ------------------------------------------------------------

def test_disabled_errand_leaves_marketplace(client, auth_headers, errand, admin, runner):
    res = client.post(f"/api/v1/admin/errands/{errand.id}/disable", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.get_json()["errand"]["is_disabled"] is True

    res = client.get("/api/v1/errands", headers=auth_headers(runner))
    assert res.get_json()["errands"] == []

    res = client.post(f"/api/v1/errands/{errand.id}/bids", json={"amount": 40}, headers=auth_headers(runner))
    assert res.status_code == 409


def test_suspended_user_is_locked_out(client, auth_headers, errand, admin, runner):
    res = client.post(f"/api/v1/admin/users/{runner.id}/suspend", headers=auth_headers(admin))
    assert res.get_json()["user"]["is_suspended"] is True

    res = client.post(f"/api/v1/errands/{errand.id}/bids", json={"amount": 40}, headers=auth_headers(runner))
    assert res.status_code == 403

    res = client.post("/api/v1/auth/login", json={"email": runner.email, "password": "secret123"})
    assert res.status_code == 403


def test_admin_routes_need_admin(client, auth_headers, poster):
    assert client.get("/api/v1/admin/users", headers=auth_headers(poster)).status_code == 403


# ------------------------------------------------------------
# CLI
# ------------------------------------------------------------

def test_ratings_release_command(app, db, errand, poster, runner):
    bid = lifecycle.place_bid(errand, runner, 45)
    lifecycle.accept_bid(errand, bid, poster)
    lifecycle.mark_completed(errand, poster)
    lifecycle.submit_rating(errand, poster, runner, 3, now=utcnow() - timedelta(hours=30))

    result = app.test_cli_runner().invoke(args=["ratings", "release"])

    assert result.exit_code == 0
    assert "Released 1 rating(s)." in result.output
    db.session.expire_all()
    assert MutualRating.query.filter_by(is_hidden=True).count() == 0


def test_location_accuracy_must_be_a_number(client, auth_headers, errand, poster, runner):
    bid = _place(client, auth_headers, errand, runner)
    client.post(f"/api/v1/bids/{bid['id']}/accept", headers=auth_headers(poster))

    res = client.post(
        f"/api/v1/errands/{errand.id}/locations",
        json={"latitude": 5.6, "longitude": -0.18, "accuracy": "high"},
        headers=auth_headers(runner),
    )
    assert res.status_code == 422
    assert res.get_json()["error"]["details"]["field"] == "accuracy"

    res = client.post(
        f"/api/v1/errands/{errand.id}/locations",
        json={"latitude": 5.6, "longitude": -0.18, "accuracy": "12.5"},
        headers=auth_headers(runner),
    )
    assert res.status_code == 201
    assert res.get_json()["location"]["accuracy"] == 12.5


def test_admin_flags_parse_strings(client, auth_headers, errand, admin):
    url = f"/api/v1/admin/errands/{errand.id}/disable"

    res = client.post(url, json={"disable": "false"}, headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.get_json()["errand"]["is_disabled"] is False

    res = client.post(url, json={"disable": "true"}, headers=auth_headers(admin))
    assert res.get_json()["errand"]["is_disabled"] is True

    res = client.post(url, json={"disable": "maybe"}, headers=auth_headers(admin))
    assert res.status_code == 422


def test_storage_failure_is_503(client, auth_headers, errand, admin, db, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db.session, "commit", broken_commit)

    res = client.post(f"/api/v1/admin/errands/{errand.id}/flag", headers=auth_headers(admin))
    assert res.status_code == 503
    error = res.get_json()["error"]
    assert error["code"] == "STORAGE_FAILURE"
    assert error["details"]["retryable"] is True

    monkeypatch.undo()
    assert not errand.is_flagged


# ------------------------------------------------------------
# Profile and verification
# ------------------------------------------------------------

def test_edit_profile(client, auth_headers, runner):
    res = client.patch("/api/v1/profile", json={
        "full_name": "Kofi Mensah",
        "username": "kofi_runs",
        "display_username": True,
        "phone": "0241234567",
        "location": "Madina",
        "latitude": 5.68,
        "longitude": -0.17,
    }, headers=auth_headers(runner))
    assert res.status_code == 200
    user = res.get_json()["user"]
    assert user["username"] == "kofi_runs"
    assert user["full_name"] == "kofi_runs"
    assert user["phone"] == "0241234567"
    assert user["latitude"] == 5.68

    res = client.get("/api/v1/profile", headers=auth_headers(runner))
    assert res.get_json()["metrics"]["total_errands"] == 0


def test_profile_rejects_taken_username_and_bad_phone(client, auth_headers, runner, other_runner):
    client.patch("/api/v1/profile", json={"username": "speedy"}, headers=auth_headers(runner))

    res = client.patch("/api/v1/profile", json={"username": "Speedy"}, headers=auth_headers(other_runner))
    assert res.status_code == 422
    assert res.get_json()["error"]["details"]["field"] == "username"

    res = client.patch("/api/v1/profile", json={"phone": "12345"}, headers=auth_headers(other_runner))
    assert res.status_code == 422

    res = client.patch("/api/v1/profile", json={"full_name": "  "}, headers=auth_headers(other_runner))
    assert res.status_code == 422


def test_runner_verification_review(client, auth_headers, runner, admin):
    res = client.post(f"/api/v1/admin/users/{runner.id}/verification",
                      json={"status": "verified"}, headers=auth_headers(admin))
    assert res.status_code == 422

    res = client.post("/api/v1/profile/verification", json={
        "ghana_card_front_url": "https://files.example.com/front.jpg",
        "phone": "0241234567",
    }, headers=auth_headers(runner))
    assert res.status_code == 422
    assert res.get_json()["error"]["details"]["field"] == "ghana_card_back_url"

    res = client.post("/api/v1/profile/verification", json={
        "ghana_card_front_url": "https://files.example.com/front.jpg",
        "ghana_card_back_url": "https://files.example.com/back.jpg",
        "selfie_url": "https://files.example.com/selfie.jpg",
        "phone": "+233241234567",
    }, headers=auth_headers(runner))
    assert res.status_code == 202
    assert res.get_json()["user"]["verification_status"] == "pending"

    res = client.get("/api/v1/admin/users?verification_status=pending&role=runner", headers=auth_headers(admin))
    assert [u["id"] for u in res.get_json()["users"]] == [runner.id]

    res = client.post(f"/api/v1/admin/users/{runner.id}/verification",
                      json={"status": "verified"}, headers=auth_headers(runner))
    assert res.status_code == 403

    res = client.post(f"/api/v1/admin/users/{runner.id}/verification",
                      json={"status": "verified"}, headers=auth_headers(admin))
    assert res.status_code == 200
    body = res.get_json()["user"]
    assert body["verification_status"] == "verified"
    assert body["verified_at"] is not None

    res = client.get("/api/v1/notifications", headers=auth_headers(runner))
    assert res.get_json()["notifications"][0]["type"] == "verification_verified"


def test_posters_skip_verification(client, auth_headers, poster):
    res = client.post("/api/v1/profile/verification", json={}, headers=auth_headers(poster))
    assert res.status_code == 403
