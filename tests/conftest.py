import itertools

import pytest
from flask_jwt_extended import create_access_token

from zinderr.main import create_app
from zinderr.extensions import db as _db
from zinderr.models.user import User
from zinderr.services import lifecycle
from zinderr.services.auth_service import hash_password

_seq = itertools.count(1)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def make_user(app):
    def _make(role="runner", full_name=None, email=None, password="secret123"):
        n = next(_seq)
        user = User(
            email=email or f"{role}{n}@example.com",
            password_hash=hash_password(password),
            full_name=full_name or f"{role.title()} {n}",
            role=role,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture
def poster(make_user):
    return make_user("poster", full_name="Ama Poster")


@pytest.fixture
def runner(make_user):
    return make_user("runner", full_name="Kofi Runner")


@pytest.fixture
def other_runner(make_user):
    return make_user("runner", full_name="Esi Runner")


@pytest.fixture
def admin(make_user):
    return make_user("admin", full_name="Site Admin")


@pytest.fixture
def make_errand(app):
    def _make(poster, amount=50, **fields):
        data = {
            "title": "Pick up groceries",
            "description": "Two bags from the market",
            "location": "Osu, Accra",
            "amount": amount,
            "category": "Groceries",
        }
        data.update(fields)
        return lifecycle.post_errand(poster, data)
    return _make


@pytest.fixture
def errand(make_errand, poster):
    return make_errand(poster)


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=user.id)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def check_invariants(app):
    """Checks that must hold for any errand at any point in time."""
    from zinderr.models.bid import Bid

    def _check(errand):
        _db.session.refresh(errand)

        accepted = Bid.query.filter_by(errand_id=errand.id, status="accepted").count()
        assert accepted <= 1

        if errand.status in ("in_progress", "completed"):
            assert errand.assigned_runner_id is not None
        else:
            assert errand.assigned_runner_id is None

        live = {}
        for bid in Bid.query.filter(Bid.errand_id == errand.id, Bid.status != "retracted"):
            live[bid.runner_id] = live.get(bid.runner_id, 0) + 1
        assert all(count == 1 for count in live.values())

    return _check
