"""
Shared fixtures: an isolated in-memory database per test, a recording SMS
sender, and factories for users, orders and bearer headers.
"""
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.security import create_access_token, get_password_hash
from app.db.init import init_db
from app.db.session import Base, get_db
from app.main import app
from app.models.order import OrderStatus
from app.models.product import Product
from app.models.user import Role, User
from app.services.orders import place_order
from app.services.sms import SmsSender, get_sms_sender


class RecordingSmsSender(SmsSender):
    def __init__(self):
        self.sent = []

    def send_otp(self, phone, code):
        self.sent.append((phone, code))

    def last_code(self, phone):
        for sent_phone, code in reversed(self.sent):
            if sent_phone == phone:
                return code
        raise AssertionError(f"no code sent to {phone}")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sms():
    return RecordingSmsSender()


@pytest.fixture
def client(session_factory, sms):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_sender] = lambda: sms
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=Role.CONSUMER, password=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("name", f"User {n}")
        if role == Role.ADMIN:
            fields.setdefault("email", f"admin{n}@farmdirect.co.ke")
            fields["hashed_password"] = get_password_hash(password or "s3cret-pass")
        else:
            fields.setdefault("phone", f"25570000{n:04d}")
        if role == Role.FARMER:
            fields.setdefault("farm_name", f"Farm {n}")
            fields.setdefault("location", "Arusha")
        if role == Role.CONSUMER:
            fields.setdefault("address", "Dar es Salaam")
        user = User(role=role, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_header():
    def _auth_header(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _auth_header


@pytest.fixture
def make_order(db, make_user):
    def _make_order(consumer=None, status=OrderStatus.PENDING, items=((Decimal("2.50"), 3),)):
        consumer = consumer or make_user(Role.CONSUMER)
        farmer = make_user(Role.FARMER)
        lines = []
        for price, quantity in items:
            product = Product(name="Maize", price=price, unit="kg", farmer_id=farmer.id)
            db.add(product)
            db.commit()
            lines.append((product.id, quantity))
        order = place_order(db, consumer.id, lines)
        if status != OrderStatus.PENDING:
            order.status = status
            db.commit()
            db.refresh(order)
        return order

    return _make_order
