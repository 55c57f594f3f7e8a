"""Registration and the two login flows over HTTP."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.auth.security import decode_access_token
from app.db.session import get_db
from app.main import app
from app.models.otp import OtpChallenge
from app.models.user import Role, User
from app.services.sms import SmsSender, get_sms_sender

REGISTER = "/api/auth/register"
LOGIN = "/api/auth/login"
VERIFY = "/api/auth/verify-otp"


def wrong(code):
    return "000000" if code != "000000" else "111111"


class TestRegistration:

    def test_consumer_registration_returns_user_id_without_session(self, client, db):
        response = client.post(REGISTER, json={
            "role": "CONSUMER", "name": "Alice", "phone": "2550000001", "address": "X",
        })

        assert response.status_code == 201
        body = response.json()
        assert set(body) == {"userId"}
        user = db.query(User).filter(User.id == body["userId"]).one()
        assert user.role == Role.CONSUMER
        assert user.address == "X"
        assert user.hashed_password is None

    def test_farmer_registration_stores_farm_profile(self, client, db):
        response = client.post(REGISTER, json={
            "role": "FARMER", "name": "Juma", "phone": "2550000002",
            "farmName": "Green Acres", "location": "Moshi",
        })

        assert response.status_code == 201
        user = db.query(User).filter(User.id == response.json()["userId"]).one()
        assert user.role == Role.FARMER
        assert (user.farm_name, user.location) == ("Green Acres", "Moshi")

    def test_admin_password_is_stored_hashed(self, client, db):
        response = client.post(REGISTER, json={
            "role": "ADMIN", "email": "Root@X.com", "password": "hunter22",
        })

        assert response.status_code == 201
        user = db.query(User).filter(User.id == response.json()["userId"]).one()
        assert user.email == "root@x.com"
        assert user.hashed_password and user.hashed_password != "hunter22"

    @pytest.mark.parametrize("payload", [
        {"role": "ADMIN", "email": "a@x.com"},
        {"role": "FARMER", "name": "Juma", "phone": "2550000003", "location": "Moshi"},
        {"role": "CONSUMER", "name": "Bob", "phone": "2550000004"},
        {"role": "CONSUMER", "name": "", "phone": "2550000004", "address": "Y"},
        {"role": "GUEST", "name": "Eve", "phone": "2550000005"},
        {"name": "Eve", "phone": "2550000005", "address": "Y"},
    ])
    def test_missing_role_fields_is_validation_error(self, client, payload):
        response = client.post(REGISTER, json=payload)

        assert response.status_code == 400
        assert response.json()["kind"] == "VALIDATION_ERROR"

    def test_duplicate_phone_is_conflict(self, client):
        payload = {"role": "CONSUMER", "name": "Alice", "phone": "2550000001", "address": "X"}
        assert client.post(REGISTER, json=payload).status_code == 201

        response = client.post(REGISTER, json={
            "role": "FARMER", "name": "Juma", "phone": "2550000001",
            "farmName": "Green Acres", "location": "Moshi",
        })

        assert response.status_code == 409
        assert response.json()["kind"] == "CONFLICT"

    def test_duplicate_email_differing_in_case_is_conflict(self, client):
        assert client.post(REGISTER, json={
            "role": "ADMIN", "email": "admin@x.com", "password": "pw1",
        }).status_code == 201

        response = client.post(REGISTER, json={
            "role": "ADMIN", "email": "ADMIN@x.com", "password": "pw2",
        })

        assert response.status_code == 409


class TestPasswordLogin:

    def test_scenario_wrong_then_correct_password(self, client, make_user):
        make_user(Role.ADMIN, email="admin@x.com", password="right-pass")

        wrong_response = client.post(LOGIN, json={
            "role": "ADMIN", "email": "admin@x.com", "password": "wrong",
        })
        assert wrong_response.status_code == 401
        assert wrong_response.json()["kind"] == "INVALID_CREDENTIALS"

        response = client.post(LOGIN, json={
            "role": "ADMIN", "email": "admin@x.com", "password": "right-pass",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "ADMIN"
        assert decode_access_token(body["token"]).role == Role.ADMIN

    def test_email_lookup_is_case_insensitive(self, client, make_user):
        make_user(Role.ADMIN, email="admin@x.com", password="right-pass")

        response = client.post(LOGIN, json={
            "role": "ADMIN", "email": "Admin@X.com", "password": "right-pass",
        })

        assert response.status_code == 200

    def test_unknown_email_is_indistinguishable_from_wrong_password(self, client, make_user):
        make_user(Role.ADMIN, email="admin@x.com", password="right-pass")

        unknown = client.post(LOGIN, json={
            "role": "ADMIN", "email": "nobody@x.com", "password": "right-pass",
        })
        wrong_pw = client.post(LOGIN, json={
            "role": "ADMIN", "email": "admin@x.com", "password": "nope",
        })

        assert unknown.status_code == wrong_pw.status_code == 401
        assert unknown.json() == wrong_pw.json()

    def test_user_without_password_cannot_use_password_flow(self, client, make_user):
        make_user(Role.CONSUMER, email="shopper@x.com")

        response = client.post(LOGIN, json={
            "role": "ADMIN", "email": "shopper@x.com", "password": "anything",
        })

        assert response.status_code == 401
        assert response.json()["kind"] == "INVALID_CREDENTIALS"

    @pytest.mark.parametrize("payload", [
        {"role": "ADMIN", "email": "admin@x.com"},
        {"role": "ADMIN", "password": "pw"},
        {"email": "admin@x.com", "password": "pw"},
    ])
    def test_missing_fields_is_validation_error(self, client, payload):
        response = client.post(LOGIN, json=payload)

        assert response.status_code == 400
        assert response.json()["kind"] == "VALIDATION_ERROR"


class TestOtpLogin:

    def test_scenario_register_login_and_verify(self, client, sms):
        registered = client.post(REGISTER, json={
            "role": "CONSUMER", "name": "Alice", "phone": "2550000001", "address": "X",
        })
        assert registered.status_code == 201
        user_id = registered.json()["userId"]

        pending = client.post(LOGIN, json={"role": "CONSUMER", "phone": "2550000001"})
        assert pending.status_code == 200
        assert pending.json() == {"userId": user_id}
        code = sms.last_code("2550000001")

        rejected = client.post(VERIFY, json={"userId": user_id, "otp": wrong(code)})
        assert rejected.status_code == 400
        assert rejected.json()["kind"] == "INVALID_OR_EXPIRED"
        assert "token" not in rejected.json()

        accepted = client.post(VERIFY, json={"userId": user_id, "otp": code})
        assert accepted.status_code == 200
        body = accepted.json()
        assert body["user"] == {"id": user_id, "name": "Alice", "role": "CONSUMER"}
        identity = decode_access_token(body["token"])
        assert (identity.user_id, identity.role) == (user_id, Role.CONSUMER)

    def test_code_cannot_be_replayed(self, client, sms, make_user):
        farmer = make_user(Role.FARMER)
        client.post(LOGIN, json={"role": "FARMER", "phone": farmer.phone})
        code = sms.last_code(farmer.phone)

        assert client.post(VERIFY, json={"userId": farmer.id, "otp": code}).status_code == 200
        replay = client.post(VERIFY, json={"userId": farmer.id, "otp": code})

        assert replay.status_code == 400
        assert replay.json()["kind"] == "INVALID_OR_EXPIRED"

    def test_phone_lookup_is_constrained_to_claimed_role(self, client, sms, make_user):
        farmer = make_user(Role.FARMER)

        response = client.post(LOGIN, json={"role": "CONSUMER", "phone": farmer.phone})

        assert response.status_code == 404
        assert response.json()["kind"] == "NOT_FOUND"
        assert sms.sent == []

    def test_unknown_phone_is_not_found(self, client):
        response = client.post(LOGIN, json={"role": "FARMER", "phone": "2559999999"})

        assert response.status_code == 404

    def test_missing_phone_is_validation_error(self, client):
        response = client.post(LOGIN, json={"role": "FARMER"})

        assert response.status_code == 400
        assert response.json()["kind"] == "VALIDATION_ERROR"

    def test_unknown_user_id_is_invalid_or_expired(self, client):
        response = client.post(VERIFY, json={"userId": 999, "otp": "123456"})

        assert response.status_code == 400
        assert response.json()["kind"] == "INVALID_OR_EXPIRED"


class TestRoleImmutability:

    def test_registered_role_cannot_be_changed(self, client, db):
        response = client.post(REGISTER, json={
            "role": "FARMER", "name": "Juma", "phone": "2550000002",
            "farmName": "Green Acres", "location": "Moshi",
        })
        user = db.query(User).filter(User.id == response.json()["userId"]).one()

        with pytest.raises(ValueError):
            user.role = Role.ADMIN

        user.role = Role.FARMER
        assert user.role == Role.FARMER


class GatewayDownSender(SmsSender):
    def send_otp(self, phone, code):
        raise RuntimeError("SMS gateway timeout")


class TestErrorResponses:

    def test_user_id_beyond_integer_range_is_invalid_or_expired(self, client):
        response = client.post(VERIFY, json={"userId": 10 ** 20, "otp": "123456"})

        assert response.status_code == 400
        assert response.json()["kind"] == "INVALID_OR_EXPIRED"

    def test_unknown_route_carries_kind(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {"kind": "NOT_FOUND", "message": "Not Found"}

    def test_wrong_method_carries_kind(self, client):
        response = client.get(LOGIN)

        assert response.status_code == 405
        assert response.json()["kind"] == "VALIDATION_ERROR"
        assert "POST" in response.headers["allow"]

    def test_database_failure_is_opaque(self, client):
        def broken_db():
            raise OperationalError("SELECT 1", {}, Exception("connect failed: password=hunter2"))

        app.dependency_overrides[get_db] = broken_db
        with TestClient(app, raise_server_exceptions=False) as failing_client:
            response = failing_client.post(LOGIN, json={"role": "FARMER", "phone": "2550000001"})

        assert response.status_code == 500
        assert response.json() == {"kind": "INTERNAL", "message": "Internal server error"}
        assert "hunter2" not in response.text

    def test_failed_sms_delivery_is_internal_and_leaves_no_challenge(self, client, db, make_user):
        farmer = make_user(Role.FARMER)

        app.dependency_overrides[get_sms_sender] = lambda: GatewayDownSender()
        with TestClient(app, raise_server_exceptions=False) as failing_client:
            response = failing_client.post(LOGIN, json={"role": "FARMER", "phone": farmer.phone})

        assert response.status_code == 500
        assert response.json()["kind"] == "INTERNAL"
        assert "gateway" not in response.json()["message"].lower()
        assert "userId" not in response.json()
        assert db.query(OtpChallenge).count() == 0
