import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_app.db")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["OTP_BACKEND"] = "memory"
os.environ["PAYHERE_MERCHANT_ID"] = "1211149"
os.environ["PAYHERE_MERCHANT_SECRET"] = "test-merchant-secret"

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.core.clock import utcnow
from app.db.session import Base, engine, SessionLocal
from app.models.ad import CarAd
from app.models.billing import Payment, UserSubscription
from app.models.pricing import PackageAdLimit, PackageFeature, PriceItem
from app.models.user import User
from app.models.vehicle import VehicleType
from app.services import mailer
from app.services.otp import MemoryOTPStore, set_store


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def otp_store():
    store = MemoryOTPStore()
    set_store(store)
    yield store
    set_store(None)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = []

    def fake_send(to, subject, body):
        sent.append({"to": to, "subject": subject, "body": body})
        return mailer.MailResult(success=True)

    monkeypatch.setattr(mailer, "send_email", fake_send)
    return sent


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def signup(client):
    def _signup(email="user@example.com", password="secret123", name="Test User", phone=None):
        payload = {"name": name, "email": email, "password": password}
        if phone:
            payload["phone"] = phone
        r = client.post("/api/auth/signup", json=payload)
        assert r.status_code == 201, r.text
        body = r.json()
        body["headers"] = {"Authorization": f"Bearer {body['access_token']}"}
        return body

    return _signup


@pytest.fixture
def admin_headers(client):
    r = client.post(
        "/api/admin/signup",
        json={"name": "Root", "email": "root@example.com", "password": "adminpass"},
    )
    assert r.status_code == 201, r.text
    r = client.post("/api/admin/login", json={"email": "root@example.com", "password": "adminpass"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


class Seeder:
    """Writes rows straight through the test session and commits each one."""

    def __init__(self, session):
        self.db = session

    def _save(self, *rows):
        self.db.add_all(rows)
        self.db.commit()
        for row in rows:
            self.db.refresh(row)
        return rows[0]

    def vehicle_type(self, name="Car", expiry_days=30, status="ACTIVE"):
        return self._save(VehicleType(type_name=name, expiry_days=expiry_days, status=status))

    def user(self, email="seller@example.com", name="Seller"):
        return self._save(User(name=name, email=email, auth_provider="password"))

    def package(self, code="BASIC", item_type="PACKAGE", features=None, limits=None, status="ACTIVE"):
        """``limits`` maps vehicle type id to a quantity, or None for unlimited."""
        item = self._save(PriceItem(code=code, name=code.title(), item_type=item_type, status=status))
        rows = [
            PackageFeature(price_item_id=item.id, feature_key=key, feature_value=value)
            for key, value in (features or {}).items()
        ]
        for type_id, quantity in (limits or {}).items():
            rows.append(
                PackageAdLimit(
                    package_id=item.id,
                    vehicle_type_id=type_id,
                    quantity=quantity or 0,
                    is_unlimited=quantity is None,
                )
            )
        if rows:
            self._save(*rows)
        return item

    def subscription(self, user_id, package_id, start=None, days=30, status="ACTIVE"):
        start = start or utcnow() - timedelta(days=1)
        return self._save(
            UserSubscription(
                user_id=user_id,
                package_id=package_id,
                start_date=start,
                end_date=start + timedelta(days=days),
                status=status,
            )
        )

    def payment(self, user_id, order_id, status="SUCCESS", package_id=None, amount=0, created_at=None, ad_id=None):
        return self._save(
            Payment(
                user_id=user_id,
                order_id=order_id,
                status=status,
                package_id=package_id,
                amount=amount,
                ad_id=ad_id,
                created_at=created_at or utcnow(),
            )
        )

    def ad(self, seller_id, vehicle_type_id, status="DRAFT", title="Toyota Aqua 2015", **fields):
        return self._save(
            CarAd(seller_id=seller_id, vehicle_type_id=vehicle_type_id, status=status, title=title, **fields)
        )


@pytest.fixture
def seed(db):
    return Seeder(db)
