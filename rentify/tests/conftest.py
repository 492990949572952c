from datetime import date, timedelta
from decimal import Decimal

import pytest

from sqlalchemy.pool import StaticPool
from flask_jwt_extended import create_access_token

from rentify import create_app
from rentify.config import TestConfig as BaseTestConfig
from rentify.extensions import db, bcrypt

# Register every mapper/table before create_all
import rentify.models  # noqa: F401
from rentify.models.item import Item
from rentify.models.profile import Profile
from rentify.models.rental import STATUS_PENDING, Rental
from rentify.services import pricing

TODAY = date(2026, 3, 10)
CRON_SECRET = "cron-test-secret"
WEBHOOK_SECRET = "whsec_test"


class PytestConfig(BaseTestConfig):
	SQLALCHEMY_DATABASE_URI = "sqlite://"
	SQLALCHEMY_ENGINE_OPTIONS = {
		"connect_args": {"check_same_thread": False},
		"poolclass": StaticPool,
	}
	JWT_SECRET_KEY = "test-secret"
	CRON_SECRET = CRON_SECRET
	STRIPE_SECRET_KEY = "sk_test_dummy"
	STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
	STRIPE_REQUIRE_CONNECT_ACCOUNT = False
	TELEGRAM_BOT_TOKEN = None
	TELEGRAM_WEBHOOK_SECRET = None
	DEEPSEEK_API_KEY = None
	APP_BASE_URL = "https://rentify.test"
	FRONTEND_BASE_URL = "https://rentify.test"
	CORS_ORIGINS = "*"


@pytest.fixture(scope="session")
def app(tmp_path_factory):
	PytestConfig.UPLOADS_DIR = str(tmp_path_factory.mktemp("uploads"))
	app = create_app(PytestConfig)
	with app.app_context():
		db.create_all()
		yield app
		db.session.remove()
		db.drop_all()


@pytest.fixture()
def client(app):
	return app.test_client()


@pytest.fixture()
def db_session(app):
	with app.app_context():
		yield db.session
		db.session.rollback()


@pytest.fixture(autouse=True)
def clean_tables(app):
	yield
	db.session.rollback()
	for table in reversed(db.metadata.sorted_tables):
		db.session.execute(table.delete())
	db.session.commit()


@pytest.fixture(autouse=True)
def pinned_today(monkeypatch):
	monkeypatch.setattr("rentify.utils.dates.today", lambda: TODAY)
	return TODAY


@pytest.fixture()
def reload(db_session):
	def _reload(model, pk):
		db_session.expire_all()
		return db_session.get(model, pk)

	return _reload


@pytest.fixture()
def make_user(db_session):
	def _make_user(
		email: str,
		full_name: str = "Test User",
		password: str = "Passw0rd!",
		account_status: str = "active",
		telegram_chat_id: str | None = None,
	):
		u = Profile(
			email=email,
			full_name=full_name,
			password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
			account_status=account_status,
			telegram_chat_id=telegram_chat_id,
		)
		db_session.add(u)
		db_session.commit()
		return u

	return _make_user


@pytest.fixture()
def make_token(app):
	def _make_token(user_id: int, roles: list[str] | None = None) -> str:
		roles = roles or []
		with app.app_context():
			return create_access_token(identity=str(user_id), additional_claims={"roles": roles})

	return _make_token


@pytest.fixture()
def auth_header(make_token):
	def _auth_header(user_id: int, roles: list[str] | None = None) -> dict:
		token = make_token(user_id, roles=roles)
		return {"Authorization": f"Bearer {token}"}

	return _auth_header


@pytest.fixture()
def make_item(db_session):
	def _make_item(
		owner_id: int,
		title: str = "Camera",
		price_per_day="100",
		security_deposit="200",
		late_fee_per_day="10",
		**fields,
	):
		item = Item(
			owner_id=owner_id,
			title=title,
			description="A well kept item",
			price_per_day=Decimal(price_per_day),
			security_deposit=Decimal(security_deposit),
			late_fee_per_day=Decimal(late_fee_per_day) if late_fee_per_day is not None else None,
			location="Kuala Lumpur",
			**fields,
		)
		db_session.add(item)
		db_session.commit()
		return item

	return _make_item


@pytest.fixture()
def make_rental(db_session):
	"""Inserts a rental directly in any state, bypassing the booking flow."""
	def _make_rental(
		item: Item,
		renter_id: int,
		start_offset: int = 1,
		days: int = 3,
		status: str = STATUS_PENDING,
		**fields,
	):
		start = TODAY + timedelta(days=start_offset)
		end = start + timedelta(days=days)
		breakdown = pricing.compute_breakdown(item.price_per_day, start, end)
		values = dict(
			item_id=item.id,
			renter_id=renter_id,
			owner_id=item.owner_id,
			start_date=start,
			end_date=end,
			price_per_day=breakdown.price_per_day,
			total_days=breakdown.total_days,
			subtotal=breakdown.subtotal,
			service_fee=breakdown.service_fee,
			insurance_fee=breakdown.insurance_fee,
			delivery_fee=breakdown.delivery_fee,
			total_amount=breakdown.total_amount,
			security_deposit=item.security_deposit,
			status=status,
		)
		values.update(fields)
		rental = Rental(**values)
		db_session.add(rental)
		db_session.commit()
		return rental

	return _make_rental
