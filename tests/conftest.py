"""
Shared fixtures: an in-memory shop database, a controllable clock and an
app wired to both.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event, text

from eshop_api.api.app import create_app
from eshop_api.repositories import Database, MemoryCacheRepository
from eshop_api.services import ResponseCacheService

SCHEMA = [
    """CREATE TABLE settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT, variable TEXT NOT NULL, value TEXT)""",
    """CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT, username TEXT, email TEXT, mobile TEXT,
        balance NUMERIC DEFAULT 0, dob TEXT, referral_code TEXT, friends_code TEXT,
        city TEXT, status INTEGER DEFAULT 1, created_at TEXT)""",
    """CREATE TABLE cities (
        id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, delivery_charge NUMERIC)""",
    """CREATE TABLE zipcodes (id INTEGER PRIMARY KEY AUTOINCREMENT, zipcode TEXT)""",
    """CREATE TABLE areas (
        id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, city_id INTEGER, zipcode_id INTEGER,
        minimum_free_delivery_order_amount NUMERIC DEFAULT 0, delivery_charges NUMERIC DEFAULT 0)""",
    """CREATE TABLE addresses (
        id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, type TEXT, name TEXT, mobile TEXT,
        country_code TEXT, alternate_mobile TEXT, address TEXT, landmark TEXT, area_id INTEGER,
        city_id INTEGER, area TEXT, city TEXT, pincode TEXT, state TEXT, country TEXT,
        latitude TEXT, longitude TEXT, is_default INTEGER DEFAULT 0)""",
    """CREATE TABLE taxes (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, percentage NUMERIC)""",
    """CREATE TABLE categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, parent_id INTEGER DEFAULT 0, slug TEXT,
        image TEXT, banner TEXT, row_order INTEGER DEFAULT 0, status INTEGER DEFAULT 1,
        clicks INTEGER DEFAULT 0, city TEXT)""",
    """CREATE TABLE products (
        id INTEGER PRIMARY KEY AUTOINCREMENT, category_id INTEGER, name TEXT, slug TEXT,
        short_description TEXT, type TEXT, image TEXT, rating NUMERIC DEFAULT 0,
        date_added TEXT, status INTEGER DEFAULT 1, is_cod_allowed INTEGER DEFAULT 1,
        is_prices_inclusive_tax INTEGER DEFAULT 0, minimum_order_quantity INTEGER DEFAULT 1,
        shipping_method TEXT, pickup_location TEXT, is_on_sale INTEGER DEFAULT 0,
        sale_discount INTEGER DEFAULT 0, quantity_step_size INTEGER DEFAULT 1,
        total_allowed_quantity INTEGER, tax INTEGER)""",
    """CREATE TABLE product_variants (
        id INTEGER PRIMARY KEY AUTOINCREMENT, product_id INTEGER, price NUMERIC,
        special_price NUMERIC DEFAULT 0, stock INTEGER, availability INTEGER DEFAULT 1,
        status INTEGER DEFAULT 1, weight NUMERIC DEFAULT 0)""",
    """CREATE TABLE cart (
        id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, product_variant_id INTEGER,
        qty INTEGER, is_saved_for_later INTEGER DEFAULT 0, date_created TEXT)""",
    """CREATE TABLE tags (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, status INTEGER)""",
    """CREATE TABLE time_slots (
        id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, from_time TEXT, to_time TEXT,
        last_order_time TEXT, status INTEGER)""",
    """CREATE TABLE popup_offers (
        id INTEGER PRIMARY KEY AUTOINCREMENT, image TEXT, type TEXT, type_id INTEGER,
        min_discount NUMERIC, max_discount NUMERIC, link TEXT, status INTEGER, date_added TEXT)""",
    """CREATE TABLE sections (
        id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, short_description TEXT, style TEXT,
        product_ids TEXT, row_order INTEGER, categories TEXT, product_type TEXT,
        date_added TEXT, city TEXT)""",
    """CREATE TABLE ticket_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, date_created TEXT)""",
    """CREATE TABLE tickets (
        id INTEGER PRIMARY KEY AUTOINCREMENT, ticket_type_id INTEGER, user_id INTEGER,
        subject TEXT, email TEXT, description TEXT, status INTEGER,
        last_updated TEXT, date_created TEXT)""",
    """CREATE TABLE ticket_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT, user_type TEXT, user_id INTEGER, ticket_id INTEGER,
        message TEXT, attachments TEXT, last_updated TEXT, date_created TEXT)""",
    """CREATE TABLE product_faqs (
        id INTEGER PRIMARY KEY AUTOINCREMENT, product_id INTEGER, user_id INTEGER, question TEXT,
        answer TEXT DEFAULT '', answered_by INTEGER DEFAULT 0, votes INTEGER DEFAULT 0,
        date_added TEXT)""",
]

SEED = [
    """INSERT INTO settings (variable, value) VALUES
        ('logo', 'uploads/media/2024/logo.png'),
        ('privacy_policy', '<p>Privacy</p>'),
        ('about_us', 'We\\''re a family shop'),
        ('currency', 'INR'),
        ('payment_method', '{"cod_method": 1, "razorpay_payment_method": 0}'),
        ('time_slot_config', '{"is_time_slots_enabled": 1, "delivery_starts_from": 2, "allowed_days": 7}'),
        ('shipping_method', '{"local_shipping_method": 1}'),
        ('system_settings', '{"max_items_cart": 3, "welcome_wallet_balance_on": 1,
            "wallet_balance_amount": 50, "is_offer_popup_on": 1, "offer_popup_method": "refresh",
            "minimum_cart_amt": 500, "delivery_charge": 40}')""",
    """INSERT INTO users (username, email, mobile, balance, city, created_at) VALUES
        ('alice', 'alice@example.com', '9000000001', 0, 'Surat', '2024-01-05 10:00:00'),
        ('bob', 'bob@example.com', '9000000002', 12.5, NULL, '2024-02-01 08:30:00')""",
    "INSERT INTO cities (name, delivery_charge) VALUES ('Surat', 30)",
    "INSERT INTO zipcodes (zipcode) VALUES ('395007')",
    """INSERT INTO areas (name, city_id, zipcode_id, minimum_free_delivery_order_amount,
        delivery_charges) VALUES ('Adajan', 1, 1, 500, 40)""",
    """INSERT INTO addresses (user_id, type, name, mobile, address, area_id, city_id, area, city,
        pincode, state, country, is_default) VALUES
        (1, 'Home', 'Alice', '9000000001', '12 River Road', 1, 1, 'Adajan', 'Surat',
        '395007', 'Gujarat', 'India', 0)""",
    "INSERT INTO taxes (title, percentage) VALUES ('GST', 18)",
    """INSERT INTO categories (name, slug, image, row_order) VALUES
        ('Fruits', 'fruits', 'uploads/media/2024/fruits.png', 1),
        ('Books', 'books', NULL, 2)""",
    """INSERT INTO products (category_id, name, slug, short_description, type, image, rating,
        date_added, is_cod_allowed, is_prices_inclusive_tax, total_allowed_quantity, tax) VALUES
        (1, 'Red Apple', 'red-apple', 'Crisp apples', 'simple_product',
            'uploads/media/2024/apple.png', 4.5, '2024-03-01 09:00:00', 1, 0, 5, 1),
        (1, 'Banana', 'banana', 'Ripe bananas', 'simple_product', NULL, 3, '2024-03-02 09:00:00',
            0, 1, NULL, 1),
        (2, 'E-book', 'e-book', 'A good read', 'digital_product', NULL, 5, '2024-03-03 09:00:00',
            1, 0, NULL, NULL),
        (1, 'Mango', 'mango', 'Out of season', 'simple_product', NULL, 0, '2024-03-04 09:00:00',
            1, 0, NULL, NULL),
        (1, 'Orange', 'orange', 'Juicy', 'simple_product', NULL, 4, '2024-03-05 09:00:00',
            1, 0, NULL, NULL)""",
    """INSERT INTO product_variants (product_id, price, special_price, stock, availability) VALUES
        (1, 100, 90, 10, 1),
        (2, 50, 0, 3, 1),
        (3, 200, 0, 100, 1),
        (4, 80, 0, 0, 0),
        (5, 60, 0, 20, 1)""",
    "INSERT INTO tags (name, status) VALUES ('fresh', 1), ('organic', 1), ('retired', 0)",
    """INSERT INTO time_slots (title, from_time, to_time, last_order_time, status) VALUES
        ('Evening', '17:00:00', '20:00:00', '16:00:00', 1),
        ('Morning', '09:00:00', '12:00:00', '08:00:00', 1)""",
    """INSERT INTO popup_offers (image, type, type_id, min_discount, max_discount, link, status,
        date_added) VALUES ('offers/summer.png', 'categories', 1, 10, 30, '', 1,
        '2024-04-01 00:00:00')""",
    """INSERT INTO sections (title, short_description, style, product_ids, row_order, categories,
        product_type, date_added, city) VALUES
        ('Fresh fruits', 'Picked today', 'style_1', '', 1, '1', 'custom_products',
            '2024-04-02 00:00:00', NULL),
        ('Deals', 'On sale now', 'style_2', '1,2', 2, '', 'products_on_sale',
            '2024-04-03 00:00:00', '')""",
    "INSERT INTO ticket_types (title, date_created) VALUES ('Order issue', '2024-01-01 00:00:00')",
    """INSERT INTO product_faqs (product_id, user_id, question, answer, answered_by, votes,
        date_added) VALUES
        (1, 1, 'Are they fresh?', 'Picked this week', 2, 3, '2024-05-01 10:00:00'),
        (1, 2, 'Organic?', '', 0, 0, '2024-05-02 10:00:00')""",
]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class QueryCounter:
    """Counts SQL statements sent through an engine."""

    def __init__(self) -> None:
        self.count = 0

    def __call__(self, *args) -> None:
        self.count += 1


@pytest.fixture
def database():
    """Seeded in-memory shop database."""
    db = Database.create("sqlite://")
    with db.transaction() as conn:
        for statement in SCHEMA + SEED:
            conn.execute(text(statement))
    yield db
    db.dispose()


@pytest.fixture
def queries(database):
    """Count queries issued after this fixture is created."""
    counter = QueryCounter()
    event.listen(database.engine, "before_cursor_execute", counter)
    yield counter
    event.remove(database.engine, "before_cursor_execute", counter)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_service(clock):
    store = MemoryCacheRepository(maxsize=100, check_period=60, clock=clock)
    return ResponseCacheService(store=store, ttl=300)


@pytest.fixture
def client(database, cache_service):
    """Create a test client over the seeded database."""
    app = create_app(cache_service=cache_service, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api(client):
    """POST a JSON body to a shop endpoint under the API prefix."""

    def post(endpoint, body=None, **kwargs):
        return client.post(f"/app/v1/api/{endpoint}", json=body if body is not None else {}, **kwargs)

    return post
