import datetime
import pytest
from flask import Flask
from restify import DB, RestifyAPI
from shop_models import MODELS, Article, Order, Product, Stock, User


def create_app(**config):
    app = Flask(__name__)
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", TESTING=True, **config)
    DB.init_app(app)
    with app.app_context():
        DB.create_all()
    return app


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def api(app):
    with app.app_context():
        api = RestifyAPI(app)
        api.expose(*MODELS)
    return api


@pytest.fixture
def client(app, api):
    return app.test_client()


@pytest.fixture
def add_rows(app):
    """Insert rows outside of the api"""

    def add(*rows):
        with app.app_context():
            DB.session.add_all(rows)
            DB.session.commit()

    return add


@pytest.fixture
def fetch(app):
    """Query the database outside of the api, returns the rows as dicts"""

    def query(model, *criteria):
        with app.app_context():
            return [row.to_dict() for row in DB.session.query(model).filter(*criteria).all()]

    return query


@pytest.fixture
def shop(add_rows):
    add_rows(
        User(user_id="u1", name="Alice", email="alice@example.com"),
        User(user_id="u2", name="Bob", email="bob@example.com"),
        Product(product_id=1, name="desk lamp", category="light", unit_price=30, keywords="lamp,led", created_at=datetime.datetime(2024, 1, 10)),
        Product(product_id=2, name="floor lamp", category="light", unit_price=80, keywords="lamp", created_at=datetime.datetime(2024, 2, 10)),
        Product(product_id=3, name="chair", category="furniture", unit_price=120, keywords="wood", created_at=datetime.datetime(2024, 3, 10)),
        Product(product_id=4, name="table", category="furniture", unit_price=250, created_at=datetime.datetime(2024, 4, 10)),
        Order(order_id=1, user_id="u1", product_id=1, quantity=2, status="new"),
        Order(order_id=2, user_id="u1", product_id=3, quantity=4, status="paid"),
        Order(order_id=3, user_id="u2", product_id=3, quantity=1, status="new"),
        Article(article_id=1, user_id="u1", title="Lamps", body="on lamps"),
        Article(article_id=2, user_id="u2", title="Chairs", body="on chairs"),
        Stock(warehouse="north", product_id=1, quantity=10, note="shelf a"),
        Stock(warehouse="north", product_id=2, quantity=5),
        Stock(warehouse="south", product_id=1, quantity=7),
    )
