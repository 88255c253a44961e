import base64

import pytest

from ponmgr import create_acs_app, create_app, db


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret-key-with-at-least-32-bytes"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ["http://localhost:3000"]
    LOG_LEVEL = "DEBUG"
    ACS_USERNAME = "acs-user"
    ACS_PASSWORD = "acs-secret"
    ACS_REQUIRE_AUTH = True
    ACS_MAX_BODY_BYTES = 64 * 1024
    ACS_CONNECTION_REQUEST_TIMEOUT_SECONDS = 5
    OLT_SIMULATION_MODE = True
    TELNET_TIMEOUT_SECONDS = 5
    TELNET_COMMAND_DELAY_SECONDS = 0
    TELNET_SAVE_TIMEOUT_SECONDS = 10
    SNMP_TIMEOUT_SECONDS = 2
    SNMP_RETRIES = 0


def basic_auth(username="acs-user", password="acs-secret"):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture()
def app():
    flask_app = create_app(TestConfig)

    with flask_app.app_context():
        db.create_all()

    yield flask_app

    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def acs_app():
    flask_app = create_acs_app(TestConfig)

    with flask_app.app_context():
        db.create_all()

    yield flask_app

    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def acs_client(acs_app):
    return acs_app.test_client()


@pytest.fixture()
def acs_headers():
    return {**basic_auth(), "Content-Type": "text/xml; charset=utf-8"}
