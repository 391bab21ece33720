import httpx
import pytest

from markwise import create_app
from markwise.config import TestConfig
from markwise.extensions import db
from markwise.models import User
from markwise.services.repository import BookmarkRepository


class Upstream:
    """Routes outgoing requests from the app's httpx client by URL prefix."""

    def __init__(self):
        self.routes = []
        self.requests = []

    def on(self, prefix, status=200, html=None, json=None, content=None, exc=None):
        def respond(request):
            if exc is not None:
                raise exc(f"fake failure for {request.url}", request=request)
            if html is not None:
                return httpx.Response(
                    status, text=html, headers={"Content-Type": "text/html"}
                )
            if json is not None:
                return httpx.Response(status, json=json)
            return httpx.Response(status, content=content or b"")

        self.routes.insert(0, (prefix, respond))

    def requests_to(self, prefix):
        return [req for req in self.requests if str(req.url).startswith(prefix)]

    def __call__(self, request):
        self.requests.append(request)
        url = str(request.url)
        for prefix, respond in self.routes:
            if url.startswith(prefix):
                return respond(request)
        raise httpx.ConnectError(f"unreachable: {url}", request=request)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def http_client(upstream):
    client = httpx.Client(transport=httpx.MockTransport(upstream))
    yield client
    client.close()


@pytest.fixture
def app(http_client):
    app = create_app(TestConfig, http_client=http_client)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def repo(app):
    with app.app_context():
        yield BookmarkRepository(db.session)


def create_user(email: str, password: str = "secret") -> User:
    user = User(email=email, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user
