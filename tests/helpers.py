"""Helpers shared by the route tests."""

import json
from base64 import b64decode, b64encode

from fastapi.testclient import TestClient
from itsdangerous import TimestampSigner

from core.dependencies import get_settings

# Cookie jar domain httpx assigns to cookies set by http://testserver
COOKIE_DOMAIN = "testserver.local"


def set_session(client: TestClient, data: dict) -> None:
    """Install a signed session cookie the way SessionMiddleware writes it."""
    signer = TimestampSigner(get_settings().SECRET_KEY)
    value = signer.sign(b64encode(json.dumps(data).encode("utf-8")))
    client.cookies.set("session", value.decode("utf-8"), domain=COOKIE_DOMAIN)


def read_session(response) -> dict:
    """Decode the session cookie set on a response; {} when it was cleared."""
    value = response.cookies.get("session")
    if not value or value == "null":
        return {}
    data = TimestampSigner(get_settings().SECRET_KEY).unsign(value.encode("utf-8"))
    return json.loads(b64decode(data))


class MockResponse:
    """Stand-in for a requests.Response carrying an NVP body."""

    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        pass
