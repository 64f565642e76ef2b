import pytest
from fastapi import Request

from styledna.web import client_address


def _request(headers: dict[str, str], client: tuple[str, int] | None = ("192.0.2.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(key.encode(), value.encode()) for key, value in headers.items()],
        "client": client,
    }
    return Request(scope)


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        pytest.param({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "203.0.113.7", id="forwarded-first-hop"),
        pytest.param({"x-forwarded-for": " ", "x-real-ip": "198.51.100.2"}, "198.51.100.2", id="real-ip"),
        pytest.param({"x-real-ip": "198.51.100.2"}, "198.51.100.2", id="real-ip-only"),
        pytest.param({}, "192.0.2.1", id="peer"),
    ],
)
def test_client_address(headers: dict[str, str], expected: str) -> None:
    assert client_address(_request(headers)) == expected


def test_client_address_without_peer() -> None:
    assert client_address(_request({}, client=None)) == "unknown"
