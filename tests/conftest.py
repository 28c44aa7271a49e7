"""Shared fixtures: fake HTTP responses and sessions, no real network."""

from unittest.mock import MagicMock

import pytest


def _response(status_code=200, body=b"", headers=None, reason="OK"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason = reason
    resp.content = body
    if headers is None:
        headers = {"Content-Length": str(len(body))}
    resp.headers = headers
    resp.iter_content.return_value = [body[i : i + 4] for i in range(0, len(body), 4)]
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


@pytest.fixture
def make_response():
    return _response


@pytest.fixture
def fake_session():
    """Build a session whose GET answers from a ``{url: body}`` table, 404 otherwise."""

    def _build(routes):
        session = MagicMock()

        def _get(url, **kwargs):
            body = routes.get(url)
            if body is None:
                return _response(404, reason="Not Found")
            return _response(200, body)

        session.get.side_effect = _get
        return session

    return _build
