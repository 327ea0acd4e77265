"""Shared pytest fixtures for Withings client tests."""

import json

import pytest
import requests


def build_response(payload=None, status_code=200, url="https://wbsapi.withings.net/measure", text=None):
    """Build a real requests.Response with the given JSON payload or raw text."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json"
    if text is None:
        text = "" if payload is None else json.dumps(payload)
    response._content = text.encode("utf-8")
    response._content_consumed = True
    return response


@pytest.fixture
def make_response():
    """Factory fixture for canned HTTP responses."""
    return build_response
