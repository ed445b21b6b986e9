from __future__ import annotations

import json

import pytest
import requests
import responses

from bato_export.client import BatoClient, FetchError

from conftest import API_URL, BASE_URL


def test_graphql_returns_data_object_and_sends_cookie(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.POST, API_URL, json={"data": {"ok": True}}, status=200)
    payload = client.graphql("query { ok }", variables={"select": {"page": 1}})
    assert payload == {"ok": True}
    req = responses_mock.calls[0].request
    assert req.headers["Cookie"] == "session=abc"
    assert json.loads(req.body) == {"query": "query { ok }", "variables": {"select": {"page": 1}}}


def test_graphql_http_error_is_fatal(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.POST, API_URL, body="oops", status=502)
    with pytest.raises(FetchError, match="HTTP 502"):
        client.graphql("query { ok }")
    assert client.last_status == 502


def test_graphql_errors_array_is_fatal(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.POST, API_URL, json={"errors": [{"message": "not logged in"}]}, status=200)
    with pytest.raises(FetchError, match="not logged in"):
        client.graphql("query { ok }")


def test_graphql_invalid_json_is_fatal(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.POST, API_URL, body="<html>login</html>", status=200)
    with pytest.raises(FetchError, match="Invalid JSON"):
        client.graphql("query { ok }")


def test_graphql_transport_error_is_wrapped(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.POST, API_URL, body=requests.ConnectionError("connection refused"))
    with pytest.raises(FetchError, match="connection refused"):
        client.graphql("query { ok }")


def test_graphql_missing_data_yields_empty_dict(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.POST, API_URL, body=json.dumps({"data": None}), status=200, content_type="application/json")
    assert client.graphql("query { ok }") == {}


def test_get_bytes_resolves_relative_path(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(
        responses.GET,
        BASE_URL + "/media/c1.jpg",
        body=b"\xff\xd8\xff\xe0data",
        status=200,
        content_type="image/jpeg; charset=binary",
    )
    data, ctype = client.get_bytes("/media/c1.jpg")
    assert data == b"\xff\xd8\xff\xe0data"
    assert ctype == "image/jpeg"


def test_get_bytes_non_200_raises(responses_mock: responses.RequestsMock, client: BatoClient):
    responses_mock.add(responses.GET, BASE_URL + "/media/missing.jpg", status=404)
    with pytest.raises(FetchError):
        client.get_bytes("/media/missing.jpg")


def test_absolute_url_keeps_absolute_urls():
    c = BatoClient(base_url="https://bato.to/")
    assert c.absolute_url("/title/1") == "https://bato.to/title/1"
    assert c.absolute_url("https://cdn.example/x.png") == "https://cdn.example/x.png"
