"""Tests for the PostgREST store – HTTP calls are mocked."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from ris_ingest.errors import StoreError
from ris_ingest.store.rest import RestStore


def _response(status_code, json_body=None, text="", content_type="application/json"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = {"content-type": content_type}
    response.text = text
    if json_body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def store():
    store = RestStore("http://store.local/rest/v1/", api_key="secret", timeout=5)
    yield store
    store.close()


def test_find_patient_uses_postgrest_filter(store):
    with patch("requests.Session.get", return_value=_response(200, [{"id": "patient-1"}])) as get:
        assert store.find_patient_by_id("patient-1", "ris_patient") is True

    url = get.call_args.args[0]
    kwargs = get.call_args.kwargs
    assert url == "http://store.local/rest/v1/ris_patient"
    assert kwargs["params"]["id"] == "eq.patient-1"
    assert kwargs["headers"]["apikey"] == "secret"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["timeout"] == 5


def test_find_patient_not_found(store):
    with patch("requests.Session.get", return_value=_response(200, [])):
        assert store.find_patient_by_id("patient-1", "ris_patient") is False


def test_find_patient_http_error_raises(store):
    with patch("requests.Session.get", return_value=_response(401, text="bad key")):
        with pytest.raises(StoreError) as exc_info:
            store.find_patient_by_id("patient-1", "ris_patient")
    assert exc_info.value.status_code == 401


def test_find_patient_connection_error_raises(store):
    with patch("requests.Session.get", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(StoreError, match="refused"):
            store.find_patient_by_id("patient-1", "ris_patient")


def test_insert_success(store):
    record = {"id": "study-ACC1", "medicalRecordNumber": "1"}
    with patch("requests.Session.post", return_value=_response(201, [record])) as post:
        result = store.insert("ris_study", record)

    assert result.success is True
    assert result.status_code == 201
    assert result.data == [record]
    assert post.call_args.kwargs["json"] == record
    assert post.call_args.kwargs["headers"]["Prefer"] == "return=representation"


def test_insert_conflict_is_duplicate(store):
    body = {"code": "23505", "message": "duplicate key value violates unique constraint"}
    with patch("requests.Session.post", return_value=_response(409, body)):
        result = store.insert("ris_patient", {"id": "patient-1"})

    assert result.success is False
    assert result.duplicate is True
    assert result.data == body


def test_insert_rejection_with_text_body(store):
    response = _response(400, text="bad request", content_type="text/plain")
    with patch("requests.Session.post", return_value=response):
        result = store.insert("ris_study", {"id": "study-1"})

    assert result.success is False
    assert result.duplicate is False
    assert result.data == "bad request"


def test_insert_timeout_raises(store):
    with patch("requests.Session.post", side_effect=requests.Timeout("read timed out")):
        with pytest.raises(StoreError, match="read timed out"):
            store.insert("ris_study", {"id": "study-1"})


def test_session_is_reused(store):
    assert store.get_session() is store.get_session()


def test_invalid_timeout():
    with pytest.raises(ValueError):
        RestStore("http://store.local", timeout=0)
