"""Integration tests covering request ID propagation and middleware."""

from __future__ import annotations

import logging


def test_request_id_echoed_when_provided(client):
    request_id = "test-request-123"
    response = client.get("/quantity-units", headers={"X-Request-ID": request_id})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == request_id


def test_request_id_generated_when_missing(client):
    response = client.get("/quantity-units")
    assert response.status_code == 200
    generated = response.headers.get("X-Request-ID")
    assert generated
    assert len(generated) >= 8


def test_request_lines_use_their_own_logger(client, caplog):
    with caplog.at_level(logging.INFO):
        client.get("/quantity-units", headers={"X-Request-ID": "trace-me"})

    request_lines = [record for record in caplog.records if record.getMessage().startswith("HTTP GET")]
    assert request_lines
    assert {record.name for record in request_lines} == {"basket.http"}
    assert request_lines[0].request_id == "trace-me"
    assert not [record for record in caplog.records if record.name == "basket.access"]
