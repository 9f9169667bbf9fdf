"""Tests for the HTTP adapter."""

import base64

import pytest
from fastapi.testclient import TestClient

from web.app import app


def encode(*words: int) -> str:
    rom = b"".join(word.to_bytes(2, "big") for word in words)
    return base64.b64encode(rom).decode("ascii")


@pytest.fixture
def client():
    return TestClient(app)


class TestRunEndpoint:
    """POST /api/run"""

    def test_runs_rom(self, client):
        response = client.post("/api/run", json={"rom": encode(0x6005, 0x7003, 0x1204)})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["final_state"]["v"][0] == 8
        assert data["error"] is None

    def test_reports_fault(self, client):
        response = client.post("/api/run", json={"rom": encode(0xFFFF)})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "error"
        assert data["error"]["type"] == "FatalDecodeFault"
        assert data["error"]["addr"] == 0x200

    def test_options_and_key_events(self, client):
        payload = {
            "rom": encode(0xF00A, 0x1202),
            "key_events": [
                {"frame": 1, "key": 4, "pressed": True},
                {"frame": 2, "key": 4, "pressed": False},
            ],
            "options": {"ipf": 2, "max_frames": 10},
        }
        data = client.post("/api/run", json=payload).json()
        assert data["status"] == "ok"
        assert data["final_state"]["v"][0] == 4
        assert data["frames"] == 3

    def test_invalid_base64(self, client):
        response = client.post("/api/run", json={"rom": "not base64!"})
        assert response.status_code == 400
        assert response.json()["detail"] == "ROM is not valid base64"

    def test_rom_too_large(self, client):
        rom = base64.b64encode(b"\x00" * 3585).decode("ascii")
        response = client.post("/api/run", json={"rom": rom})
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "options",
        [{"ipf": 0}, {"max_frames": 0}, {"max_frames": 100000}],
    )
    def test_options_validated(self, client, options):
        response = client.post("/api/run", json={"rom": encode(0x1200), "options": options})
        assert response.status_code == 422

    def test_key_out_of_range(self, client):
        payload = {"rom": encode(0x1200), "key_events": [{"frame": 0, "key": 16, "pressed": True}]}
        response = client.post("/api/run", json=payload)
        assert response.status_code == 422
