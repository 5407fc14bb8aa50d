import pytest
import requests

from live_scoring.backend_client import ScoringBackend
from live_scoring.errors import BackendError


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("No JSON")
        return self._body


@pytest.fixture
def sent(monkeypatch):
    """Captures outgoing requests; set sent["response"] to control the reply."""
    box = {"calls": [], "response": FakeResponse(200, {"success": True, "data": {"matchId": "m1"}})}

    def fake_request(self, method, url, json=None, timeout=None):
        box["calls"].append({"method": method, "url": url, "json": json, "timeout": timeout, "headers": dict(self.headers)})
        resp = box["response"]
        if isinstance(resp, Exception):
            raise resp
        return resp

    monkeypatch.setattr(requests.Session, "request", fake_request)
    return box


def _backend(**kwargs):
    return ScoringBackend(base_url="http://scoring.test/api/v1/", timeout=3, **kwargs)


def test_get_match_unwraps_envelope(sent):
    assert _backend().get_match("m1") == {"matchId": "m1"}
    call = sent["calls"][0]
    assert call["method"] == "GET"
    assert call["url"] == "http://scoring.test/api/v1/scorer/matches/m1"
    assert call["timeout"] == 3


def test_bearer_token_header(sent):
    _backend(token="secret").get_match("m1")
    assert sent["calls"][0]["headers"]["Authorization"] == "Bearer secret"


def test_record_ball_posts_payload(sent):
    _backend().record_ball("m1", {"over": 0, "ball": 0})
    call = sent["calls"][0]
    assert call["method"] == "POST"
    assert call["url"].endswith("/cricket/local/matches/m1/ball")
    assert call["json"] == {"over": 0, "ball": 0}


def test_update_live_state_drops_unset_fields(sent):
    _backend().update_live_state("m1", {"bowlerId": "B2", "strikerId": None})
    call = sent["calls"][0]
    assert call["method"] == "PATCH"
    assert call["json"] == {"bowlerId": "B2"}


def test_second_innings_and_complete_bodies(sent):
    b = _backend()
    b.start_second_innings("m1", opening_batter1_id="A1", opening_batter2_id="A2", first_bowler_id="H1")
    b.complete_match("m1", winner="away", margin="6 wickets")
    assert sent["calls"][0]["json"] == {"openingBatter1Id": "A1", "openingBatter2Id": "A2", "firstBowlerId": "H1"}
    assert sent["calls"][1]["json"] == {"winner": "away", "margin": "6 wickets", "keyPerformers": [], "notes": ""}


def test_network_error_has_no_status(sent):
    sent["response"] = requests.ConnectionError("connection refused")
    with pytest.raises(BackendError) as exc:
        _backend().undo_last_ball("m1")
    assert exc.value.status_code is None
    assert exc.value.is_transport_error


def test_validation_error_message_is_kept(sent):
    sent["response"] = FakeResponse(400, {"success": False, "message": "Please select a striker"})
    with pytest.raises(BackendError) as exc:
        _backend().record_ball("m1", {})
    assert exc.value.status_code == 400
    assert exc.value.message == "Please select a striker"
    assert exc.value.redirect_to_setup
    assert not exc.value.is_transport_error


def test_server_error_without_json(sent):
    sent["response"] = FakeResponse(503, None, text="Service Unavailable")
    with pytest.raises(BackendError) as exc:
        _backend().get_match("m1")
    assert exc.value.message == "HTTP 503: Service Unavailable"
    assert exc.value.is_transport_error


def test_success_false_in_2xx(sent):
    sent["response"] = FakeResponse(200, {"success": False, "message": "Match is locked"})
    with pytest.raises(BackendError, match="Match is locked"):
        _backend().undo_last_ball("m1")


def test_base_url_must_be_http():
    with pytest.raises(BackendError):
        ScoringBackend(base_url="ftp://nope")
