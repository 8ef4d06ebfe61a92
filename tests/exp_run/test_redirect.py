"""Tests for the HTTP redirect client."""
import pytest
import requests

from src.exp_run.errors import TransientIOError
from src.exp_run.redirect import RedirectClient, redirect_endpoint


class _Response:
    def __init__(self, status_code=200, reason="OK", text=""):
        self.status_code = status_code
        self.reason = reason
        self.text = text


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response or _Response()
        self.error = error
        self.requests = []

    def request(self, method, url, timeout=None):
        self.requests.append((method, url, timeout))
        if self.error:
            raise self.error
        return self.response

    def close(self):
        pass


def test_redirect_endpoint():
    assert redirect_endpoint("http://h:5000", 3) == "http://h:5000/setredirect/3"
    assert redirect_endpoint("http://h:5000/", 3) == "http://h:5000/setredirect/3"
    assert redirect_endpoint("http://h:5000") == "http://h:5000/setredirect"


def test_set_redirect_sends_get_with_timeout():
    session = _Session(_Response(text="Redirect set to 4"))
    client = RedirectClient(timeout=2.5, session=session)
    assert client.set_redirect("http://server", 4) == "Redirect set to 4"
    assert session.requests == [("GET", "http://server/setredirect/4", 2.5)]


def test_clear_redirect_sends_delete():
    session = _Session(_Response(text="Redirect cleared"))
    client = RedirectClient(session=session)
    assert client.apply("http://server", None) == "Redirect cleared"
    assert session.requests[0][:2] == ("DELETE", "http://server/setredirect")


def test_error_status_text_returned_verbatim():
    session = _Session(_Response(status_code=500, reason="Internal Server Error", text="boom"))
    assert RedirectClient(session=session).set_redirect("http://server", 1) == "boom"


def test_check_returns_status_line():
    session = _Session(_Response(status_code=204, reason="No Content"))
    assert RedirectClient(session=session).check("http://beacon") == "204 No Content"
    assert session.requests[0][0] == "HEAD"


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_network_failure_raises_transient(error):
    client = RedirectClient(session=_Session(error=error))
    with pytest.raises(TransientIOError):
        client.check("http://beacon")
