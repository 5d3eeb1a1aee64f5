import logging

import httpx
import pytest
import respx

from engage_pod.errors import TransportError
from engage_pod.utilities.request import FORM_HEADERS, Request, strip_path_params
from replies import BASE_URL, HOST, SESSION_ENCODING, form_of


# ---------------------------------------------------------------------------
# post_form
# ---------------------------------------------------------------------------

@respx.mock
def test_post_form_returns_body() -> None:
    route = respx.post(BASE_URL).mock(return_value=httpx.Response(200, text="<Envelope/>"))
    req = Request(timeout=5)
    body = req.post_form(BASE_URL, {"jsessionid": "", "xml": "<Envelope/>"})
    assert body == b"<Envelope/>"
    assert route.call_count == 1
    assert req.request_count == 1
    assert req.has_errors() is False


@respx.mock
def test_post_form_sends_form_fields_and_headers() -> None:
    route = respx.post(BASE_URL).mock(return_value=httpx.Response(200, text="<Envelope/>"))
    Request(timeout=5).post_form(BASE_URL, {"jsessionid": "S1", "xml": "<a>&</a>"})
    sent = route.calls[0].request
    assert form_of(sent) == {"jsessionid": "S1", "xml": "<a>&</a>"}
    assert sent.headers["content-type"] == FORM_HEADERS["Content-Type"]
    assert sent.headers["expect"] == ""


@respx.mock
def test_post_form_empty_session_field_is_sent() -> None:
    route = respx.post(BASE_URL).mock(return_value=httpx.Response(200, text="<Envelope/>"))
    Request(timeout=5).post_form(BASE_URL, {"jsessionid": "", "xml": "<x/>"})
    assert form_of(route.calls[0].request)["jsessionid"] == ""


@respx.mock
def test_post_form_no_retry_on_server_error() -> None:
    route = respx.post(BASE_URL).mock(return_value=httpx.Response(503))
    req = Request(timeout=5)
    with pytest.raises(TransportError, match="HTTP request failed"):
        req.post_form(BASE_URL, {"xml": "<x/>"})
    assert route.call_count == 1
    assert req.bad_status_code_err == 1
    assert req.has_errors() is True


@respx.mock
def test_post_form_empty_body() -> None:
    respx.post(BASE_URL).mock(return_value=httpx.Response(200, content=b""))
    req = Request(timeout=5)
    with pytest.raises(TransportError, match="HTTP request failed"):
        req.post_form(BASE_URL, {"xml": "<x/>"})
    assert req.empty_body_err == 1
    assert req.last_error is not None
    assert req.last_error["type"] == "empty_body"


@respx.mock
def test_post_form_timeout() -> None:
    respx.post(BASE_URL).mock(side_effect=httpx.ReadTimeout("timeout"))
    req = Request(timeout=5)
    with pytest.raises(TransportError) as exc_info:
        req.post_form(BASE_URL, {"xml": "<x/>"})
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
    assert req.timeout_err == 1
    assert req.request_count == 0


@respx.mock
def test_post_form_connect_error() -> None:
    respx.post(BASE_URL).mock(side_effect=httpx.ConnectError("refused"))
    req = Request(timeout=5)
    with pytest.raises(TransportError):
        req.post_form(BASE_URL, {"xml": "<x/>"})
    assert req.connect_err == 1
    assert req.last_error == {"type": "connect", "message": "refused", "url": BASE_URL}


@respx.mock
def test_post_form_strips_session_from_recorded_url() -> None:
    respx.post(host=HOST).mock(return_value=httpx.Response(500))
    req = Request(timeout=5)
    with pytest.raises(TransportError):
        req.post_form(BASE_URL + SESSION_ENCODING, {"xml": "<x/>"})
    assert req.last_request_url == BASE_URL
    assert req.last_error["url"] == BASE_URL


def test_strip_path_params() -> None:
    assert strip_path_params(BASE_URL + SESSION_ENCODING) == BASE_URL
    assert strip_path_params(BASE_URL) == BASE_URL


@respx.mock
def test_has_errors_resets_after_success() -> None:
    route = respx.post(BASE_URL)
    route.side_effect = [httpx.Response(500), httpx.Response(200, text="<Envelope/>")]
    req = Request(timeout=5)
    with pytest.raises(TransportError):
        req.post_form(BASE_URL, {"xml": "<x/>"})
    req.post_form(BASE_URL, {"xml": "<x/>"})
    assert req.has_errors() is False


def test_extra_headers_are_merged() -> None:
    req = Request(headers={"X-Trace": "1"})
    assert req.headers["X-Trace"] == "1"
    assert req.headers["Content-Type"] == FORM_HEADERS["Content-Type"]


# ---------------------------------------------------------------------------
# log_stats
# ---------------------------------------------------------------------------

@respx.mock
def test_log_stats_counts_errors() -> None:
    route = respx.post(BASE_URL)
    route.side_effect = [httpx.Response(200, text="<Envelope/>"), httpx.Response(500)]
    req = Request(timeout=5)
    req.post_form(BASE_URL, {"xml": "<x/>"})
    with pytest.raises(TransportError):
        req.post_form(BASE_URL, {"xml": "<x/>"})
    stats = req.log_stats(logging.getLogger("test"))
    assert stats["total_requests"] == 2
    assert stats["total_errors"] == 1
    assert stats["error_breakdown"] == {"bad_status_code": 1}
