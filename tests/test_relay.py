import asyncio
import json

import httpx
import pytest

from ollama_dl.errors import FormatError, TransportError, UpstreamError
from ollama_dl.relay import (
    GENERIC_MESSAGE,
    INVALID_FORMAT_MESSAGE,
    ManifestRelay,
    extract_error_detail,
    friendly_message,
)

URL = "https://registry.ollama.ai/v2/library/gemma2/manifests/2b"


def relay_returning(status_code, body, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        content = body if isinstance(body, (str, bytes)) else json.dumps(body)
        return httpx.Response(status_code, content=content)

    return ManifestRelay(transport=httpx.MockTransport(handler))


def relay_raising(exc):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return ManifestRelay(transport=httpx.MockTransport(handler))


def fetch(relay, url=URL):
    return asyncio.run(relay.fetch(url))


def test_success_relays_json_unchanged(sample_manifest):
    calls = []
    relay = relay_returning(200, sample_manifest, calls)

    assert fetch(relay) == sample_manifest
    # Exactly one outbound GET to the given URL.
    assert len(calls) == 1
    assert calls[0].method == "GET"
    assert str(calls[0].url) == URL


def test_manifest_unknown_maps_to_model_not_found():
    body = {"errors": [{"code": "MANIFEST_UNKNOWN", "message": "manifest unknown"}]}
    relay = relay_returning(404, body)

    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)

    err = excinfo.value
    assert "Model not found" in err.message
    assert err.status == 404
    assert err.status_text == "Not Found"
    assert err.detail == "MANIFEST_UNKNOWN: manifest unknown"
    assert "MANIFEST_UNKNOWN: manifest unknown" in err.original_message
    assert err.original_message == "Failed to fetch data: Not Found - MANIFEST_UNKNOWN: manifest unknown"


def test_non_json_success_body_is_a_format_error():
    relay = relay_returning(200, "<html>definitely not json</html>")

    with pytest.raises(FormatError) as excinfo:
        fetch(relay)

    assert excinfo.value.message == INVALID_FORMAT_MESSAGE
    assert excinfo.value.status == 500
    assert excinfo.value.original_message


def test_server_error_is_classified():
    relay = relay_returning(500, {"error": "boom"})
    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)
    assert excinfo.value.message == "Server error: The Ollama registry is experiencing issues"
    assert excinfo.value.status == 500


def test_rate_limit_is_classified():
    relay = relay_returning(429, "")
    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)
    assert excinfo.value.message == "Too many requests: Please wait and try again later"
    assert excinfo.value.original_message == "Failed to fetch data: Too Many Requests"


def test_unrecognised_upstream_error_is_passed_through():
    relay = relay_returning(403, {"message": "denied"})
    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)
    # The composed message is short, so it is shown as-is rather than as a
    # network error.
    assert excinfo.value.message == "Failed to fetch data: Forbidden - denied"
    assert excinfo.value.status == 403


def test_long_unrecognised_upstream_error_gets_generic_message():
    relay = relay_returning(403, {"message": "x" * 150})
    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)
    assert excinfo.value.message == GENERIC_MESSAGE


def test_connect_error_is_a_transport_error():
    relay = relay_raising(httpx.ConnectError("[Errno -2] Name or service not known"))
    with pytest.raises(TransportError) as excinfo:
        fetch(relay)
    assert excinfo.value.message.startswith("Connection error:")
    assert excinfo.value.status == 500
    assert excinfo.value.original_message == "[Errno -2] Name or service not known"


def test_timeout_is_a_transport_error():
    relay = relay_raising(httpx.ReadTimeout("read operation timed out"))
    with pytest.raises(TransportError) as excinfo:
        fetch(relay)
    assert excinfo.value.message.startswith("Request timeout:")


def test_read_error_is_a_network_error():
    relay = relay_raising(httpx.ReadError("connection reset"))
    with pytest.raises(TransportError) as excinfo:
        fetch(relay)
    assert excinfo.value.message.startswith("Network error:")


@pytest.mark.parametrize(
    "payload, raw, expected",
    [
        ({"errors": [{"code": "C", "message": "m"}]}, "", "C: m"),
        ({"errors": [{"message": "only message"}]}, "", "only message"),
        ({"errors": [{"code": "ONLY_CODE"}]}, "", "Error code: ONLY_CODE"),
        ({"errors": [{"code": "C", "message": "m"}], "error": "flat"}, "", "C: m"),
        ({"error": "flat error", "message": "flat message"}, "", "flat error"),
        ({"message": "flat message"}, "", "flat message"),
        ({"other": 1}, '{"other": 1}', '{"other": 1}'),
        ({"other": 1}, "y" * 250, ""),
        (None, "plain text body", "plain text body"),
    ],
)
def test_extract_error_detail(payload, raw, expected):
    assert extract_error_detail(payload, raw) == expected


def test_rule_order_prefers_registry_code():
    # Mentions both the registry code and a timeout; the registry code wins.
    text = "404 Not Found - MANIFEST_UNKNOWN: lookup timeout"
    assert friendly_message(text) == (
        "Model not found: The specified model or tag does not exist in registry"
    )


def test_friendly_message_fallbacks():
    assert friendly_message("something odd") == "something odd"
    assert friendly_message("z" * 120) == GENERIC_MESSAGE
    assert friendly_message("Failed to fetch").startswith("Network error:")
    assert friendly_message("ECONNREFUSED 127.0.0.1:443").startswith("Connection error:")
    assert friendly_message(INVALID_FORMAT_MESSAGE) == INVALID_FORMAT_MESSAGE


@pytest.mark.parametrize("body", ["NaN", '{"a": Infinity}', "[-Infinity]"])
def test_non_standard_json_constants_are_a_format_error(body):
    relay = relay_returning(200, body)

    with pytest.raises(FormatError) as excinfo:
        fetch(relay)

    assert excinfo.value.message == INVALID_FORMAT_MESSAGE
    assert excinfo.value.status == 500
    assert "Invalid JSON constant" in excinfo.value.original_message


def test_error_body_with_json_constant_is_read_as_text():
    relay = relay_returning(404, '{"message": NaN}')
    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)
    # Not JSON, so the short raw body becomes the detail.
    assert excinfo.value.detail == '{"message": NaN}'


def test_not_found_without_registry_code():
    body = {"errors": [{"code": "NAME_UNKNOWN", "message": "repository name not known"}]}
    relay = relay_returning(404, body)

    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)

    assert excinfo.value.message == "Model not found: The specified model or tag does not exist"
    assert excinfo.value.status == 404


def test_not_found_wins_over_timeout():
    relay = relay_returning(404, {"message": "lookup timeout"})
    with pytest.raises(UpstreamError) as excinfo:
        fetch(relay)
    assert excinfo.value.message == "Model not found: The specified model or tag does not exist"
    assert friendly_message("404 Not Found - upstream timeout") == (
        "Model not found: The specified model or tag does not exist"
    )


@pytest.mark.parametrize(
    "exc",
    [
        httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'."),
        httpx.InvalidURL("Invalid URL component 'host'"),
    ],
)
def test_unusable_url_is_a_client_error(exc):
    relay = relay_raising(exc)
    with pytest.raises(TransportError) as excinfo:
        fetch(relay)
    assert excinfo.value.status == 400
    assert excinfo.value.original_message == str(exc)
