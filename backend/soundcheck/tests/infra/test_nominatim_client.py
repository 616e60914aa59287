import httpx
import pytest

from soundcheck.infra.geo.nominatim_client import NominatimClient


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_search_sends_expected_params():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        seen["agent"] = request.headers["User-Agent"]
        return httpx.Response(200, json=[{"lat": "25.0", "lon": "121.5", "display_name": "Taipei"}])

    client = NominatimClient(user_agent="SoundCheck-Test/1.0", client=_client(handler))
    matches = client.search("The Wall, 台北")

    assert matches[0]["lat"] == "25.0"
    assert seen["params"] == {"q": "The Wall, 台北", "format": "json", "limit": "1", "countrycodes": "tw"}
    assert seen["agent"] == "SoundCheck-Test/1.0"


def test_non_list_payload_is_empty():
    client = NominatimClient(client=_client(lambda request: httpx.Response(200, json={"error": "x"})))
    assert client.search("anything") == []


def test_http_errors_propagate():
    client = NominatimClient(client=_client(lambda request: httpx.Response(429)))
    with pytest.raises(httpx.HTTPStatusError):
        client.search("anything")
