import json

import pytest

from synclyr.core.errors import LookupFailed, TransportError
from synclyr.core.lrclib import LrclibClient, build_get_url, parse_candidate
from synclyr.core.transport import HttpResponse


class FakeTransport:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []
        self.closed = False

    def get(self, url):
        self.urls.append(url)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def _ok(payload) -> HttpResponse:
    return HttpResponse(200, json.dumps(payload).encode("utf-8"))


def test_build_url_encodes_and_orders_parameters():
    url = build_get_url("AC/DC", "Back in Black & Blue", "Live? Yes!", 255.6)
    assert url == (
        "https://lrclib.net/api/get?artist_name=AC%2FDC"
        "&track_name=Back%20in%20Black%20%26%20Blue"
        "&album_name=Live%3F%20Yes%21"
        "&duration=256"
    )


def test_build_url_omits_missing_album_and_unknown_duration():
    url = build_get_url("Björk", "Jóga", None, 0)
    assert url == "https://lrclib.net/api/get?artist_name=Bj%C3%B6rk&track_name=J%C3%B3ga"


def test_get_decodes_candidate():
    transport = FakeTransport(
        _ok(
            {
                "id": 42,
                "trackName": "Song",
                "artistName": "Artist",
                "albumName": "Album",
                "duration": 200,
                "instrumental": False,
                "plainLyrics": "hello",
                "syncedLyrics": "[00:01.00] hello",
            }
        )
    )
    client = LrclibClient(transport)

    c = client.get("Artist", "Song", "Album", 200)

    assert c.synced == "[00:01.00] hello"
    assert c.plain == "hello"
    assert c.instrumental is False
    assert c.id == 42
    assert c.duration == 200.0
    assert c.has_synced and c.has_plain and c.usable
    assert transport.urls == [
        "https://lrclib.net/api/get?artist_name=Artist&track_name=Song&album_name=Album&duration=200"
    ]


def test_404_means_not_found():
    client = LrclibClient(FakeTransport(HttpResponse(404, b'{"code":404}')))
    assert client.get("Artist", "Nope") is None


@pytest.mark.parametrize(
    "response",
    [HttpResponse(500, b"oops"), HttpResponse(429, b""), HttpResponse(200, b"<html>"), HttpResponse(200, b"[]")],
)
def test_errors_raise_lookup_failed_and_are_logged(response, caplog):
    client = LrclibClient(FakeTransport(response))
    with pytest.raises(LookupFailed):
        client.get("Artist", "Song")
    assert any(r.levelname == "ERROR" for r in caplog.records)


def test_transport_failure_becomes_lookup_failed():
    client = LrclibClient(FakeTransport(TransportError("timed out", transient=True)))
    with pytest.raises(LookupFailed):
        client.get("Artist", "Song")


def test_wrong_typed_fields_default_instead_of_failing():
    c = parse_candidate({"syncedLyrics": 12, "plainLyrics": None, "instrumental": "yes", "id": "x"})
    assert c.synced is None
    assert c.plain is None
    assert c.instrumental is False
    assert c.id is None
    assert not c.usable


def test_empty_object_is_a_candidate_without_lyrics():
    c = LrclibClient(FakeTransport(_ok({}))).get("Artist", "Song")
    assert c is not None
    assert not c.usable


def test_instrumental_candidate_is_usable():
    c = parse_candidate({"instrumental": True})
    assert c.instrumental and c.usable


def test_custom_base_url_and_close():
    transport = FakeTransport(HttpResponse(404))
    with LrclibClient(transport, base_url="http://localhost:3000/api/") as client:
        client.get("A", "B")
    assert transport.urls[0].startswith("http://localhost:3000/api/get?")
    assert transport.closed
