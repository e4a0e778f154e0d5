import io
import json
from urllib.error import HTTPError, URLError

import pytest

from steam.client import (
    InvalidSteamIdError,
    SteamAPIError,
    SteamClient,
    coerce_steam_id,
    steam_store_url,
)


class _FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _payload(app_id, *, success=True, data=None):
    entry = {'success': success}
    if data is not None:
        entry['data'] = data
    return json.dumps({app_id: entry}).encode('utf-8')


def _client(responses, **kwargs):
    calls = []
    sleeps = []

    def opener(request, timeout=None):
        calls.append((request.full_url, timeout, request.get_header('User-agent')))
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return _FakeResponse(result)

    client = SteamClient(
        api_base='https://steam.test/api',
        store_base='https://store.test',
        opener=opener,
        sleep=sleeps.append,
        **kwargs,
    )
    return client, calls, sleeps


def test_fetch_app_details_normalizes_payload():
    body = _payload('730', data={
        'name': 'Counter-Strike 2',
        'header_image': 'https://cdn.test/730/header.jpg',
        'genres': [
            {'id': '1', 'description': 'Action'},
            {'id': '37', 'description': 'Free To Play'},
        ],
    })
    client, calls, _ = _client([body], timeout=4.0)

    details = client.fetch_app_details('730')

    assert details.app_id == '730'
    assert details.title == 'Counter-Strike 2'
    assert details.image_url == 'https://cdn.test/730/header.jpg'
    assert details.genres == 'Action, Free To Play'
    assert details.link == 'https://store.test/app/730'
    url, timeout, agent = calls[0]
    assert url == 'https://steam.test/api/appdetails?appids=730'
    assert timeout == 4.0
    assert agent


def test_fetch_app_details_includes_language_and_country():
    client, calls, _ = _client(
        [_payload('10', data={'name': 'Counter-Strike'})],
        language='english',
        country='US',
    )

    client.fetch_app_details(10)

    assert calls[0][0] == 'https://steam.test/api/appdetails?appids=10&l=english&cc=US'


def test_success_false_is_invalid_id():
    client, _, _ = _client([_payload('999', success=False)])

    with pytest.raises(InvalidSteamIdError, match='Steam ID invalid!'):
        client.fetch_app_details('999')


def test_missing_entry_is_invalid_id():
    client, _, _ = _client([json.dumps({'12': {'success': True}}).encode()])

    with pytest.raises(InvalidSteamIdError):
        client.fetch_app_details('999')


def test_empty_body_is_invalid_id():
    client, _, _ = _client([b''])

    with pytest.raises(InvalidSteamIdError):
        client.fetch_app_details('999')


def test_malformed_id_skips_request():
    client, calls, _ = _client([])

    with pytest.raises(InvalidSteamIdError):
        client.fetch_app_details('not-a-number')
    assert calls == []


def test_rate_limit_retries_with_retry_after():
    rate_limited = HTTPError(
        'https://steam.test/api/appdetails?appids=730',
        429,
        'Too Many Requests',
        {'Retry-After': '2'},
        io.BytesIO(b''),
    )
    client, calls, sleeps = _client(
        [rate_limited, _payload('730', data={'name': 'Counter-Strike 2'})]
    )

    details = client.fetch_app_details('730')

    assert details.title == 'Counter-Strike 2'
    assert len(calls) == 2
    assert sleeps == [2.0]


def test_rate_limit_exhaustion_raises_api_error():
    def _limited():
        return HTTPError('u', 429, 'Too Many Requests', {}, io.BytesIO(b'slow down'))

    client, calls, sleeps = _client(
        [_limited(), _limited()], max_retries=2, rate_limit_wait=0.5
    )

    with pytest.raises(SteamAPIError, match='429'):
        client.fetch_app_details('730')
    assert len(calls) == 2
    assert sleeps == [0.5]


def test_server_error_raises_api_error():
    error = HTTPError('u', 500, 'Server Error', {}, io.BytesIO(b'boom'))
    client, _, _ = _client([error])

    with pytest.raises(SteamAPIError, match='500 boom'):
        client.fetch_app_details('730')


def test_network_error_raises_api_error():
    client, _, _ = _client([URLError('connection refused')])

    with pytest.raises(SteamAPIError, match='failed to reach Steam API'):
        client.fetch_app_details('730')


def test_invalid_json_raises_api_error():
    client, _, _ = _client([b'<html>maintenance</html>'])

    with pytest.raises(SteamAPIError, match='invalid JSON'):
        client.fetch_app_details('730')


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('730', '730'),
        (730, '730'),
        (730.0, '730'),
        ('730.0', '730'),
        (' 00730 ', '730'),
        ('https://store.steampowered.com/app/367520/Hollow_Knight/', '367520'),
        ('https://example.com/no-app-here', ''),
        ('https://example.com/app/5', ''),
        ('https://evilsteampowered.com/app/5', ''),
        ('0', ''),
        (-5, ''),
        ('abc', ''),
        (None, ''),
        (True, ''),
    ],
)
def test_coerce_steam_id(value, expected):
    assert coerce_steam_id(value) == expected


def test_steam_store_url():
    assert steam_store_url('730') == 'https://store.steampowered.com/app/730'
    assert steam_store_url(730, 'https://store.test/') == 'https://store.test/app/730'
    assert steam_store_url('') == ''
