from catalog.models import GameEntry

from tests.app_helpers import login


def _add(app, title, **kwargs):
    kwargs.setdefault('source', 'manual')
    kwargs.setdefault('link', 'https://example.com/game')
    return app.store.add_game(GameEntry(title=title, **kwargs))


def test_list_games_hides_invisible(app_module, client):
    _add(app_module, 'Shown')
    _add(app_module, 'Hidden', visible=False)

    resp = client.get('/api/games')

    assert resp.status_code == 200
    data = resp.get_json()
    assert data['total'] == 1
    assert data['games'][0]['title'] == 'Shown'
    assert data['games'][0]['play_url'] == 'https://example.com/game'


def test_featured_games(app_module, client):
    _add(app_module, 'Spotlight', featured=True)
    _add(app_module, 'Regular')

    data = client.get('/api/games/featured').get_json()

    assert [g['title'] for g in data['games']] == ['Spotlight']


def test_random_game(app_module, client):
    assert client.get('/api/games/random').status_code == 404

    _add(app_module, 'Lucky')

    resp = client.get('/api/games/random')
    assert resp.status_code == 200
    assert resp.get_json()['game']['title'] == 'Lucky'


def test_add_game_requires_admin(client):
    resp = client.post('/api/games', json={'source': 'steam', 'steam_id': '730'})

    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'admin login required'


def test_add_steam_game(app_module, client):
    login(client)

    resp = client.post('/api/games', json={'source': 'steam', 'steamId': 730})

    assert resp.status_code == 201
    game = resp.get_json()['game']
    assert game['title'] == 'Counter-Strike 2'
    assert game['play_url'] == 'https://store.steampowered.com/app/730'
    assert game['genre_list'] == ['Action', 'Free To Play']
    assert app_module.store.count_games() == 1


def test_add_game_from_form(client):
    login(client)

    resp = client.post(
        '/api/games',
        data={'source': 'manual', 'title': 'Browser Game', 'link': 'https://play.example'},
    )

    assert resp.status_code == 201
    assert resp.get_json()['game']['source'] == 'manual'


def test_add_duplicate_steam_game(client):
    login(client)
    client.post('/api/games', json={'source': 'steam', 'steam_id': '730'})

    resp = client.post('/api/games', json={'source': 'steam', 'steam_id': '730'})

    assert resp.status_code == 409


def test_add_game_validation_errors(client):
    login(client)

    invalid_id = client.post('/api/games', json={'source': 'steam', 'steam_id': '1'})
    missing_title = client.post(
        '/api/games', json={'source': 'manual', 'link': 'https://example.com'}
    )
    not_object = client.post('/api/games', json=['steam', '730'])

    assert invalid_id.status_code == 400
    assert invalid_id.get_json()['error'] == 'Steam ID invalid!'
    assert missing_title.status_code == 400
    assert not_object.status_code == 400


def test_add_game_upstream_failure(app_module, client):
    from steam.client import SteamAPIError

    def _broken(_app_id):
        raise SteamAPIError('failed to reach Steam API: timed out')

    app_module.catalog_service.steam_lookup = _broken
    login(client)

    resp = client.post('/api/games', json={'source': 'steam', 'steam_id': '730'})

    assert resp.status_code == 502
    assert 'timed out' in resp.get_json()['error']


def test_delete_game(app_module, client):
    game_id = _add(app_module, 'Gone')
    login(client)

    resp = client.delete(f'/api/games/{game_id}')

    assert resp.status_code == 200
    assert resp.get_json() == {'deleted': game_id}
    assert client.delete(f'/api/games/{game_id}').status_code == 404


def test_set_featured(app_module, client):
    first = _add(app_module, 'First', featured=True)
    second = _add(app_module, 'Second')
    login(client)

    resp = client.put('/api/games/featured', json={'ids': [second]})

    assert resp.status_code == 200
    assert resp.get_json() == {'featured': 1}
    assert [g.id for g in app_module.store.list_games(featured_only=True)] == [second]
    assert app_module.store.get_game(first).featured is False
    assert client.put('/api/games/featured', json={'ids': 'all'}).status_code == 400


def test_steam_preview(client):
    login(client)

    resp = client.get('/api/steam/367520')

    assert resp.status_code == 200
    app = resp.get_json()['app']
    assert app['title'] == 'Hollow Knight'
    assert app['link'] == 'https://store.steampowered.com/app/367520'
    assert client.get('/api/steam/31337').status_code == 400


def test_healthz(app_module, client):
    _add(app_module, 'Counted')

    resp = client.get('/healthz')

    assert resp.status_code == 200
    assert resp.get_json() == {'status': 'ok', 'games': 1}
