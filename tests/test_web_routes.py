from catalog.models import GameEntry

from tests.app_helpers import ADMIN_PASSWORD, load_app, login


def _add(app, title, **kwargs):
    kwargs.setdefault('source', 'manual')
    kwargs.setdefault('link', f'https://example.com/{title.lower().replace(" ", "-")}')
    return app.store.add_game(GameEntry(title=title, **kwargs))


def test_index_lists_visible_games(app_module, client):
    _add(app_module, 'Public Game', genres='Puzzle, Indie', badge='PAID')
    _add(app_module, 'Secret Game', visible=False)

    resp = client.get('/')

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'Public Game' in html
    assert 'Secret Game' not in html
    assert 'PAID' in html


def test_index_shows_featured_rotation(app_module, client):
    _add(app_module, 'Spotlight', featured=True)
    _add(app_module, 'Regular')

    html = client.get('/').get_data(as_text=True)

    assert 'featured-data' in html
    assert 'Spotlight' in html


def test_index_empty_catalog(client):
    resp = client.get('/')

    assert resp.status_code == 200


def test_admin_requires_login(client):
    resp = client.get('/admin')

    assert resp.status_code == 401
    assert 'password' in resp.get_data(as_text=True).lower()


def test_admin_login_with_password(client):
    resp = client.post('/admin', data={'password': ADMIN_PASSWORD})

    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/admin')
    with client.session_transaction() as sess:
        assert sess['admin'] is True
    assert client.get('/admin').status_code == 200


def test_admin_login_wrong_password(client):
    resp = client.post('/admin', data={'password': 'nope'})

    assert resp.status_code == 401
    assert 'Invalid password' in resp.get_data(as_text=True)
    with client.session_transaction() as sess:
        assert 'admin' not in sess


def test_logout_clears_session(client):
    login(client)

    resp = client.get('/logout')

    assert resp.status_code == 302
    assert client.get('/admin').status_code == 401


def test_admin_lists_hidden_games(app_module, client):
    _add(app_module, 'Secret Game', visible=False)
    login(client)

    html = client.get('/admin').get_data(as_text=True)

    assert 'Secret Game' in html


def test_add_steam_game(app_module, client):
    login(client)

    resp = client.post('/addGame', data={'source': 'steam', 'steam_id': '730'})

    assert resp.status_code == 302
    games = app_module.catalog_service.list_all_games()
    assert [g.title for g in games] == ['Counter-Strike 2']
    assert app_module.fake_steam.calls == ['730']


def test_add_steam_game_invalid_id(app_module, client):
    login(client)

    resp = client.post('/addGame', data={'source': 'steam', 'steam_id': '999999'})

    assert resp.status_code == 400
    assert 'Steam ID invalid!' in resp.get_data(as_text=True)
    assert app_module.store.count_games() == 0


def test_add_itch_game(app_module, client):
    login(client)

    resp = client.post(
        '/addGame',
        data={
            'source': 'itch',
            'title': 'Jam Entry',
            'link': 'https://someone.itch.io/jam-entry',
            'genres': 'Puzzle',
        },
    )

    assert resp.status_code == 302
    game = app_module.catalog_service.list_all_games()[0]
    assert game.source == 'itch'
    assert game.play_url() == 'https://someone.itch.io/jam-entry'


def test_add_game_requires_admin(app_module, client):
    resp = client.post('/addGame', data={'source': 'steam', 'steam_id': '730'})

    assert resp.status_code == 401
    assert app_module.store.count_games() == 0


def test_delete_game(app_module, client):
    game_id = _add(app_module, 'Doomed')
    login(client)

    resp = client.post(f'/deleteGame/{game_id}')

    assert resp.status_code == 302
    assert app_module.store.get_game(game_id) is None
    assert client.post(f'/deleteGame/{game_id}').status_code == 404


def test_update_featured_replaces_selection(app_module, client):
    first = _add(app_module, 'First', featured=True)
    second = _add(app_module, 'Second')
    third = _add(app_module, 'Third')
    login(client)

    resp = client.post('/updateFeatured', data={'featured': [str(second), str(third)]})

    assert resp.status_code == 302
    featured = {g.id for g in app_module.store.list_games(featured_only=True)}
    assert featured == {second, third}
    assert app_module.store.get_game(first).featured is False


def test_toggle_routes(app_module, client):
    game_id = _add(app_module, 'Flip')
    login(client)

    assert client.post(f'/toggleFeatured/{game_id}').status_code == 302
    assert client.post(f'/toggleVisible/{game_id}').status_code == 302

    game = app_module.store.get_game(game_id)
    assert game.featured is True
    assert game.visible is False
    assert client.post('/toggleVisible/9999').status_code == 404


def test_seeded_demo_catalog(tmp_path):
    app = load_app(tmp_path, seed=True)
    client = app.app.test_client()

    html = client.get('/').get_data(as_text=True)

    assert app.store.count_games() == 3
    assert 'Counter-Strike 2' in html
    assert 'ROBLOX' in html
