"""
End-to-end tests of the HTTP API against the in-memory store.
"""
from datetime import timedelta

import pytest

from echotube.tokens import issue_token
from echotube.utils import isoformat, utcnow


def create_video(client, token, auth_header, **fields):
    payload = {'title': 'Sample', 'videoId': 'dQw4w9WgXcQ'}
    payload.update(fields)
    response = client.post('/api/videos', json=payload, headers=auth_header(token))
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestLogin:

    def test_bootstrapped_admin_can_log_in(self, client, auth_header):
        response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin123'})

        assert response.status_code == 200
        body = response.get_json()
        assert body['token']
        assert body['expiresAt']
        assert body['user']['username'] == 'admin'
        assert body['user']['role'] == 'admin'

        verify = client.get('/api/auth/verify', headers=auth_header(body['token']))
        assert verify.status_code == 200
        user = verify.get_json()['user']
        assert user['id'] == body['user']['id']
        assert user['username'] == 'admin'
        assert user['role'] == 'admin'
        assert 'password' not in verify.get_data(as_text=True).lower()

    def test_unknown_user_and_wrong_password_same_response(self, client, create_account):
        create_account('carol', password='right')

        unknown = client.post('/api/auth/login', json={'username': 'nobody', 'password': 'right'})
        wrong = client.post('/api/auth/login', json={'username': 'carol', 'password': 'wrong'})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.get_json() == wrong.get_json()
        assert unknown.get_json()['kind'] == 'Unauthenticated'

    def test_expired_account_cannot_log_in(self, client, create_account):
        create_account('old', password='right', expiry_date=isoformat(utcnow() - timedelta(hours=1)))

        response = client.post('/api/auth/login', json={'username': 'old', 'password': 'right'})

        assert response.status_code == 403
        assert response.get_json()['kind'] == 'Expired'

    def test_long_passwords_get_credential_errors(self, client, create_account):
        create_account('carol', password='right')

        unknown = client.post('/api/auth/login', json={'username': 'nobody', 'password': 'x' * 100})
        wrong = client.post('/api/auth/login', json={'username': 'carol', 'password': 'x' * 100})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.get_json() == wrong.get_json()

    def test_account_with_long_password_can_log_in(self, client, admin_token, auth_header, login):
        password = 'long-passphrase-' * 6
        created = client.post('/api/users', headers=auth_header(admin_token),
                              json={'username': 'longpw', 'password': password})

        assert created.status_code == 201
        assert login('longpw', password)

    def test_body_must_be_object(self, client):
        response = client.post('/api/auth/login', json=['admin', 'admin123'])
        assert response.status_code == 400
        assert response.get_json()['kind'] == 'MalformedInput'


class TestTokenGate:

    def test_missing_token(self, client):
        response = client.get('/api/videos')
        assert response.status_code == 401
        assert response.get_json()['kind'] == 'Unauthenticated'

    @pytest.mark.parametrize("header", ['Bearer', 'Bearer    ', 'Basic abc', 'Bearer not.a.token'])
    def test_bad_header(self, client, header):
        response = client.get('/api/videos', headers={'Authorization': header})
        assert response.status_code == 401

    def test_expired_token(self, app, client, services):
        admin = services.accounts.authenticate('admin', 'admin123')
        token, _ = issue_token(admin, app.config['JWT_SECRET'], now=utcnow() - timedelta(days=8))

        response = client.get('/api/auth/verify', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 401
        assert response.get_json()['error'] == 'Token has expired'

    def test_account_expiring_after_login_is_rejected(self, client, services, create_account, login, auth_header):
        account = create_account('temp')
        token = login('temp')
        services.accounts.update(account['id'], {'expiryDate': isoformat(utcnow() - timedelta(seconds=1))})

        response = client.get('/api/auth/verify', headers=auth_header(token))

        assert response.status_code == 403
        assert response.get_json()['kind'] == 'Expired'

    def test_deleted_account_token_rejected(self, client, services, create_account, login, auth_header):
        account = create_account('gone')
        token = login('gone')
        services.accounts.delete(account['id'])

        response = client.get('/api/auth/verify', headers=auth_header(token))
        assert response.status_code == 401


class TestAccounts:

    def test_admin_crud(self, client, admin_token, auth_header):
        headers = auth_header(admin_token)

        created = client.post('/api/users', headers=headers, json={
            'username': 'dave', 'password': 'pw', 'role': 'author', 'expiryDate': '2099-12-31',
        })
        assert created.status_code == 201
        user_id = created.get_json()['userId']

        duplicate = client.post('/api/users', headers=headers, json={'username': 'dave', 'password': 'x'})
        assert duplicate.status_code == 409
        assert duplicate.get_json()['kind'] == 'Conflict'

        listing = client.get('/api/users', headers=headers)
        assert listing.status_code == 200
        assert {user['username'] for user in listing.get_json()} == {'admin', 'dave'}
        assert 'passwordHash' not in listing.get_data(as_text=True)

        updated = client.put(f'/api/users/{user_id}', headers=headers, json={'role': 'viewer'})
        assert updated.status_code == 200
        assert updated.get_json()['user']['role'] == 'viewer'

        deleted = client.delete(f'/api/users/{user_id}', headers=headers)
        assert deleted.status_code == 200
        assert client.delete(f'/api/users/{user_id}', headers=headers).status_code == 404

    @pytest.mark.parametrize("role", ['author', 'user', 'viewer'])
    def test_non_admin_forbidden(self, client, tokens, auth_header, role):
        headers = auth_header(tokens[role])
        assert client.get('/api/users', headers=headers).status_code == 403
        response = client.post('/api/users', headers=headers, json={'username': 'x', 'password': 'y'})
        assert response.status_code == 403
        assert response.get_json()['kind'] == 'Forbidden'


class TestVideos:

    def test_creator_is_owner(self, client, tokens, auth_header):
        video = create_video(client, tokens['author'], auth_header)
        me = client.get('/api/auth/verify', headers=auth_header(tokens['author'])).get_json()['user']
        assert video['createdBy'] == me['id']

    @pytest.mark.parametrize("role", ['user', 'viewer'])
    def test_plain_roles_cannot_create(self, client, tokens, auth_header, role):
        response = client.post('/api/videos', json={'title': 't'}, headers=auth_header(tokens[role]))
        assert response.status_code == 403

    def test_only_owner_or_admin_can_mutate(self, client, tokens, auth_header):
        video = create_video(client, tokens['author'], auth_header)
        url = f"/api/videos/{video['id']}"

        for role in ('user', 'viewer', 'other_author'):
            headers = auth_header(tokens[role])
            assert client.put(url, json={'title': 'hijacked'}, headers=headers).status_code == 403
            assert client.delete(url, headers=headers).status_code == 403

        owner_update = client.put(url, json={'title': 'renamed'}, headers=auth_header(tokens['author']))
        assert owner_update.status_code == 200
        assert owner_update.get_json()['title'] == 'renamed'
        assert owner_update.get_json()['videoId'] == 'dQw4w9WgXcQ'

        admin_delete = client.delete(url, headers=auth_header(tokens['admin']))
        assert admin_delete.status_code == 200
        assert client.get(url, headers=auth_header(tokens['admin'])).status_code == 404

    def test_author_listing_is_scoped(self, client, tokens, auth_header):
        create_video(client, tokens['author'], auth_header, title='alice video')
        create_video(client, tokens['other_author'], auth_header, title='bob video')
        create_video(client, tokens['admin'], auth_header, title='admin video')

        def titles(role):
            response = client.get('/api/videos', headers=auth_header(tokens[role]))
            assert response.status_code == 200
            return {video['title'] for video in response.get_json()}

        assert titles('author') == {'alice video'}
        assert titles('other_author') == {'bob video'}
        assert titles('user') == {'alice video', 'bob video', 'admin video'}
        assert titles('admin') == {'alice video', 'bob video', 'admin video'}

    def test_get_missing_video(self, client, tokens, auth_header):
        response = client.get('/api/videos/does-not-exist', headers=auth_header(tokens['user']))
        assert response.status_code == 404
        assert response.get_json()['kind'] == 'NotFound'

    def test_invalid_video_payload(self, client, tokens, auth_header):
        response = client.post('/api/videos', json={'videoId': 'x'}, headers=auth_header(tokens['author']))
        assert response.status_code == 400

    def test_payload_rejected_by_store_is_malformed(self, client, tokens, auth_header):
        payload = {'title': 't', 'keywords': [{'word': 'grid', 'examples': [['a', 'b']]}], 'cues': [[1, 2]]}
        response = client.post('/api/videos', json=payload, headers=auth_header(tokens['author']))
        assert response.status_code == 400
        assert response.get_json()['kind'] == 'MalformedInput'


class TestCheckIns:

    def test_two_same_day_check_ins_count_one_day(self, client, tokens, auth_header):
        video = create_video(client, tokens['author'], auth_header)
        headers = auth_header(tokens['user'])
        url = f"/api/videos/{video['id']}"

        assert client.post(f'{url}/checkin', json={'step': 1}, headers=headers).status_code == 201
        assert client.post(f'{url}/checkin', json={'step': 2}, headers=headers).status_code == 201

        summary = client.get(f'{url}/checkins', headers=headers).get_json()
        assert len(summary['records']) == 2
        assert summary['distinctDays'] == 1

    def test_mine_filters_to_caller(self, client, tokens, auth_header):
        video = create_video(client, tokens['author'], auth_header)
        url = f"/api/videos/{video['id']}"
        client.post(f'{url}/checkin', json={'step': 1}, headers=auth_header(tokens['user']))
        client.post(f'{url}/checkin', json={'step': 1}, headers=auth_header(tokens['author']))

        mine = client.get(f'{url}/checkins?mine=true', headers=auth_header(tokens['user'])).get_json()
        everyone = client.get(f'{url}/checkins', headers=auth_header(tokens['user'])).get_json()
        assert len(mine['records']) == 1
        assert len(everyone['records']) == 2

    def test_viewer_cannot_check_in(self, client, tokens, auth_header):
        video = create_video(client, tokens['author'], auth_header)
        response = client.post(f"/api/videos/{video['id']}/checkin", json={'step': 1},
                               headers=auth_header(tokens['viewer']))
        assert response.status_code == 403

    def test_check_in_missing_video(self, client, tokens, auth_header):
        response = client.post('/api/videos/nope/checkin', json={'step': 1}, headers=auth_header(tokens['user']))
        assert response.status_code == 404


class TestConfig:

    def test_admin_sets_everyone_reads(self, client, tokens, auth_header):
        saved = client.post('/api/config', json={'key': 'ai.prompt', 'value': {'lang': 'en'}},
                            headers=auth_header(tokens['admin']))
        assert saved.status_code == 200

        read = client.get('/api/config/ai.prompt', headers=auth_header(tokens['viewer']))
        assert read.status_code == 200
        assert read.get_json() == {'lang': 'en'}

    def test_missing_key_returns_null(self, client, tokens, auth_header):
        response = client.get('/api/config/unknown', headers=auth_header(tokens['user']))
        assert response.status_code == 200
        assert response.get_json() is None

    def test_non_admin_cannot_set(self, client, tokens, auth_header):
        response = client.post('/api/config', json={'key': 'k', 'value': 1}, headers=auth_header(tokens['author']))
        assert response.status_code == 403


class TestBackup:

    def test_export_import_round_trip(self, client, tokens, auth_header):
        admin = auth_header(tokens['admin'])
        create_video(client, tokens['author'], auth_header, title='kept')
        client.post('/api/config', json={'key': 'k', 'value': 'v'}, headers=admin)

        snapshot = client.get('/api/backup/export', headers=admin).get_json()
        assert 'passwordHash' not in str(snapshot)

        create_video(client, tokens['author'], auth_header, title='added after export')
        restored = client.post('/api/backup/import', json=snapshot, headers=admin)
        assert restored.status_code == 200
        assert restored.get_json()['restored'] == {'videos': 1, 'configs': 1}

        titles = [video['title'] for video in client.get('/api/videos', headers=admin).get_json()]
        assert titles == ['kept']

    def test_import_requires_data(self, client, admin_token, auth_header):
        response = client.post('/api/backup/import', json={'version': '1.0'}, headers=auth_header(admin_token))
        assert response.status_code == 400
        assert response.get_json()['kind'] == 'MalformedInput'

    def test_bad_video_id_leaves_videos_untouched(self, client, tokens, auth_header):
        admin = auth_header(tokens['admin'])
        create_video(client, tokens['author'], auth_header, title='survivor')

        response = client.post('/api/backup/import', headers=admin,
                               json={'data': {'videos': [{'id': 'a/b', 'title': 'x'}]}})

        assert response.status_code == 400
        assert response.get_json()['kind'] == 'MalformedInput'
        titles = [video['title'] for video in client.get('/api/videos', headers=admin).get_json()]
        assert titles == ['survivor']

    @pytest.mark.parametrize("role", ['author', 'user', 'viewer'])
    def test_non_admin_forbidden(self, client, tokens, auth_header, role):
        headers = auth_header(tokens[role])
        assert client.get('/api/backup/export', headers=headers).status_code == 403
        assert client.post('/api/backup/import', json={'data': {}}, headers=headers).status_code == 403


class TestHealthAndHeaders:

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['firestore'] == 'connected'
        assert response.headers['X-Content-Type-Options'] == 'nosniff'

    def test_health_reports_store_outage(self, client, fake_db):
        fake_db.unavailable = True
        response = client.get('/api/health')
        assert response.status_code == 503
        assert response.get_json()['firestore'] == 'disconnected'

    def test_store_outage_is_generic_error(self, client, fake_db, admin_token, auth_header):
        fake_db.unavailable = True
        response = client.get('/api/videos', headers=auth_header(admin_token))
        assert response.status_code == 503
        assert response.get_json() == {'error': 'Service temporarily unavailable', 'kind': 'UpstreamFailure'}

    def test_cors_only_for_allowed_origin(self, client):
        allowed = client.get('/api/health', headers={'Origin': 'http://localhost:3000'})
        other = client.get('/api/health', headers={'Origin': 'http://evil.example'})
        assert allowed.headers.get('Access-Control-Allow-Origin') == 'http://localhost:3000'
        assert 'Access-Control-Allow-Origin' not in other.headers

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json()['kind'] == 'NotFound'
