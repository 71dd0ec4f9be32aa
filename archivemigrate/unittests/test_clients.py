#  This file is part of ArchiveMigrate.
#
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Unit tests for the HTTP client wrapper and the JSON-RPC/catalog clients.

Tests cover:
- Mapping of requests failures onto the client exception family
- aria2 RPC payloads and error envelopes
- Catalog envelopes and request bodies
"""

from unittest.mock import Mock, patch

import pytest
import requests

from archivemigrate.clients.aria2 import Aria2Client, Aria2Error
from archivemigrate.clients.catalog import CatalogClient, CatalogError
from archivemigrate.clients.http_wrapper import (
    HTTPClientError,
    HTTPClientWrapper,
    HTTPConnectionError,
    HTTPResponseError,
    HTTPTimeoutError,
)
from archivemigrate.models import Platform


def json_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestHTTPClientWrapper:
    """Tests for HTTPClientWrapper."""

    def test_get_passes_timeout_and_headers(self):
        client = HTTPClientWrapper('test', timeout=5, headers={'X-Base': '1'})
        with patch('archivemigrate.clients.http_wrapper.requests.get') as mock_get:
            mock_get.return_value = Mock(status_code=200)
            client.get('http://example.com', headers={'X-Extra': '2'})

        _, kwargs = mock_get.call_args
        assert kwargs['timeout'] == 5
        assert kwargs['headers'] == {'X-Base': '1', 'X-Extra': '2'}

    def test_head_follows_redirects(self):
        client = HTTPClientWrapper('test')
        with patch('archivemigrate.clients.http_wrapper.requests.head') as mock_head:
            mock_head.return_value = Mock(status_code=200)
            client.head('http://example.com/file')
        assert mock_head.call_args[1]['allow_redirects'] is True

    def test_timeout(self):
        client = HTTPClientWrapper('test')
        with patch('archivemigrate.clients.http_wrapper.requests.get',
                   side_effect=requests.exceptions.Timeout()):
            with pytest.raises(HTTPTimeoutError):
                client.get('http://example.com')

    def test_connection_error(self):
        client = HTTPClientWrapper('test')
        with patch('archivemigrate.clients.http_wrapper.requests.post',
                   side_effect=requests.exceptions.ConnectionError('refused')):
            with pytest.raises(HTTPConnectionError):
                client.post('http://example.com', json={})

    def test_other_request_error(self):
        client = HTTPClientWrapper('test')
        with patch('archivemigrate.clients.http_wrapper.requests.head',
                   side_effect=requests.exceptions.InvalidURL('bad')):
            with pytest.raises(HTTPClientError):
                client.head('not a url')

    def test_error_status_returned(self):
        client = HTTPClientWrapper('test')
        with patch('archivemigrate.clients.http_wrapper.requests.get') as mock_get:
            mock_get.return_value = Mock(status_code=404)
            assert client.get('http://example.com').status_code == 404

    def test_session_used_when_given(self):
        session = Mock()
        session.get.return_value = Mock(status_code=200)
        HTTPClientWrapper('test', session=session).get('http://example.com')
        session.get.assert_called_once()

    def test_invalid_json(self):
        client = HTTPClientWrapper('test')
        response = Mock(status_code=502, text='<html>')
        response.json.side_effect = ValueError('no json')
        with patch('archivemigrate.clients.http_wrapper.requests.get', return_value=response):
            with pytest.raises(HTTPResponseError) as excinfo:
                client.get_json('http://example.com')
        assert excinfo.value.status_code == 502
        assert excinfo.value.response_body == '<html>'


class TestAria2Client:
    """Tests for Aria2Client."""

    def make(self, config, payload):
        http = Mock()
        http.post_json.return_value = payload
        return Aria2Client(config.aria2, http=http), http

    def test_call_prepends_token(self, config):
        client, http = self.make(config, {'result': 'OK'})
        assert client.force_pause('abc') == 'OK'

        url = http.post_json.call_args[0][0]
        body = http.post_json.call_args[1]['json']
        assert url == 'http://127.0.0.1:6800/jsonrpc'
        assert body['method'] == 'aria2.forcePause'
        assert body['params'] == ['token:sekrit', 'abc']
        assert body['jsonrpc'] == '2.0'

    def test_no_token_without_secret(self, config):
        config.aria2.secret = ''
        client, http = self.make(config, {'result': []})
        client.tell_active()
        assert http.post_json.call_args[1]['json']['params'] == []

    def test_ids_increase(self, config):
        client, http = self.make(config, {'result': None})
        client.get_version()
        client.get_version()
        ids = [c[1]['json']['id'] for c in http.post_json.call_args_list]
        assert ids == ['1', '2']

    def test_add_uri_options(self, config):
        client, http = self.make(config, {'result': 'gid1'})
        assert client.add_uri('https://m/a.zip', '/data/downloads', 'a.zip') == 'gid1'

        params = http.post_json.call_args[1]['json']['params']
        assert params[1] == ['https://m/a.zip']
        options = params[2]
        assert options['dir'] == '/data/downloads'
        assert options['out'] == 'a.zip'
        assert options['split'] == '16'
        assert options['continue'] == 'true'

    def test_rpc_error(self, config):
        client, _ = self.make(config, {'error': {'code': 1, 'message': 'Unauthorized'}})
        with pytest.raises(Aria2Error) as excinfo:
            client.tell_status('abc')
        assert excinfo.value.code == 1

    def test_find_task_by_path(self, config):
        client, _ = self.make(config, None)
        client.tell_active = Mock(return_value=[
            {'gid': 'a1', 'status': 'active', 'files': [{'path': '/d/other.zip'}]}])
        client.tell_waiting = Mock(return_value=[
            {'gid': 'w1', 'status': 'paused', 'files': [{'path': '/d/game.zip'}]}])

        assert client.find_task_by_path('/d/game.zip') == ('w1', 'paused')
        assert client.find_task_by_path('/d/none.zip') is None


class TestCatalogClient:
    """Tests for CatalogClient."""

    def make(self, config):
        http = Mock()
        return CatalogClient(config.catalog, http=http), http

    def test_default_headers(self, config):
        client = CatalogClient(config.catalog)
        assert client.http.headers['Authorization'] == 'Bearer tok'
        assert client.http.headers['Content-Type'] == 'application/json'

    def test_list_all_entries(self, config):
        client, http = self.make(config)
        http.get_json.return_value = {'code': 0, 'data': [
            {'game_id': 1, 'title_jp': '東方', 'title_en': 'Touhou', 'title_zh': '', 'aliases': ['TH']},
        ]}
        entries = client.list_all_entries()

        assert http.get_json.call_args[0][0] == 'https://api.example.com/api/game/migrate/all'
        assert entries[0].id == 1
        assert entries[0].title_variants == ('東方', 'Touhou', '')
        assert entries[0].aliases == frozenset(['TH'])

    def test_error_envelope(self, config):
        client, http = self.make(config)
        http.get_json.return_value = {'code': 200101, 'message': 'unauthorized'}
        with pytest.raises(CatalogError) as excinfo:
            client.list_all_entries()
        assert excinfo.value.code == 200101

    def test_create_download_resource(self, config):
        client, http = self.make(config)
        http.post_json.return_value = {'code': 0, 'data': 55}

        assert client.create_download_resource(12, Platform.PE) == 55
        url = http.post_json.call_args[0][0]
        body = http.post_json.call_args[1]['json']
        assert url.endswith('/api/migrate/game-download-resource/12')
        assert body == {'platform': ['and'], 'language': ['zh']}

    def test_create_download_resource_file(self, config):
        client, http = self.make(config)
        http.post_json.return_value = {'code': 0, 'data': {'id': 1}}

        client.create_download_resource_file(55, 'g.7z', 10, 'ff', 'application/x-7z-compressed',
                                             'games/12/55/g.7z')
        body = http.post_json.call_args[1]['json']
        assert body['s3_file_key'] == 'games/12/55/g.7z'
        assert body['file_size'] == 10
