#  This file is part of ArchiveMigrate.
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
HTTP client wrapper for consistent request handling.

Shared by the download daemon RPC client, the catalog client and the
mirror checks in the download manager, so that every HTTP call reports
failures through the same exception family.
"""

import requests

import archivemigrate
from archivemigrate import logger


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""
    pass


class HTTPTimeoutError(HTTPClientError):
    """Request timed out."""
    pass


class HTTPConnectionError(HTTPClientError):
    """Failed to connect to server."""
    pass


class HTTPResponseError(HTTPClientError):
    """Server returned an error response."""

    def __init__(self, message, status_code=None, response_body=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class HTTPClientWrapper:
    """
    Wrapper for HTTP requests with consistent error handling and logging.

    Timeouts and connection failures are turned into HTTPTimeoutError and
    HTTPConnectionError. Error status codes are returned to the caller
    untouched.
    """

    def __init__(self, client_name, timeout=30, headers=None, session=None):
        """
        Initialize the HTTP client wrapper.

        Args:
            client_name: Name of the client for logging (e.g., "aria2", "catalog")
            timeout: Request timeout in seconds
            headers: Headers sent with every request
            session: Optional requests.Session to reuse connections
        """
        self.client_name = client_name
        self.timeout = timeout
        self.headers = dict(headers or {})
        self.session = session

    def get(self, url, params=None, headers=None, **kwargs):
        """
        Perform a GET request.

        Returns:
            requests.Response object

        Raises:
            HTTPTimeoutError: If the request times out
            HTTPConnectionError: If connection fails
        """
        return self._request('GET', url, params=params, headers=headers, **kwargs)

    def head(self, url, headers=None, **kwargs):
        """Perform a HEAD request, following redirects."""
        kwargs.setdefault('allow_redirects', True)
        return self._request('HEAD', url, headers=headers, **kwargs)

    def post(self, url, data=None, json=None, headers=None, **kwargs):
        """
        Perform a POST request.

        Args:
            url: The URL to request
            data: Optional form data dict or string
            json: Optional JSON data dict
            headers: Optional headers dict
            **kwargs: Additional arguments passed to requests

        Returns:
            requests.Response object

        Raises:
            HTTPTimeoutError: If the request times out
            HTTPConnectionError: If connection fails
        """
        return self._request('POST', url, data=data, json=json, headers=headers, **kwargs)

    def _request(self, method, url, headers=None, **kwargs):
        """
        Internal method to perform HTTP requests with error handling.

        Raises:
            HTTPTimeoutError: If the request times out
            HTTPConnectionError: If connection fails
            HTTPClientError: For any other requests failure
        """
        kwargs.setdefault('timeout', self.timeout)
        merged = dict(self.headers)
        if headers:
            merged.update(headers)
        if merged:
            kwargs['headers'] = merged

        if archivemigrate.LOGLEVEL & archivemigrate.log_dlcomms:
            logger.debug('Request %s %s for %s' % (method, url, self.client_name))

        requester = self.session or requests
        try:
            if method == 'GET':
                response = requester.get(url, **kwargs)
            elif method == 'POST':
                response = requester.post(url, **kwargs)
            elif method == 'HEAD':
                response = requester.head(url, **kwargs)
            else:
                response = requester.request(method, url, **kwargs)

            if archivemigrate.LOGLEVEL & archivemigrate.log_dlcomms:
                logger.debug('%s response status: %s' % (self.client_name, response.status_code))

            return response

        except requests.exceptions.Timeout:
            msg = "Timeout connecting to %s with URL: %s" % (self.client_name, url)
            logger.error(msg)
            raise HTTPTimeoutError(msg)

        except requests.exceptions.ConnectionError as e:
            msg = "Unable to connect to %s: %s" % (self.client_name, self._extract_error_message(e))
            logger.error(msg)
            raise HTTPConnectionError(msg)

        except requests.exceptions.RequestException as e:
            msg = "Error communicating with %s: %s" % (self.client_name, self._extract_error_message(e))
            logger.error(msg)
            raise HTTPClientError(msg)

    def get_json(self, url, params=None, headers=None, **kwargs):
        """
        Perform a GET request and parse JSON response.

        Raises:
            HTTPClientError: If request fails or JSON parsing fails
        """
        response = self.get(url, params=params, headers=headers, **kwargs)
        return self._parse_json_response(response)

    def post_json(self, url, data=None, json=None, headers=None, **kwargs):
        """
        Perform a POST request and parse JSON response.

        Raises:
            HTTPClientError: If request fails or JSON parsing fails
        """
        response = self.post(url, data=data, json=json, headers=headers, **kwargs)
        return self._parse_json_response(response)

    def _parse_json_response(self, response):
        """
        Parse a JSON response with error handling.

        Raises:
            HTTPResponseError: If JSON parsing fails
        """
        try:
            result = response.json()
            if archivemigrate.LOGLEVEL & archivemigrate.log_dlcomms:
                logger.debug("Result from %s: %s" % (self.client_name, str(result)))
            return result
        except ValueError as e:
            msg = "%s returned invalid JSON (status %s): %s" % (self.client_name, response.status_code, str(e))
            logger.error(msg)
            raise HTTPResponseError(msg, response.status_code, response.text)

    @staticmethod
    def _extract_error_message(exception):
        """
        Extract a readable error message from an exception.

        Args:
            exception: The exception to extract message from

        Returns:
            String error message
        """
        if hasattr(exception, 'reason'):
            return str(exception.reason)
        elif hasattr(exception, 'strerror') and exception.strerror:
            return str(exception.strerror)
        else:
            return str(exception)
