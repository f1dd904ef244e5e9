"""HTTP client for the maintenance endpoints, authenticated with JWT"""
import contextlib
import json
import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
UPLOAD_TIMEOUT = 120
TRANSIENT_STATUS_CODES = (408, 429)


class APIError(Exception):
    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def permanent(self):
        """Client errors will fail again on retry; timeouts and throttling will not"""
        return (self.status_code is not None and 400 <= self.status_code < 500
                and self.status_code not in TRANSIENT_STATUS_CODES)


def upload_name_for(field_name):
    """Multipart name the server expects for a file documenting field_name"""
    if 'video' in field_name:
        return 'systemVideo'
    if 'final_system' in field_name:
        return 'finalSystemImage'
    for n in (1, 2, 3):
        if f"sample_{n}" in field_name:
            return f"wellSample{n}"
    return 'maintenanceFiles'


class MaintenanceAPI:
    def __init__(self, base_url, username=None, password=None, timeout=DEFAULT_TIMEOUT, session=None):
        self.base_url = base_url.rstrip('/') + '/'
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        self.access_token = None
        self.refresh_token = None

    def _url(self, path):
        return self.base_url + path.lstrip('/')

    def _raise_for_status(self, response):
        if response.status_code < 400:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = {'detail': response.text[:500]}
        message = (payload.get('error') or payload.get('detail')) if isinstance(payload, dict) else None
        raise APIError(message or f"HTTP {response.status_code}", status_code=response.status_code, payload=payload)

    def login(self):
        if not self.username or not self.password:
            raise APIError('Username and password are required to log in')
        response = self.session.post(self._url('auth/login/'),
                                     json={'username': self.username, 'password': self.password},
                                     timeout=self.timeout)
        self._raise_for_status(response)
        data = response.json()
        self.access_token = data['access']
        self.refresh_token = data.get('refresh')
        logger.info(f"Logged in as {self.username}")
        return data

    def refresh(self):
        """Renew the access token; falls back to a full login when the refresh token is rejected"""
        if not self.refresh_token:
            return self.login()
        response = self.session.post(self._url('auth/refresh/'), json={'refresh': self.refresh_token},
                                     timeout=self.timeout)
        if response.status_code == 401:
            logger.info("Refresh token rejected, logging in again")
            return self.login()
        self._raise_for_status(response)
        data = response.json()
        self.access_token = data['access']
        self.refresh_token = data.get('refresh', self.refresh_token)
        return data

    def _request(self, method, path, retry_auth=True, rewind=None, **kwargs):
        if self.access_token is None:
            self.login()
        kwargs.setdefault('timeout', self.timeout)
        headers = dict(kwargs.pop('headers', None) or {})
        headers['Authorization'] = f"Bearer {self.access_token}"
        response = self.session.request(method, self._url(path), headers=headers, **kwargs)
        if response.status_code == 401 and retry_auth:
            self.refresh()
            if rewind:
                rewind()
            return self._request(method, path, retry_auth=False, headers=None, **kwargs)
        self._raise_for_status(response)
        return response

    def health(self):
        """True when the API health endpoint answers"""
        try:
            response = self.session.get(self._url('health/'), timeout=5)
        except requests.RequestException as e:
            logger.debug(f"Health check failed: {str(e)}")
            return False
        return response.ok

    def get_visits(self, **params):
        return self._request('GET', 'maintenance/', params=params).json()

    def get_visit(self, visit_id):
        return self._request('GET', f"maintenance/{visit_id}/").json()

    def complete_visit(self, visit_id, form_data, files=(), submission_id=None):
        """
        Submit a completed maintenance form.

        files are dicts with field_name, name and path. Special fields go out
        under their own multipart names; the rest are sent as maintenanceFiles
        with a fileFieldMapping naming the form field each one documents.
        """
        data = {key: value for key, value in form_data.items() if value is not None}
        if submission_id:
            data['submission_id'] = submission_id

        with contextlib.ExitStack() as stack:
            multipart = []
            mapping = {}
            handles = []
            for descriptor in files:
                upload_name = upload_name_for(descriptor['field_name'])
                handle = stack.enter_context(open(descriptor['path'], 'rb'))
                handles.append(handle)
                multipart.append((upload_name, (descriptor['name'], handle)))
                if upload_name == 'maintenanceFiles':
                    mapping[descriptor['name']] = descriptor['field_name']
            data['fileFieldMapping'] = json.dumps(mapping)

            def rewind():
                for handle in handles:
                    handle.seek(0)

            response = self._request('POST', f"maintenance/{visit_id}/complete/", data=data,
                                     files=multipart or None, timeout=UPLOAD_TIMEOUT, rewind=rewind)
        return response.json()
