"""
Fire-and-forget analytics.

Page views go to site_traffic_logs, live presence heartbeats are upserted
into active_presence (one row per session). Writes run on a small thread
pool; failures are logged and dropped so viewers never wait on analytics.
"""
import json
import random
import re
import string
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import requests

from log_sink import LogSink

MAX_WORKERS = 4
TRAFFIC_TABLE = 'site_traffic_logs'
PRESENCE_TABLE = 'active_presence'
DEFAULT_REGION = {'city': 'Global', 'country': 'Global'}

# Events the watch page emits
PLAYER_EVENTS = ('provider_switch', 'episode_select', 'content_play')

_MOBILE_RE = re.compile(r'Mobi|Android', re.IGNORECASE)
_TABLET_RE = re.compile(r'Tablet|iPad', re.IGNORECASE)


def detect_device_type(user_agent):
    user_agent = user_agent or ''
    if _MOBILE_RE.search(user_agent):
        return 'Mobile'
    if _TABLET_RE.search(user_agent):
        return 'Tablet'
    return 'Desktop'


def new_session_id():
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"session_{suffix}{int(time.time() * 1000)}"


class AnalyticsSink:
    """Writes analytics rows to the persistence service's REST interface"""

    def __init__(self, base_url='', api_key='', admin_path_prefix='/admin',
                 timeout=10, sink=None, executor=None, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.api_key = api_key
        self.admin_path_prefix = admin_path_prefix
        self.timeout = timeout
        self.sink = sink or LogSink()
        self.session = session or requests.Session()
        self._executor = executor
        self._seen = set()
        self._seen_day = None
        self._lock = threading.Lock()

    @property
    def enabled(self):
        return bool(self.base_url and self.api_key)

    @property
    def executor(self):
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=MAX_WORKERS,
                                                thread_name_prefix='analytics')
        return self._executor

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    # Transport

    def _headers(self, upsert=False):
        headers = {
            'apikey': self.api_key,
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
            'Prefer': 'return=minimal',
        }
        if upsert:
            headers['Prefer'] = 'resolution=merge-duplicates,return=minimal'
        return headers

    def _post(self, table, row, upsert=False):
        params = {'on_conflict': 'session_id'} if upsert else None
        try:
            resp = self.session.post(
                f"{self.base_url}/rest/v1/{table}",
                params=params,
                headers=self._headers(upsert),
                data=json.dumps(row),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            self.sink.warning(f"[ANALYTICS] {table} write failed: {e}")
            return False
        return True

    def _submit(self, table, row, upsert=False):
        if not self.enabled:
            self.sink.debug(f"[ANALYTICS] disabled, dropping {table} row")
            return None
        return self.executor.submit(self._post, table, row, upsert)

    # Page views

    def _first_view_today(self, session_id, path):
        today = datetime.now(timezone.utc).date()
        with self._lock:
            if self._seen_day != today:
                self._seen.clear()
                self._seen_day = today
            key = (session_id, path)
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def track_page_view(self, session_id, path, user_agent='', movie_title=None,
                        region=None):
        """Record a page view once per session, path and day. Admin pages are skipped."""
        if not (isinstance(session_id, str) and session_id and isinstance(path, str) and path):
            return None
        if self.admin_path_prefix and path.startswith(self.admin_path_prefix):
            return None
        if not self._first_view_today(session_id, path):
            return None

        row = {
            'session_id': session_id,
            'path': path,
            'movie_title': movie_title,
            'device_type': detect_device_type(user_agent),
            'region_info': region or DEFAULT_REGION,
        }
        return self._submit(TRAFFIC_TABLE, row)

    # Presence

    def heartbeat(self, session_id, path, movie_title, user_agent='', region=None):
        """Upsert the live-presence row for a session that is watching something"""
        if not isinstance(session_id, str) or not session_id or not movie_title:
            return None
        row = {
            'session_id': session_id,
            'current_path': path,
            'movie_title': movie_title,
            'device_type': detect_device_type(user_agent),
            'region_info': region or DEFAULT_REGION,
            'last_heartbeat': datetime.now(timezone.utc).isoformat(),
        }
        return self._submit(PRESENCE_TABLE, row, upsert=True)

    def handle_presence_message(self, raw, user_agent=''):
        """One WebSocket heartbeat message (JSON). Returns False if it was unusable."""
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            self.sink.debug(f"[PRESENCE] ignoring non-JSON message: {str(raw)[:60]}")
            return False
        if not isinstance(message, dict):
            return False
        if not message.get('session_id') or not message.get('movie_title'):
            return False
        self.heartbeat(
            message['session_id'],
            message.get('path'),
            message['movie_title'],
            user_agent=user_agent,
            region=message.get('region'),
        )
        return True

    # Player events

    def track_event(self, event_name, fields=None):
        """Player interaction events; logged only"""
        if not isinstance(event_name, str) or event_name not in PLAYER_EVENTS:
            self.sink.debug(f"[EVENT] unknown event {event_name!r}")
            return False
        fields = fields or {}
        details = ' '.join(f"{k}={v}" for k, v in sorted(fields.items()) if v is not None)
        self.sink.info(f"[EVENT] {event_name} {details}".rstrip())
        return True
