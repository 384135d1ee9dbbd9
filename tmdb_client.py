"""
Read-only client for the TMDB v3 metadata API.

The proxy only needs titles, seasons and episode lists; the rest mirrors
what the catalog pages show (trending rows, search, credits, trailers).
"""
from datetime import date, datetime

import requests

from config import DEFAULT_TIMEOUT, TMDB_BASE_URL, TMDB_IMAGE_BASE_URL
from errors import MetadataUnavailable
from log_sink import LogSink

MEDIA_TYPES = ('movie', 'tv')
PLACEHOLDER_IMAGE = '/placeholder-movie.jpg'


class TMDBClient:
    def __init__(self, api_key, base_url=TMDB_BASE_URL, timeout=DEFAULT_TIMEOUT,
                 session=None, sink=None):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.sink = sink or LogSink()

    def _get(self, endpoint, **params):
        """GET an endpoint; raises MetadataUnavailable on any failure"""
        if not self.api_key:
            self.sink.error("TMDB_API_KEY missing, metadata calls return empty results")
            return {'results': []}

        params = {k: v for k, v in params.items() if v is not None}
        params['api_key'] = self.api_key
        try:
            resp = self.session.get(f"{self.base_url}{endpoint}", params=params,
                                    timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.RequestException as e:
            self.sink.error(f"[TMDB] {endpoint}: {e}")
            raise MetadataUnavailable(endpoint, str(e))
        except ValueError as e:
            self.sink.error(f"[TMDB] {endpoint}: bad JSON ({e})")
            raise MetadataUnavailable(endpoint, "invalid JSON response")

    # Lists

    def trending(self, media_type='movie', time_window='week'):
        return self._get(f"/trending/{media_type}/{time_window}")

    def popular(self, media_type='movie', page=1):
        return self._get(f"/{media_type}/popular", page=page)

    def top_rated(self, media_type='movie', page=1):
        return self._get(f"/{media_type}/top_rated", page=page)

    def now_playing_movies(self, page=1):
        return self._get("/movie/now_playing", page=page)

    def upcoming_movies(self, page=1):
        return self._get("/movie/upcoming", page=page)

    def genres(self, media_type='movie'):
        return self._get(f"/genre/{media_type}/list")

    def discover_by_genre(self, media_type, genre_id, page=1):
        return self._get(f"/discover/{media_type}", with_genres=genre_id, page=page,
                         sort_by='popularity.desc')

    # Search

    def search(self, query, page=1, media_type='multi'):
        return self._get(f"/search/{media_type}", query=query, page=page)

    # Single title

    def details(self, media_type, content_id):
        return self._get(f"/{media_type}/{content_id}")

    def credits(self, media_type, content_id):
        return self._get(f"/{media_type}/{content_id}/credits")

    def similar(self, media_type, content_id):
        return self._get(f"/{media_type}/{content_id}/similar")

    def videos(self, media_type, content_id):
        return self._get(f"/{media_type}/{content_id}/videos")

    def keywords(self, media_type, content_id):
        return self._get(f"/{media_type}/{content_id}/keywords")

    def reviews(self, media_type, content_id):
        return self._get(f"/{media_type}/{content_id}/reviews")

    def season_details(self, tv_id, season_number):
        return self._get(f"/tv/{tv_id}/season/{season_number}")


# =============================================================================
# HELPERS
# =============================================================================

def image_url(path, size='original'):
    if not path:
        return PLACEHOLDER_IMAGE
    return f"{TMDB_IMAGE_BASE_URL}/{size}{path}"


def poster_url(path, size='w500'):
    return image_url(path, size)


def backdrop_url(path, size='original'):
    return image_url(path, size)


def trailer_url(videos):
    """First YouTube trailer from a /videos payload, as an embed URL"""
    if not videos or not videos.get('results'):
        return None
    for video in videos['results']:
        if video.get('type') == 'Trailer' and video.get('site') == 'YouTube':
            return f"https://www.youtube.com/embed/{video['key']}"
    return None


def format_runtime(minutes):
    if not minutes:
        return 'N/A'
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


def format_date(date_string):
    if not date_string:
        return 'N/A'
    try:
        parsed = datetime.strptime(date_string, '%Y-%m-%d')
    except ValueError:
        return 'N/A'
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def rating_tier(rating):
    if rating >= 8:
        return 'high'
    if rating >= 6:
        return 'medium'
    return 'low'


def display_fields(item):
    """Ready-to-render strings for a movie or show details payload"""
    return {
        'poster_url': poster_url(item.get('poster_path')),
        'backdrop_url': backdrop_url(item.get('backdrop_path')),
        'runtime': format_runtime(item.get('runtime') or (item.get('episode_run_time') or [None])[0]),
        'release_date': format_date(item.get('release_date') or item.get('first_air_date')),
        'rating_tier': rating_tier(item.get('vote_average') or 0),
    }


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def aired_episodes(season_data, today=None):
    """Episodes of a season payload whose air_date is today or earlier"""
    today = today or date.today()
    episodes = []
    for episode in season_data.get('episodes') or []:
        aired = _parse_date(episode.get('air_date'))
        if aired is not None and aired <= today:
            episodes.append(episode)
    return episodes


def episodes_from_summary(seasons, season_number, today=None):
    """
    Fallback when the season endpoint fails: number the episodes from the
    show's season summary, if that season has already started airing.
    """
    today = today or date.today()
    for season in seasons or []:
        if season.get('season_number') != season_number:
            continue
        started = _parse_date(season.get('air_date'))
        if started is None or started > today:
            return []
        count = season.get('episode_count') or 0
        return [{'episode_number': n} for n in range(1, count + 1)]
    return []


def available_episodes(client, tv_id, season_number, seasons=None, today=None):
    """Aired episodes for a season, degrading to the season summary on failure"""
    try:
        season_data = client.season_details(tv_id, season_number)
    except MetadataUnavailable:
        return episodes_from_summary(seasons, season_number, today)
    return aired_episodes(season_data, today)
