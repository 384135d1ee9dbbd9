#!/usr/bin/env python3
"""
EMBED PROXY - Ad-scrubbing wrapper for third-party video players
Fetches a player page server-side, rewrites it and serves it frameable

    GET /embed?url=PLAYER_URL         rewritten player page
    GET /watch/<movie|tv>/<id>        watch page (player under the shield)
    /api/...                          catalog metadata + analytics
    WS  /presence                     live-presence heartbeats
"""
import atexit

from flask import Flask, Response, jsonify, request, abort
from flask_sock import Sock
from simple_websocket import ConnectionClosed

from ad_signatures import SCRUBBED_MARKER, RegexSignatureMatcher
from analytics import AnalyticsSink, new_session_id
from config import Settings
from errors import InvalidURL, MetadataUnavailable, UpstreamUnavailable
from fetcher import UpstreamFetcher
from log_sink import configure_logging
from providers import DEFAULT_PROVIDER, PROVIDERS, get_provider
from rewriter import RewriteContext, rewrite
from tmdb_client import (
    MEDIA_TYPES,
    TMDBClient,
    aired_episodes,
    available_episodes,
    backdrop_url,
    display_fields,
    trailer_url,
)
from watch_page import proxied_url, render_index, render_watch_page

NO_SIGNAL_HTML = (
    '<div style="color:white;background:black;height:100vh;display:flex;'
    'align-items:center;justify-content:center;font-family:sans-serif;">No signal.</div>'
)
INVALID_URL_TEXT = 'Invalid URL'
UPSTREAM_FAILED_TEXT = 'Failed to retrieve stream.'

# =============================================================================
# RESPONSE EMITTER
# =============================================================================

def _open_headers(settings):
    headers = {}
    if settings.allow_any_origin:
        headers['Access-Control-Allow-Origin'] = '*'
    if settings.allow_any_framing:
        headers['X-Frame-Options'] = 'ALLOWALL'
        headers['Content-Security-Policy'] = 'frame-ancestors *'
    return headers


def emit_html(html, settings, status=200):
    """Serve HTML with the configured CORS/framing headers and no caching headers"""
    return Response(html, status=status, mimetype='text/html', headers=_open_headers(settings))


def emit_text(text, settings, status=200):
    return Response(text, status=status, mimetype='text/plain', headers=_open_headers(settings))


def _optional_int(name):
    value = request.args.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except ValueError:
        abort(400, description=f"{name} must be an integer")


def _json_object():
    """Request body as a dict; an empty body is {}, any other JSON type is None"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _session_id(data):
    session_id = data.get('session_id')
    if isinstance(session_id, str) and session_id:
        return session_id
    return new_session_id()


# =============================================================================
# APP
# =============================================================================

def create_app(settings=None, sink=None, fetcher=None, tmdb=None, analytics=None,
               matcher=None):
    settings = settings or Settings.from_env()
    sink = sink or configure_logging(settings.log_level, settings.log_file)
    fetcher = fetcher or UpstreamFetcher(
        timeout=settings.request_timeout,
        verify_tls=settings.verify_tls,
        sink=sink,
    )
    tmdb = tmdb or TMDBClient(
        settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        timeout=settings.request_timeout,
        sink=sink,
    )
    analytics = analytics or AnalyticsSink(
        settings.supabase_url,
        settings.supabase_key,
        admin_path_prefix=settings.admin_path_prefix,
        sink=sink,
    )
    matcher = matcher or RegexSignatureMatcher()
    atexit.register(analytics.shutdown)

    app = Flask(__name__)
    sock = Sock(app)
    app.extensions['embedshield'] = {
        'settings': settings,
        'sink': sink,
        'fetcher': fetcher,
        'tmdb': tmdb,
        'analytics': analytics,
    }

    if not settings.verify_tls:
        sink.warning("TLS verification is OFF for upstream player fetches (EMBED_VERIFY_TLS)")

    # -------------------------------------------------------------------------
    # Embed proxy
    # -------------------------------------------------------------------------

    @app.route('/embed')
    @app.route('/embed_wrapper.php')
    def embed():
        """Fetch, scrub and re-serve a third-party player page"""
        target_url = request.args.get('url', '')
        sink.request('embed', 'GET', target_url or '(no url)')

        if not target_url:
            return emit_html(NO_SIGNAL_HTML, settings)

        try:
            upstream = fetcher.fetch(target_url)
        except InvalidURL as e:
            sink.warning(str(e))
            return emit_text(INVALID_URL_TEXT, settings)
        except UpstreamUnavailable as e:
            sink.error(str(e))
            return emit_text(UPSTREAM_FAILED_TEXT, settings)

        context = RewriteContext.from_url(upstream.effective_url)
        sink.debug(f"Base for {target_url}: {context.base_url}")

        html = rewrite(upstream.body, upstream.effective_url, matcher)
        scrubbed = html.count(SCRUBBED_MARKER) - upstream.body.count(SCRUBBED_MARKER)
        sink.request('embed', 'GET', target_url, f"✓ {len(html)}b, {scrubbed} scripts scrubbed")
        return emit_html(html, settings)

    # -------------------------------------------------------------------------
    # Pages
    # -------------------------------------------------------------------------

    @app.route('/')
    def index():
        return Response(render_index(PROVIDERS), mimetype='text/html')

    @app.route('/watch/<media_type>/<int:content_id>')
    def watch(media_type, content_id):
        if media_type not in MEDIA_TYPES:
            abort(404)

        provider = get_provider(request.args.get('provider', DEFAULT_PROVIDER.id)) or DEFAULT_PROVIDER
        season = episode = None
        seasons, episodes = [], []

        try:
            item = tmdb.details(media_type, content_id)
        except MetadataUnavailable:
            item = {}
        title = item.get('title') or item.get('name') or ''

        if media_type == 'tv':
            season = _optional_int('season') or 1
            episode = _optional_int('episode') or 1
            summary = [s for s in item.get('seasons') or [] if s.get('season_number', 0) > 0]
            seasons = [s['season_number'] for s in summary]
            episodes = [e['episode_number'] for e in
                        available_episodes(tmdb, content_id, season, summary)]

        sink.request('watch', 'GET', f"{media_type}/{content_id} via {provider.id}")
        html = render_watch_page(
            provider, PROVIDERS, content_id,
            media_type=media_type, title=title,
            season=season, episode=episode,
            seasons=seasons, episodes=episodes,
            backdrop=backdrop_url(item['backdrop_path']) if item.get('backdrop_path') else None,
        )
        return Response(html, mimetype='text/html')

    # -------------------------------------------------------------------------
    # Providers + catalog
    # -------------------------------------------------------------------------

    @app.route('/api/providers')
    def api_providers():
        return jsonify({'providers': [p.to_dict() for p in PROVIDERS]})

    @app.route('/api/providers/<provider_id>/url')
    def api_provider_url(provider_id):
        provider = get_provider(provider_id)
        if provider is None:
            return jsonify({'error': f"Unknown provider {provider_id}"}), 404
        content_id = request.args.get('id')
        if not content_id:
            return jsonify({'error': 'Missing id parameter'}), 400
        season = _optional_int('season')
        episode = _optional_int('episode')
        embed_url = provider.get_url(content_id, season, episode)
        return jsonify({
            'provider': provider.id,
            'embed_url': embed_url,
            'proxied_url': proxied_url(embed_url),
            'shield_clicks': provider.shield_clicks,
        })

    def _media_type_or_404(media_type, extra=()):
        if media_type not in MEDIA_TYPES + tuple(extra):
            abort(404)

    @app.route('/api/trending/<media_type>')
    def api_trending(media_type):
        _media_type_or_404(media_type, ('all',))
        return jsonify(tmdb.trending(media_type, request.args.get('window', 'week')))

    @app.route('/api/popular/<media_type>')
    def api_popular(media_type):
        _media_type_or_404(media_type)
        return jsonify(tmdb.popular(media_type, page=request.args.get('page', 1, type=int)))

    @app.route('/api/top_rated/<media_type>')
    def api_top_rated(media_type):
        _media_type_or_404(media_type)
        return jsonify(tmdb.top_rated(media_type, page=request.args.get('page', 1, type=int)))

    @app.route('/api/movie/now_playing')
    def api_now_playing():
        return jsonify(tmdb.now_playing_movies(page=request.args.get('page', 1, type=int)))

    @app.route('/api/movie/upcoming')
    def api_upcoming():
        return jsonify(tmdb.upcoming_movies(page=request.args.get('page', 1, type=int)))

    @app.route('/api/genres/<media_type>')
    def api_genres(media_type):
        _media_type_or_404(media_type)
        return jsonify(tmdb.genres(media_type))

    @app.route('/api/discover/<media_type>/<int:genre_id>')
    def api_discover(media_type, genre_id):
        _media_type_or_404(media_type)
        page = request.args.get('page', 1, type=int)
        return jsonify(tmdb.discover_by_genre(media_type, genre_id, page=page))

    @app.route('/api/search')
    def api_search():
        query = request.args.get('q', '').strip()
        if not query:
            return jsonify({'error': 'Missing q parameter'}), 400
        page = request.args.get('page', 1, type=int)
        return jsonify(tmdb.search(query, page=page))

    @app.route('/api/<media_type>/<int:content_id>')
    def api_details(media_type, content_id):
        """Details payload plus formatted image URLs, runtime, date and rating tier"""
        _media_type_or_404(media_type)
        item = tmdb.details(media_type, content_id)
        item['display'] = display_fields(item)
        return jsonify(item)

    related = {
        'credits': tmdb.credits,
        'similar': tmdb.similar,
        'videos': tmdb.videos,
        'keywords': tmdb.keywords,
        'reviews': tmdb.reviews,
    }

    @app.route('/api/<media_type>/<int:content_id>/<relation>')
    def api_related(media_type, content_id, relation):
        _media_type_or_404(media_type)
        if relation not in related:
            abort(404)
        data = related[relation](media_type, content_id)
        if relation == 'videos':
            data['trailer_url'] = trailer_url(data)
        return jsonify(data)

    @app.route('/api/tv/<int:tv_id>/season/<int:season_number>')
    def api_season(tv_id, season_number):
        """Season payload with only the episodes that have aired"""
        season = tmdb.season_details(tv_id, season_number)
        season['episodes'] = aired_episodes(season)
        return jsonify(season)

    @app.errorhandler(MetadataUnavailable)
    def metadata_unavailable(e):
        return jsonify({'error': 'Metadata service unavailable', 'endpoint': e.endpoint}), 503

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def _not_an_object():
        return jsonify({'error': 'Body must be a JSON object'}), 400

    @app.route('/api/track', methods=['POST'])
    def api_track():
        data = _json_object()
        if data is None:
            return _not_an_object()
        session_id = _session_id(data)
        analytics.track_page_view(
            session_id,
            data.get('path'),
            user_agent=request.headers.get('User-Agent', ''),
            movie_title=data.get('movie_title'),
            region=data.get('region'),
        )
        return jsonify({'session_id': session_id}), 202

    @app.route('/api/heartbeat', methods=['POST'])
    def api_heartbeat():
        data = _json_object()
        if data is None:
            return _not_an_object()
        session_id = _session_id(data)
        analytics.heartbeat(
            session_id,
            data.get('path'),
            data.get('movie_title'),
            user_agent=request.headers.get('User-Agent', ''),
            region=data.get('region'),
        )
        return jsonify({'session_id': session_id}), 202

    @app.route('/api/events', methods=['POST'])
    def api_events():
        data = _json_object()
        if data is None:
            return _not_an_object()
        fields = dict(data)
        event_name = fields.pop('event', None)
        if not analytics.track_event(event_name, fields):
            return jsonify({'error': f"Unknown event {event_name!r}"}), 400
        return jsonify({'ok': True}), 202

    @sock.route('/presence')
    def presence(ws):
        """Heartbeat channel for viewers on a watch page"""
        user_agent = request.headers.get('User-Agent', '')
        sink.request('presence', 'WS', 'Client connected')
        while True:
            try:
                raw = ws.receive()
            except ConnectionClosed:
                break
            if raw is None:
                break
            analytics.handle_presence_message(raw, user_agent)
        sink.request('presence', 'WS', 'Client disconnected')

    return app


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    settings = Settings.from_env()
    app = create_app(settings)

    print("\n" + "=" * 70)
    print("🛡️  EMBED PROXY - Ad-scrubbing player wrapper")
    print("=" * 70)
    print("\nEndpoints:")
    print("  📺 Embed proxy      → /embed?url=...")
    print("  🎬 Watch page       → /watch/movie/<id>, /watch/tv/<id>?season=&episode=")
    print("  📚 Catalog          → /api/trending/<type>, /api/search?q=...")
    print("  📈 Analytics        → /api/track, /api/heartbeat, /api/events, /presence (WS)")
    print(f"\nTLS verification: {'on' if settings.verify_tls else 'OFF'}")
    print("=" * 70 + "\n")

    app.run(host=settings.host, port=settings.port, debug=False, threaded=True)
