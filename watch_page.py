"""HTML for the landing page and the watch page."""
from urllib.parse import urlencode

from flask import render_template_string
from markupsafe import Markup

from shield import key_for, mount, render_shield_script

EMBED_PATH = '/embed'

INDEX_TEMPLATE = '''<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>EmbedShield</title>
    <style>
        body { font-family: system-ui, -apple-system, sans-serif; background: #0b0b0f; color: #eee; padding: 40px; }
        code { background: #222; padding: 2px 6px; border-radius: 4px; }
        li { margin: 6px 0; }
    </style>
</head>
<body>
    <h1>EmbedShield</h1>
    <p>Embed proxy: <code>{{ embed_path }}?url=PLAYER_URL</code></p>
    <p>Watch page: <code>/watch/movie/ID</code> or <code>/watch/tv/ID?season=1&amp;episode=1</code></p>
    <h2>Providers</h2>
    <ul>
    {% for p in providers %}
        <li><b>{{ p.name }}</b> ({{ p.id }}) - ads: {{ p.ad_risk }}, shield clicks: {{ p.shield_clicks }}{% if p.recommended %} ★{% endif %}</li>
    {% endfor %}
    </ul>
</body>
</html>
'''

WATCH_TEMPLATE = '''<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{{ title }}</title>
    <style>
        body { margin: 0; font-family: system-ui, -apple-system, sans-serif; background: #000; color: #eee; }
        #stage { position: relative; width: 100%; max-width: 1600px; aspect-ratio: 16 / 9; margin: 0 auto; background: #000; }
        #player { position: absolute; inset: 0; width: 100%; height: 100%; border: 0; z-index: 20; }
        #shield { position: absolute; inset: 0; z-index: 50; cursor: pointer; }
        #play-gate { position: absolute; inset: 0; z-index: 60; display: flex; flex-direction: column; align-items: center; justify-content: center; cursor: pointer; background: rgba(0,0,0,0.8) center / cover no-repeat; }
        #play-gate .play { width: 88px; height: 88px; border-radius: 50%; background: #f97316; color: #fff; font-size: 36px; display: flex; align-items: center; justify-content: center; }
        #play-gate small { color: #999; margin-top: 4px; }
        #bar { max-width: 1600px; margin: 0 auto; padding: 16px; }
        .provider { margin: 4px; padding: 8px 14px; border: 0; border-radius: 8px; background: #222; color: #ccc; cursor: pointer; }
        .provider.active { background: #f97316; color: #fff; }
        #disclosure { position: fixed; inset: 0; z-index: 100; display: none; align-items: center; justify-content: center; background: rgba(0,0,0,0.8); }
        #disclosure div { background: #111; padding: 24px; border-radius: 12px; max-width: 420px; }
    </style>
</head>
<body>
    <div id="stage">
        <iframe id="player" data-src="{{ proxied_url }}" allowfullscreen
                allow="accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture; web-share; fullscreen"
                title="{{ title }}"></iframe>
        <div id="shield"></div>
        <div id="play-gate"{% if backdrop %} style="background-image: linear-gradient(rgba(0,0,0,0.7), rgba(0,0,0,0.7)), url('{{ backdrop }}')"{% endif %}>
            <div class="play">&#9654;</div>
            <b>Click to Play</b>
            <small>Loads video securely</small>
        </div>
    </div>

    <div id="bar">
        <h1>{{ title }}</h1>
        {% if media_type == 'tv' %}<p>Season {{ season }} &middot; Episode {{ episode }}</p>{% endif %}
        <p>Secure shield: <span id="shield-status">ACTIVE</span></p>

        <div id="providers">
        {% for p in provider_links %}
            <button class="provider{% if p.id == provider.id %} active{% endif %}"
                    data-provider="{{ p.id }}" data-name="{{ p.name }}" data-src="{{ p.proxied_url }}"
                    data-key="{{ p.key }}" data-threshold="{{ p.shield_clicks }}"
                    data-disclosure="{{ 1 if p.show_disclosure else 0 }}">{{ p.name }}</button>
        {% endfor %}
        </div>

        {% if media_type == 'tv' %}
        <form method="get">
            <input type="hidden" name="provider" value="{{ provider.id }}">
            <label>Season
                <select name="season" onchange="this.form.episode.value = 1; this.form.submit()">
                {% for s in seasons %}
                    <option value="{{ s }}"{% if s == season %} selected{% endif %}>{{ s }}</option>
                {% endfor %}
                </select>
            </label>
            <label>Episode
                <select name="episode" id="episode-select">
                {% for e in episodes %}
                    <option value="{{ e }}"{% if e == episode %} selected{% endif %}>{{ e }}</option>
                {% endfor %}
                </select>
            </label>
        </form>
        {% endif %}
    </div>

    <div id="disclosure">
        <div>
            <h3>Heads up</h3>
            <p>This server shows pop-up ads on first interaction. The first clicks on the player are absorbed to block them; click again to start playback.</p>
            <button id="disclosure-ok">Got it</button>
        </div>
    </div>

    {{ shield_script }}

    <script>
    (function() {
        var player = document.getElementById('player');
        var disclosure = document.getElementById('disclosure');
        var contentId = {{ content_id }};
        var title = {{ title | tojson }};
        var sessionId = localStorage.getItem('embed_session_id');
        if (!sessionId) {
            sessionId = 'session_' + Math.random().toString(36).substr(2, 9) + Date.now();
            localStorage.setItem('embed_session_id', sessionId);
        }

        function sendEvent(name, fields) {
            fields.event = name;
            fetch('/api/events', { method: 'POST', keepalive: true, headers: { 'Content-Type': 'application/json' }, body: JSON.stringify(fields) })
                .catch(function() {});
        }

        function maybeDisclose(providerId, flag) {
            var seenKey = 'embed_disclosure_' + providerId;
            if (flag === '1' && !localStorage.getItem(seenKey)) {
                localStorage.setItem(seenKey, '1');
                disclosure.style.display = 'flex';
            }
        }
        document.getElementById('disclosure-ok').addEventListener('click', function() {
            disclosure.style.display = 'none';
        });

        // Nothing loads until the viewer asks for it
        var playing = false;
        var gate = document.getElementById('play-gate');
        gate.addEventListener('click', function() {
            playing = true;
            gate.style.display = 'none';
            player.src = player.dataset.src;
            sendEvent('content_play', { content_id: contentId, media_type: {{ media_type | tojson }}, title: title });
        });

        document.querySelectorAll('.provider').forEach(function(btn) {
            btn.addEventListener('click', function() {
                document.querySelectorAll('.provider').forEach(function(b) { b.classList.remove('active'); });
                btn.classList.add('active');
                player.dataset.src = btn.dataset.src;
                if (playing) player.src = btn.dataset.src;
                window.embedShield.remount(btn.dataset.key, parseInt(btn.dataset.threshold, 10));
                maybeDisclose(btn.dataset.provider, btn.dataset.disclosure);
                sendEvent('provider_switch', { provider_id: btn.dataset.provider, provider_name: btn.dataset.name });
            });
        });

        var episodeSelect = document.getElementById('episode-select');
        if (episodeSelect) {
            episodeSelect.addEventListener('change', function() {
                sendEvent('episode_select', { content_id: contentId, title: title,
                    season: {{ season | tojson }}, episode: parseInt(episodeSelect.value, 10) });
                episodeSelect.form.submit();
            });
        }

        maybeDisclose({{ provider.id | tojson }}, '{{ 1 if provider.show_disclosure else 0 }}');
        fetch('/api/track', { method: 'POST', headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify({ session_id: sessionId, path: location.pathname, movie_title: title }) })
            .catch(function() {});

        // Live presence
        var ws;
        function heartbeat() {
            if (ws && ws.readyState === 1) {
                ws.send(JSON.stringify({ session_id: sessionId, path: location.pathname, movie_title: title }));
            }
        }
        try {
            ws = new WebSocket((location.protocol === 'https:' ? 'wss:' : 'ws:') + '//' + location.host + '/presence');
            ws.onopen = heartbeat;
            var timer = setInterval(heartbeat, 30000);
            window.addEventListener('beforeunload', function() { clearInterval(timer); ws.close(); });
        } catch (e) {
            console.log('[Presence] unavailable', e);
        }
    })();
    </script>
</body>
</html>
'''


def proxied_url(embed_url, embed_path=EMBED_PATH):
    return f"{embed_path}?{urlencode({'url': embed_url})}"


def render_index(providers):
    return render_template_string(INDEX_TEMPLATE, providers=providers, embed_path=EMBED_PATH)


def render_watch_page(provider, providers, content_id, media_type='movie', title='',
                      season=None, episode=None, seasons=(), episodes=(), backdrop=None):
    """Watch page: proxied player iframe under an armed interceptor shield"""
    if media_type != 'tv':
        season = episode = None

    provider_links = []
    for p in providers:
        provider_links.append({
            'id': p.id,
            'name': p.name,
            'shield_clicks': p.shield_clicks,
            'show_disclosure': p.show_disclosure,
            'proxied_url': proxied_url(p.get_url(content_id, season, episode)),
            'key': key_for(p, season, episode).token,
        })

    state = mount(key_for(provider, season, episode), provider.shield_clicks)
    return render_template_string(
        WATCH_TEMPLATE,
        title=title or f"{media_type.upper()} {content_id}",
        media_type=media_type,
        content_id=content_id,
        provider=provider,
        provider_links=provider_links,
        proxied_url=proxied_url(provider.get_url(content_id, season, episode)),
        season=season,
        episode=episode,
        seasons=list(seasons) or ([season] if season else []),
        episodes=list(episodes) or ([episode] if episode else []),
        shield_script=Markup(render_shield_script(state)),
        backdrop=backdrop,
    )
