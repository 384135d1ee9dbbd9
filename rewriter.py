"""
Content rewriter for proxied player pages.

rewrite() is a pure function of (html, effective_url). Passes run in order:
    1. ad-script scrubbing (pluggable AdSignatureMatcher)
    2. <base> injection after the first <head>
    3. enforcer CSS/JS injection before the first </body>
Missing anchors are not errors: the base tag is prepended and the enforcer
appended instead.
"""
import html as html_lib
import posixpath
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from ad_signatures import RegexSignatureMatcher

# Marker attribute carried by the nodes the proxy injects itself
SHIELD_ATTRIBUTE = 'data-embed-shield'

HEAD_RE = re.compile(r'<head>', re.IGNORECASE)
BODY_CLOSE_RE = re.compile(r'</body>', re.IGNORECASE)

ENFORCER_BLOCK = '''
<style ''' + SHIELD_ATTRIBUTE + '''>
    /* Force compliance */
    html, body {
        margin: 0 !important;
        padding: 0 !important;
        width: 100vw !important;
        height: 100vh !important;
        overflow: hidden !important;
        background: black !important;
    }
    /* Hide common ad overlays */
    #ad, .ad, [id*="banner"], [class*="banner"], [id*="pop"], [class*="pop"] {
        display: none !important;
        visibility: hidden !important;
        pointer-events: none !important;
    }
    /* Keep the player on top */
    video, iframe, #player {
        position: relative !important;
        z-index: 9999 !important;
    }
</style>
<script ''' + SHIELD_ATTRIBUTE + '''>
(function() {
    console.log('[Embed Shield] Wrapper active');

    // Popups
    window.open = function() {
        console.log('[Embed Shield] Popup blocked');
        return null;
    };

    // Frame busting
    window.onbeforeunload = function() {
        return false;
    };

    // Ad node sweep
    setInterval(function() {
        var junk = document.querySelectorAll('iframe[src*="ad"], div[style*="z-index: 2147483647"]');
        junk.forEach(function(el) { el.remove(); });
    }, 1000);
})();
</script>
'''


@dataclass(frozen=True)
class RewriteContext:
    """URL pieces of the post-redirect player page"""
    effective_url: str
    scheme: str
    host: str
    path: str

    @classmethod
    def from_url(cls, effective_url):
        parsed = urlparse(effective_url)
        return cls(
            effective_url=effective_url,
            scheme=parsed.scheme,
            host=parsed.netloc,
            path=parsed.path,
        )

    @property
    def directory(self):
        """Path with a trailing file name (last segment containing a dot) removed"""
        if not self.path or self.path == '/':
            return ''
        head, last = posixpath.split(self.path)
        directory = head if '.' in last else self.path
        directory = directory.rstrip('/')
        return directory + '/' if directory else '/'

    @property
    def base_url(self):
        return f"{self.scheme}://{self.host}{self.directory}"

    @property
    def base_tag(self):
        # href is the full effective URL, not base_url
        href = html_lib.escape(self.effective_url, quote=True)
        return f'<base {SHIELD_ATTRIBUTE} href="{href}">'


def inject_base_tag(html, context):
    """Put the <base> tag right after the first <head>, or at the very start"""
    tag = context.base_tag
    head = HEAD_RE.search(html)
    at = head.end() if head else 0
    if html.startswith(tag, at):
        return html
    return html[:at] + tag + html[at:]


def inject_enforcer(html):
    """Put the enforcer block before the first </body>, or at the very end"""
    if ENFORCER_BLOCK in html:
        return html
    if BODY_CLOSE_RE.search(html):
        return BODY_CLOSE_RE.sub(lambda m: ENFORCER_BLOCK + m.group(0), html, count=1)
    return html + ENFORCER_BLOCK


def scrub_ads(html, matcher):
    """Run the matcher over everything except an already injected enforcer block"""
    return ENFORCER_BLOCK.join(matcher.scrub(part) for part in html.split(ENFORCER_BLOCK))


_default_matcher = RegexSignatureMatcher()


def rewrite(html, effective_url, matcher=None):
    """Scrub ads, fix relative links and add the kill switch"""
    context = RewriteContext.from_url(effective_url)
    html = scrub_ads(html, matcher or _default_matcher)
    html = inject_base_tag(html, context)
    html = inject_enforcer(html)
    return html
