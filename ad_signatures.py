"""
Ad-script detection strategies.

The rewriter only knows the AdSignatureMatcher interface, so the regex
blocklist below can be replaced by a parser-based filter later.
"""
import re
from abc import ABC, abstractmethod

SCRUBBED_MARKER = '<!-- AD SCRUBBED -->'

# Networks and popup tricks seen in third-party player pages, checked in order
DEFAULT_SIGNATURES = (
    'popads',
    'propeller',
    'adsterra',
    'onmousedown',
    'monetag',
    'window.open',
)


class AdSignatureMatcher(ABC):
    """Removes ad scripts from an HTML document"""

    @abstractmethod
    def scrub(self, html):
        """Return html with every detected ad script replaced"""


class RegexSignatureMatcher(AdSignatureMatcher):
    """Blocklist matcher: drops any inline <script> block whose body contains a signature"""

    def __init__(self, signatures=DEFAULT_SIGNATURES, replacement=SCRUBBED_MARKER):
        self.signatures = tuple(signatures)
        self.replacement = replacement
        self.patterns = [self._compile(sig) for sig in self.signatures]

    @staticmethod
    def _compile(signature):
        # The tempered token keeps a match inside a single <script> block
        return re.compile(
            r'<script\b[^>]*>'
            r'(?:(?!</script\s*>).)*?'
            + re.escape(signature) +
            r'.*?</script\s*>',
            re.IGNORECASE | re.DOTALL,
        )

    def scrub(self, html):
        for pattern in self.patterns:
            html = pattern.sub(self.replacement, html)
        return html

