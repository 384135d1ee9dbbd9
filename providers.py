"""Third-party embed providers and their URL templates."""
from dataclasses import dataclass
from typing import Callable, Optional


def embedmaster_url(content_id, season=None, episode=None):
    if season and episode:
        base = f"https://embedmaster.link/tv/{content_id}/{season}/{episode}"
    else:
        base = f"https://embedmaster.link/movie/{content_id}"
    return f"{base}?js=1&controls=0"


def vidsrc_me_url(content_id, season=None, episode=None):
    if season and episode:
        base = f"https://vidsrc.me/embed/tv?tmdb={content_id}&season={season}&episode={episode}"
    else:
        base = f"https://vidsrc.me/embed/movie?tmdb={content_id}"
    return f"{base}&js=1"


def vidlink_url(content_id, season=None, episode=None):
    if season and episode:
        base = f"https://vidlink.pro/tv/{content_id}/{season}/{episode}"
    else:
        base = f"https://vidlink.pro/movie/{content_id}"
    return f"{base}?js=1&controls=0"


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of an embed provider"""
    id: str
    name: str
    url_builder: Callable[..., str]
    ad_risk: str = 'medium'
    shield_clicks: int = 2
    show_disclosure: bool = False
    note: str = ''
    quality: str = 'high'
    recommended: bool = False

    def __post_init__(self):
        if self.shield_clicks < 1:
            raise ValueError(f"{self.id}: shield_clicks must be at least 1")

    def get_url(self, content_id, season=None, episode=None):
        """Embed URL for a movie (no season/episode) or a TV episode"""
        return self.url_builder(content_id, season, episode)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'ad_risk': self.ad_risk,
            'shield_clicks': self.shield_clicks,
            'show_disclosure': self.show_disclosure,
            'note': self.note,
            'quality': self.quality,
            'recommended': self.recommended,
        }


PROVIDERS = (
    ProviderDescriptor(
        id='embedmaster',
        name='Server 1 (Fast)',
        url_builder=embedmaster_url,
        ad_risk='none',
        shield_clicks=1,
        note='Primary - No Ads',
        quality='high',
        recommended=True,
    ),
    ProviderDescriptor(
        id='vidsrc_me',
        name='Server 2 (Backup)',
        url_builder=vidsrc_me_url,
        ad_risk='medium',
        shield_clicks=2,
        show_disclosure=True,
        note='Original Server',
        quality='high',
    ),
    ProviderDescriptor(
        id='vidlink',
        name='Server 3 (HD)',
        url_builder=vidlink_url,
        ad_risk='low',
        shield_clicks=2,
        show_disclosure=True,
        note='Modern Player',
        quality='HD',
    ),
)

DEFAULT_PROVIDER = PROVIDERS[0]


def get_provider(provider_id) -> Optional[ProviderDescriptor]:
    for provider in PROVIDERS:
        if provider.id == provider_id:
            return provider
    return None
