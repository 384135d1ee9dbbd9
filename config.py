"""Configuration management."""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TIMEOUT = 15
DEFAULT_PORT = 5000
TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"


def env_flag(name, default):
    """Read a boolean environment variable (1/true/yes/on)"""
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup."""
    request_timeout: float = DEFAULT_TIMEOUT
    # Many embed hosts run self-signed or mismatched certificates
    verify_tls: bool = False
    allow_any_origin: bool = True
    allow_any_framing: bool = True
    log_file: Optional[str] = None
    log_level: str = 'INFO'
    tmdb_api_key: str = ''
    tmdb_base_url: str = TMDB_BASE_URL
    supabase_url: str = ''
    supabase_key: str = ''
    admin_path_prefix: str = '/admin'
    host: str = '0.0.0.0'
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls) -> 'Settings':
        """Load settings from environment variables (and .env if present)."""
        return cls(
            request_timeout=float(os.getenv('EMBED_REQUEST_TIMEOUT', DEFAULT_TIMEOUT)),
            verify_tls=env_flag('EMBED_VERIFY_TLS', False),
            allow_any_origin=env_flag('EMBED_ALLOW_ANY_ORIGIN', True),
            allow_any_framing=env_flag('EMBED_ALLOW_ANY_FRAMING', True),
            log_file=os.getenv('EMBED_LOG_FILE') or None,
            log_level=os.getenv('EMBED_LOG_LEVEL', 'INFO'),
            tmdb_api_key=os.getenv('TMDB_API_KEY', ''),
            tmdb_base_url=os.getenv('TMDB_BASE_URL', TMDB_BASE_URL).rstrip('/'),
            supabase_url=os.getenv('SUPABASE_URL', '').rstrip('/'),
            supabase_key=os.getenv('SUPABASE_KEY', ''),
            admin_path_prefix=os.getenv('ANALYTICS_ADMIN_PREFIX', '/admin'),
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', DEFAULT_PORT)),
        )
