"""Environment-driven configuration for OSM Submit.

Every setting is read from ``OSM_*`` environment variables once, through
:meth:`OsmSettings.from_env`, and then passed around explicitly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal, Tuple

logger = logging.getLogger("osm-submit.utils.environment")

Environment = Literal["dev", "prod"]
AuthProviderName = Literal["pkce", "fixture"]

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")
_ENVIRONMENTS: Final[Tuple[str, ...]] = ("dev", "prod")
_PROVIDERS: Final[Tuple[str, ...]] = ("pkce", "fixture")

DEFAULT_REDIRECT_URI: Final[str] = "http://localhost:9000/auth/callback"
DEFAULT_SCOPE: Final[str] = "read_prefs write_api"
DEFAULT_CREATED_BY: Final[str] = "OSM Submit"


@dataclass(frozen=True, slots=True)
class OsmEndpoints:
    """Remote URLs of one OpenStreetMap deployment."""

    authorize_url: str
    token_url: str
    api_url: str
    user_details_url: str


_ENDPOINTS: dict[Environment, OsmEndpoints] = {
    "dev": OsmEndpoints(
        authorize_url="https://master.apis.dev.openstreetmap.org/oauth2/authorize",
        token_url="https://master.apis.dev.openstreetmap.org/oauth2/token",
        api_url="https://master.apis.dev.openstreetmap.org/api/0.6",
        user_details_url="https://master.apis.dev.openstreetmap.org/api/0.6/user/details.json",
    ),
    "prod": OsmEndpoints(
        authorize_url="https://www.openstreetmap.org/oauth2/authorize",
        token_url="https://www.openstreetmap.org/oauth2/token",
        api_url="https://api.openstreetmap.org/api/0.6",
        user_details_url="https://www.openstreetmap.org/api/0.6/user/details.json",
    ),
}


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def ensure_environment(environment: str) -> Environment:
    """Return *environment* narrowed to :data:`Environment` or raise ``ValueError``."""
    if environment not in _ENVIRONMENTS:
        raise ValueError(f"unsupported OSM environment: {environment!r}")
    return environment  # type: ignore[return-value]


def endpoints_for(environment: str) -> OsmEndpoints:
    """Return the endpoint set of the given deployment."""
    return _ENDPOINTS[ensure_environment(environment)]


def is_read_only_mode() -> bool:
    """Return True when ``OSM_READ_ONLY`` disables write operations."""
    return _truthy(os.getenv("OSM_READ_ONLY"))


@dataclass(frozen=True, slots=True)
class OsmSettings:
    """Runtime configuration of the OAuth client and the submission pipeline."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scope: str = DEFAULT_SCOPE
    environment: Environment = "dev"
    auth_provider: AuthProviderName = "pkce"
    fixture_token: str = "fixture-access-token"
    storage_dir: Path | None = None
    read_only: bool = False
    created_by: str = DEFAULT_CREATED_BY
    http_timeout: tuple[float, float] = (5.0, 30.0)

    @property
    def is_confidential(self) -> bool:
        """True when a client secret is configured."""
        return bool(self.client_secret)

    def endpoints(self, environment: str | None = None) -> OsmEndpoints:
        return endpoints_for(environment or self.environment)

    @classmethod
    def from_env(cls) -> "OsmSettings":
        """Build settings from ``OSM_*`` environment variables.

        Raises
        ------
        ValueError
            If ``OSM_ENVIRONMENT`` or ``OSM_AUTH_PROVIDER`` hold unknown values.
        """
        environment = ensure_environment(
            (os.getenv("OSM_ENVIRONMENT") or "dev").strip().lower()
        )
        provider = (os.getenv("OSM_AUTH_PROVIDER") or "pkce").strip().lower()
        if provider not in _PROVIDERS:
            raise ValueError(f"unsupported OSM_AUTH_PROVIDER: {provider!r}")

        storage_dir_env = os.getenv("OSM_SUBMIT_STORAGE_DIR")
        read_timeout = float(os.getenv("OSM_HTTP_TIMEOUT_SECONDS", "30"))

        settings = cls(
            client_id=os.getenv("OSM_OAUTH_CLIENT_ID", ""),
            client_secret=os.getenv("OSM_OAUTH_CLIENT_SECRET", ""),
            redirect_uri=os.getenv("OSM_OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            scope=os.getenv("OSM_OAUTH_SCOPE") or DEFAULT_SCOPE,
            environment=environment,
            auth_provider=provider,  # type: ignore[arg-type]
            fixture_token=os.getenv("OSM_FIXTURE_TOKEN") or "fixture-access-token",
            storage_dir=Path(storage_dir_env).expanduser() if storage_dir_env else None,
            read_only=is_read_only_mode(),
            created_by=os.getenv("OSM_CHANGESET_CREATED_BY") or DEFAULT_CREATED_BY,
            http_timeout=(5.0, read_timeout),
        )
        if provider == "pkce" and not settings.client_id:
            logger.warning(
                "OSM_OAUTH_CLIENT_ID is not set; login will fail until it is configured."
            )
        return settings
