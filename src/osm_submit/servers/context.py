from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from osm_submit.auth.provider import AuthProvider
    from osm_submit.utils.environment import OsmSettings


@dataclass(frozen=True)
class MainAppContext:
    """
    Context holding the settings and the authentication provider built
    from environment variables at server startup.
    """

    settings: OsmSettings
    auth_provider: AuthProvider
    read_only: bool = False
