"""Site directory interface (port) for authorized clock-in sites."""

from __future__ import annotations

from typing import Protocol, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from ponto.core.models import AuthorizedSite


class SiteDirectory(Protocol):
    """Port: supplies the current list of authorized sites."""

    async def list_sites(self) -> Sequence[AuthorizedSite]: ...


class StaticSiteDirectory:
    """SiteDirectory over a fixed, in-memory list."""

    def __init__(self, sites: Sequence[AuthorizedSite] = ()) -> None:
        self._sites = tuple(sites)

    async def list_sites(self) -> Sequence[AuthorizedSite]:
        return self._sites
