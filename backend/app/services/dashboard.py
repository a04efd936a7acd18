"""Institution dashboard: independent platform reads fetched concurrently."""
import asyncio
import logging

from app.core.session import SessionContext
from app.services.platform import PlatformClient

logger = logging.getLogger(__name__)

ANALYTICS_FAILED = "Failed to load analytics data"


async def fetch_institution_overview(
    client: PlatformClient,
    session: SessionContext,
    institution_id: str | None = None,
) -> dict:
    """Institution analytics merged with internship and placement stats.

    State directorate users pass the institution to look at; everyone else
    sees their own.
    """
    institution = session.resolve_institution(institution_id) or session.own_institution()
    params = {"institutionId": institution}
    token = session.access_token

    analytics, internship_stats, placement_stats = await asyncio.gather(
        client.get_json("/principal/analytics", token, params=params, fallback=ANALYTICS_FAILED),
        client.get_json("/principal/internships/stats", token, params=params, fallback=ANALYTICS_FAILED),
        client.get_json("/principal/placements/stats", token, params=params, fallback=ANALYTICS_FAILED),
    )

    overview = dict(analytics) if isinstance(analytics, dict) else {"analytics": analytics}
    overview["internshipStats"] = internship_stats
    overview["placementStats"] = placement_stats
    logger.debug("Loaded dashboard overview for institution %s", institution)
    return overview
