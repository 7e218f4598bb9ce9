"""Step-by-step access check for a credential.

Runs the LWA exchange, then the lightest SP-API call, then a public catalog
search. The interesting failure is a 403 after the token exchange
succeeded: the refresh token is valid but belongs to the draft application.
"""

import logging

from sellerdash.schemas.amazon import DiagnosticsResponse, DiagnosticStep
from sellerdash.services.amazon.client import AmazonSPAPIClient, APIRequestError
from sellerdash.services.amazon.tokens import TokenExchangeError

logger = logging.getLogger(__name__)


def _count(data, key: str) -> int:
    if not isinstance(data, dict):
        return 0
    return len(data.get(key) or [])


def _failed_step(name: str, error: APIRequestError) -> DiagnosticStep:
    return DiagnosticStep(
        name=name,
        success=False,
        status_code=error.status_code,
        detail=error.message,
        diagnosis=error.diagnosis,
        hint=error.hint,
    )


async def run_diagnostics(client: AmazonSPAPIClient, marketplace_id: str) -> DiagnosticsResponse:
    """Check token exchange and SP-API access for ``client``'s credential.

    Args:
        client: Client bound to the credential under test
        marketplace_id: Marketplace for the catalog search

    Returns:
        DiagnosticsResponse; stops at the first failing step
    """
    steps: list[DiagnosticStep] = []

    try:
        await client.get_access_token()
    except TokenExchangeError as e:
        steps.append(
            DiagnosticStep(
                name="lwa_token",
                success=False,
                status_code=e.status_code,
                detail=e.message,
                hint=e.hint,
            )
        )
        return DiagnosticsResponse(success=False, steps=steps, hint=e.hint)
    steps.append(DiagnosticStep(name="lwa_token", success=True, status_code=200))

    try:
        participations = await client.test_marketplace_participations()
    except APIRequestError as e:
        logger.warning(f"Marketplace participations check failed with {e.status_code}")
        steps.append(_failed_step("marketplace_participations", e))
        return DiagnosticsResponse(success=False, steps=steps, hint=e.hint)
    steps.append(
        DiagnosticStep(
            name="marketplace_participations",
            success=True,
            status_code=200,
            data={"marketplaces": _count(participations, "payload")},
        )
    )

    try:
        search = await client.test_public_catalog_search(marketplace_id)
    except APIRequestError as e:
        steps.append(_failed_step("public_catalog_search", e))
        return DiagnosticsResponse(success=False, steps=steps, hint=e.hint)
    steps.append(
        DiagnosticStep(
            name="public_catalog_search",
            success=True,
            status_code=200,
            data={"items": _count(search, "items")},
        )
    )

    return DiagnosticsResponse(success=True, steps=steps)
