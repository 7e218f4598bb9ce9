"""SP-API region and marketplace routing tables."""

DEFAULT_REGION = "NA"
DEFAULT_MARKETPLACE = "US"

# Regional SP-API hosts
SP_API_HOSTS: dict[str, str] = {
    "NA": "sellingpartnerapi-na.amazon.com",
    "EU": "sellingpartnerapi-eu.amazon.com",
    "FE": "sellingpartnerapi-fe.amazon.com",
}

# Marketplace code -> Amazon marketplace id
MARKETPLACE_IDS: dict[str, str] = {
    "US": "ATVPDKIKX0DER",
    "CA": "A2EUQ1WTGCTBG2",
    "MX": "A1AM78C64UM0Y8",
    "UK": "A1F83G8C2ARO7P",
    "DE": "A1PA6795UKMFR9",
    "FR": "A13V1IB3VIYZZH",
    "IT": "APJ6JRA9NG5V4",
    "ES": "A1RKKUPIHCS9HS",
    "JP": "A1VC38T7YXB528",
    "AU": "A39IBJ37TRP1C6",
}

REGION_MARKETPLACES: dict[str, list[str]] = {
    "NA": ["US", "CA", "MX"],
    "EU": ["UK", "DE", "FR", "IT", "ES"],
    "FE": ["JP", "AU"],
}


def host_for(region: str) -> str:
    """SP-API hostname for a region.

    Unknown regions fall back to the North America host rather than failing;
    a credential with a bad region surfaces as an API error instead.
    """
    return SP_API_HOSTS.get(region, SP_API_HOSTS[DEFAULT_REGION])


def marketplace_id_for(marketplace: str) -> str:
    """Amazon marketplace id for a short code, defaulting to US."""
    return MARKETPLACE_IDS.get(marketplace, MARKETPLACE_IDS[DEFAULT_MARKETPLACE])


def marketplace_codes_for(region: str) -> list[str]:
    """Marketplace codes served by a region (empty for unknown regions)."""
    return list(REGION_MARKETPLACES.get(region, []))


def region_for_marketplace(marketplace: str) -> str:
    """Region whose host serves ``marketplace``; unknown codes map to NA."""
    for region, codes in REGION_MARKETPLACES.items():
        if marketplace in codes:
            return region
    return DEFAULT_REGION


def is_known_marketplace(marketplace: str) -> bool:
    return marketplace in MARKETPLACE_IDS
