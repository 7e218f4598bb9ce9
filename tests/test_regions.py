"""Tests for region and marketplace routing."""

import pytest

from sellerdash.services.amazon import regions
from sellerdash.services.amazon.client import AmazonSPAPIClient


@pytest.mark.parametrize(
    "region,host",
    [
        ("NA", "sellingpartnerapi-na.amazon.com"),
        ("EU", "sellingpartnerapi-eu.amazon.com"),
        ("FE", "sellingpartnerapi-fe.amazon.com"),
    ],
)
def test_host_for_known_regions(region, host):
    assert regions.host_for(region) == host


def test_unknown_region_falls_back_to_north_america():
    assert regions.host_for("ZZ") == regions.host_for("NA")
    assert regions.host_for("") == "sellingpartnerapi-na.amazon.com"


def test_marketplace_ids():
    assert regions.marketplace_id_for("US") == "ATVPDKIKX0DER"
    assert regions.marketplace_id_for("DE") == "A1PA6795UKMFR9"
    assert regions.marketplace_id_for("JP") == "A1VC38T7YXB528"
    assert len(regions.MARKETPLACE_IDS) == 10


def test_unknown_marketplace_defaults_to_us():
    assert regions.marketplace_id_for("ZZ") == regions.marketplace_id_for("US")


def test_marketplace_codes_for_region():
    assert regions.marketplace_codes_for("NA") == ["US", "CA", "MX"]
    assert regions.marketplace_codes_for("EU") == ["UK", "DE", "FR", "IT", "ES"]
    assert regions.marketplace_codes_for("FE") == ["JP", "AU"]
    assert regions.marketplace_codes_for("ZZ") == []


def test_marketplace_codes_are_copies():
    codes = regions.marketplace_codes_for("NA")
    codes.append("XX")
    assert regions.marketplace_codes_for("NA") == ["US", "CA", "MX"]


def test_region_for_marketplace():
    assert regions.region_for_marketplace("CA") == "NA"
    assert regions.region_for_marketplace("UK") == "EU"
    assert regions.region_for_marketplace("AU") == "FE"
    assert regions.region_for_marketplace("ZZ") == "NA"


def test_client_static_helpers_use_routing_tables():
    assert AmazonSPAPIClient.get_marketplace_id("FR") == "A13V1IB3VIYZZH"
    assert AmazonSPAPIClient.get_marketplaces_for_region("FE") == ["JP", "AU"]
