"""Integration tests for idempotent order creation over HTTP.

Covers:
- Replaying the same key and body 3x returns the same order (201 each time).
- Pricing runs once across replays.
- Same key with a different body is rejected (409) and creates nothing.
- Different keys create distinct orders.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.orders.models import IdempotencyRecord, Order
from modules.pricing.services import PricingService

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def _post(client, payload, key):
    return client.post(URL, payload, format="json", HTTP_IDEMPOTENCY_KEY=key)


class TestIdempotentCreate:
    def test_replay_returns_same_order(self, api_client, order_payload):
        responses = [_post(api_client, order_payload, "idem-1") for _ in range(3)]

        assert [r.status_code for r in responses] == [201, 201, 201]
        assert len({r.json()["order_id"] for r in responses}) == 1
        assert responses[0].json() == responses[2].json()
        assert Order.objects.count() == 1
        assert IdempotencyRecord.objects.get(pk="idem-1").order_id == responses[0].json()[
            "order_id"
        ]

    def test_replay_does_not_price_again(self, api_client, order_payload):
        with patch.object(
            PricingService, "calculate", autospec=True, side_effect=PricingService.calculate
        ) as calculate:
            _post(api_client, order_payload, "idem-2")
            _post(api_client, order_payload, "idem-2")

        assert calculate.call_count == 1

    def test_equivalent_wire_forms_replay(self, api_client, order_payload):
        first = _post(api_client, order_payload, "idem-3")

        order_payload.update(destination_zone="ZONE_INTERIOR", service_type=2)
        order_payload["packages"][0]["weight_kg"] = "2.50"
        second = _post(api_client, order_payload, "idem-3")

        assert second.status_code == 201
        assert second.json()["order_id"] == first.json()["order_id"]

    def test_different_payload_same_key_is_409(self, api_client, order_payload):
        first = _post(api_client, order_payload, "idem-4")

        order_payload["insurance_enabled"] = False
        second = _post(api_client, order_payload, "idem-4")

        assert first.status_code == 201
        assert second.status_code == 409
        error = second.json()["errors"][0]
        assert error["code"] == "failed_precondition"
        assert error["attr"] == "idempotency_key"
        assert Order.objects.count() == 1

    def test_different_keys_create_distinct_orders(self, api_client, order_payload):
        first = _post(api_client, order_payload, "idem-5")
        second = _post(api_client, order_payload, "idem-6")

        assert first.json()["order_id"] != second.json()["order_id"]
        assert Order.objects.count() == 2

    def test_without_key_every_request_creates(self, api_client, order_payload):
        api_client.post(URL, order_payload, format="json")
        api_client.post(URL, order_payload, format="json")

        assert Order.objects.count() == 2
        assert IdempotencyRecord.objects.count() == 0
