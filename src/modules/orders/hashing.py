"""Canonical payload hashing for idempotent order creation.

Serialization contract (changing any rule invalidates stored hashes):

- hashed fields: ``origin_zone``, ``destination_zone``, ``service_type``,
  ``packages``, ``discount``, ``insurance_enabled``;
- JSON with sorted keys and ``(",", ":")`` separators, UTF-8 encoded;
- enums as their symbolic name (``"METRO"``), whatever wire form the
  client used;
- decimals as normalized fixed-point strings (``2.50`` -> ``"2.5"``,
  ``1E+2`` -> ``"100"``);
- packages keep request order (position is meaningful);
- a discount of kind NONE is encoded as ``null``, like no discount.

The digest is the SHA-256 hex of that document.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from modules.orders.dtos import CreateOrderDTO
from modules.pricing.dtos import DiscountDTO, PackageDTO


def _decimal_text(value: Decimal) -> str:
    text = format(value.normalize(), "f")
    return "0" if text in {"-0", "0"} else text


def _normalize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return _decimal_text(value)
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize(val) for key, val in value.items()}
    return value


def _package_document(package: PackageDTO) -> Dict[str, Any]:
    return {
        "weight_kg": package.weight_kg,
        "height_cm": package.height_cm,
        "width_cm": package.width_cm,
        "length_cm": package.length_cm,
        "fragile": package.fragile,
        "declared_value": package.declared_value,
    }


def _discount_document(discount: Optional[DiscountDTO]) -> Optional[Dict[str, Any]]:
    if discount is None or not discount.is_effective:
        return None
    return {"kind": discount.kind, "value": discount.value}


def canonical_payload(dto: CreateOrderDTO) -> str:
    """Return the canonical JSON document hashed for ``dto``."""
    document = {
        "origin_zone": dto.origin_zone,
        "destination_zone": dto.destination_zone,
        "service_type": dto.service_type,
        "packages": [_package_document(p) for p in dto.packages],
        "discount": _discount_document(dto.discount),
        "insurance_enabled": dto.insurance_enabled,
    }
    return json.dumps(
        _normalize(document),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def payload_hash(dto: CreateOrderDTO) -> str:
    """SHA-256 hex digest of the canonical payload of ``dto``."""
    return hashlib.sha256(canonical_payload(dto).encode("utf-8")).hexdigest()
