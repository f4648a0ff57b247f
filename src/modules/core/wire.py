"""Bidirectional mapping between canonical enums and their wire forms.

Zones, service types, discount kinds and statuses travel as symbolic
names (``METRO``), prefixed protocol names (``ZONE_METRO``) or numeric
codes (``1``) depending on the client.  Each enum gets one ``WireCodec``
at the API boundary; everything behind it only sees the canonical
``TextChoices`` member.
"""

from __future__ import annotations

from typing import Dict, Generic, Type, TypeVar, Union

from django.db import models

from modules.core.exceptions import InvalidArgument

E = TypeVar("E", bound=models.TextChoices)

WireValue = Union[str, int]


class WireCodec(Generic[E]):
    """Total mapping ``enum member <-> {name, prefixed name, numeric code}``."""

    def __init__(self, enum_cls: Type[E], prefix: str, codes: Dict[E, int]) -> None:
        missing = set(enum_cls) - set(codes)
        if missing:
            raise ValueError(
                f"{enum_cls.__name__} codec is missing codes for {sorted(missing)}"
            )
        if len(set(codes.values())) != len(codes):
            raise ValueError(f"{enum_cls.__name__} codec has duplicate codes")

        self.enum_cls = enum_cls
        self.prefix = prefix
        self._by_code: Dict[int, E] = {code: member for member, code in codes.items()}
        self._to_code: Dict[E, int] = dict(codes)
        self._by_name: Dict[str, E] = {}
        for member in enum_cls:
            self._by_name[member.value] = member
            self._by_name[f"{prefix}{member.value}"] = member

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, raw: WireValue, field: str = "value") -> E:
        """Return the canonical member for any accepted wire form."""
        if isinstance(raw, self.enum_cls):
            return raw
        if isinstance(raw, bool):
            raise InvalidArgument(f"{field}: unsupported value {raw!r}", field=field)
        if isinstance(raw, int):
            member = self._by_code.get(raw)
        elif isinstance(raw, str):
            text = raw.strip().upper()
            member = self._by_name.get(text)
            if member is None and text.isdigit():
                member = self._by_code.get(int(text))
        else:
            member = None
        if member is None:
            raise InvalidArgument(f"{field}: unsupported value {raw!r}", field=field)
        return member

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_name(self, member: E) -> str:
        return self.enum_cls(member).value

    def to_wire_name(self, member: E) -> str:
        return f"{self.prefix}{self.to_name(member)}"

    def to_code(self, member: E) -> int:
        return self._to_code[self.enum_cls(member)]

    @property
    def accepted_values(self) -> list[str]:
        return sorted(self._by_name)
