"""DRF fields shared by the API modules."""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from modules.core.exceptions import InvalidArgument
from modules.core.wire import WireCodec


class WireEnumField(serializers.Field):
    """Accepts any wire form of an enum, renders the symbolic name."""

    default_error_messages = {
        "invalid_choice": "{input!r} is not a valid choice. Expected one of: {choices}.",
    }

    def __init__(self, codec: WireCodec, **kwargs: Any) -> None:
        self.codec = codec
        super().__init__(**kwargs)

    def to_internal_value(self, data: Any) -> Any:
        try:
            return self.codec.decode(data, field=self.field_name or "value")
        except InvalidArgument:
            self.fail(
                "invalid_choice",
                input=data,
                choices=", ".join(self.codec.accepted_values),
            )

    def to_representation(self, value: Any) -> str:
        return self.codec.to_name(value)
