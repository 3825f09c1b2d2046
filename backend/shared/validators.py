"""Settings helpers shared by the relay server and the sync client."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_string_list(value: str | list[str]) -> list[str]:
    """Accept a list, a JSON array string or a comma-separated string.

    Raises ValueError for empty input or a JSON value that is not a list of strings.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                value = json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ValueError("JSON value must be an array of strings")
        else:
            value = [part.strip() for part in text.split(",") if part.strip()]
    if not value:
        raise ValueError("String list value must not be empty")
    return list(value)


class StringListEnvSettingsSource(EnvSettingsSource):
    """Hand list fields to field validators as the raw env string.

    pydantic-settings would otherwise JSON-decode list-typed env values itself
    and reject the comma-separated form.
    """

    raw_string_fields: ClassVar[frozenset[str]] = frozenset({"cors_origins"})

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in self.raw_string_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
