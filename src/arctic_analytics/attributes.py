"""Attribute value type attached to recorded events."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Attribute:
    """A name/value pair attached to an event.

    ``value`` is written as a quoted JSON string unless ``is_json_fragment``
    is set, in which case it must already be a valid JSON value and is
    embedded verbatim.
    """

    name: str
    value: str
    is_json_fragment: bool = False

    @classmethod
    def of(cls, name: str, value: Any) -> Attribute:
        """Build a plain attribute, stringifying numbers and booleans."""
        if isinstance(value, bool):
            return cls(name, "true" if value else "false")
        return cls(name, str(value))

    @classmethod
    def json_value(cls, name: str, value: Any) -> Attribute:
        """Build a fragment attribute from any JSON-serializable object."""
        return cls(name, json.dumps(value, ensure_ascii=False), is_json_fragment=True)

    def render_value(self) -> str:
        if self.is_json_fragment:
            return self.value
        return json.dumps(self.value, ensure_ascii=False)

    def to_fragment(self) -> str:
        return '{ "name" : %s, "value" : %s }' % (json.dumps(self.name, ensure_ascii=False), self.render_value())
