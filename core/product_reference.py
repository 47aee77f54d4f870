"""Product reference classification for the commercetools adapter.

Callers may identify a product either by its platform id (a UUID) or by its
symbolic key. commercetools needs different shapes for each: a draft's
``target`` resource identifier takes ``id`` or ``key``, while review query
predicates can only match ``target(id=...)``, so a key must be resolved to
an id before listing.
"""

import re
from enum import Enum
from typing import Dict
from urllib.parse import quote

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class ReferenceKind(str, Enum):
    ID = "id"
    KEY = "key"


def is_platform_id(value: str) -> bool:
    return bool(UUID_PATTERN.match(value))


def quote_predicate_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def path_segment(value: str) -> str:
    return quote(value, safe="")


def reviews_where(product_id: str) -> str:
    """Query predicate selecting the reviews of one product by platform id"""
    return f"target(id={quote_predicate_value(product_id)})"


class ProductReference:
    def __init__(self, value: str, kind: ReferenceKind):
        self.value = value
        self.kind = kind

    @classmethod
    def parse(cls, value: str) -> "ProductReference":
        kind = ReferenceKind.ID if is_platform_id(value) else ReferenceKind.KEY
        return cls(value, kind)

    @property
    def is_platform_id(self) -> bool:
        return self.kind is ReferenceKind.ID

    def review_target(self) -> Dict[str, str]:
        return {"typeId": "product", self.kind.value: self.value}

    def product_path(self, project_key: str) -> str:
        if self.is_platform_id:
            return f"/{project_key}/products/{path_segment(self.value)}"
        return f"/{project_key}/products/key={path_segment(self.value)}"

    def __eq__(self, other):
        return isinstance(other, ProductReference) and (self.value, self.kind) == (other.value, other.kind)

    def __repr__(self):
        return f"ProductReference({self.value!r}, {self.kind.value})"
