"""
Collection schema resolution.

A collection's schema maps opaque property codes (``"title"``, ``"fz`,"``)
to ``{"name": ..., "type": ...}``.  Queries and updates address
properties by code, users by name.
"""

import logging

logger = logging.getLogger(__name__)


def property_keys(schema: dict | None) -> dict[str, str]:
    """Build a display-name -> property-code map from a collection schema.

    Not memoized: the schema is embedded in every query response and may
    change between calls.  When two codes share a name the later one wins.
    """
    keys: dict[str, str] = {}
    for code, prop in (schema or {}).items():
        name = prop.get("name")
        if name is None:
            continue
        if name in keys:
            logger.warning(
                "Schema property %r maps to both %r and %r; using %r",
                name, keys[name], code, code,
            )
        keys[name] = code
    return keys


def first_collection_schema(record_map: dict) -> dict:
    """Schema of the first collection in a query record map ({} if none)."""
    for entry in (record_map.get("collection") or {}).values():
        value = entry.get("value") or {}
        return value.get("schema") or {}
    return {}
