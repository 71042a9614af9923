"""Table layer - rows, identities and per-table gateways."""

from __future__ import annotations

from row_mapper.table.gateway import TableGateway
from row_mapper.table.identity_map import IdentityMap
from row_mapper.table.metadata import TableMetadata
from row_mapper.table.primary import Primary
from row_mapper.table.row import Row

__all__ = [
    "TableMetadata",
    "Primary",
    "Row",
    "IdentityMap",
    "TableGateway",
]
