"""Mapping layer - records, relations and mappers."""

from __future__ import annotations

from row_mapper.mapping.events import MapperEvents
from row_mapper.mapping.mapper import Mapper
from row_mapper.mapping.record import Record, RecordSet, Related
from row_mapper.mapping.relationships import Relation, Relationships, normalize_with

__all__ = [
    "Mapper",
    "MapperEvents",
    "Record",
    "RecordSet",
    "Related",
    "Relation",
    "Relationships",
    "normalize_with",
]
