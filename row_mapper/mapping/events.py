"""Mapper events.

Subclass MapperEvents and pass an instance to a mapper (or to
``MapperContainer.set_mappers``) to run code around record lifecycle
operations. After-hooks run only when the operation succeeded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import Mapper
    from row_mapper.mapping.record import Record


class MapperEvents:
    """No-op hooks called by Mapper."""

    def modify_new_record(self, mapper: Mapper, record: Record) -> None:
        """Called after ``new_record`` builds a record."""

    def before_insert(self, mapper: Mapper, record: Record) -> None:
        pass

    def after_insert(self, mapper: Mapper, record: Record) -> None:
        pass

    def before_update(self, mapper: Mapper, record: Record) -> None:
        pass

    def after_update(self, mapper: Mapper, record: Record) -> None:
        pass

    def before_delete(self, mapper: Mapper, record: Record) -> None:
        pass

    def after_delete(self, mapper: Mapper, record: Record) -> None:
        pass
