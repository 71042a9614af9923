"""Relationship definitions and the stitching engine.

A mapper declares its relations once, when it is built. Fetch calls then
pass a "with" tree naming the relations to load eagerly, e.g.::

    {"author": {}, "comments": {"commenter": {}}}

Each relation at each level costs one fetch against the foreign mapper,
whatever the number of native records; the fetched records are then
partitioned back onto their owners by matching linking column values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from row_mapper.core.enums import RelationKind
from row_mapper.core.exceptions import RelationDefinitionError, UnknownRelationError
from row_mapper.core.locator import Locator
from row_mapper.core.values import identity_value
from row_mapper.mapping.record import Record, RecordSet

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import Mapper
    from row_mapper.table.metadata import TableMetadata

WithTree = dict[str, "WithTree"]
WithSpec = Mapping[str, Any] | Iterable[Any] | str | None

_LinkKey = tuple[Any, ...]


def normalize_with(with_: WithSpec) -> WithTree:
    """Turn a "with" argument into a nested dict of relation names.

    Accepts ``None``, a single name, a list of names (or nested arguments), or
    a mapping of name to nested argument. Repeated names are merged.
    """
    tree: WithTree = {}
    if with_ is None:
        return tree
    if isinstance(with_, str):
        tree[with_] = {}
        return tree
    if isinstance(with_, Mapping):
        for name, nested in with_.items():
            _merge(tree, {name: normalize_with(nested)})
        return tree
    for item in with_:
        _merge(tree, normalize_with(item))
    return tree


def _merge(into: WithTree, other: WithTree) -> None:
    for name, nested in other.items():
        _merge(into.setdefault(name, {}), nested)


@dataclass(frozen=True)
class Relation:
    """One declared relation from a native mapper to a foreign mapper.

    ``on`` pairs a native column with a foreign column. For many-to-many
    relations the "native" side of each pair is a column of the records
    reached through the ``through`` relation.
    """

    name: str
    kind: RelationKind
    native_mapper_class: type[Mapper]
    foreign_mapper_class: type[Mapper]
    on: tuple[tuple[str, str], ...]
    through: str | None = None

    @property
    def native_columns(self) -> tuple[str, ...]:
        return tuple(native for native, _ in self.on)

    @property
    def foreign_columns(self) -> tuple[str, ...]:
        return tuple(foreign for _, foreign in self.on)


class Relationships:
    """The relations of one mapper class, and the engine that loads them."""

    def __init__(
        self,
        native_mapper_class: type[Mapper],
        mapper_locator: Locator,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._native_mapper_class = native_mapper_class
        self._mapper_locator = mapper_locator
        self._relations: dict[str, Relation] = {}
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def _owner(self) -> str:
        return self._native_mapper_class.__name__

    # --- definitions ---

    def one_to_one(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        """Declare a relation to at most one foreign record keyed off the native key."""
        return self._define(name, RelationKind.ONE_TO_ONE, foreign_mapper_class, on)

    def one_to_many(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        """Declare a relation to the foreign records carrying the native key."""
        return self._define(name, RelationKind.ONE_TO_MANY, foreign_mapper_class, on)

    def many_to_one(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        """Declare a relation to the foreign record whose key the native row carries."""
        return self._define(name, RelationKind.MANY_TO_ONE, foreign_mapper_class, on)

    def many_to_many(
        self,
        name: str,
        foreign_mapper_class: type[Mapper],
        through: str,
        on: Mapping[str, str] | None = None,
    ) -> Relation:
        """Declare a relation reached through the records of another relation.

        *through* must name a relation declared earlier on this mapper,
        typically a one-to-many onto an association table.
        """
        return self._define(name, RelationKind.MANY_TO_MANY, foreign_mapper_class, on, through)

    def _define(
        self,
        name: str,
        kind: RelationKind,
        foreign_mapper_class: type[Mapper],
        on: Mapping[str, str] | None,
        through: str | None = None,
    ) -> Relation:
        native_table: TableMetadata = self._native_mapper_class.table
        foreign_table: TableMetadata = foreign_mapper_class.table

        if name in self._relations:
            raise RelationDefinitionError(self._owner, name, "already defined")
        if name in native_table.columns:
            raise RelationDefinitionError(self._owner, name, "name is already a column")

        if kind is RelationKind.MANY_TO_MANY:
            link_table = self._through_table(name, through)
        else:
            link_table = native_table

        if on is None:
            on = self._default_on(kind, native_table, foreign_table)
        if not on:
            raise RelationDefinitionError(self._owner, name, "no linking columns")

        for native_col, foreign_col in on.items():
            if native_col not in link_table.columns:
                raise RelationDefinitionError(
                    self._owner, name, f"'{link_table.name}' has no column '{native_col}'"
                )
            if foreign_col not in foreign_table.columns:
                raise RelationDefinitionError(
                    self._owner, name, f"'{foreign_table.name}' has no column '{foreign_col}'"
                )

        relation = Relation(
            name=name,
            kind=kind,
            native_mapper_class=self._native_mapper_class,
            foreign_mapper_class=foreign_mapper_class,
            on=tuple(on.items()),
            through=through,
        )
        self._relations[name] = relation
        return relation

    def _through_table(self, name: str, through: str | None) -> TableMetadata:
        if through is None or through not in self._relations:
            raise RelationDefinitionError(
                self._owner, name, f"through relation '{through}' is not defined"
            )
        through_relation = self._relations[through]
        if through_relation.kind is RelationKind.MANY_TO_MANY:
            raise RelationDefinitionError(
                self._owner, name, f"through relation '{through}' is itself many-to-many"
            )
        return through_relation.foreign_mapper_class.table

    @staticmethod
    def _default_on(
        kind: RelationKind,
        native_table: TableMetadata,
        foreign_table: TableMetadata,
    ) -> dict[str, str]:
        if kind in (RelationKind.ONE_TO_ONE, RelationKind.ONE_TO_MANY):
            return {col: col for col in native_table.primary_key}
        # many-to-one and many-to-many point at the foreign key by its own names
        return {col: col for col in foreign_table.primary_key}

    # --- lookups ---

    def get(self, name: str) -> Relation:
        """Return the relation called *name*.

        Raises:
            UnknownRelationError: If no such relation is defined.
        """
        try:
            return self._relations[name]
        except KeyError:
            raise UnknownRelationError(self._owner, name) from None

    @property
    def fields(self) -> list[str]:
        """Relation names, in declaration order."""
        return list(self._relations)

    def __contains__(self, name: object) -> bool:
        return name in self._relations

    def __len__(self) -> int:
        return len(self._relations)

    def validate_with(self, with_: WithSpec) -> WithTree:
        """Check every name in a "with" tree, at every depth, before any query.

        Returns:
            The normalized tree.

        Raises:
            UnknownRelationError: On the first undeclared name.
        """
        tree = normalize_with(with_)
        for name, nested in tree.items():
            relation = self.get(name)
            if nested:
                self._foreign_mapper(relation).relationships.validate_with(nested)
        return tree

    def _foreign_mapper(self, relation: Relation) -> Mapper:
        return self._mapper_locator.resolve(relation.foreign_mapper_class)

    # --- stitching ---

    def stitch_into_records(self, records: Sequence[Record], with_: WithSpec) -> None:
        """Load the relations named in *with_* onto every record.

        Relations already loaded on a record are left as they are.
        """
        tree = normalize_with(with_)
        if not tree or not records:
            return
        # every name at this level is checked before the first query
        relations = [(self.get(name), nested) for name, nested in tree.items()]
        # through relations load first, with whatever nesting the tree gives them
        for relation, nested in relations:
            if relation.kind is not RelationKind.MANY_TO_MANY:
                self._stitch_direct(relation, records, nested)
        for relation, nested in relations:
            if relation.kind is RelationKind.MANY_TO_MANY:
                through_nested = tree.get(relation.through or "", {})
                self._stitch_many_to_many(relation, records, nested, through_nested)

    def _stitch_direct(
        self,
        relation: Relation,
        records: Sequence[Record],
        nested: WithTree,
    ) -> None:
        pending = [r for r in records if not r.get_related().is_loaded(relation.name)]
        if not pending:
            return

        foreign_mapper = self._foreign_mapper(relation)
        owner_keys = [_link_key(record, relation.native_columns) for record in pending]
        index = self._fetch_index(relation, foreign_mapper, owner_keys, nested)

        for record, key in zip(pending, owner_keys, strict=True):
            matches = index.get(key[0], []) if key is not None else []
            if relation.kind.is_many:
                value: Record | RecordSet | None = foreign_mapper.new_record_set(matches)
            else:
                value = matches[0] if matches else None
            record.get_related().set(relation.name, value)

        self._log_stitched(relation, pending, index)

    def _stitch_many_to_many(
        self,
        relation: Relation,
        records: Sequence[Record],
        nested: WithTree,
        through_nested: WithTree,
    ) -> None:
        pending = [r for r in records if not r.get_related().is_loaded(relation.name)]
        if not pending:
            return

        # load the association records first, then the targets they point at
        through_relation = self.get(relation.through or "")
        self._stitch_direct(through_relation, pending, through_nested)

        through_by_owner = [
            _as_list(record.get_related().get(through_relation.name)) for record in pending
        ]
        through_keys = [
            _link_key(through, relation.native_columns)
            for throughs in through_by_owner
            for through in throughs
        ]

        foreign_mapper = self._foreign_mapper(relation)
        index = self._fetch_index(relation, foreign_mapper, through_keys, nested)

        for record, throughs in zip(pending, through_by_owner, strict=True):
            matches: list[Record] = []
            for through in throughs:
                key = _link_key(through, relation.native_columns)
                if key is not None:
                    matches.extend(index.get(key[0], []))
            record.get_related().set(relation.name, foreign_mapper.new_record_set(matches))

        self._log_stitched(relation, pending, index)

    def _fetch_index(
        self,
        relation: Relation,
        foreign_mapper: Mapper,
        keys: Iterable[tuple[_LinkKey, tuple[Any, ...]] | None],
        nested: WithTree,
    ) -> dict[_LinkKey, list[Record]]:
        """Fetch the foreign records for *keys* in one go and index them by link key."""
        wanted: dict[_LinkKey, tuple[Any, ...]] = {}
        for key in keys:
            if key is not None and key[0] not in wanted:
                wanted[key[0]] = key[1]
        if not wanted:
            return {}

        foreign_columns = relation.foreign_columns
        if len(foreign_columns) == 1:
            values = [raw[0] for raw in wanted.values()]
            if foreign_columns == foreign_mapper.table.primary_key:
                fetched = foreign_mapper.fetch_record_set(values, nested)
            else:
                fetched = foreign_mapper.fetch_record_set_by({foreign_columns[0]: values}, nested)
        else:
            filters = {
                col: _distinct(raw[position] for raw in wanted.values())
                for position, col in enumerate(foreign_columns)
            }
            fetched = foreign_mapper.fetch_record_set_by(filters, nested)

        index: dict[_LinkKey, list[Record]] = {}
        for foreign in fetched:
            key = _link_key(foreign, foreign_columns)
            # composite filters can return combinations nobody asked for
            if key is not None and key[0] in wanted:
                index.setdefault(key[0], []).append(foreign)
        return index

    def _log_stitched(
        self,
        relation: Relation,
        pending: Sequence[Record],
        index: Mapping[_LinkKey, list[Record]],
    ) -> None:
        self._logger.debug(
            "relation_stitched",
            mapper=self._owner,
            relation=relation.name,
            kind=relation.kind.value,
            records=len(pending),
            related=sum(len(matches) for matches in index.values()),
        )


def _link_key(record: Record, columns: Sequence[str]) -> tuple[_LinkKey, tuple[Any, ...]] | None:
    """Canonical and raw linking values of *record*, or None if any is NULL."""
    raw = tuple(record.get(col) for col in columns)
    if any(value is None for value in raw):
        return None
    return tuple(identity_value(value) for value in raw), raw


def _as_list(value: Record | RecordSet | None) -> list[Record]:
    if value is None:
        return []
    if isinstance(value, Record):
        return [value]
    return list(value)


def _distinct(values: Iterable[Any]) -> list[Any]:
    seen: set[Any] = set()
    result: list[Any] = []
    for value in values:
        key = identity_value(value)
        if key not in seen:
            seen.add(key)
            result.append(value)
    return result
