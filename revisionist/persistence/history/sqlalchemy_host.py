# Recidiviz - a data platform for criminal justice reform
# Copyright (C) 2019 Recidiviz, Inc.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Hosts revision history in a SQLAlchemy declarative schema.

Single-instance mutations are observed through mapper events, which run during
flush on the flush connection, so revisions commit or roll back with the
mutation. Bulk update() / delete() statements are observed through the
do_orm_execute event of a Session class or sessionmaker.

Usage:
    session_maker = sessionmaker()
    host = SQLAlchemyHost(Base, session_target=session_maker)
    bind_all(host)
    with SessionFactory.using_schema_base(Base, session_maker=session_maker) as session:
        ...

    # Bulk statements that should be replayed per instance:
    session.execute(
        update(Book).where(Book.year < 1900).values(title="Classic"),
        execution_options={INDIVIDUAL_HOOKS_OPTION: True},
    )
"""
import logging
from collections import defaultdict
from typing import Any, DefaultDict, Dict, Iterable, List, Optional, Set, Type

from more_itertools import one
from sqlalchemy import Column, ForeignKey, event, insert, select
from sqlalchemy.exc import NoInspectionAvailable, SQLAlchemyError
from sqlalchemy.orm import ORMExecuteState, Session, foreign, relationship

from revisionist.persistence.database.database_entity import (
    ColumnDefinition,
    get_column,
    get_column_definitions,
    get_column_property_names,
    get_column_states,
    get_mapper,
    get_primary_key_property_name,
    get_property_names_by_column_key,
    has_column_changes,
    to_column_keyed_row,
    to_column_keyed_rows,
)
from revisionist.persistence.errors import (
    ConfigurationError,
    RevisionPersistenceError,
)
from revisionist.persistence.history.host_collaborator import (
    MODEL_ATTRIBUTE,
    REVISIONS_ATTRIBUTE,
    HostCollaborator,
)
from revisionist.persistence.history.lifecycle_event import (
    BulkMutation,
    InstanceMutation,
    LifecycleEvent,
    MutationHandler,
)
from revisionist.persistence.history.schema_deriver import (
    HISTORY_ID_FIELD,
    MODEL_ID_FIELD,
    HistorySchema,
    TrackedTypeSchema,
)

# Execution option that makes a bulk statement fire no bulk revision; the caller
# replays it per instance instead, for example with expand_bulk_mutation().
INDIVIDUAL_HOOKS_OPTION = "individual_hooks"

_MAPPER_EVENT_NAMES = {
    LifecycleEvent.PRE_UPDATE: "before_update",
    LifecycleEvent.PRE_DESTROY: "before_delete",
}


def build_column(definition: ColumnDefinition) -> Column:
    """Returns a new Column from a column definition. Properties set to None are
    left to the Column defaults."""
    definition = dict(definition)
    name = definition.pop("name")
    column_type = definition.pop("type")
    foreign_keys = [ForeignKey(target) for target in definition.pop("foreign_keys", [])]
    kwargs = {key: value for key, value in definition.items() if value is not None}
    return Column(name, column_type, *foreign_keys, **kwargs)


def _updated_field_names(entity_type: Type, statement: Any) -> List[str]:
    """Returns the column attribute names an ORM update() statement writes, in
    the order the statement declares them."""
    # pylint: disable=protected-access
    # Only SQLAlchemy 2.0 has _ordered_values; _values keeps declaration order.
    ordered_values = getattr(statement, "_ordered_values", None)
    if ordered_values:
        keys = [key for key, _ in ordered_values]
    else:
        keys = list(statement._values or {})
    return _to_field_names(entity_type, keys)


def _to_field_names(entity_type: Type, keys: Iterable[Any]) -> List[str]:
    property_names = get_property_names_by_column_key(entity_type)
    column_property_names = get_column_property_names(entity_type)
    field_names: List[str] = []
    for key in keys:
        column_key = key if isinstance(key, str) else getattr(key, "key", None)
        name = property_names.get(column_key, column_key)
        if name in column_property_names and name not in field_names:
            field_names.append(name)
    return field_names


def _primary_key_parameter_rows(
    entity_type: Type, orm_execute_state: ORMExecuteState
) -> Optional[List[Dict[str, Any]]]:
    """Returns the parameter rows of an ORM bulk statement by primary key, e.g.
    session.execute(update(Book), [{"book_id": 1, "title": "X"}]), or None if
    the statement selects its rows with a WHERE clause."""
    parameters = orm_execute_state.parameters
    if orm_execute_state.statement.whereclause is not None or not isinstance(
        parameters, list
    ):
        return None
    identity_name = get_primary_key_property_name(entity_type)
    if not parameters or not all(identity_name in row for row in parameters):
        return None
    return parameters


def _on_column_set(
    _target: Any, _value: Any, _old_value: Any, _initiator: Any
) -> None:
    # Registered only for active_history; the prior value is loaded by SQLAlchemy.
    return None


class SQLAlchemyHost(HostCollaborator):
    """HostCollaborator over the declarative base |base|.

    |session_target| is the Session class or sessionmaker whose sessions bulk
    statements are observed on. It defaults to Session, which observes every
    session in the process.
    """

    def __init__(self, base: Any, session_target: Any = Session):
        self.base = base
        self.session_target = session_target

        self._history_types: Set[Type] = set()
        self._bulk_handlers: DefaultDict[
            Type, DefaultDict[LifecycleEvent, List[MutationHandler]]
        ] = defaultdict(lambda: defaultdict(list))
        self._listening_for_bulk_mutations = False
        self._types_with_active_history: Set[Type] = set()

    def tracked_types(self) -> List[Type]:
        return sorted(
            (
                mapper.class_
                for mapper in self.base.registry.mappers
                if mapper.class_ not in self._history_types
            ),
            key=lambda cls: cls.__name__,
        )

    def is_history_type(self, entity_type: Type) -> bool:
        return entity_type in self._history_types

    def describe_type(self, entity_type: Type) -> TrackedTypeSchema:
        type_name = getattr(entity_type, "__name__", str(entity_type))
        try:
            mapper = get_mapper(entity_type)
        except NoInspectionAvailable as e:
            raise ConfigurationError(
                f"[{type_name}] is not a mapped entity type", type_name
            ) from e

        try:
            identity_attribute = get_primary_key_property_name(entity_type)
        except ValueError as e:
            raise ConfigurationError(str(e), type_name) from e

        return TrackedTypeSchema(
            type_name=type_name,
            table_name=mapper.local_table.name,
            identity_attribute=identity_attribute,
            attributes=get_column_definitions(entity_type),
        )

    def check_definable(
        self,
        tracked_type: Type,
        history_schema: HistorySchema,
        tracked_attribute_names: Iterable[str],
    ) -> None:
        registered_names = {
            mapper.class_.__name__ for mapper in self.base.registry.mappers
        }
        if history_schema.type_name in registered_names:
            raise ConfigurationError(
                f"Entity type [{history_schema.type_name}] is already registered",
                history_schema.tracked_type_name,
            )
        if history_schema.table_name in self.base.metadata.tables:
            raise ConfigurationError(
                f"Table [{history_schema.table_name}] is already defined",
                history_schema.tracked_type_name,
            )
        for name in tracked_attribute_names:
            if hasattr(tracked_type, name):
                raise ConfigurationError(
                    f"Attribute [{name}] is already defined on "
                    f"[{history_schema.tracked_type_name}]",
                    history_schema.tracked_type_name,
                )

    def define_type(self, history_schema: HistorySchema) -> Type:
        namespace: Dict[str, Any] = {
            "__tablename__": history_schema.table_name,
            "__doc__": (
                f"Read-only revision history of {history_schema.tracked_type_name}."
            ),
        }
        for name, definition in history_schema.fields.items():
            namespace[name] = build_column(definition)

        history_type = type(history_schema.type_name, (self.base,), namespace)
        self._history_types.add(history_type)
        logging.debug(
            "Defined history type [%s] on table [%s]",
            history_schema.type_name,
            history_schema.table_name,
        )
        return history_type

    def relate(
        self, tracked_type: Type, history_type: Type, tracked_schema: TrackedTypeSchema
    ) -> None:
        identity_column = get_column(tracked_type, tracked_schema.identity_attribute)
        model_id_column = get_column(history_type, MODEL_ID_FIELD)
        history_id_column = get_column(history_type, HISTORY_ID_FIELD)

        setattr(
            tracked_type,
            REVISIONS_ATTRIBUTE,
            relationship(
                history_type,
                primaryjoin=foreign(model_id_column) == identity_column,
                order_by=history_id_column,
                viewonly=True,
            ),
        )
        setattr(
            history_type,
            MODEL_ATTRIBUTE,
            relationship(
                tracked_type,
                primaryjoin=foreign(model_id_column) == identity_column,
                viewonly=True,
            ),
        )

    def add_hook(
        self, entity_type: Type, event_type: LifecycleEvent, handler: MutationHandler
    ) -> None:
        if event_type.is_bulk:
            self._bulk_handlers[entity_type][event_type].append(handler)
            self._listen_for_bulk_mutations()
            return

        def on_flush_mutation(_mapper: Any, connection: Any, target: Any) -> None:
            if event_type is LifecycleEvent.PRE_UPDATE and not has_column_changes(
                target
            ):
                return
            prior_state, current_state = get_column_states(target)
            handler(
                InstanceMutation(
                    instance=target,
                    prior_state=prior_state,
                    current_state=current_state,
                    transaction=connection,
                )
            )

        if event_type is LifecycleEvent.PRE_UPDATE:
            self._load_prior_values_on_set(entity_type)
        event.listen(entity_type, _MAPPER_EVENT_NAMES[event_type], on_flush_mutation)

    def insert(self, transaction: Any, history_type: Type, row: Dict[str, Any]) -> Any:
        try:
            result = transaction.execute(
                insert(history_type.__table__).values(
                    to_column_keyed_row(history_type, row)
                )
            )
        except SQLAlchemyError as e:
            raise self._persistence_error(history_type, e) from e
        return one(result.inserted_primary_key)

    def insert_many(
        self, transaction: Any, history_type: Type, rows: List[Dict[str, Any]]
    ) -> None:
        try:
            transaction.execute(
                insert(history_type.__table__), to_column_keyed_rows(history_type, rows)
            )
        except SQLAlchemyError as e:
            raise self._persistence_error(history_type, e) from e

    def find_rows(
        self,
        transaction: Any,
        entity_type: Type,
        predicate: Optional[Any],
        field_names: List[str],
    ) -> List[Dict[str, Any]]:
        query = select(*[get_column(entity_type, name) for name in field_names])
        if predicate is not None:
            query = query.where(predicate)
        return [dict(zip(field_names, row)) for row in transaction.execute(query)]

    def _load_prior_values_on_set(self, entity_type: Type) -> None:
        """Makes assignments to the column attributes of |entity_type| load the
        prior value first, so an attribute expired by a commit still has a prior
        value in its history at flush time."""
        if entity_type in self._types_with_active_history:
            return
        for name in get_column_property_names(entity_type):
            event.listen(
                getattr(entity_type, name), "set", _on_column_set, active_history=True
            )
        self._types_with_active_history.add(entity_type)

    def _listen_for_bulk_mutations(self) -> None:
        if self._listening_for_bulk_mutations:
            return
        event.listen(self.session_target, "do_orm_execute", self._on_orm_execute)
        self._listening_for_bulk_mutations = True

    def _on_orm_execute(self, orm_execute_state: ORMExecuteState) -> None:
        if not (orm_execute_state.is_update or orm_execute_state.is_delete):
            return
        mapper = orm_execute_state.bind_mapper
        if mapper is None:
            return

        event_type = (
            LifecycleEvent.PRE_BULK_UPDATE
            if orm_execute_state.is_update
            else LifecycleEvent.PRE_BULK_DESTROY
        )
        handlers = self._bulk_handlers.get(mapper.class_, {}).get(event_type)
        if not handlers:
            return

        entity_type = mapper.class_
        statement = orm_execute_state.statement
        predicate = statement.whereclause
        updated_field_names = (
            _updated_field_names(entity_type, statement)
            if orm_execute_state.is_update
            else []
        )
        rows = _primary_key_parameter_rows(entity_type, orm_execute_state)
        if rows is not None:
            identity_name = get_primary_key_property_name(entity_type)
            predicate = getattr(entity_type, identity_name).in_(
                [row[identity_name] for row in rows]
            )
            if orm_execute_state.is_update:
                updated_field_names = _to_field_names(
                    entity_type,
                    updated_field_names + [key for row in rows for key in row],
                )

        mutation = BulkMutation(
            entity_type=entity_type,
            predicate=predicate,
            updated_field_names=updated_field_names,
            individual_hooks=bool(
                orm_execute_state.execution_options.get(INDIVIDUAL_HOOKS_OPTION, False)
            ),
            transaction=orm_execute_state.session.connection(
                bind_arguments={"mapper": mapper}
            ),
        )
        for handler in handlers:
            handler(mutation)

    @staticmethod
    def _persistence_error(
        history_type: Type, e: SQLAlchemyError
    ) -> RevisionPersistenceError:
        logging.error(
            "Unable to write revision to [%s]: %s", history_type.__name__, str(e)
        )
        return RevisionPersistenceError(
            f"Unable to write revision to [{history_type.__name__}]",
            history_type.__name__,
        )


def expand_bulk_mutation(
    session: Session,
    entity_type: Type,
    predicate: Optional[Any] = None,
    values: Optional[Dict[str, Any]] = None,
) -> int:
    """Applies a bulk update (|values| given) or delete (|values| None) to every
    instance of |entity_type| matching |predicate| one instance at a time, so
    each instance fires its own PRE_UPDATE / PRE_DESTROY. Flushes the session and
    returns the number of instances affected.
    """
    query = select(entity_type)
    if predicate is not None:
        query = query.where(predicate)
    instances = session.scalars(query).all()

    for instance in instances:
        if values is None:
            session.delete(instance)
        else:
            for name, value in values.items():
                setattr(instance, name, value)
    session.flush()
    return len(instances)
