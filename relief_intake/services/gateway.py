# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Persistence gateway between the domain model and the relational store.

Every operation returns a collection or a success flag and never raises:
store failures are written to the diagnostics log and converted into an
empty result or ``False``. Each operation commits on its own; a load or
save cycle as a whole is not transactional.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from relief_intake.domain import allocation
from relief_intake.domain.context import DomainContext, current_context
from relief_intake.domain.identity import UpsertAction, location_key, natural_key, resolve_upsert
from relief_intake.models.base import parse_iso_date
from relief_intake.models.entities import FamilyGroup, Location, MedicalRecord, Person
from relief_intake.models.enums import SupplyCategory
from relief_intake.models.errors import NotFoundError, ReliefError
from relief_intake.models.inquiries import Inquirer, Inquiry
from relief_intake.models.supplies import Supply, parse_supply
from .database import (
    GatewayConfig,
    build_engine,
    config_from_env,
    inquirer_table,
    inquiry_table,
    location_table,
    medical_record_table,
    metadata,
    person_table,
    supply_allocation_table,
    supply_table,
)
from .diagnostics import ErrorLog

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


@dataclass
class OrphanedReference:
    """A row skipped during load because a foreign key did not resolve."""
    table: str
    row_id: Optional[int]
    column: str
    key: Any


@dataclass
class ReliefSnapshot:
    """Everything produced by one load cycle."""
    locations: List[Location] = field(default_factory=list)
    persons: List[Person] = field(default_factory=list)
    family_groups: List[FamilyGroup] = field(default_factory=list)
    supplies: List[Supply] = field(default_factory=list)
    medical_records: List[MedicalRecord] = field(default_factory=list)
    inquiries: List[Inquiry] = field(default_factory=list)
    orphans: List[OrphanedReference] = field(default_factory=list)


def keyed(entities: Iterable[Any]) -> Dict[int, Any]:
    """Index loaded entities by their store id."""
    return {entity.record_id: entity for entity in entities if entity.record_id is not None}


def _person_values(person: Person) -> Dict[str, Any]:
    return {
        "first_name": person.first_name,
        "last_name": person.last_name,
        "date_of_birth": parse_iso_date(person.date_of_birth),
        "gender": person.gender.value if person.gender else None,
        "comments": person.comments,
        "family_group": person.family_group.group_id if person.family_group else None,
        "entry_date": parse_iso_date(person.entry_date),
    }


def _supply_values(supply: Supply) -> Dict[str, Any]:
    """Row values for a supply; the comments column carries variant payload."""
    comments = None
    if supply.category is SupplyCategory.COT:
        comments = f"{supply.room} {supply.grid}"
    elif supply.category is SupplyCategory.PERSONAL_BELONGING:
        comments = supply.description
    return {"type": supply.type, "quantity": supply.quantity, "comments": comments}


def _supply_from_row(row) -> Supply:
    category = SupplyCategory.from_type_label(row["type"])
    data: Dict[str, Any] = {
        "category": category,
        "quantity": row["quantity"] if row["quantity"] is not None else 1,
        "record_id": row["supply_id"],
    }
    comments = row["comments"]
    if category is SupplyCategory.COT:
        parts = (comments or "").split()
        if len(parts) != 2:
            raise ValueError(f"Cot comments must hold room and grid, got {comments!r}")
        data["room"], data["grid"] = parts
    elif category is SupplyCategory.PERSONAL_BELONGING:
        data["description"] = comments
    elif category is SupplyCategory.GENERIC:
        data["type_label"] = row["type"]
    return parse_supply(data)


class ReliefGateway:
    """Maps domain entities to and from the relief store over one connection."""

    def __init__(self, config: Optional[GatewayConfig] = None,
                 diagnostics: Optional[ErrorLog] = None,
                 context: Optional[DomainContext] = None):
        """
        Args:
            config: Store settings (defaults to ``RELIEF_*`` environment variables)
            diagnostics: Failure sink (defaults to the configured error log path)
            context: Domain context for new entities and the clock (defaults
                to the current context at call time)
        """
        self.config = config or config_from_env()
        self.diagnostics = diagnostics or ErrorLog(self.config.error_log_path)
        self.context = context
        self.orphans: List[OrphanedReference] = []
        self._engine: Optional[Engine] = None
        self._connection: Optional[Connection] = None

    # Connection lifecycle

    def open(self) -> bool:
        """Open the shared connection, creating the schema if configured."""
        if self.is_connected():
            return True

        with tracer.start_as_current_span("gateway.open") as span:
            try:
                self._engine = build_engine(self.config)
                self._connection = self._engine.connect()
                if self.config.create_schema:
                    metadata.create_all(self._connection)
                    self._connection.commit()
                logger.info("Relief store connection established")
                return True
            except SQLAlchemyError as e:
                self._dispose()
                self._fail(span, "open_connection", e)
                return False

    def close(self) -> None:
        """Release the connection and engine."""
        if self._connection is not None or self._engine is not None:
            self._dispose()
            logger.info("Relief store connection closed")

    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    def create_schema(self) -> bool:
        """Create any missing tables."""
        return self._run("create_schema", lambda conn: metadata.create_all(conn) or True, False)

    def __enter__(self) -> "ReliefGateway":
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _dispose(self) -> None:
        if self._connection is not None:
            try:
                self._connection.close()
            except SQLAlchemyError as e:
                logger.warning(f"Error while closing relief store connection: {e}")
        if self._engine is not None:
            self._engine.dispose()
        self._connection = None
        self._engine = None

    # Execution helpers

    @property
    def clock(self):
        return (self.context or current_context()).clock

    def _domain(self):
        """Activate the gateway's domain context while building entities."""
        return self.context.activate() if self.context is not None else nullcontext()

    def _fail(self, span, operation: str, error) -> None:
        self.diagnostics.record(operation, error)
        span.set_status(Status(StatusCode.ERROR, str(error)))

    def _run(self, operation: str, work: Callable[[Connection], T], default: T) -> T:
        """
        Run ``work`` on the shared connection and commit.

        Store errors and unresolved references are logged and turn into
        ``default``.
        """
        with tracer.start_as_current_span(f"gateway.{operation}") as span:
            if not self.is_connected():
                self._fail(span, operation, "No open connection to the relief store")
                return default
            try:
                result = work(self._connection)
                self._connection.commit()
                return result
            except (SQLAlchemyError, ReliefError) as e:
                self._rollback()
                self._fail(span, operation, e)
                return default

    def _rollback(self) -> None:
        try:
            self._connection.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback failed: {e}")

    def _orphan(self, table: str, row_id: Optional[int], column: str, key: Any) -> None:
        orphan = OrphanedReference(table=table, row_id=row_id, column=column, key=key)
        self.orphans.append(orphan)
        logger.warning(f"Skipped {table} row {row_id}: unresolved {column}={key}")

    def _skip_row(self, table: str, row_id: Optional[int], error: Exception) -> None:
        self.diagnostics.record(f"load_{table} row {row_id}", error)

    # Natural-key lookups

    @staticmethod
    def _person_ids(conn: Connection, first_name: str, last_name: Optional[str]) -> List[int]:
        last_clause = (
            person_table.c.last_name.is_(None) if last_name is None
            else person_table.c.last_name == last_name
        )
        stmt = (
            select(person_table.c.person_id)
            .where(person_table.c.first_name == first_name, last_clause)
            .order_by(person_table.c.person_id)
        )
        return list(conn.execute(stmt).scalars())

    @staticmethod
    def _location_ids(conn: Connection, name: str) -> List[int]:
        stmt = (
            select(location_table.c.location_id)
            .where(location_table.c.name == name)
            .order_by(location_table.c.location_id)
        )
        return list(conn.execute(stmt).scalars())

    def _require_person_id(self, conn: Connection, person: Person) -> int:
        ids = self._person_ids(conn, *natural_key(person))
        if not ids:
            raise NotFoundError(f"Person {person.full_name} has not been saved")
        return ids[0]

    def _require_location_id(self, conn: Connection, location: Location) -> int:
        ids = self._location_ids(conn, location_key(location))
        if not ids:
            raise NotFoundError(f"Location {location.name} has not been saved")
        return ids[0]

    # Expiry sweep

    def remove_expired_water(self) -> bool:
        """
        Delete water allocations whose allocation date is before yesterday.

        Earlier allocation rows of the same supply go with them, so an
        expired unit is not handed back to the location it came from.
        """
        cutoff = self.clock.today() - timedelta(days=1)
        expired = supply_allocation_table.alias("expired")

        def work(conn: Connection) -> int:
            water_ids = select(supply_table.c.supply_id).where(
                func.lower(supply_table.c.type) == SupplyCategory.WATER.value
            )
            superseded = (
                select(expired.c.allocation_id)
                .where(
                    expired.c.supply_id == supply_allocation_table.c.supply_id,
                    expired.c.allocation_id >= supply_allocation_table.c.allocation_id,
                    expired.c.supply_id.in_(water_ids),
                    expired.c.allocation_date < cutoff
                )
                .exists()
            )
            return conn.execute(delete(supply_allocation_table).where(superseded)).rowcount

        removed = self._run("remove_expired_water", work, None)
        if removed is None:
            return False
        logger.info(f"Removed {removed} expired water allocation(s) dated before {cutoff}")
        return True

    # Loading

    def load_locations(self) -> List[Location]:
        rows = self._run(
            "load_locations",
            lambda conn: conn.execute(
                select(location_table).order_by(location_table.c.location_id)
            ).mappings().all(),
            []
        )
        locations: List[Location] = []
        for row in rows:
            try:
                locations.append(Location(
                    name=row["name"],
                    address=row["address"],
                    record_id=row["location_id"]
                ))
            except ValidationError as e:
                self._skip_row("location", row["location_id"], e)
        logger.debug(f"Loaded {len(locations)} locations")
        return locations

    def load_persons(self) -> List[Person]:
        """Load persons and rebuild their family groups from the stored group ids."""
        rows = self._run(
            "load_persons",
            lambda conn: conn.execute(
                select(person_table).order_by(person_table.c.person_id)
            ).mappings().all(),
            []
        )
        persons: List[Person] = []
        groups: Dict[str, FamilyGroup] = {}
        with self._domain():
            for row in rows:
                try:
                    person = Person(
                        first_name=row["first_name"],
                        last_name=row["last_name"],
                        entry_date=row["entry_date"] or self.clock.today(),
                        date_of_birth=row["date_of_birth"],
                        gender=row["gender"],
                        comments=row["comments"],
                        record_id=row["person_id"]
                    )
                except ValidationError as e:
                    self._skip_row("person", row["person_id"], e)
                    continue

                group_id = row["family_group"]
                if group_id:
                    if group_id not in groups:
                        groups[group_id] = FamilyGroup(group_id=group_id)
                    groups[group_id].add_member(person)
                persons.append(person)
        logger.debug(f"Loaded {len(persons)} persons in {len(groups)} family groups")
        return persons

    def load_supplies(self) -> List[Supply]:
        rows = self._run(
            "load_supplies",
            lambda conn: conn.execute(
                select(supply_table).order_by(supply_table.c.supply_id)
            ).mappings().all(),
            []
        )
        supplies: List[Supply] = []
        for row in rows:
            try:
                supplies.append(_supply_from_row(row))
            except ValueError as e:
                self._skip_row("supply", row["supply_id"], e)
        logger.debug(f"Loaded {len(supplies)} supplies")
        return supplies

    def load_allocations(self, supplies_by_key: Dict[int, Supply],
                         persons_by_key: Dict[int, Person],
                         locations_by_key: Dict[int, Location]) -> List[Supply]:
        """
        Replay the latest allocation of each supply onto the loaded entities.

        Returns:
            Supplies that were placed with a person or a location
        """
        rows = self._run(
            "load_allocations",
            lambda conn: conn.execute(
                select(supply_allocation_table).order_by(supply_allocation_table.c.allocation_id)
            ).mappings().all(),
            []
        )
        latest: Dict[int, Any] = {}
        for row in rows:
            latest[row["supply_id"]] = row

        placed: List[Supply] = []
        for supply_id, row in latest.items():
            supply = supplies_by_key.get(supply_id)
            if supply is None:
                self._orphan("supply_allocation", row["allocation_id"], "supply_id", supply_id)
                continue

            if row["person_id"] is not None:
                column, key, owner = "person_id", row["person_id"], persons_by_key.get(row["person_id"])
            else:
                column, key = "location_id", row["location_id"]
                owner = locations_by_key.get(key) if key is not None else None
            if owner is None:
                self._orphan("supply_allocation", row["allocation_id"], column, key)
                continue

            try:
                if supply.holder is not owner:
                    if supply.holder is not None:
                        allocation.release(supply, supply.holder)
                    allocation.place(supply, owner, context=self.context)
                if supply.category is SupplyCategory.WATER and row["allocation_date"] is not None:
                    supply.allocation_date = row["allocation_date"]
            except (ReliefError, ValidationError) as e:
                self._skip_row("supply_allocation", row["allocation_id"], e)
                continue
            placed.append(supply)
        return placed

    def load_medical_records(self, persons_by_key: Dict[int, Person],
                             locations_by_key: Dict[int, Location]) -> List[MedicalRecord]:
        """Load medical records and append each to its person in stored order."""
        rows = self._run(
            "load_medical_records",
            lambda conn: conn.execute(
                select(medical_record_table).order_by(medical_record_table.c.medical_record_id)
            ).mappings().all(),
            []
        )
        records: List[MedicalRecord] = []
        for row in rows:
            row_id = row["medical_record_id"]
            person = persons_by_key.get(row["person_id"])
            if person is None:
                self._orphan("medical_record", row_id, "person_id", row["person_id"])
                continue
            location = locations_by_key.get(row["location_id"])
            if location is None:
                self._orphan("medical_record", row_id, "location_id", row["location_id"])
                continue
            try:
                record = MedicalRecord(
                    location=location,
                    date_of_treatment=row["date_of_treatment"],
                    treatment_details=row["treatment_details"],
                    record_id=row_id
                )
            except ValidationError as e:
                self._skip_row("medical_record", row_id, e)
                continue
            person.add_medical_record(record)
            records.append(record)
        return records

    def load_inquiries(self, persons_by_key: Dict[int, Person],
                       locations_by_key: Dict[int, Location]) -> List[Inquiry]:
        stmt = (
            select(
                inquiry_table.c.inquiry_id,
                inquiry_table.c.inquirer_id,
                inquiry_table.c.seeking_id,
                inquiry_table.c.location_id,
                inquiry_table.c.date_of_inquiry,
                inquiry_table.c.comments,
                inquirer_table.c.inquirer_id.label("matched_inquirer_id"),
                inquirer_table.c.first_name,
                inquirer_table.c.last_name,
                inquirer_table.c.phone_number,
                inquirer_table.c.info,
                inquirer_table.c.person_id.label("inquirer_person_id"),
            )
            .join_from(
                inquiry_table, inquirer_table,
                inquiry_table.c.inquirer_id == inquirer_table.c.inquirer_id,
                isouter=True
            )
            .order_by(inquiry_table.c.inquiry_id)
        )
        rows = self._run("load_inquiries", lambda conn: conn.execute(stmt).mappings().all(), [])

        inquirers: Dict[int, Inquirer] = {}
        inquiries: List[Inquiry] = []
        for row in rows:
            row_id = row["inquiry_id"]
            if row["matched_inquirer_id"] is None:
                self._orphan("inquiry", row_id, "inquirer_id", row["inquirer_id"])
                continue
            missing_person = persons_by_key.get(row["seeking_id"])
            if missing_person is None:
                self._orphan("inquiry", row_id, "seeking_id", row["seeking_id"])
                continue
            location = None
            if row["location_id"] is not None:
                location = locations_by_key.get(row["location_id"])
                if location is None:
                    self._orphan("inquiry", row_id, "location_id", row["location_id"])
                    continue
            inquirer_person = None
            if row["inquirer_person_id"] is not None:
                inquirer_person = persons_by_key.get(row["inquirer_person_id"])
                if inquirer_person is None:
                    self._orphan("inquirer", row["inquirer_id"], "person_id", row["inquirer_person_id"])
                    continue

            try:
                inquirer = inquirers.get(row["inquirer_id"])
                if inquirer is None:
                    inquirer = Inquirer(
                        first_name=row["first_name"],
                        last_name=row["last_name"],
                        phone=row["phone_number"],
                        info=row["info"],
                        person=inquirer_person,
                        record_id=row["inquirer_id"]
                    )
                    inquirers[row["inquirer_id"]] = inquirer
                inquiries.append(Inquiry(
                    inquirer=inquirer,
                    missing_person=missing_person,
                    date_of_inquiry=row["date_of_inquiry"],
                    info_provided=row["comments"],
                    last_known_location=location,
                    record_id=row_id
                ))
            except ValidationError as e:
                self._skip_row("inquiry", row_id, e)
        return inquiries

    def load_all(self) -> ReliefSnapshot:
        """
        Run one load cycle: expiry sweep first, then every entity in
        dependency order.
        """
        with tracer.start_as_current_span("gateway.load_all"):
            self.orphans = []
            self.remove_expired_water()

            locations = self.load_locations()
            persons = self.load_persons()
            supplies = self.load_supplies()

            persons_by_key = keyed(persons)
            locations_by_key = keyed(locations)
            self.load_allocations(keyed(supplies), persons_by_key, locations_by_key)
            records = self.load_medical_records(persons_by_key, locations_by_key)
            inquiries = self.load_inquiries(persons_by_key, locations_by_key)

            snapshot = ReliefSnapshot(
                locations=locations,
                persons=persons,
                family_groups=FamilyGroup.collect(persons),
                supplies=supplies,
                medical_records=records,
                inquiries=inquiries,
                orphans=list(self.orphans)
            )
            logger.info(
                f"Loaded {len(locations)} locations, {len(persons)} people, "
                f"{len(supplies)} supplies, {len(inquiries)} inquiries "
                f"({len(self.orphans)} orphaned rows skipped)"
            )
            return snapshot

    # Saving

    def save_person(self, person: Person) -> bool:
        """Update the row matching the person's (first name, last name), or insert one."""
        def work(conn: Connection):
            plan = resolve_upsert(self._person_ids(conn, *natural_key(person)))
            values = _person_values(person)
            if plan.action is UpsertAction.INSERT:
                result = conn.execute(insert(person_table).values(**values))
                return plan.action, result.inserted_primary_key[0]
            conn.execute(
                update(person_table)
                .where(person_table.c.person_id == plan.record_id)
                .values(**values)
            )
            return plan.action, plan.record_id

        outcome = self._run("save_person", work, None)
        if outcome is None:
            return False
        action, record_id = outcome
        person.record_id = record_id
        logger.info(f"Saved person {record_id} ({action.value})")
        return True

    def save_location(self, location: Location) -> bool:
        """Update the row matching the location's name, or insert one."""
        def work(conn: Connection):
            plan = resolve_upsert(self._location_ids(conn, location_key(location)))
            values = {"name": location.name, "address": location.address}
            if plan.action is UpsertAction.INSERT:
                result = conn.execute(insert(location_table).values(**values))
                return plan.action, result.inserted_primary_key[0]
            conn.execute(
                update(location_table)
                .where(location_table.c.location_id == plan.record_id)
                .values(**values)
            )
            return plan.action, plan.record_id

        outcome = self._run("save_location", work, None)
        if outcome is None:
            return False
        action, record_id = outcome
        location.record_id = record_id
        logger.info(f"Saved location {record_id} ({action.value})")
        return True

    def save_supply(self, supply: Supply) -> bool:
        """Insert a supply row. There is no update path: every call inserts."""
        record_id = self._run(
            "save_supply",
            lambda conn: conn.execute(
                insert(supply_table).values(**_supply_values(supply))
            ).inserted_primary_key[0],
            None
        )
        if record_id is None:
            return False
        supply.record_id = record_id
        logger.info(f"Saved supply {record_id} ({supply.type})")
        return True

    def allocate_supply(self, supply: Supply, person: Optional[Person] = None,
                        location: Optional[Location] = None) -> bool:
        """
        Append an allocation row linking a saved supply to a person, or to a
        location when no person is given. Earlier rows are kept.
        """
        def work(conn: Connection) -> int:
            if supply.record_id is None:
                raise NotFoundError(f"Supply {supply.type} has not been saved")
            if person is not None:
                values = {
                    "person_id": self._require_person_id(conn, person),
                    "location_id": None,
                    "allocation_date": self.clock.today(),
                }
            elif location is not None:
                values = {
                    "person_id": None,
                    "location_id": self._require_location_id(conn, location),
                    "allocation_date": None,
                }
            else:
                raise NotFoundError("An allocation needs a person or a location")
            values["supply_id"] = supply.record_id
            return conn.execute(insert(supply_allocation_table).values(**values)).inserted_primary_key[0]

        allocation_id = self._run("allocate_supply", work, None)
        if allocation_id is None:
            return False
        logger.info(f"Recorded allocation {allocation_id} for supply {supply.record_id}")
        return True

    def save_medical_record(self, person: Person, record: MedicalRecord) -> bool:
        def work(conn: Connection) -> int:
            values = {
                "person_id": self._require_person_id(conn, person),
                "location_id": self._require_location_id(conn, record.location),
                "date_of_treatment": parse_iso_date(record.date_of_treatment),
                "treatment_details": record.treatment_details,
            }
            return conn.execute(insert(medical_record_table).values(**values)).inserted_primary_key[0]

        return self._run("save_medical_record", work, None) is not None

    def save_inquiry(self, inquiry: Inquiry) -> bool:
        """
        Insert an inquiry, upserting its inquirer by (first name, last name).

        The missing person, the last known location and any person behind
        the inquirer must already be saved.
        """
        inquirer = inquiry.inquirer

        def work(conn: Connection):
            seeking_id = self._require_person_id(conn, inquiry.missing_person)
            location_id = None
            if inquiry.last_known_location is not None:
                location_id = self._require_location_id(conn, inquiry.last_known_location)
            inquirer_values = {
                "first_name": inquirer.first_name,
                "last_name": inquirer.last_name,
                "phone_number": inquirer.phone,
                "info": inquirer.info,
                "person_id": (
                    self._require_person_id(conn, inquirer.person)
                    if inquirer.person is not None else None
                ),
            }

            last_clause = (
                inquirer_table.c.last_name.is_(None) if inquirer.last_name is None
                else inquirer_table.c.last_name == inquirer.last_name
            )
            matches = list(conn.execute(
                select(inquirer_table.c.inquirer_id)
                .where(inquirer_table.c.first_name == inquirer.first_name, last_clause)
                .order_by(inquirer_table.c.inquirer_id)
            ).scalars())
            plan = resolve_upsert(matches)
            if plan.action is UpsertAction.INSERT:
                inquirer_id = conn.execute(
                    insert(inquirer_table).values(**inquirer_values)
                ).inserted_primary_key[0]
            else:
                inquirer_id = plan.record_id
                conn.execute(
                    update(inquirer_table)
                    .where(inquirer_table.c.inquirer_id == inquirer_id)
                    .values(**inquirer_values)
                )

            inquiry_id = conn.execute(insert(inquiry_table).values(
                inquirer_id=inquirer_id,
                seeking_id=seeking_id,
                location_id=location_id,
                date_of_inquiry=parse_iso_date(inquiry.date_of_inquiry),
                comments=inquiry.info_provided
            )).inserted_primary_key[0]
            return inquirer_id, inquiry_id

        outcome = self._run("save_inquiry", work, None)
        if outcome is None:
            return False
        inquirer.record_id, inquiry.record_id = outcome
        logger.info(f"Saved inquiry {inquiry.record_id}")
        return True


def create_gateway(context: Optional[DomainContext] = None) -> ReliefGateway:
    """
    Factory function to create a gateway configured from the environment.

    Returns:
        ReliefGateway: Unopened gateway
    """
    config = config_from_env()
    return ReliefGateway(config, ErrorLog(config.error_log_path), context)
