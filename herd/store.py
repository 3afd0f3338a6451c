"""
herd/store.py -- SQLAlchemy-backed persistence layer for HerdWatch.

Uses SQLAlchemy Core (not ORM) so the dataclasses in herd/models.py remain the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. HerdStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Ownership: every method that takes a user_id filters on it. A record owned by
someone else is reported exactly like a missing one (None / False), so routes
cannot leak the existence of other tenants' data.

Singleton rows: each livestock record has at most one anomaly row and one
"current" sensor reading that PUT overwrites. Both are written with
get-or-create: look up the row, UPDATE it if present, INSERT otherwise, inside
one connection so the pair of statements commits together.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = HerdStore()                               # DATABASE_URL from settings
    store = HerdStore("postgresql://user:pw@host/db")
    farm_id = store.create_farm(Farm(user_id=1, name="North Paddock"))
    animal_id = store.create_livestock(Livestock(user_id=1, name="Bessie", species="cattle"))
    store.add_reading(SensorReading(livestock_id=animal_id, temperature=38.6))
    store.close()
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    case,
    create_engine,
    desc,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine

from core.config import get_settings, now_iso, to_iso
from core.models import LivestockStatus
from herd.models import Anomaly, Device, Farm, Livestock, Notification, SensorReading

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_farms = Table(
    "farms",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("location", String(255)),
    Column("address", Text),
    Column("type", String(50)),
    Column("created_at", String(32), nullable=False),
)

_livestock = Table(
    "livestock",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("farm_id", Integer),  # NULL = not assigned to a farm
    Column("name", String(255), nullable=False),
    Column("species", String(100), nullable=False),
    Column("breed", String(100)),
    Column("gender", String(20)),
    Column("birth_date", String(10)),  # YYYY-MM-DD
    Column("photo_url", Text),
    Column("status", String(30)),
    Column("height", Float),
    Column("weight", Float),
    Column("body_condition_score", Integer),
    Column("notes", Text),
    Column("recorded_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_sensor_data = Table(
    "sensor_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("livestock_id", Integer, nullable=False),
    Column("temperature", Float),
    Column("heart_rate", Integer),
    Column("spo2", Float),
    Column("respiratory_rate", Integer),
    Column("motion_level", Float),
    Column("device_id", Integer),
    Column("timestamp", String(32), nullable=False),
    Index("ix_sensor_data_livestock_ts", "livestock_id", "timestamp"),
)

_anomalies = Table(
    "anomalies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("livestock_id", Integer, nullable=False, unique=True),
    Column("type", String(100)),
    Column("severity", String(20)),
    Column("notes", Text),
    Column("detected_at", String(32)),
    Column("resolved", Integer),  # NULL until first assessment, then 0/1
)

_devices = Table(
    "devices",
    metadata,
    Column("livestock_id", Integer, nullable=False),
    Column("device_id", Integer, nullable=False),
    Column("last_update", String(32)),
    PrimaryKeyConstraint("livestock_id", "device_id", name="pk_devices"),
)

_notifications = Table(
    "notifications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("livestock_id", Integer, nullable=False),
    Column("message", Text, nullable=False),
    Column("type", String(30), nullable=False, server_default="info"),
    Column("is_read", Integer, nullable=False, server_default="0"),
    Column("sent_at", String(32), nullable=False),
)

# Columns a caller may change through update_farm / update_livestock. Anything
# else (ids, owner, timestamps) is rejected with ValueError.
_FARM_FIELDS = {"name", "location", "address", "type"}
_LIVESTOCK_FIELDS = {
    "farm_id",
    "name",
    "species",
    "breed",
    "gender",
    "birth_date",
    "photo_url",
    "status",
    "height",
    "weight",
    "body_condition_score",
    "notes",
    "recorded_at",
}
_READING_FIELDS = {"temperature", "heart_rate", "spo2", "respiratory_rate", "motion_level", "device_id", "timestamp"}
_METRICS = ("temperature", "heart_rate", "spo2", "respiratory_rate")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _round(value) -> Optional[float]:
    return round(float(value), 2) if value is not None else None


def _check_fields(fields: dict, allowed: set) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)!r}")


def _latest_per_livestock(livestock_filter):
    """Rank readings newest-first within each livestock_id.

    ROW_NUMBER() OVER (PARTITION BY livestock_id ORDER BY timestamp DESC, id DESC)
    -- rank 1 is the latest reading. The id tiebreak keeps the choice stable
    when two readings share a timestamp (second precision).
    """
    rank = (
        func.row_number()
        .over(
            partition_by=_sensor_data.c.livestock_id,
            order_by=(_sensor_data.c.timestamp.desc(), _sensor_data.c.id.desc()),
        )
        .label("rn")
    )
    return select(*_sensor_data.c, rank).where(livestock_filter).subquery("ranked_readings")


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class HerdStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Route handlers run in FastAPI's thread pool; the pooled
            # connection may be touched from more than one thread.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)
        # Serializes the read-then-write in upsert_current_reading within this process.
        self._current_reading_lock = threading.Lock()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            return False
        return True

    # ------------------------------------------------------------------
    # Farms
    # ------------------------------------------------------------------

    def create_farm(self, farm: Farm) -> int:
        """Insert a new farm and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _farms.insert().values(
                    user_id=farm.user_id,
                    name=farm.name,
                    location=farm.location,
                    address=farm.address,
                    type=farm.type,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_farms(self, user_id: int) -> list[Farm]:
        """Return the user's farms, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_farms.select().where(_farms.c.user_id == user_id).order_by(_farms.c.id)).fetchall()
        return [_row_to_farm(r) for r in rows]

    def get_farm(self, farm_id: int, user_id: int) -> Optional[Farm]:
        """Fetch a farm if it exists and belongs to user_id."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _farms.select().where((_farms.c.id == farm_id) & (_farms.c.user_id == user_id))
            ).fetchone()
        return _row_to_farm(row) if row is not None else None

    def update_farm(self, farm_id: int, user_id: int, **fields) -> bool:
        """Update mutable farm fields. Returns False if not found or not owned."""
        _check_fields(fields, _FARM_FIELDS)
        if not fields:
            return self.get_farm(farm_id, user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(
                _farms.update().where((_farms.c.id == farm_id) & (_farms.c.user_id == user_id)).values(**fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_farm(self, farm_id: int, user_id: int) -> bool:
        """Delete a farm and detach its livestock (farm_id -> NULL).

        The animals stay: they belong to the user, not to the farm.
        Both statements run in one transaction.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_farms.delete().where((_farms.c.id == farm_id) & (_farms.c.user_id == user_id)))
            if result.rowcount == 0:
                conn.rollback()
                return False
            conn.execute(
                _livestock.update()
                .where((_livestock.c.farm_id == farm_id) & (_livestock.c.user_id == user_id))
                .values(farm_id=None, updated_at=now_iso())
            )
            conn.commit()
        return True

    # ------------------------------------------------------------------
    # Livestock
    # ------------------------------------------------------------------

    def create_livestock(self, animal: Livestock) -> int:
        """Insert an animal together with its empty anomaly row.

        Both inserts share one transaction: an animal never exists without
        its anomaly singleton.
        """
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _livestock.insert().values(
                    user_id=animal.user_id,
                    farm_id=animal.farm_id,
                    name=animal.name,
                    species=animal.species,
                    breed=animal.breed,
                    gender=animal.gender,
                    birth_date=animal.birth_date,
                    photo_url=animal.photo_url,
                    status=animal.status,
                    height=animal.height,
                    weight=animal.weight,
                    body_condition_score=animal.body_condition_score,
                    notes=animal.notes,
                    recorded_at=animal.recorded_at,
                    created_at=now,
                    updated_at=now,
                )
            )
            livestock_id = result.inserted_primary_key[0]
            conn.execute(_anomalies.insert().values(livestock_id=livestock_id))
            conn.commit()
        return livestock_id

    def list_livestock(
        self,
        user_id: int,
        farm_id: Optional[int] = None,
        status: Optional[str] = None,
        species: Optional[str] = None,
    ) -> list[Livestock]:
        """Return the user's animals, optionally filtered, ordered by id."""
        stmt = _livestock.select().where(_livestock.c.user_id == user_id)
        if farm_id is not None:
            stmt = stmt.where(_livestock.c.farm_id == farm_id)
        if status is not None:
            stmt = stmt.where(_livestock.c.status == status)
        if species is not None:
            stmt = stmt.where(_livestock.c.species == species)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(_livestock.c.id)).fetchall()
        return [_row_to_livestock(r) for r in rows]

    def get_livestock(self, livestock_id: int, user_id: int) -> Optional[Livestock]:
        """Fetch an animal if it exists and belongs to user_id."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _livestock.select().where((_livestock.c.id == livestock_id) & (_livestock.c.user_id == user_id))
            ).fetchone()
        return _row_to_livestock(row) if row is not None else None

    def update_livestock(self, livestock_id: int, user_id: int, **fields) -> bool:
        """Update mutable animal fields and stamp updated_at.

        Farm ownership for a new farm_id is the caller's check; this method
        only guarantees the animal itself is owned.
        """
        _check_fields(fields, _LIVESTOCK_FIELDS)
        fields["updated_at"] = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _livestock.update()
                .where((_livestock.c.id == livestock_id) & (_livestock.c.user_id == user_id))
                .values(**fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_livestock(self, livestock_id: int, user_id: int) -> bool:
        """Delete an animal and everything hanging off it in one transaction.

        Readings, the anomaly row, device bindings and notifications are
        removed explicitly; SQLite does not enforce foreign-key cascades
        unless PRAGMA foreign_keys is on.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _livestock.delete().where((_livestock.c.id == livestock_id) & (_livestock.c.user_id == user_id))
            )
            if result.rowcount == 0:
                conn.rollback()
                return False
            for table in (_sensor_data, _anomalies, _devices, _notifications):
                conn.execute(table.delete().where(table.c.livestock_id == livestock_id))
            conn.commit()
        return True

    def status_counts(self, user_id: int) -> dict[str, int]:
        """Return total / healthy / needs_attention / critical counts in one query.

        Conditional aggregation: COUNT(CASE WHEN status = ... THEN 1 END).
        Animals with no status (or another value) count toward total only.
        """
        status = _livestock.c.status
        stmt = select(
            func.count().label("total"),
            func.count(case((status == LivestockStatus.healthy.value, 1))).label("healthy"),
            func.count(case((status == LivestockStatus.needs_attention.value, 1))).label("needs_attention"),
            func.count(case((status == LivestockStatus.critical.value, 1))).label("critical"),
        ).where(_livestock.c.user_id == user_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return {
            "total": row.total or 0,
            "healthy": row.healthy or 0,
            "needs_attention": row.needs_attention or 0,
            "critical": row.critical or 0,
        }

    def species_counts(self, user_id: int) -> list[dict]:
        """Return [{"species", "total"}, ...] ordered by total descending."""
        total = func.count().label("total")
        stmt = (
            select(_livestock.c.species, total)
            .where(_livestock.c.user_id == user_id)
            .group_by(_livestock.c.species)
            .order_by(desc("total"), _livestock.c.species)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [{"species": r.species, "total": r.total} for r in rows]

    # ------------------------------------------------------------------
    # Sensor readings
    # ------------------------------------------------------------------

    def add_reading(self, reading: SensorReading) -> int:
        """Append a reading and return its ID.

        timestamp defaults to now. If the reading names a device bound to
        this animal, the device's last_update is stamped with the reading
        time in the same transaction.
        """
        timestamp = reading.timestamp or now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _sensor_data.insert().values(
                    livestock_id=reading.livestock_id,
                    temperature=reading.temperature,
                    heart_rate=reading.heart_rate,
                    spo2=reading.spo2,
                    respiratory_rate=reading.respiratory_rate,
                    motion_level=reading.motion_level,
                    device_id=reading.device_id,
                    timestamp=timestamp,
                )
            )
            if reading.device_id is not None:
                conn.execute(
                    _devices.update()
                    .where(
                        (_devices.c.livestock_id == reading.livestock_id)
                        & (_devices.c.device_id == reading.device_id)
                    )
                    .values(last_update=timestamp)
                )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_reading(self, reading_id: int) -> Optional[SensorReading]:
        with self.engine.connect() as conn:
            row = conn.execute(_sensor_data.select().where(_sensor_data.c.id == reading_id)).fetchone()
        return _row_to_reading(row) if row is not None else None

    def latest_reading(self, livestock_id: int) -> Optional[SensorReading]:
        """Return the most recent reading for an animal, or None if it has none."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _sensor_data.select()
                .where(_sensor_data.c.livestock_id == livestock_id)
                .order_by(_sensor_data.c.timestamp.desc(), _sensor_data.c.id.desc())
                .limit(1)
            ).fetchone()
        return _row_to_reading(row) if row is not None else None

    def upsert_current_reading(self, livestock_id: int, **values) -> SensorReading:
        """Get-or-create the animal's current reading.

        If the animal has any reading, the most recent one is overwritten in
        place; otherwise the first reading is inserted. timestamp defaults to
        now. Returns the stored reading.

        Concurrent first PUTs for the same animal would both see no reading
        and insert two rows, so the lookup and write run under a lock.
        """
        _check_fields(values, _READING_FIELDS)
        values["timestamp"] = values.get("timestamp") or now_iso()
        with self._current_reading_lock, self.engine.connect() as conn:
            current_id = conn.execute(
                select(_sensor_data.c.id)
                .where(_sensor_data.c.livestock_id == livestock_id)
                .order_by(_sensor_data.c.timestamp.desc(), _sensor_data.c.id.desc())
                .limit(1)
            ).scalar()
            if current_id is not None:
                conn.execute(_sensor_data.update().where(_sensor_data.c.id == current_id).values(**values))
                reading_id = current_id
            else:
                result = conn.execute(_sensor_data.insert().values(livestock_id=livestock_id, **values))
                reading_id = result.inserted_primary_key[0]
            row = conn.execute(_sensor_data.select().where(_sensor_data.c.id == reading_id)).fetchone()
            conn.commit()
        return _row_to_reading(row)

    def list_readings(
        self,
        livestock_id: int,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[SensorReading]:
        """Return readings newest first, optionally only those at or after since."""
        stmt = _sensor_data.select().where(_sensor_data.c.livestock_id == livestock_id)
        if since is not None:
            stmt = stmt.where(_sensor_data.c.timestamp >= to_iso(since))
        stmt = stmt.order_by(_sensor_data.c.timestamp.desc(), _sensor_data.c.id.desc()).limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_reading(r) for r in rows]

    def latest_readings_for_user(self, user_id: int) -> dict[int, SensorReading]:
        """Return {livestock_id: latest reading} for every animal of the user that has readings.

        One query: a ROW_NUMBER() window ranks each animal's readings and
        only rank 1 survives. Animals without readings are absent.
        """
        owned = select(_livestock.c.id).where(_livestock.c.user_id == user_id)
        ranked = _latest_per_livestock(_sensor_data.c.livestock_id.in_(owned))
        stmt = select(ranked).where(ranked.c.rn == 1).order_by(ranked.c.livestock_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {r.livestock_id: _row_to_reading(r) for r in rows}

    def daily_averages(self, user_id: int, days: int = 7, now: Optional[datetime] = None) -> list[dict]:
        """Per-day metric averages across all of the user's animals.

        The window is the last `days` calendar days (UTC) including today,
        so days=7 covers today and the six days before it. Days with no
        readings are omitted. Oldest day first.

        Returns:
            [{"day": "YYYY-MM-DD", "temperature": float|None, "heart_rate": ...,
              "spo2": ..., "respiratory_rate": ..., "readings": int}, ...]
        """
        now = now or datetime.now(timezone.utc)
        start = datetime.combine((now - timedelta(days=days - 1)).date(), datetime.min.time(), tzinfo=timezone.utc)
        # Stored timestamps are "YYYY-MM-DDTHH:MM:SS+00:00"; the first ten
        # characters are the UTC calendar day.
        day = func.substr(_sensor_data.c.timestamp, 1, 10).label("day")
        stmt = (
            select(
                day,
                *[func.avg(_sensor_data.c[m]).label(m) for m in _METRICS],
                func.count().label("readings"),
            )
            .select_from(_sensor_data.join(_livestock, _sensor_data.c.livestock_id == _livestock.c.id))
            .where((_livestock.c.user_id == user_id) & (_sensor_data.c.timestamp >= to_iso(start)))
            .group_by(day)
            .order_by(day)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [{"day": r.day, **{m: _round(getattr(r, m)) for m in _METRICS}, "readings": r.readings} for r in rows]

    def window_averages(self, user_id: int, days: int = 7, now: Optional[datetime] = None) -> dict:
        """Overall metric averages across the same window as daily_averages()."""
        now = now or datetime.now(timezone.utc)
        start = datetime.combine((now - timedelta(days=days - 1)).date(), datetime.min.time(), tzinfo=timezone.utc)
        stmt = (
            select(*[func.avg(_sensor_data.c[m]).label(m) for m in _METRICS], func.count().label("readings"))
            .select_from(_sensor_data.join(_livestock, _sensor_data.c.livestock_id == _livestock.c.id))
            .where((_livestock.c.user_id == user_id) & (_sensor_data.c.timestamp >= to_iso(start)))
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return {**{m: _round(getattr(row, m)) for m in _METRICS}, "readings": row.readings or 0}

    def hourly_averages(self, livestock_id: int, hours: int = 24, now: Optional[datetime] = None) -> list[dict]:
        """Per-hour metric averages for one animal over the trailing window.

        The window covers the current hour and the hours - 1 before it.
        Hours with no readings are omitted. Oldest hour first; each bucket is
        labelled with its start time ("YYYY-MM-DDTHH:00:00+00:00").
        """
        now = now or datetime.now(timezone.utc)
        start = now.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0) - timedelta(hours=hours - 1)
        bucket = func.substr(_sensor_data.c.timestamp, 1, 13).label("bucket")
        stmt = (
            select(
                bucket,
                *[func.avg(_sensor_data.c[m]).label(m) for m in _METRICS],
                func.count().label("readings"),
            )
            .where((_sensor_data.c.livestock_id == livestock_id) & (_sensor_data.c.timestamp >= to_iso(start)))
            .group_by(bucket)
            .order_by(bucket)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            {"hour": f"{r.bucket}:00:00+00:00", **{m: _round(getattr(r, m)) for m in _METRICS}, "readings": r.readings}
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Anomalies
    # ------------------------------------------------------------------

    def get_anomaly(self, livestock_id: int) -> Optional[Anomaly]:
        with self.engine.connect() as conn:
            row = conn.execute(_anomalies.select().where(_anomalies.c.livestock_id == livestock_id)).fetchone()
        return _row_to_anomaly(row) if row is not None else None

    def upsert_anomaly(
        self,
        livestock_id: int,
        type: Optional[str],
        severity: Optional[str],
        resolved: bool,
        notes: Optional[str] = None,
        detected_at: Optional[str] = None,
    ) -> Anomaly:
        """Get-or-create the animal's anomaly row and return it.

        detected_at defaults to now. Animals created through create_livestock()
        already have an (empty) row; the insert branch covers records that
        predate it.
        """
        values = {
            "type": type,
            "severity": severity,
            "notes": notes,
            "detected_at": detected_at or now_iso(),
            "resolved": 1 if resolved else 0,
        }
        with self.engine.connect() as conn:
            existing = conn.execute(
                select(_anomalies.c.id).where(_anomalies.c.livestock_id == livestock_id)
            ).scalar()
            if existing is not None:
                conn.execute(_anomalies.update().where(_anomalies.c.id == existing).values(**values))
            else:
                conn.execute(_anomalies.insert().values(livestock_id=livestock_id, **values))
            row = conn.execute(_anomalies.select().where(_anomalies.c.livestock_id == livestock_id)).fetchone()
            conn.commit()
        return _row_to_anomaly(row)

    # ------------------------------------------------------------------
    # Joined views
    # ------------------------------------------------------------------

    def _overview_rows(self, user_id: int, livestock_id: Optional[int] = None) -> list:
        """livestock LEFT JOIN latest reading LEFT JOIN anomaly, scoped to user_id.

        Reading columns are prefixed r_, anomaly columns a_, so they do not
        collide with the livestock columns.
        """
        owner_filter = _livestock.c.user_id == user_id
        if livestock_id is not None:
            owner_filter = owner_filter & (_livestock.c.id == livestock_id)
        owned = select(_livestock.c.id).where(owner_filter)
        ranked = _latest_per_livestock(_sensor_data.c.livestock_id.in_(owned))
        stmt = (
            select(
                _livestock,
                *[c.label(f"r_{c.name}") for c in ranked.c if c.name != "rn"],
                *[c.label(f"a_{c.name}") for c in _anomalies.c],
            )
            .select_from(
                _livestock.outerjoin(
                    ranked, (ranked.c.livestock_id == _livestock.c.id) & (ranked.c.rn == 1)
                ).outerjoin(_anomalies, _anomalies.c.livestock_id == _livestock.c.id)
            )
            .where(owner_filter)
            .order_by(_livestock.c.id)
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).fetchall()

    def sensor_anomaly_overview(self, user_id: int) -> list[dict]:
        """Return every animal of the user with its latest reading and anomaly.

        Returns:
            [{"livestock": Livestock, "sensor_data": SensorReading | None,
              "anomaly": Anomaly | None}, ...] ordered by livestock id.
        """
        return [_row_to_overview(r) for r in self._overview_rows(user_id)]

    def sensor_anomaly_detail(self, livestock_id: int, user_id: int) -> Optional[dict]:
        """Same shape as one sensor_anomaly_overview() entry, or None if not owned."""
        rows = self._overview_rows(user_id, livestock_id=livestock_id)
        return _row_to_overview(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def bind_device(self, livestock_id: int, device_id: int) -> Device:
        """Bind a device to an animal.

        Raises sqlalchemy.exc.IntegrityError if the pair is already bound.
        """
        with self.engine.connect() as conn:
            conn.execute(_devices.insert().values(livestock_id=livestock_id, device_id=device_id))
            conn.commit()
        return Device(livestock_id=livestock_id, device_id=device_id)

    def list_devices(self, livestock_id: int) -> list[Device]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _devices.select().where(_devices.c.livestock_id == livestock_id).order_by(_devices.c.device_id)
            ).fetchall()
        return [Device(livestock_id=r.livestock_id, device_id=r.device_id, last_update=r.last_update) for r in rows]

    def unbind_device(self, livestock_id: int, device_id: int) -> bool:
        """Remove a binding. Returns False if it did not exist."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _devices.delete().where((_devices.c.livestock_id == livestock_id) & (_devices.c.device_id == device_id))
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def create_notification(self, notification: Notification) -> int:
        """Insert a notification and return its ID. sent_at defaults to now."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _notifications.insert().values(
                    user_id=notification.user_id,
                    livestock_id=notification.livestock_id,
                    message=notification.message,
                    type=notification.type,
                    is_read=1 if notification.read else 0,
                    sent_at=notification.sent_at or now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_notification(self, notification_id: int, user_id: int) -> Optional[Notification]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _notifications.select().where(
                    (_notifications.c.id == notification_id) & (_notifications.c.user_id == user_id)
                )
            ).fetchone()
        return _row_to_notification(row) if row is not None else None

    def recent_notifications(self, user_id: int, limit: int = 4) -> list[dict]:
        """Return the newest notifications with a short livestock summary.

        Returns:
            [{"notification": Notification, "livestock": {"id", "name", "species"}}, ...]
        """
        stmt = (
            select(
                _notifications,
                _livestock.c.name.label("l_name"),
                _livestock.c.species.label("l_species"),
            )
            .select_from(_notifications.join(_livestock, _notifications.c.livestock_id == _livestock.c.id))
            .where(_notifications.c.user_id == user_id)
            .order_by(_notifications.c.sent_at.desc(), _notifications.c.id.desc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            {
                "notification": _row_to_notification(r),
                "livestock": {"id": r.livestock_id, "name": r.l_name, "species": r.l_species},
            }
            for r in rows
        ]

    def notification_details(self, user_id: int) -> list[dict]:
        """Return every notification with its animal and that animal's latest reading.

        Returns:
            [{"notification": Notification, "livestock": Livestock,
              "sensor_data": SensorReading | None}, ...] newest first.
        """
        owned = select(_livestock.c.id).where(_livestock.c.user_id == user_id)
        ranked = _latest_per_livestock(_sensor_data.c.livestock_id.in_(owned))
        stmt = (
            select(
                *[c.label(f"n_{c.name}") for c in _notifications.c],
                _livestock,
                *[c.label(f"r_{c.name}") for c in ranked.c if c.name != "rn"],
            )
            .select_from(
                _notifications.join(_livestock, _notifications.c.livestock_id == _livestock.c.id).outerjoin(
                    ranked, (ranked.c.livestock_id == _livestock.c.id) & (ranked.c.rn == 1)
                )
            )
            .where(_notifications.c.user_id == user_id)
            .order_by(_notifications.c.sent_at.desc(), _notifications.c.id.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [
            {
                "notification": Notification(
                    id=r.n_id,
                    user_id=r.n_user_id,
                    livestock_id=r.n_livestock_id,
                    message=r.n_message,
                    type=r.n_type,
                    read=bool(r.n_is_read),
                    sent_at=r.n_sent_at,
                ),
                "livestock": _row_to_livestock(r),
                "sensor_data": _prefixed_reading(r),
            }
            for r in rows
        ]

    def mark_notification_read(self, notification_id: int, user_id: int) -> bool:
        """Flag a notification as read. Returns False if not found or not owned."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _notifications.update()
                .where((_notifications.c.id == notification_id) & (_notifications.c.user_id == user_id))
                .values(is_read=1)
            )
            conn.commit()
        return result.rowcount > 0

    def unread_count(self, user_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_notifications)
                .where((_notifications.c.user_id == user_id) & (_notifications.c.is_read == 0))
            ).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_farm(row) -> Farm:
    return Farm(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        location=row.location,
        address=row.address,
        type=row.type,
        created_at=row.created_at,
    )


def _row_to_livestock(row) -> Livestock:
    return Livestock(
        id=row.id,
        user_id=row.user_id,
        farm_id=row.farm_id,
        name=row.name,
        species=row.species,
        breed=row.breed,
        gender=row.gender,
        birth_date=row.birth_date,
        photo_url=row.photo_url,
        status=row.status,
        height=row.height,
        weight=row.weight,
        body_condition_score=row.body_condition_score,
        notes=row.notes,
        recorded_at=row.recorded_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_reading(row) -> SensorReading:
    return SensorReading(
        id=row.id,
        livestock_id=row.livestock_id,
        temperature=row.temperature,
        heart_rate=row.heart_rate,
        spo2=row.spo2,
        respiratory_rate=row.respiratory_rate,
        motion_level=row.motion_level,
        device_id=row.device_id,
        timestamp=row.timestamp,
    )


def _prefixed_reading(row) -> Optional[SensorReading]:
    # r_id is NULL when the outer join found no reading for this animal.
    if row.r_id is None:
        return None
    return SensorReading(
        id=row.r_id,
        livestock_id=row.r_livestock_id,
        temperature=row.r_temperature,
        heart_rate=row.r_heart_rate,
        spo2=row.r_spo2,
        respiratory_rate=row.r_respiratory_rate,
        motion_level=row.r_motion_level,
        device_id=row.r_device_id,
        timestamp=row.r_timestamp,
    )


def _row_to_anomaly(row) -> Anomaly:
    return Anomaly(
        id=row.id,
        livestock_id=row.livestock_id,
        type=row.type,
        severity=row.severity,
        notes=row.notes,
        detected_at=row.detected_at,
        resolved=bool(row.resolved) if row.resolved is not None else None,
    )


def _row_to_overview(row) -> dict:
    anomaly = None
    if row.a_id is not None:
        anomaly = Anomaly(
            id=row.a_id,
            livestock_id=row.a_livestock_id,
            type=row.a_type,
            severity=row.a_severity,
            notes=row.a_notes,
            detected_at=row.a_detected_at,
            resolved=bool(row.a_resolved) if row.a_resolved is not None else None,
        )
    return {
        "livestock": _row_to_livestock(row),
        "sensor_data": _prefixed_reading(row),
        "anomaly": anomaly,
    }


def _row_to_notification(row) -> Notification:
    return Notification(
        id=row.id,
        user_id=row.user_id,
        livestock_id=row.livestock_id,
        message=row.message,
        type=row.type,
        read=bool(row.is_read),
        sent_at=row.sent_at,
    )
