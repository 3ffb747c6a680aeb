"""
Tenant registry: API keys, tenants and ingested records.

Every method takes an open Session, commits its own writes and translates
SQLAlchemy failures into registry errors so callers can tell "not found"
apart from "storage unavailable".
"""
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ApiKeyNotFound, DuplicateTenant, StorageError, TenantNotFound
from ..models.apikey import ApiKey
from ..models.record import Record
from ..models.tenant import Tenant
from ..utils.crypto import hash_token, random_hex

API_KEY_BYTES = 32


def _dialect_insert(db: Session):
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


class RegistryService:

    # ----- API keys -----

    @staticmethod
    def create_api_key(db: Session, label: str = "") -> Tuple[ApiKey, str]:
        """Generate a random 64-hex-char key, store its hash, return (row, raw key)"""
        raw_key = random_hex(API_KEY_BYTES)
        key = ApiKey(key_hash=hash_token(raw_key), label=label or "")
        try:
            db.add(key)
            db.commit()
            db.refresh(key)
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"insert api key: {e}", cause=e)
        return key, raw_key

    @staticmethod
    def validate_api_key(db: Session, raw_key: str) -> ApiKey:
        try:
            key = db.execute(
                select(ApiKey).where(ApiKey.key_hash == hash_token(raw_key))
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"validate api key: {e}", cause=e)
        if key is None:
            raise ApiKeyNotFound("invalid api key")
        return key

    # ----- Tenants -----

    @staticmethod
    def create_tenant(
        db: Session,
        tenant_id: str,
        username: str,
        password: str,
        public_key: str,
        home_dir: str,
    ) -> Tenant:
        tenant = Tenant(
            tenant_id=tenant_id,
            username=username,
            password=password or "",
            public_key=public_key or "",
            home_dir=home_dir,
        )
        try:
            db.add(tenant)
            db.commit()
            db.refresh(tenant)
        except IntegrityError as e:
            db.rollback()
            raise DuplicateTenant(f"insert tenant {username!r}: username or tenant_id already exists", cause=e)
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"insert tenant {username!r}: {e}", cause=e)
        return tenant

    @staticmethod
    def list_tenants(db: Session) -> List[Tenant]:
        try:
            return list(db.execute(select(Tenant).order_by(Tenant.id)).scalars())
        except SQLAlchemyError as e:
            raise StorageError(f"list tenants: {e}", cause=e)

    @staticmethod
    def get_tenant(db: Session, id: int) -> Tenant:
        try:
            tenant = db.get(Tenant, id)
        except SQLAlchemyError as e:
            raise StorageError(f"get tenant {id}: {e}", cause=e)
        if tenant is None:
            raise TenantNotFound("tenant not found")
        return tenant

    @staticmethod
    def get_tenant_by_username(db: Session, username: str) -> Tenant:
        try:
            tenant = db.execute(
                select(Tenant).where(Tenant.username == username)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"get tenant by username {username!r}: {e}", cause=e)
        if tenant is None:
            raise TenantNotFound(f"tenant {username!r} not found")
        return tenant

    @staticmethod
    def update_tenant_public_key(db: Session, id: int, public_key: str) -> None:
        tenant = RegistryService.get_tenant(db, id)
        try:
            tenant.public_key = public_key
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"update public key for tenant {id}: {e}", cause=e)

    @staticmethod
    def delete_tenant(db: Session, id: int) -> str:
        """Remove the tenant row and return its SFTP username"""
        try:
            username = db.execute(
                select(Tenant.username).where(Tenant.id == id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"find tenant {id}: {e}", cause=e)
        if username is None:
            raise TenantNotFound("tenant not found")

        try:
            db.query(Tenant).filter(Tenant.id == id).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"delete tenant {id}: {e}", cause=e)
        return username

    # ----- Records -----

    @staticmethod
    def upsert_record(
        db: Session,
        tenant_id: str,
        record_key: str,
        title: str,
        description: str,
        category: str,
        value: float,
    ) -> None:
        """Insert or overwrite the record keyed by (tenant_id, record_key)"""
        insert = _dialect_insert(db)
        stmt = insert(Record).values(
            tenant_id=tenant_id,
            record_key=record_key,
            title=title,
            description=description,
            category=category,
            value=value,
            updated_at=func.now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Record.tenant_id, Record.record_key],
            set_={
                "title": stmt.excluded.title,
                "description": stmt.excluded.description,
                "category": stmt.excluded.category,
                "value": stmt.excluded.value,
                "updated_at": func.now(),
            },
        )
        try:
            db.execute(stmt)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"upsert record {record_key!r}: {e}", cause=e)

    @staticmethod
    def list_records(db: Session, tenant_id: str) -> List[Record]:
        try:
            return list(
                db.execute(
                    select(Record).where(Record.tenant_id == tenant_id).order_by(Record.id)
                ).scalars()
            )
        except SQLAlchemyError as e:
            raise StorageError(f"list records: {e}", cause=e)
