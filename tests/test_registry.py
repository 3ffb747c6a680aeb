"""
Tenant registry: API keys, tenants and records
"""
from datetime import datetime

import pytest

from sftpgo_manager.errors import ApiKeyNotFound, DuplicateTenant, RegistryError, TenantNotFound
from sftpgo_manager.models.record import Record
from sftpgo_manager.services.registry import RegistryService


def _create(db, tenant_id="a" * 32, username="acme", password="secret", public_key="", home_dir="/data/acme"):
    return RegistryService.create_tenant(db, tenant_id, username, password, public_key, home_dir)


def test_api_key_roundtrip(db):
    key, raw = RegistryService.create_api_key(db, "ops")
    assert len(raw) == 64
    assert key.key_hash != raw
    found = RegistryService.validate_api_key(db, raw)
    assert found.id == key.id
    assert found.label == "ops"


def test_unknown_api_key_rejected(db):
    RegistryService.create_api_key(db)
    with pytest.raises(ApiKeyNotFound):
        RegistryService.validate_api_key(db, "0" * 64)


def test_tenant_lookup_by_id_and_username(db):
    created = _create(db)
    by_id = RegistryService.get_tenant(db, created.id)
    by_name = RegistryService.get_tenant_by_username(db, "acme")
    for t in (by_id, by_name):
        assert t.tenant_id == "a" * 32
        assert t.username == "acme"
        assert t.home_dir == "/data/acme"


def test_duplicate_username_rejected(db):
    _create(db)
    with pytest.raises(DuplicateTenant):
        _create(db, tenant_id="b" * 32)


def test_duplicate_tenant_id_rejected(db):
    _create(db)
    with pytest.raises(DuplicateTenant):
        _create(db, username="other")


def test_missing_tenant_is_not_found(db):
    with pytest.raises(TenantNotFound):
        RegistryService.get_tenant(db, 42)
    with pytest.raises(TenantNotFound):
        RegistryService.get_tenant_by_username(db, "ghost")
    # callers catching the registry base type also see it
    with pytest.raises(RegistryError):
        RegistryService.delete_tenant(db, 42)


def test_list_tenants_ordered_and_empty(db):
    assert RegistryService.list_tenants(db) == []
    _create(db, tenant_id="1" * 32, username="first")
    _create(db, tenant_id="2" * 32, username="second")
    assert [t.username for t in RegistryService.list_tenants(db)] == ["first", "second"]


def test_update_public_key(db):
    t = _create(db)
    RegistryService.update_tenant_public_key(db, t.id, "ssh-ed25519 AAAA new")
    assert RegistryService.get_tenant(db, t.id).public_key == "ssh-ed25519 AAAA new"


def test_delete_returns_username(db):
    t = _create(db)
    tid = t.id
    assert RegistryService.delete_tenant(db, tid) == "acme"
    with pytest.raises(TenantNotFound):
        RegistryService.get_tenant(db, tid)


def test_upsert_overwrites_same_key(db):
    RegistryService.upsert_record(db, "t1", "k1", "first", "d1", "c1", 1.5)
    RegistryService.upsert_record(db, "t1", "k1", "second", "d2", "c2", 2.5)
    records = RegistryService.list_records(db, "t1")
    assert len(records) == 1
    r = records[0]
    assert (r.title, r.description, r.category, r.value) == ("second", "d2", "c2", 2.5)


def test_records_are_scoped_by_tenant(db):
    RegistryService.upsert_record(db, "t1", "k1", "one", "", "", 1.0)
    RegistryService.upsert_record(db, "t2", "k1", "other", "", "", 2.0)
    assert [r.title for r in RegistryService.list_records(db, "t1")] == ["one"]
    assert RegistryService.list_records(db, "t3") == []


def test_upsert_bumps_updated_at(db):
    RegistryService.upsert_record(db, "t1", "k1", "first", "", "", 1.0)
    db.query(Record).filter(Record.record_key == "k1").update({"updated_at": datetime(2000, 1, 1)})
    db.commit()

    RegistryService.upsert_record(db, "t1", "k1", "second", "", "", 2.0)
    db.expire_all()
    record = RegistryService.list_records(db, "t1")[0]
    assert record.updated_at.year > 2000
