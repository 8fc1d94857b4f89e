import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fixtures_data import COMPANY_ONE
from rankitpro.core.database import Base
from rankitpro.models.check_in import CheckIn
from rankitpro.models.technician import Technician
from rankitpro.services.directory import Directory, DirectoryError, public_user


def test_non_super_admin_requires_company(db):
    directory = Directory(db)

    with pytest.raises(DirectoryError):
        directory.create_user(
            email="orphan@nowhere.com",
            username="orphan",
            password_hash="x",
            role="technician",
            company_id=None,
        )


def test_unknown_role_is_rejected(db, seeded):
    with pytest.raises(DirectoryError):
        Directory(db).update_user(seeded.tech_user_one, role="owner")


def test_demoting_super_admin_without_company_is_rejected(db, seeded):
    with pytest.raises(DirectoryError):
        Directory(db).update_user(seeded.super_admin, role="company_admin")


def test_unknown_field_is_rejected(db, seeded):
    with pytest.raises(DirectoryError):
        Directory(db).update_company(seeded.company_one, owner="me")


def test_email_lookup_is_normalized(db, seeded):
    directory = Directory(db)

    found = directory.get_user_by_email("  ADMIN@TestCompany.com ")

    assert found is not None
    assert found.id == seeded.admin_one.id


def test_public_user_has_no_password_hash(seeded):
    view = public_user(seeded.admin_one)

    assert "password_hash" not in view
    assert view["role"] == "company_admin"


def test_delete_company_cascades_and_reports_users(db, seeded):
    directory = Directory(db)
    company_id = seeded.company_two.id
    expected_users = {seeded.admin_two.id, seeded.tech_user_two.id}

    removed = directory.delete_company(seeded.company_two)
    directory.commit()

    assert set(removed) == expected_users
    assert directory.get_company(company_id) is None
    assert db.query(Technician).filter(Technician.company_id == company_id).count() == 0
    assert directory.get_company(seeded.company_one.id) is not None
    assert len(directory.list_users()) == 3


def test_set_company_active_unknown_company(db, seeded):
    assert Directory(db).set_company_active(9999, False) is None


def test_check_in_counts_are_per_company(db, seeded):
    directory = Directory(db)
    directory.create_check_in(
        job_type="Install",
        technician_id=seeded.technician_one.id,
        company_id=seeded.company_one.id,
    )
    directory.commit()

    assert directory.count_check_ins_by_company(seeded.company_one.id) == 1
    assert directory.count_check_ins_by_company(seeded.company_two.id) == 0
    assert db.query(CheckIn).count() == 1


def test_concurrent_status_toggles_settle_on_a_requested_value(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'status.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with factory() as session:
        company = Directory(session).create_company(**COMPANY_ONE, is_active=True)
        session.commit()
        company_id = company.id

    errors = []

    def toggle(value: bool) -> None:
        with factory() as session:
            try:
                Directory(session).set_company_active(company_id, value)
                session.commit()
            except Exception as exc:
                session.rollback()
                errors.append(exc)

    threads = [threading.Thread(target=toggle, args=(index % 2 == 0,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    with factory() as session:
        final = Directory(session).get_company(company_id)
        assert final.is_active in (True, False)
        assert Directory(session).count_companies() == 1
    engine.dispose()
