# tests/unit/test_families_crud.py
# =================================================================================
# 👨‍👩‍👧 CRUD de familias: alta, edición de miembros, listados y operaciones masivas
# =================================================================================

import pytest

from nupci import models, schemas
from nupci.core.errors import NupciError
from nupci.crud import families_crud
from nupci.models import ChannelEnum, LanguageEnum, MemberTypeEnum, PaymentModeEnum


def _answer(db, family, *answers):
    """Fija la asistencia de los miembros en orden (True/False/None)."""
    for member, attending in zip(family.members, answers):
        member.attending = attending
    db.commit()


# =========================
# Alta
# =========================
def test_create_family_normalizes_contact_data(wedding, make_family):
    family = make_family(wedding, email="GARCIA@Example.com", phone="600 11 22 33")

    assert family.email == "garcia@example.com"
    assert family.phone == "+34600112233"
    assert family.preferred_language == LanguageEnum.ES
    assert family.magic_token and family.short_url_code
    assert [m.name for m in family.members] == ["Ana García", "Luis García"]
    assert family.reference_code is None


def test_reference_code_only_in_automated_payment_mode(make_wedding, make_family):
    wedding = make_wedding(payment_tracking_mode=PaymentModeEnum.AUTOMATED)
    family = make_family(wedding)

    assert len(family.reference_code) == families_crud.REFERENCE_CODE_LENGTH
    assert set(family.reference_code) <= set(families_crud.REFERENCE_CODE_ALPHABET)


def test_invited_by_must_belong_to_the_wedding(db, wedding, make_wedding, make_admin):
    foreign_admin = make_admin(make_wedding(couple_names="Ana y Pedro"))
    payload = schemas.FamilyCreate(name="Familia Ruiz", members=[{"name": "Eva"}],
                                   invited_by_admin_id=foreign_admin.id)

    with pytest.raises(NupciError) as exc:
        families_crud.create_family(db, wedding, payload)
    assert exc.value.code == "ADMIN_NOT_FOUND"
    assert db.query(models.Family).count() == 0


def test_family_create_requires_members():
    with pytest.raises(ValueError):
        schemas.FamilyCreate(name="Sin miembros", members=[])


# =========================
# Edición
# =========================
def test_update_family_member_operations(db, wedding, make_family):
    family = make_family(wedding)
    ana, luis = family.members
    payload = schemas.FamilyUpdate(members=[
        {"id": ana.id, "name": "Ana G.", "age": 34},
        {"id": luis.id, "_delete": True},
        {"name": "Lucía García", "type": "CHILD", "age": 6},
    ])

    updated = families_crud.update_family(db, wedding, family.id, payload)

    names = {m.name: m for m in updated.members}
    assert set(names) == {"Ana G.", "Lucía García"}
    assert names["Ana G."].age == 34
    assert names["Lucía García"].type == MemberTypeEnum.CHILD


def test_update_family_cannot_remove_every_member(db, wedding, make_family):
    family = make_family(wedding)
    payload = schemas.FamilyUpdate(members=[{"id": m.id, "_delete": True} for m in family.members])

    with pytest.raises(NupciError) as exc:
        families_crud.update_family(db, wedding, family.id, payload)
    assert exc.value.code == "FAMILY_NEEDS_MEMBER"

    db.expire_all()
    assert len(families_crud.get_family(db, wedding.id, family.id).members) == 2


def test_update_family_rejects_foreign_member(db, wedding, make_family):
    family = make_family(wedding)
    other = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))
    payload = schemas.FamilyUpdate(members=[{"id": other.members[0].id, "name": "Intrusa"}])

    with pytest.raises(NupciError) as exc:
        families_crud.update_family(db, wedding, family.id, payload)
    assert exc.value.code == "INVALID_MEMBER"


def test_get_family_from_another_wedding_is_not_found(db, wedding, make_wedding, make_family):
    foreign = make_family(make_wedding(couple_names="Ana y Pedro"))
    with pytest.raises(NupciError) as exc:
        families_crud.get_family(db, wedding.id, foreign.id)
    assert exc.value.status_code == 404


# =========================
# Listado y recuentos
# =========================
def test_list_families_filters_and_stats(db, wedding, make_family):
    garcia = make_family(wedding)
    ruiz = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz", "Pablo Ruiz"),
                       channel_preference=ChannelEnum.WHATSAPP)
    make_family(wedding, name="Familia Soto", members=("Irene Soto",))
    _answer(db, garcia, True, True)
    _answer(db, ruiz, True, False)

    submitted = families_crud.list_families(db, wedding.id, rsvp="submitted")
    assert {f["name"] for f in submitted["items"]} == {"Familia García", "Familia Ruiz"}

    partial = families_crud.list_families(db, wedding.id, attendance="partial")
    assert [f["name"] for f in partial["items"]] == ["Familia Ruiz"]
    assert partial["items"][0]["attending_count"] == 1
    assert partial["items"][0]["not_attending_count"] == 1

    by_channel = families_crud.list_families(db, wedding.id, channel=ChannelEnum.WHATSAPP)
    assert by_channel["total"] == 1

    search = families_crud.list_families(db, wedding.id, search="soto")
    assert search["items"][0]["rsvp_status"] == "pending"

    stats = search["stats"]
    assert stats["total_families"] == 3
    assert stats["total_members"] == 5
    assert stats["attending"] == 3
    assert stats["not_attending"] == 1
    assert stats["pending"] == 1
    assert stats["families_responded"] == 2
    assert stats["families_pending"] == 1


def test_list_families_pagination(wedding, make_family, db):
    for i in range(5):
        make_family(wedding, name=f"Familia {i}", members=(f"Invitado {i}",))

    page = families_crud.list_families(db, wedding.id, page=2, limit=2)

    assert page["total"] == 5
    assert page["total_pages"] == 3
    assert len(page["items"]) == 2


# =========================
# Operaciones masivas
# =========================
def test_bulk_update_with_foreign_family_changes_nothing(db, wedding, make_wedding, make_family):
    own = make_family(wedding)
    foreign = make_family(make_wedding(couple_names="Ana y Pedro"))
    payload = schemas.BulkUpdateRequest(
        family_ids=[own.id, foreign.id], updates={"preferred_language": "EN"}
    )

    with pytest.raises(NupciError) as exc:
        families_crud.bulk_update_families(db, wedding.id, payload)
    assert exc.value.status_code == 403

    db.expire_all()
    assert families_crud.get_family(db, wedding.id, own.id).preferred_language == LanguageEnum.ES


def test_bulk_update_sets_attendance_and_language(db, wedding, make_family):
    a = make_family(wedding)
    b = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))
    payload = schemas.BulkUpdateRequest(
        family_ids=[a.id, b.id, a.id],
        updates={"preferred_language": "FR", "set_all_attending": True},
    )

    result = families_crud.bulk_update_families(db, wedding.id, payload)

    assert result == {"updated_families": 2, "updated_members": 3}
    family = families_crud.get_family(db, wedding.id, a.id)
    assert family.preferred_language == LanguageEnum.FR
    assert all(m.attending is True for m in family.members)


def test_bulk_update_both_flags_false_resets_to_pending(db, wedding, make_family):
    family = make_family(wedding)
    _answer(db, family, True, False)
    payload = schemas.BulkUpdateRequest(
        family_ids=[family.id], updates={"set_all_attending": False, "set_all_not_attending": False}
    )

    families_crud.bulk_update_families(db, wedding.id, payload)

    assert all(m.attending is None for m in families_crud.get_family(db, wedding.id, family.id).members)


def test_bulk_update_rejects_contradictory_flags():
    with pytest.raises(ValueError):
        schemas.BulkUpdateChanges(set_all_attending=True, set_all_not_attending=True)



@pytest.mark.parametrize("model, extra", [
    (schemas.BulkDeleteRequest, {}),
    (schemas.BulkUpdateRequest, {"updates": {"set_all_attending": True}}),
])
def test_bulk_requests_reject_repeated_ids(model, extra):
    with pytest.raises(ValueError):
        model(family_ids=["f1", "f2", "f1"], **extra)

def test_bulk_delete_and_delete_all(db, wedding, make_family):
    a = make_family(wedding)
    b = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))
    c = make_family(wedding, name="Familia Soto", members=("Irene Soto",))

    assert families_crud.bulk_delete_families(db, wedding.id, [a.id, b.id]) == {
        "deleted_count": 2, "deleted_members": 3,
    }
    assert families_crud.delete_all_families(db, wedding.id) == {
        "deleted_families": 1, "deleted_members": 1,
    }
    assert db.query(models.Family).filter(models.Family.id == c.id).count() == 0


def test_delete_family_reports_rsvp(db, wedding, make_family):
    family = make_family(wedding)
    _answer(db, family, True, None)

    result = families_crud.delete_family(db, wedding.id, family.id)

    assert result == {"had_rsvp": True, "deleted_members": 2}


# =========================
# Informe
# =========================
def test_report_summary_ignores_non_attending_notes(db, wedding, make_family):
    family = make_family(wedding)
    ana, luis = family.members
    ana.age, ana.dietary_restrictions, ana.attending = 30, "Vegetariana", True
    luis.age, luis.accessibility_needs, luis.attending = 50, "Silla de ruedas", False
    family.transportation_answer = True
    db.commit()

    report = families_crud.report_summary(db, wedding.id)

    assert report["average_age"] == 30.0
    assert report["transportation_yes"] == 1
    assert report["dietary_restrictions"] == [
        {"family_name": "Familia García", "member_name": "Ana García", "note": "Vegetariana"}
    ]
    assert report["accessibility_needs"] == []
