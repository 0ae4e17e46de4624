"""Unit tests for the document slot manager

Each slot kind (single, indexed, keyed, append-list) is exercised through the
slots that use it; every operation must leave the other slots untouched.
"""

import pytest

from conftest import make_attachment
from incorpflow.domain.errors import (
    InvalidAttachment,
    InvalidIndex,
    InvalidSlot,
    InvalidSlotKey,
    NotFound,
)
from incorpflow.domain.registrations import slots
from incorpflow.domain.registrations.models import PartyRecord, Registration
from incorpflow.domain.registrations.slots import SLOTS, SlotKind, SlotOwner


def directors(count: int):
    return [PartyRecord(name=f"Director {i + 1}") for i in range(count)]


@pytest.fixture
def registration():
    return Registration(company_name="Acme", contact_person_email="ops@acme.test")


class TestRegistry:
    """Test the slot registry"""

    def test_every_slot_maps_to_an_attribute(self):
        for spec in SLOTS.values():
            assert slots.get_slot_value(Registration(), spec.name) is None

    def test_unknown_slot(self):
        with pytest.raises(InvalidSlot):
            slots.get_slot_spec("passport")

    def test_kind_mismatch(self, registration):
        with pytest.raises(InvalidSlot):
            slots.set_single_slot(registration, "form18", make_attachment())

    def test_kinds_and_owners(self):
        assert SLOTS["form18"].kind == SlotKind.INDEXED
        assert SLOTS["step3SignedAdditionalDoc"].kind == SlotKind.KEYED
        assert SLOTS["step4FinalAdditionalDoc"].kind == SlotKind.APPEND_LIST
        assert SLOTS["paymentReceipt"].owner == SlotOwner.CUSTOMER
        assert SLOTS["customerDocuments.form18"].in_customer_bundle is True


class TestSingleSlots:
    """Test single-document slots"""

    def test_set_and_replace(self, registration):
        first = make_attachment("form1-v1.pdf")
        second = make_attachment("form1-v2.pdf")

        updated = slots.set_single_slot(registration, "form1", first)
        replaced = slots.set_single_slot(updated, "form1", second)

        assert updated.form1 == first
        assert replaced.form1 == second
        assert registration.form1 is None

    def test_clear(self, registration):
        updated = slots.set_single_slot(registration, "aoa", make_attachment("aoa.pdf"))
        assert slots.set_single_slot(updated, "aoa", None).aoa is None

    def test_independence(self, registration):
        form1 = make_attachment("form1.pdf")
        aoa = make_attachment("aoa.pdf")

        updated = slots.set_single_slot(registration, "form1", form1)
        updated = slots.set_single_slot(updated, "aoa", aoa)
        updated = slots.set_single_slot(updated, "customerDocuments.form1", make_attachment("signed.pdf"))

        assert updated.form1 == form1
        assert updated.aoa == aoa
        assert updated.customer_documents.form1.name == "signed.pdf"
        assert updated.customer_documents.aoa is None

    def test_accepts_camelcase_payload(self, registration):
        payload = make_attachment("receipt.pdf").to_json()

        updated = slots.set_single_slot(registration, "paymentReceipt", payload)

        assert updated.payment_receipt.storage_path == payload["storagePath"]

    def test_rejects_incomplete_metadata(self, registration):
        payload = make_attachment("receipt.pdf").to_json()
        payload["storagePath"] = ""

        with pytest.raises(InvalidAttachment):
            slots.set_single_slot(registration, "paymentReceipt", payload)


class TestIndexedSlots:
    """Test director-aligned indexed slots"""

    def test_set_pads_with_placeholders(self, registration):
        doc = make_attachment("form18-3.pdf")

        updated = slots.set_indexed_slot(registration, "form18", 2, doc)

        assert updated.form18 == [None, None, doc]

    def test_grow_without_clobbering(self, registration):
        first = make_attachment("form18-1.pdf")
        third = make_attachment("form18-3.pdf")

        updated = slots.set_indexed_slot(registration, "form18", 0, first)
        updated = slots.set_indexed_slot(updated, "form18", 2, third)

        assert updated.form18 == [first, None, third]

    def test_negative_index(self, registration):
        with pytest.raises(InvalidIndex):
            slots.set_indexed_slot(registration, "form18", -1, make_attachment())

    def test_index_beyond_directors_grows(self, registration):
        first = make_attachment("form18-1.pdf")
        fourth = make_attachment("form18-4.pdf")
        registration = registration.evolve(directors=directors(1), form18=[first])

        updated = slots.set_indexed_slot(registration, "form18", 3, fourth)

        assert updated.form18 == [first, None, None, fourth]

    def test_non_integer_index(self, registration):
        with pytest.raises(InvalidIndex):
            slots.set_indexed_slot(registration, "form18", "1", make_attachment())

    def test_clear_keeps_positions_stable(self, registration):
        first = make_attachment("form18-1.pdf")
        second = make_attachment("form18-2.pdf")
        updated = slots.set_indexed_slot(registration, "form18", 0, first)
        updated = slots.set_indexed_slot(updated, "form18", 1, second)

        cleared = slots.clear_indexed_position(updated, "form18", 0)

        assert cleared.form18 == [None, second]

    def test_admin_and_customer_form18_are_separate(self, registration):
        admin = make_attachment("form18-template.pdf")
        signed = make_attachment("form18-signed.pdf")

        updated = slots.set_indexed_slot(registration, "form18", 0, admin)
        updated = slots.set_indexed_slot(updated, "customerDocuments.form18", 0, signed)

        assert updated.form18 == [admin]
        assert updated.customer_documents.form18 == [signed]

    def test_align_pads_but_never_truncates(self, registration):
        doc = make_attachment("form18-1.pdf")
        updated = slots.set_indexed_slot(registration, "form18", 0, doc)

        padded = slots.align_to_directors(updated.evolve(directors=directors(3)))
        assert padded.form18 == [doc, None, None]

        shrunk = slots.align_to_directors(padded.evolve(directors=directors(1)))
        assert len(shrunk.form18) == 3


class TestAppendListSlots:
    """Test append-only list slots"""

    def test_append_preserves_order(self, registration):
        first = make_attachment("extra-1.pdf")
        second = make_attachment("extra-2.pdf")

        updated = slots.append_to_list(registration, "step4FinalAdditionalDoc", first)
        updated = slots.append_to_list(updated, "step4FinalAdditionalDoc", second)

        assert updated.step4_final_additional_doc == [first, second]

    def test_duplicate_id_rejected(self, registration):
        doc = make_attachment("extra.pdf")
        updated = slots.append_to_list(registration, "step4FinalAdditionalDoc", doc)

        with pytest.raises(InvalidAttachment):
            slots.append_to_list(updated, "step4FinalAdditionalDoc", doc)

    def test_titles_required_for_step3(self, registration):
        with pytest.raises(InvalidAttachment):
            slots.append_to_list(registration, "step3AdditionalDoc", make_attachment("memo.pdf"))

    def test_duplicate_title_rejected(self, registration):
        updated = slots.append_to_list(
            registration, "step3AdditionalDoc", make_attachment("a.pdf", title="Board Resolution")
        )

        with pytest.raises(InvalidAttachment):
            slots.append_to_list(
                updated, "step3AdditionalDoc", make_attachment("b.pdf", title="Board Resolution")
            )

    def test_append_then_remove_round_trip(self, registration):
        keep = make_attachment("keep.pdf")
        drop = make_attachment("drop.pdf")
        updated = slots.append_to_list(registration, "step4FinalAdditionalDoc", keep)
        updated = slots.append_to_list(updated, "step4FinalAdditionalDoc", drop)

        removed = slots.remove_from_list(updated, "step4FinalAdditionalDoc", drop.id)

        assert removed.step4_final_additional_doc == [keep]

    def test_remove_missing_id_is_noop(self, registration):
        assert slots.remove_from_list(registration, "step4FinalAdditionalDoc", "nope") is registration

    def test_removing_last_entry_empties_slot(self, registration):
        doc = make_attachment("only.pdf")
        updated = slots.append_to_list(registration, "step4FinalAdditionalDoc", doc)

        assert slots.remove_from_list(updated, "step4FinalAdditionalDoc", doc.id).step4_final_additional_doc is None


class TestKeyedSlots:
    """Test the title-keyed customer slot"""

    @pytest.fixture
    def with_requests(self, registration):
        updated = slots.append_to_list(
            registration, "step3AdditionalDoc", make_attachment("a.pdf", title="Board Resolution")
        )
        return slots.append_to_list(
            updated, "step3AdditionalDoc", make_attachment("b.pdf", title="Share Certificate")
        )

    def test_set_for_published_title(self, with_requests):
        signed = make_attachment("signed-resolution.pdf")

        updated = slots.set_keyed_slot(with_requests, "step3SignedAdditionalDoc", "Board Resolution", signed)

        assert updated.step3_signed_additional_doc == {"Board Resolution": signed}

    def test_unknown_title_rejected(self, with_requests):
        with pytest.raises(InvalidSlotKey):
            slots.set_keyed_slot(with_requests, "step3SignedAdditionalDoc", "Lease", make_attachment())

    def test_entries_are_independent(self, with_requests):
        first = make_attachment("r.pdf")
        second = make_attachment("s.pdf")

        updated = slots.set_keyed_slot(with_requests, "step3SignedAdditionalDoc", "Board Resolution", first)
        updated = slots.set_keyed_slot(updated, "step3SignedAdditionalDoc", "Share Certificate", second)
        updated = slots.remove_keyed_entry(updated, "step3SignedAdditionalDoc", "Board Resolution")

        assert updated.step3_signed_additional_doc == {"Share Certificate": second}

    def test_new_admin_document_keeps_signed_answer(self, registration):
        plan = make_attachment("plan.pdf", id="d1", title="Business Plan")
        signed = make_attachment("plan-signed.pdf")
        updated = slots.append_to_list(registration, "step3AdditionalDoc", plan)
        updated = slots.set_keyed_slot(updated, "step3SignedAdditionalDoc", "Business Plan", signed)

        updated = slots.append_to_list(
            updated, "step3AdditionalDoc", make_attachment("tax.pdf", id="d2", title="Tax Form")
        )

        assert [d.id for d in updated.step3_additional_doc] == ["d1", "d2"]
        assert updated.step3_signed_additional_doc == {"Business Plan": signed}


class TestCustomerMerge:
    """Test deep-merge of the customer-signed bundle"""

    def test_merge_is_non_destructive(self, registration):
        form1 = make_attachment("form1-signed.pdf")
        first = make_attachment("form18-1.pdf")
        second = make_attachment("form18-2.pdf")
        updated = slots.merge_customer_documents(registration, {"form1": form1, "form18": [first]})

        merged = slots.merge_customer_documents(updated, {"form18": [None, second]})

        assert merged.customer_documents.form1 == form1
        assert merged.customer_documents.form18 == [first, second]

    def test_null_fields_are_ignored(self, registration):
        form1 = make_attachment("form1-signed.pdf")
        updated = slots.merge_customer_documents(registration, {"form1": form1})

        merged = slots.merge_customer_documents(updated, {"form1": None, "aoa": None})

        assert merged.customer_documents.form1 == form1

    def test_unknown_field_rejected(self, registration):
        with pytest.raises(InvalidSlot):
            slots.merge_customer_documents(registration, {"passport": make_attachment()})

    def test_keyed_merge_checks_titles(self, registration):
        with pytest.raises(InvalidSlotKey):
            slots.merge_customer_documents(
                registration, {"step3SignedAdditionalDoc": {"Lease": make_attachment()}}
            )


class TestApplySlotPayload:
    """Test PUT-body slot semantics"""

    def test_null_clears(self, registration):
        updated = slots.set_single_slot(registration, "form1", make_attachment())
        assert slots.apply_slot_payload(updated, "form1", None).form1 is None

    def test_list_payload_appends_new_ids(self, registration):
        existing = make_attachment("existing.pdf")
        updated = slots.append_to_list(registration, "step4FinalAdditionalDoc", existing)
        new = make_attachment("new.pdf")

        merged = slots.apply_slot_payload(updated, "step4FinalAdditionalDoc", [new.to_json()])

        assert [item.id for item in merged.step4_final_additional_doc] == [existing.id, new.id]

    def test_resending_existing_entry_is_idempotent(self, registration):
        existing = make_attachment("existing.pdf")
        updated = slots.append_to_list(registration, "step4FinalAdditionalDoc", existing)

        merged = slots.apply_slot_payload(updated, "step4FinalAdditionalDoc", [existing])

        assert merged.step4_final_additional_doc == [existing]


class TestBookkeeping:
    """Test attachment lookup and displacement tracking"""

    def test_detach_from_any_slot(self, registration):
        form18 = make_attachment("form18.pdf")
        form1 = make_attachment("form1.pdf")
        updated = slots.set_indexed_slot(registration, "form18", 1, form18)
        updated = slots.set_single_slot(updated, "form1", form1)

        detached, document = slots.detach_attachment(updated, form18.id)

        assert document == form18
        assert detached.form18 is None
        assert detached.form1 == form1

    def test_detach_unknown(self, registration):
        with pytest.raises(NotFound):
            slots.detach_attachment(registration, "missing")

    def test_displaced_attachments(self, registration):
        old = make_attachment("old.pdf")
        new = make_attachment("new.pdf")
        before = slots.set_single_slot(registration, "form1", old)
        after = slots.set_single_slot(before, "form1", new)

        assert slots.displaced_attachments(before, after) == [old]
        assert slots.displaced_attachments(after, after) == []

    def test_iter_attachments_positions(self, registration):
        doc = make_attachment("form18.pdf")
        updated = slots.set_indexed_slot(registration, "customerDocuments.form18", 1, doc)

        assert list(slots.iter_attachments(updated)) == [("customerDocuments.form18", 1, doc)]
