"""Registration model

One row per company-incorporation application. Workflow state lives in plain
columns; every document slot is a JSON column holding camelCase attachment
metadata. The customer-signed bundle is spread over the ``customer_*``
columns and reassembled by the repository.

Concurrent writers are serialized by ``version`` (compare-and-swap via
``version_id_col``).
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Index, Integer, String, Text, false

from .base import Base, PortableJSONB, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistrationRow(Base):
    """Persistent shape of a registration.

    Slot columns (JSON):
        single: payment_receipt, balance_payment_receipt, form1,
            letter_of_engagement, aoa, address_proof, incorporation_certificate
        indexed: form18, customer_form18 (null gaps allowed)
        append-list: step3_additional_doc, step4_final_additional_doc
        keyed: step3_signed_additional_doc (admin document title -> attachment)
    """

    __tablename__ = 'registrations'

    id = Column(String(255), primary_key=True)

    # Contact / package
    company_name = Column(String(255), nullable=True)
    company_name_english = Column(String(255), nullable=True)
    company_name_local = Column(String(255), nullable=True, comment="Local-script company name")
    contact_person_name = Column(String(255), nullable=True)
    contact_person_email = Column(String(255), nullable=True)
    contact_person_phone = Column(String(255), nullable=True)
    selected_package = Column(String(255), nullable=True)
    payment_method = Column(String(50), nullable=True, default='bankTransfer')

    # Workflow
    current_step = Column(String(50), nullable=False, default='contact-details', server_default='contact-details')
    status = Column(String(50), nullable=False, default='payment-processing', server_default='payment-processing')
    payment_approved = Column(Boolean, nullable=False, default=False, server_default=false())
    details_approved = Column(Boolean, nullable=False, default=False, server_default=false())
    documents_approved = Column(Boolean, nullable=False, default=False, server_default=false())
    documents_published = Column(Boolean, nullable=False, default=False, server_default=false())
    documents_acknowledged = Column(Boolean, nullable=False, default=False, server_default=false())
    documents_published_at = Column(UTCDateTime, nullable=True)

    # Company details
    is_foreign_owned = Column(Boolean, nullable=True)
    business_address_number = Column(String(255), nullable=True)
    business_address_street = Column(String(255), nullable=True)
    business_address_city = Column(String(255), nullable=True)
    postal_code = Column(String(20), nullable=True)
    share_price = Column(String(50), nullable=True)
    number_of_shareholders = Column(Integer, nullable=True)
    shareholders = Column(PortableJSONB, nullable=True)
    appoint_company_secretary = Column(Boolean, nullable=True)
    number_of_directors = Column(Integer, nullable=True)
    directors = Column(PortableJSONB, nullable=True)
    import_export_status = Column(String(20), nullable=True)
    imports_to_add = Column(Text, nullable=True)
    exports_to_add = Column(Text, nullable=True)
    other_business_activities = Column(Text, nullable=True)
    local_division = Column(String(255), nullable=True)
    business_email = Column(String(255), nullable=True)
    business_contact_number = Column(String(255), nullable=True)

    # Admin / payment document slots
    payment_receipt = Column(PortableJSONB, nullable=True)
    balance_payment_receipt = Column(PortableJSONB, nullable=True)
    form1 = Column(PortableJSONB, nullable=True)
    letter_of_engagement = Column(PortableJSONB, nullable=True)
    aoa = Column(PortableJSONB, nullable=True)
    form18 = Column(PortableJSONB, nullable=True)
    address_proof = Column(PortableJSONB, nullable=True)
    incorporation_certificate = Column(PortableJSONB, nullable=True)
    step3_additional_doc = Column(PortableJSONB, nullable=True)
    step3_signed_additional_doc = Column(PortableJSONB, nullable=True)
    step4_final_additional_doc = Column(PortableJSONB, nullable=True)

    # Customer-signed bundle
    customer_form1 = Column(PortableJSONB, nullable=True)
    customer_letter_of_engagement = Column(PortableJSONB, nullable=True)
    customer_aoa = Column(PortableJSONB, nullable=True)
    customer_form18 = Column(PortableJSONB, nullable=True)
    customer_address_proof = Column(PortableJSONB, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    version = Column(Integer, nullable=False, default=0, server_default='0')

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': lambda current: (current or 0) + 1,
    }

    __table_args__ = (
        Index('ix_registrations_created_at', 'created_at'),
        Index('ix_registrations_contact_person_email', 'contact_person_email'),
    )

    def __repr__(self):
        return f"<RegistrationRow(id={self.id}, step={self.current_step}, status={self.status})>"
