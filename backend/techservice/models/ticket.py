from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, DateTime, Numeric, ForeignKey
from techservice.models.accounts import Base, new_id
from techservice.utils.clock import utcnow


class Device(Base):
    """Catalog entry for a class of serviceable equipment (not a customer's unit)."""
    __tablename__ = 'devices'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    device_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), default=utcnow)


class Ticket(Base):
    __tablename__ = 'tickets'
    # Pipeline stages, in order
    STATUS_ACCEPTED_PENDING = 'accepted_pending'
    STATUS_FAULT_DIAGNOSIS = 'fault_diagnosis'
    STATUS_CUSTOMER_APPROVAL = 'customer_approval'
    STATUS_UNDER_REPAIR = 'under_repair'
    STATUS_READY_FOR_DELIVERY = 'ready_for_delivery'
    STATUS_INVOICING = 'invoicing'
    STATUS_DELIVERY = 'delivery'
    ALL_STATUSES = (
        STATUS_ACCEPTED_PENDING, STATUS_FAULT_DIAGNOSIS, STATUS_CUSTOMER_APPROVAL, STATUS_UNDER_REPAIR,
        STATUS_READY_FOR_DELIVERY, STATUS_INVOICING, STATUS_DELIVERY,
    )
    ALL_PRIORITIES = ('low', 'medium', 'high', 'urgent')
    ALL_WARRANTY_STATUSES = ('in_warranty', 'out_of_warranty', 'unknown')
    KNOWN_BRANDS = ('KOBRA', 'HAGEL')

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_ACCEPTED_PENDING, index=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default='medium')
    device_id: Mapped[Optional[str]] = mapped_column(ForeignKey('devices.id', ondelete='SET NULL'), nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(ForeignKey('technicians.id', ondelete='SET NULL'), nullable=True, index=True)

    # Snapshot captured on the intake form; deliberately independent of the Device row
    serial_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    product_type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    model_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    custom_code: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    warranty_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    customer_full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    customer_extension: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    billing_company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    billing_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    billing_tax_office: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    billing_tax_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Financials, written by gated transitions
    approved_labor_cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    approved_service_cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    invoice_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    total_service_amount: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)

    won: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False, index=True)
    won_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    won_hidden: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=False)

    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)


class TicketNote(Base):
    """Append-only note attached to a ticket."""
    __tablename__ = 'ticket_notes'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    ticket_id: Mapped[str] = mapped_column(ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False, default='Staff')
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), default=utcnow)

# Status flow: accepted_pending -> fault_diagnosis -> customer_approval -> under_repair
#   -> ready_for_delivery -> invoicing -> delivery; "won" is a flag set from delivery only.
