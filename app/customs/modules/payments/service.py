from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from app.customs.api import clean_str, parse_date, parse_number
from app.customs.audit import record_event
from app.customs.constants import PAYMENT_PAID, PAYMENT_PENDING, PAYMENT_STATUSES, PAYMENT_TYPES, label_for
from app.customs.modules.documents.models import DispatchDocument
from app.customs.modules.notifications.service import notify_client_of_dispatch
from app.customs.modules.payments.models import Payment

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.customs.models import User
    from app.customs.modules.dispatches.models import Dispatch


def validate_payment_payload(s: "Session", dispatch_id: int, payload: dict) -> list[str]:
    """Validate payment creation payload. Returns list of errors."""
    errors = []
    try:
        amount = parse_number(payload.get("amount"), "amount")
    except ValueError as e:
        errors.append(str(e))
    else:
        if amount is None or amount <= 0:
            errors.append("Please enter a valid amount (greater than zero).")

    if not clean_str(payload.get("payment_type")):
        errors.append("payment_type is required.")

    status = clean_str(payload.get("status")) or PAYMENT_PENDING
    if status not in PAYMENT_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(PAYMENT_STATUSES)}")

    for field in ("due_date", "paid_date"):
        try:
            parse_date(payload.get(field))
        except ValueError as e:
            errors.append(str(e))

    proof_id = payload.get("proof_document_id")
    if proof_id not in (None, ""):
        try:
            doc = s.get(DispatchDocument, int(proof_id))
        except (TypeError, ValueError):
            doc = None
        if not doc or doc.dispatch_id != dispatch_id:
            errors.append("proof_document_id must be a document of this dispatch.")
    return errors


def payments_for(s: "Session", dispatch_id: int) -> list[Payment]:
    return (
        s.query(Payment)
        .filter(Payment.dispatch_id == dispatch_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


def summarize(payments: list[Payment]) -> dict:
    """Totals shown on the client portal: pending is whatever isn't paid."""
    total = round(sum(float(p.amount) for p in payments), 2)
    paid = round(sum(float(p.amount) for p in payments if p.status == PAYMENT_PAID), 2)
    return {"total": total, "paid": paid, "pending": round(total - paid, 2)}


def add_payment(s: "Session", dispatch: "Dispatch", payload: dict, user: "User") -> Payment:
    now = datetime.utcnow()
    status = clean_str(payload.get("status")) or PAYMENT_PENDING
    proof_id = payload.get("proof_document_id")

    payment = Payment(
        dispatch_id=dispatch.id,
        amount=parse_number(payload.get("amount"), "amount"),
        payment_type=clean_str(payload.get("payment_type")) or "",
        status=status,
        due_date=parse_date(payload.get("due_date")),
        # paid_date only means something once the payment is paid
        paid_date=parse_date(payload.get("paid_date")) if status == PAYMENT_PAID else None,
        proof_document_id=int(proof_id) if proof_id not in (None, "") else None,
        notes=clean_str(payload.get("notes")),
        created_at=now,
        updated_at=now,
    )
    s.add(payment)
    s.flush()

    record_event(
        s,
        actor=user,
        action="payment.create",
        entity_type="Payment",
        entity_id=str(payment.id),
        metadata={"dispatch_id": dispatch.id, "amount": payment.amount, "status": payment.status},
    )
    type_label = label_for(PAYMENT_TYPES, payment.payment_type)
    notify_client_of_dispatch(
        s,
        dispatch,
        type="payment_added",
        title="Nuevo Registro de Pago",
        message=(
            f"Se ha agregado un nuevo pago de ${payment.amount:.2f} ({type_label}) "
            f"al despacho {dispatch.dispatch_number}"
        ),
    )
    return payment


def set_payment_status(
    s: "Session",
    payment: Payment,
    status: str,
    user: "User",
    paid_date: date | None = None,
) -> Payment:
    if status not in PAYMENT_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(PAYMENT_STATUSES)}")
    old = payment.status
    payment.status = status
    if status == PAYMENT_PAID:
        payment.paid_date = paid_date or payment.paid_date or date.today()
    else:
        payment.paid_date = None
    payment.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="payment.status_update",
        entity_type="Payment",
        entity_id=str(payment.id),
        metadata={"old": old, "new": status, "paid_date": payment.paid_date},
    )
    return payment
