"""
Static label tables for the customs back-office.

Statuses, channels and types are free-form strings in the database; these
tables only drive display labels and pickers. Nothing here validates a
status transition.
"""
from __future__ import annotations

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"
ROLES = (ROLE_ADMIN, ROLE_CLIENT)

# Status picker, in the order operators move a dispatch along.
DISPATCH_STATUSES = (
    "pending",
    "documentation",
    "in_transit",
    "arrived",
    "customs",
    "inspection",
    "released",
    "delivery",
    "completed",
)
DEFAULT_DISPATCH_STATUS = "pending"
COMPLETED_STATUS = "completed"

DISPATCH_STATUS_LABELS = {
    "pending": "PENDIENTE",
    "documentation": "DOCUMENTACIÓN",
    "in_transit": "EN TRÁNSITO",
    "arrived": "ARRIBADO",
    "customs": "EN ADUANA",
    "inspection": "EN INSPECCIÓN",
    "released": "LIBERADO",
    "delivery": "EN ENTREGA",
    "completed": "COMPLETADO",
}

DISPATCH_STATUS_COLORS = {
    "completed": "green",
    "in_transit": "blue",
    "pending": "amber",
    "customs": "orange",
}

CHANNELS = ("pending", "green", "orange", "red")
DEFAULT_CHANNEL = "pending"
CHANNEL_LABELS = {
    "green": "VERDE",
    "orange": "NARANJA",
    "red": "ROJO",
    "pending": "PENDIENTE",
}

DOCUMENT_TYPES = {
    "invoice": "Factura",
    "packing_list": "Lista de Empaque",
    "bl": "Conocimiento de Embarque",
    "vuce": "VUCE",
    "co": "Certificado de Origen",
    "payment_proof": "Comprobante de Pago",
    "customs_declaration": "Declaración Aduanera",
    "other": "Otro",
}

PAYMENT_TYPES = {
    "customs_duties": "Derechos Aduaneros",
    "import_tax": "Impuesto de Importación",
    "storage_fees": "Tarifas de Almacenamiento",
    "inspection_fees": "Tarifas de Inspección",
    "transport_costs": "Costos de Transporte",
    "service_fees": "Tarifas de Servicio",
    "handling_fees": "Tarifas de Manipulación",
    "documentation_fees": "Tarifas de Documentación",
    "other": "Otro",
}

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID)

EVENT_TYPES = {
    "deadline": "Fecha Límite",
    "meeting": "Reunión",
    "inspection": "Inspección",
    "delivery": "Entrega",
    "other": "Otro",
}
DEFAULT_EVENT_TYPE = "deadline"

# Client-portal progress bar (1-based step).
TRACKING_STEPS = {
    "pending": 1,
    "in_transit": 2,
    "customs": 3,
    "cleared": 4,
    "completed": 5,
}

TRACKING_PROCESS = (
    {"step": 1, "title": "Documentación previa"},
    {"step": 2, "title": "Embarque en origen"},
    {"step": 3, "title": "Arribo al puerto y transmisión DAM"},
    {"step": 4, "title": "Canal asignado y levante"},
)


def status_label(status: str | None) -> str:
    key = (status or "").lower()
    if key in DISPATCH_STATUS_LABELS:
        return DISPATCH_STATUS_LABELS[key]
    return (status or "").replace("_", " ").upper()


def status_color(status: str | None) -> str:
    return DISPATCH_STATUS_COLORS.get((status or "").lower(), "gray")


def channel_label(channel: str | None) -> str:
    if not channel:
        return "N/A"
    return CHANNEL_LABELS.get(channel, channel.upper())


def tracking_step(status: str | None) -> int:
    return TRACKING_STEPS.get((status or "").lower(), 1)


def label_for(table: dict[str, str], key: str | None) -> str:
    """Display label from a type table; unknown keys are shown as-is."""
    if not key:
        return ""
    return table.get(key, key)
