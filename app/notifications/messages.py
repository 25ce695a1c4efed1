"""
WhatsApp message bodies sent to renters.

Texts are in Spanish; dates use the d/m/yyyy form renters see elsewhere
in the product.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rentals.models import Rental


RENTAL_CONFIRMATION_TEMPLATE = (
    "¡Bienvenido a Trasteros! 🎉\n\n"
    "Tu trastero {unit_number} está listo desde el {start_date}.\n\n"
    "🔑 Tu código de acceso es: {access_code}\n\n"
    "Guarda este código de forma segura. Lo necesitarás para acceder a tu trastero.\n\n"
    "¡Gracias por confiar en nosotros!"
)

CANCELLATION_NOTICE_TEMPLATE = (
    "Hemos recibido tu solicitud de cancelación del trastero {unit_number}.\n\n"
    "⏰ Fecha límite para vaciar: {deadline}\n\n"
    "Por favor, retira todas tus pertenencias antes de esta fecha. "
    "Después del plazo, el trastero se considerará abandonado.\n\n"
    "Gracias por haber confiado en Trasteros."
)


def format_date(value: date) -> str:
    """Spanish short date without zero padding, e.g. 5/3/2024."""
    return f"{value.day}/{value.month}/{value.year}"


def render_rental_confirmation(rental: Rental) -> str:
    return RENTAL_CONFIRMATION_TEMPLATE.format(
        unit_number=rental.unit.unit_number,
        start_date=format_date(rental.start_date),
        access_code=rental.access_code,
    )


def render_cancellation_notice(rental: Rental) -> str:
    """The evacuation deadline is the end of the paid period."""
    return CANCELLATION_NOTICE_TEMPLATE.format(
        unit_number=rental.unit.unit_number,
        deadline=format_date(rental.end_date),
    )
