"""
Checkout session creation for renting a storage unit.

Builds the hosted Stripe Checkout Session a renter pays through. The
session carries every rental parameter as string metadata, which comes
back on checkout.session.completed and drives reconciliation.

Usage:
    from payments.services import CheckoutRequest, CheckoutService

    result = CheckoutService.create_session(
        user=request.user,
        checkout=CheckoutRequest(unit_id=unit.id, payment_type="single", months=3),
        origin="https://app.example.com",
    )
    if result.success:
        redirect(result.data.url)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings

from core.services import BaseService, ServiceResult
from rentals.models import StorageUnit
from rentals.state_machines import PaymentType, UnitStatus

from payments.adapters import CheckoutSessionResult, CreateCheckoutSessionParams, StripeAdapter
from payments.exceptions import StripeError

if TYPE_CHECKING:
    from authentication.models import User


UNIT_UNAVAILABLE = "UNIT_UNAVAILABLE"
PRICE_MISMATCH = "PRICE_MISMATCH"
CHECKOUT_FAILED = "CHECKOUT_FAILED"

SUCCESS_PATH = "/dashboard?success=true&session_id={CHECKOUT_SESSION_ID}"
CANCEL_PATH = "/dashboard?wizard=true&step=summary&canceled=true"


@dataclass
class CheckoutRequest:
    """
    A renter's checkout choices, as validated by the API serializer.

    unit_price and total_price are the prices the client displayed; when
    present they must match the server-side computation.
    """

    unit_id: uuid.UUID
    payment_type: str
    months: int = 1
    insurance: bool = False
    insurance_price: Decimal = Decimal("0.00")
    insurance_coverage: Decimal = Decimal("0.00")
    unit_price: Decimal | None = None
    total_price: Decimal | None = None

    @property
    def is_subscription(self) -> bool:
        return self.payment_type == PaymentType.SUBSCRIPTION

    @property
    def monthly_insurance(self) -> Decimal:
        return self.insurance_price if self.insurance and self.insurance_price > 0 else Decimal("0.00")


def to_cents(amount: Decimal) -> int:
    """Convert a EUR amount to integer cents, rounding half up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _format_size(size: Decimal) -> str:
    return f"{size.normalize():f}"


class CheckoutService(BaseService):
    """Creates Stripe Checkout Sessions for available units."""

    @classmethod
    def create_session(
        cls,
        user: User,
        checkout: CheckoutRequest,
        origin: str | None = None,
    ) -> ServiceResult[CheckoutSessionResult]:
        """
        Create a Checkout Session for a unit.

        Units are not reserved here; the unit is claimed only when the
        completed checkout is reconciled.

        Returns:
            ServiceResult with the session id and hosted URL, or a failure
            with UNIT_UNAVAILABLE, PRICE_MISMATCH or CHECKOUT_FAILED
        """
        logger = cls.get_logger()

        unit = StorageUnit.objects.filter(
            pk=checkout.unit_id, status=UnitStatus.AVAILABLE
        ).first()
        if unit is None:
            logger.info(
                "Checkout requested for unavailable unit",
                extra={"user_id": str(user.pk), "unit_id": str(checkout.unit_id)},
            )
            return ServiceResult.failure("Unit is not available", UNIT_UNAVAILABLE)

        total = cls.compute_total(unit.price, checkout)
        mismatch = cls._price_mismatch(unit.price, total, checkout)
        if mismatch:
            logger.warning(
                "Checkout prices do not match server prices",
                extra={"user_id": str(user.pk), "unit_id": str(unit.pk), **mismatch},
            )
            return ServiceResult.failure(
                "Displayed price is out of date; please reload and try again",
                PRICE_MISMATCH,
                errors={field: ["Does not match the current price."] for field in mismatch},
            )

        base_url = (origin or settings.CHECKOUT_REDIRECT_BASE_URL).rstrip("/")
        params = CreateCheckoutSessionParams(
            mode="subscription" if checkout.is_subscription else "payment",
            line_items=cls.build_line_items(unit, checkout),
            success_url=f"{base_url}{SUCCESS_PATH}",
            cancel_url=f"{base_url}{CANCEL_PATH}",
            customer_email=user.email,
            metadata=cls.build_metadata(user, unit, checkout, total),
        )

        try:
            session = StripeAdapter.create_checkout_session(params)
        except StripeError as e:
            logger.error(
                "Stripe could not create checkout session",
                extra={"user_id": str(user.pk), "unit_id": str(unit.pk), "error_code": e.error_code},
            )
            return ServiceResult.failure("Could not create checkout session", CHECKOUT_FAILED)

        logger.info(
            "Checkout session created",
            extra={
                "user_id": str(user.pk),
                "unit_id": str(unit.pk),
                "checkout_session_id": session.id,
                "payment_type": checkout.payment_type,
            },
        )
        return ServiceResult.success(session)

    # =========================================================================
    # Pricing
    # =========================================================================

    @staticmethod
    def compute_total(unit_price: Decimal, checkout: CheckoutRequest) -> Decimal:
        """
        First charge amount.

        Subscriptions charge one month up front; single payments charge
        every month bought.
        """
        monthly = unit_price + checkout.monthly_insurance
        if checkout.is_subscription:
            return monthly
        return monthly * checkout.months

    @staticmethod
    def _price_mismatch(
        unit_price: Decimal, total: Decimal, checkout: CheckoutRequest
    ) -> dict[str, str]:
        mismatch = {}
        if checkout.unit_price is not None and checkout.unit_price != unit_price:
            mismatch["unitPrice"] = str(checkout.unit_price)
        if checkout.total_price is not None and checkout.total_price != total:
            mismatch["totalPrice"] = str(checkout.total_price)
        return mismatch

    @staticmethod
    def build_line_items(unit: StorageUnit, checkout: CheckoutRequest) -> list[dict[str, Any]]:
        """
        Stripe line items in cents.

        Subscription: recurring monthly unit price plus optional recurring
        insurance. Single: one-time unit price and insurance, quantity months.
        """
        size = _format_size(unit.size_m2)
        recurring = {"recurring": {"interval": "month"}} if checkout.is_subscription else {}
        quantity = 1 if checkout.is_subscription else checkout.months

        items = [
            {
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {
                        "name": f"Unidad de almacenamiento {size}m²",
                        "description": f"Alquiler mensual de trastero {size}m²",
                    },
                    "unit_amount": to_cents(unit.price),
                    **recurring,
                },
                "quantity": quantity,
            }
        ]

        if checkout.monthly_insurance > 0:
            coverage = f"{checkout.insurance_coverage.quantize(Decimal('1')):f}"
            items.append(
                {
                    "price_data": {
                        "currency": settings.STRIPE_CURRENCY,
                        "product_data": {
                            "name": "Seguro de contenido",
                            "description": (
                                f"Cobertura hasta €{coverage} contra daños, robos e incendios"
                            ),
                        },
                        "unit_amount": to_cents(checkout.monthly_insurance),
                        **recurring,
                    },
                    "quantity": quantity,
                }
            )

        return items

    @staticmethod
    def build_metadata(
        user: User, unit: StorageUnit, checkout: CheckoutRequest, total: Decimal
    ) -> dict[str, str]:
        """String-encoded rental parameters echoed back on the webhook."""
        return {
            "userId": str(user.pk),
            "unitId": str(unit.pk),
            "months": str(1 if checkout.is_subscription else checkout.months),
            "paymentType": checkout.payment_type,
            "insurance": "true" if checkout.insurance else "false",
            "insurancePrice": str(checkout.monthly_insurance),
            "insuranceCoverage": str(checkout.insurance_coverage),
            "unitSize": _format_size(unit.size_m2),
            "unitPrice": str(unit.price),
            "totalPrice": str(total),
        }
