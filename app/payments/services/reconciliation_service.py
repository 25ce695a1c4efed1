"""
Reconciliation of Stripe billing events into rentals and payments.

This module turns verified, decoded webhook payloads into database state:

1. Checkout completed: open the rental, claim the unit, record the first
   payment and queue the WhatsApp confirmation
2. Renewal invoice paid: extend the subscription rental by one month and
   record the renewal payment
3. Subscription deleted: mark the subscription cancelled (access continues
   until end_date) and queue the cancellation notice
4. Renewal invoice failed: mark the subscription past due

Every flow is idempotent under redelivery: checkout creation is keyed on
checkout_session_id, renewals on the Stripe invoice id, and the remaining
flows are guarded state transitions that treat "already there" as success.

All methods expect to run inside the caller's transaction (the webhook
processor opens one per event). Notifications are deferred with
transaction.on_commit, so a rolled-back event never messages anyone.

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService.reconcile_checkout(session_payload)
    if result.success and result.data:
        rental = result.data
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from authentication.models import User
from core.services import BaseService, ServiceResult
from notifications.services import NotificationDispatcher
from rentals.models import Rental, StorageUnit
from rentals.services import RentalService, RentalTerms
from rentals.state_machines import PaymentType, SubscriptionStatus

from payments.adapters import StripeAdapter
from payments.exceptions import PaymentNotFoundError, WebhookPreconditionError
from payments.models import Payment
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from payments.webhooks.events import (
        CheckoutSessionPayload,
        InvoicePayload,
        SubscriptionPayload,
    )


# Stripe marks the first invoice of a subscription with this reason; it is
# reconciled by checkout.session.completed, never as a renewal.
FIRST_INVOICE_BILLING_REASON = "subscription_create"

# Each paid renewal invoice covers one calendar month
RENEWAL_MONTHS = 1


class ReconciliationService(BaseService):
    """
    Applies Stripe billing events to rentals and the payment ledger.

    Expected no-ops (unknown subscription, duplicate delivery, event for an
    object we never created) return ServiceResult.success(None) so the event
    is acknowledged. Failures that must be retried raise.
    """

    # =========================================================================
    # Checkout Completed
    # =========================================================================

    @classmethod
    def reconcile_checkout(cls, session: CheckoutSessionPayload) -> ServiceResult[Rental | None]:
        """
        Create the rental and first payment for a completed checkout.

        Returns:
            ServiceResult with the rental (new or previously reconciled), or
            None when the session carries no actionable metadata

        Raises:
            WebhookPreconditionError: Required subscription or payment
                intent reference is missing
            PaymentNotFoundError: User or unit named in metadata is unknown
            StripeError: Subscription lookup failed
        """
        logger = cls.get_logger()
        metadata = session.metadata
        log_context = {
            "checkout_session_id": session.session_id,
            "payment_type": metadata.payment_type,
        }

        if not metadata.is_actionable:
            logger.warning(
                "Checkout session has no user/unit metadata; ignoring",
                extra=log_context,
            )
            return ServiceResult.success(None)

        existing = Rental.objects.for_checkout_session(session.session_id).first()
        if existing is not None:
            logger.info(
                "Checkout session already reconciled",
                extra={**log_context, "rental_id": str(existing.id)},
            )
            return ServiceResult.success(existing)

        invoice_id = None
        if metadata.is_subscription:
            if not session.subscription_id:
                raise WebhookPreconditionError(
                    "Subscription checkout has no subscription id",
                    details=log_context,
                )
            subscription = StripeAdapter.retrieve_subscription(session.subscription_id)
            invoice_id = subscription.latest_invoice_id
            payment_intent_id = subscription.latest_payment_intent_id or session.payment_intent_id
        else:
            if not session.payment_intent_id:
                raise WebhookPreconditionError(
                    "Single-payment checkout has no payment intent",
                    details=log_context,
                )
            payment_intent_id = session.payment_intent_id

        user = User.objects.filter(pk=metadata.user_id).first()
        if user is None:
            raise PaymentNotFoundError(
                f"User {metadata.user_id} not found",
                details={**log_context, "user_id": str(metadata.user_id)},
            )

        unit = StorageUnit.objects.select_for_update().filter(pk=metadata.unit_id).first()
        if unit is None:
            raise PaymentNotFoundError(
                f"StorageUnit {metadata.unit_id} not found",
                details={**log_context, "unit_id": str(metadata.unit_id)},
            )

        unit_price = metadata.unit_price if metadata.unit_price is not None else unit.price
        terms = RentalTerms(
            user=user,
            unit=unit,
            checkout_session_id=session.session_id,
            payment_type=metadata.payment_type,
            price=unit_price,
            months=metadata.months,
            insurance_amount=metadata.monthly_insurance,
            stripe_subscription_id=session.subscription_id,
            stripe_payment_intent_id=payment_intent_id,
        )
        total_amount = cls._checkout_total(session, terms)

        try:
            with transaction.atomic():
                rental = RentalService.open_rental(terms)
                payment = Payment.objects.create(
                    rental=rental,
                    stripe_payment_intent_id=payment_intent_id,
                    stripe_invoice_id=invoice_id,
                    status=PaymentStatus.SUCCEEDED,
                    payment_date=timezone.now(),
                    payment_type=metadata.payment_type,
                    subscription_id=session.subscription_id if metadata.is_subscription else None,
                    billing_cycle_start=rental.start_date,
                    billing_cycle_end=rental.end_date,
                    is_subscription_active=metadata.is_subscription,
                    next_billing_date=rental.next_payment_date,
                    months_paid=rental.months_paid,
                    unit_price=unit_price,
                    total_amount=total_amount,
                )
        except IntegrityError:
            # A concurrent delivery of the same session won the insert
            existing = Rental.objects.for_checkout_session(session.session_id).first()
            if existing is None:
                raise
            logger.info(
                "Checkout session reconciled concurrently",
                extra={**log_context, "rental_id": str(existing.id)},
            )
            return ServiceResult.success(existing)

        logger.info(
            "Checkout reconciled",
            extra={
                **log_context,
                "rental_id": str(rental.id),
                "payment_id": str(payment.id),
                "unit_id": str(unit.id),
                "total_amount": str(total_amount),
            },
        )

        NotificationDispatcher.send_rental_confirmation(rental)
        return ServiceResult.success(rental)

    @staticmethod
    def _checkout_total(session: CheckoutSessionPayload, terms: RentalTerms) -> Decimal:
        """Amount charged at checkout: metadata total, then Stripe's total, then computed."""
        if session.metadata.total_price is not None:
            return session.metadata.total_price
        if session.amount_total is not None:
            return session.amount_total
        return (terms.price + terms.insurance_amount) * terms.covered_months

    # =========================================================================
    # Renewal Invoice Paid
    # =========================================================================

    @classmethod
    def apply_renewal(cls, invoice: InvoicePayload) -> ServiceResult[Payment | None]:
        """
        Extend a subscription rental by one month for a paid renewal invoice.

        The new period starts at the previous end_date, not at the invoice
        date, so late or out-of-order deliveries still yield contiguous
        coverage.

        Returns:
            ServiceResult with the new Payment, or None for no-op events
        """
        logger = cls.get_logger()
        log_context = {
            "invoice_id": invoice.invoice_id,
            "subscription_id": invoice.subscription_id,
            "billing_reason": invoice.billing_reason,
        }

        if not invoice.subscription_id:
            logger.info("Invoice is not for a subscription; ignoring", extra=log_context)
            return ServiceResult.success(None)

        if invoice.billing_reason == FIRST_INVOICE_BILLING_REASON:
            logger.info(
                "First subscription invoice is reconciled at checkout; ignoring",
                extra=log_context,
            )
            return ServiceResult.success(None)

        rental = (
            Rental.objects.for_subscription(invoice.subscription_id)
            .select_for_update()
            .first()
        )
        if rental is None:
            logger.warning("No rental for subscription; ignoring invoice", extra=log_context)
            return ServiceResult.success(None)

        log_context["rental_id"] = str(rental.id)

        # Checked under the rental lock so concurrent deliveries serialize
        if Payment.objects.for_invoice(invoice.invoice_id).exists():
            logger.info("Invoice already reconciled", extra=log_context)
            return ServiceResult.success(None)

        try:
            cycle_start = rental.renew()
        except TransitionNotAllowed:
            logger.warning(
                "Paid renewal for a rental that cannot renew; recorded as anomaly",
                extra={
                    **log_context,
                    "status": rental.status,
                    "subscription_status": rental.subscription_status,
                },
            )
            return ServiceResult.success(None)

        try:
            with transaction.atomic():
                rental.save()
                payment = Payment.objects.create(
                    rental=rental,
                    stripe_payment_intent_id=invoice.payment_intent_id,
                    stripe_invoice_id=invoice.invoice_id,
                    status=PaymentStatus.SUCCEEDED,
                    payment_date=timezone.now(),
                    payment_type=PaymentType.SUBSCRIPTION,
                    subscription_id=invoice.subscription_id,
                    billing_cycle_start=cycle_start,
                    billing_cycle_end=rental.end_date,
                    is_subscription_active=True,
                    next_billing_date=rental.next_payment_date,
                    months_paid=RENEWAL_MONTHS,
                    unit_price=rental.price,
                    total_amount=(
                        invoice.amount_paid
                        if invoice.amount_paid is not None
                        else rental.monthly_total
                    ),
                )
        except IntegrityError:
            logger.warning(
                "Billing cycle already recorded for subscription; ignoring invoice",
                extra=log_context,
            )
            return ServiceResult.success(None)

        logger.info(
            "Subscription renewed",
            extra={
                **log_context,
                "payment_id": str(payment.id),
                "end_date": rental.end_date.isoformat(),
                "months_paid": rental.months_paid,
            },
        )
        return ServiceResult.success(payment)

    # =========================================================================
    # Subscription Deleted
    # =========================================================================

    @classmethod
    def cancel_subscription(cls, subscription: SubscriptionPayload) -> ServiceResult[Rental | None]:
        """
        Record that Stripe ended a subscription.

        The rental keeps status ACTIVE and its end_date: the renter paid for
        the current period and must vacate by then.
        """
        logger = cls.get_logger()
        log_context = {"subscription_id": subscription.subscription_id}

        rental = (
            Rental.objects.for_subscription(subscription.subscription_id)
            .select_for_update()
            .first()
        )
        if rental is None:
            logger.warning("No rental for cancelled subscription; ignoring", extra=log_context)
            return ServiceResult.success(None)

        log_context["rental_id"] = str(rental.id)

        if rental.subscription_status == SubscriptionStatus.CANCELLED:
            logger.info("Subscription already cancelled", extra=log_context)
            return ServiceResult.success(rental)

        try:
            rental.cancel_subscription()
        except TransitionNotAllowed:
            logger.warning(
                "Subscription cancellation not applicable; recorded as anomaly",
                extra={**log_context, "subscription_status": rental.subscription_status},
            )
            return ServiceResult.success(rental)
        rental.save()

        logger.info(
            "Subscription cancelled; access continues until end date",
            extra={**log_context, "end_date": rental.end_date.isoformat()},
        )

        NotificationDispatcher.send_cancellation_notice(rental)
        return ServiceResult.success(rental)

    # =========================================================================
    # Renewal Invoice Failed
    # =========================================================================

    @classmethod
    def mark_past_due(cls, invoice: InvoicePayload) -> ServiceResult[Rental | None]:
        """
        Mark a subscription past due after a failed charge.

        No payment row is written; Stripe keeps retrying and a later paid
        invoice renews the rental back to active.
        """
        logger = cls.get_logger()
        log_context = {
            "invoice_id": invoice.invoice_id,
            "subscription_id": invoice.subscription_id,
        }

        if not invoice.subscription_id:
            logger.info("Failed invoice is not for a subscription; ignoring", extra=log_context)
            return ServiceResult.success(None)

        rental = (
            Rental.objects.for_subscription(invoice.subscription_id)
            .select_for_update()
            .first()
        )
        if rental is None:
            logger.warning("No rental for failed invoice; ignoring", extra=log_context)
            return ServiceResult.success(None)

        log_context["rental_id"] = str(rental.id)

        if rental.subscription_status == SubscriptionStatus.PAST_DUE:
            logger.info("Subscription already past due", extra=log_context)
            return ServiceResult.success(rental)

        try:
            rental.mark_past_due()
        except TransitionNotAllowed:
            logger.warning(
                "Payment failure for a subscription that cannot go past due; recorded as anomaly",
                extra={
                    **log_context,
                    "status": rental.status,
                    "subscription_status": rental.subscription_status,
                },
            )
            return ServiceResult.success(rental)
        rental.save()

        logger.warning("Subscription marked past due", extra=log_context)
        return ServiceResult.success(rental)
