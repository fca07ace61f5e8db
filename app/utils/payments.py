import logging
import stripe
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from app.core.config import settings

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY

def to_minor_units(amount: float) -> int:
    # Stripe Expects the Amount in Cents
    return int(round(amount * 100))

def from_minor_units(amount: Optional[int]) -> float:
    return (amount or 0) / 100.0

class StripeGateway:
    # Service for Handling the Stripe Payment Intent Lifecycle
    def __init__(self):
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        receipt_email: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.create(
                amount = amount,
                currency = currency.lower(),
                metadata = metadata,
                receipt_email = receipt_email,
                automatic_payment_methods = {"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error("Stripe payment intent creation failed: %s", e)
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Stripe Error: {e.user_message or str(e)}"
            )
        return {
            "id": intent.id,
            "client_secret": intent.client_secret,
            "status": intent.status,
            "amount": intent.amount,
            "currency": intent.currency,
        }

    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            logger.error("Stripe payment intent %s lookup failed: %s", payment_intent_id, e)
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Stripe Error: {e.user_message or str(e)}"
            )
        return {
            "id": intent.id,
            "status": intent.status,
            "amount": intent.amount,
            "amount_received": intent.amount_received,
            "currency": intent.currency,
            "metadata": dict(intent.metadata or {}),
        }

    def cancel_payment_intent(self, payment_intent_id: str) -> None:
        # Release an Unpaid Intent, Failure Here Does Not Block the Booking Cancellation
        try:
            stripe.PaymentIntent.cancel(payment_intent_id)
        except stripe.StripeError as e:
            logger.warning("Stripe payment intent %s cancel failed: %s", payment_intent_id, e)

    def refund(self, payment_intent_id: str, amount: Optional[int] = None) -> Dict[str, Any]:
        try:
            params = {"payment_intent": payment_intent_id}
            if amount is not None:
                params["amount"] = amount
            refund = stripe.Refund.create(**params)
        except stripe.StripeError as e:
            logger.error("Stripe refund for %s failed: %s", payment_intent_id, e)
            raise HTTPException(
                status_code = status.HTTP_502_BAD_GATEWAY,
                detail = f"Stripe Refund Error: {e.user_message or str(e)}"
            )
        return {"id": refund.id, "status": refund.status, "amount": refund.amount}

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Stripe Webhook Error: {str(e)}"
            )
