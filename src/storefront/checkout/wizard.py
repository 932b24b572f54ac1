"""Checkout wizard: the guided steps between the cart and a placed order.

The step sequence depends on the cart's delivery mode:

    delivery: choose_mode → choose_address → choose_payment → confirm
    pickup:   choose_mode → choose_payment → confirm

The wizard only holds answers (address, payment, change, notes). Prices are
always read from the ``CartStore`` and the order itself is placed by the
``PlaceOrder`` command, which prices the cart again from storage. User
mistakes come back as ``StepOutcome`` / ``ConfirmOutcome`` values, never as
exceptions.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.cart.pricing import DeliveryMode
from storefront.customer.address import addresses_for
from storefront.marketplace.restaurant import Restaurant
from storefront.order.order import PaymentMethod, short_reference
from storefront.order.placement import PlaceOrder
from storefront.settings.store_settings import load_store_address
from storefront.shared.money import format_price

logger = structlog.get_logger(__name__)


class CheckoutStep(Enum):
    CHOOSE_MODE = "choose_mode"
    CHOOSE_ADDRESS = "choose_address"
    CHOOSE_PAYMENT = "choose_payment"
    CONFIRM = "confirm"


class CheckoutRoute(Enum):
    CART = "cart"
    ADDRESS_MANAGEMENT = "address_management"
    ORDER_CONFIRMATION = "order_confirmation"


class PrimaryAction(Enum):
    NEXT = "next"
    CONFIRM_ORDER = "confirm_order"


class CheckoutRejection(Enum):
    EMPTY_CART = "empty_cart"
    BELOW_RESTAURANT_MINIMUM = "below_restaurant_minimum"
    RESTAURANT_UNAVAILABLE = "restaurant_unavailable"
    NO_ADDRESSES = "no_addresses"
    ADDRESS_REQUIRED = "address_required"
    ADDRESS_LOOKUP_FAILED = "address_lookup_failed"
    PAYMENT_REQUIRED = "payment_required"
    CHANGE_TOO_LOW = "change_too_low"
    ORDER_REJECTED = "order_rejected"
    ORDER_FAILED = "order_failed"


DELIVERY_STEPS = (
    CheckoutStep.CHOOSE_MODE,
    CheckoutStep.CHOOSE_ADDRESS,
    CheckoutStep.CHOOSE_PAYMENT,
    CheckoutStep.CONFIRM,
)
PICKUP_STEPS = (CheckoutStep.CHOOSE_MODE, CheckoutStep.CHOOSE_PAYMENT, CheckoutStep.CONFIRM)


@dataclass(frozen=True)
class StepOutcome:
    success: bool
    step: CheckoutStep
    message: str = ""
    reason: CheckoutRejection | None = None
    route: CheckoutRoute | None = None


@dataclass(frozen=True)
class ConfirmOutcome:
    success: bool
    message: str
    order_id: str | None = None
    reference: str | None = None
    reason: CheckoutRejection | None = None
    route: CheckoutRoute | None = None

    @classmethod
    def placed(cls, order_id):
        reference = short_reference(order_id)
        return cls(
            success=True,
            message=f"Order #{reference} placed!",
            order_id=order_id,
            reference=reference,
            route=CheckoutRoute.ORDER_CONFIRMATION,
        )

    @classmethod
    def reject(cls, reason, message):
        return cls(success=False, message=message, reason=reason)


def dispatch_place_order(command):
    return current_domain.process(command, asynchronous=False)


def restaurant_minimum(restaurant_id):
    if not restaurant_id:
        return 0
    return current_domain.repository_for(Restaurant).get(restaurant_id).min_order_value or 0


def _first_message(exc):
    for messages in (exc.messages or {}).values():
        if messages:
            return messages[0] if isinstance(messages, (list, tuple)) else str(messages)
    return "Could not place your order"


class CheckoutWizard:
    def __init__(
        self,
        store,
        address_source=addresses_for,
        place_order=dispatch_place_order,
        minimum_source=restaurant_minimum,
    ):
        self.store = store
        self._address_source = address_source
        self._place_order = place_order
        self._minimum_source = minimum_source

        self.current_step_index = 0
        self.addresses = []
        self.address_lookup_failed = False
        self.selected_address_id = None
        self.payment_method = None
        self.change_for = None
        self.notes = ""

        if self.delivery_mode == DeliveryMode.DELIVERY.value:
            self.refresh_addresses()

    # -------------------------------------------------------------------
    # Step sequence
    # -------------------------------------------------------------------
    @property
    def delivery_mode(self):
        return self.store.cart.delivery_mode

    @property
    def steps(self):
        if self.delivery_mode == DeliveryMode.PICKUP.value:
            return PICKUP_STEPS
        return DELIVERY_STEPS

    @property
    def current_step(self):
        return self.steps[self.current_step_index]

    @property
    def is_last_step(self):
        return self.current_step_index == len(self.steps) - 1

    @property
    def primary_action(self):
        return PrimaryAction.CONFIRM_ORDER if self.is_last_step else PrimaryAction.NEXT

    @property
    def selected_address(self):
        return next((a for a in self.addresses if str(a.id) == str(self.selected_address_id)), None)

    @property
    def pickup_address(self):
        """Where pickup orders are collected."""
        return load_store_address(self.store.cart.tenant_id).formatted

    def _reject(self, reason, message, route=None):
        logger.info("checkout_step_rejected", step=self.current_step.value, reason=reason.value)
        return StepOutcome(success=False, step=self.current_step, message=message, reason=reason, route=route)

    def next(self):
        """Validate the current step and move forward."""
        step = self.current_step

        if step == CheckoutStep.CONFIRM:
            raise ValidationError({"step": ["The confirm step has no next step"]})

        if step == CheckoutStep.CHOOSE_MODE:
            rejection = self._cart_rejection()
            if rejection:
                return self._reject(*rejection)

        if step == CheckoutStep.CHOOSE_ADDRESS:
            if self.address_lookup_failed and not self.refresh_addresses():
                return self._reject(
                    CheckoutRejection.ADDRESS_LOOKUP_FAILED,
                    "Could not load your addresses, please try again",
                )
            if not self.addresses:
                return self._reject(
                    CheckoutRejection.NO_ADDRESSES,
                    "Add a delivery address to continue",
                    route=CheckoutRoute.ADDRESS_MANAGEMENT,
                )
            if self.selected_address is None:
                return self._reject(CheckoutRejection.ADDRESS_REQUIRED, "Choose a delivery address")

        if step == CheckoutStep.CHOOSE_PAYMENT and self.payment_method is None:
            return self._reject(CheckoutRejection.PAYMENT_REQUIRED, "Choose a payment method")

        self.current_step_index += 1
        return StepOutcome(success=True, step=self.current_step)

    def back(self):
        """Step back; from the first step, leave checkout for the cart."""
        if self.current_step_index == 0:
            return StepOutcome(success=True, step=self.current_step, route=CheckoutRoute.CART)
        self.current_step_index -= 1
        return StepOutcome(success=True, step=self.current_step)

    def _cart_rejection(self):
        cart = self.store.cart
        if cart.is_empty:
            return CheckoutRejection.EMPTY_CART, "Your cart is empty"
        if cart.is_marketplace:
            try:
                minimum = self._minimum_source(cart.restaurant_id)
            except ObjectNotFoundError:
                logger.warning("checkout_restaurant_missing", restaurant_id=cart.restaurant_id)
                return CheckoutRejection.RESTAURANT_UNAVAILABLE, "This restaurant is no longer available"
            if self.store.totals.subtotal < minimum:
                return (
                    CheckoutRejection.BELOW_RESTAURANT_MINIMUM,
                    f"Minimum order for {cart.restaurant_name} is {format_price(minimum)}",
                )
        return None

    # -------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------
    def set_delivery_mode(self, mode):
        """Switch delivery/pickup. Later answers survive unless their step disappears."""
        step = self.current_step
        self.store.set_delivery_mode(mode)
        if step in self.steps:
            self.current_step_index = self.steps.index(step)
        else:
            self.current_step_index = min(self.current_step_index, len(self.steps) - 1)

        if self.delivery_mode == DeliveryMode.DELIVERY.value and not self.refresh_addresses():
            return self._reject(
                CheckoutRejection.ADDRESS_LOOKUP_FAILED,
                "Could not load your addresses, please try again",
            )
        return StepOutcome(success=True, step=self.current_step)

    def refresh_addresses(self):
        """Reload the customer's addresses and keep or preselect a choice."""
        try:
            addresses = list(self._address_source(self.store.cart.customer_id))
        except Exception:
            logger.warning("address_lookup_failed", customer_id=self.store.cart.customer_id, exc_info=True)
            self.address_lookup_failed = True
            return False

        self.address_lookup_failed = False
        self.addresses = addresses
        if self.selected_address is None:
            default = next((a for a in addresses if a.is_default), None) or (addresses[0] if addresses else None)
            self.selected_address_id = str(default.id) if default else None
        return True

    def select_address(self, address_id):
        if not any(str(a.id) == str(address_id) for a in self.addresses):
            raise ValidationError({"address_id": ["Address is not one of the customer's addresses"]})
        self.selected_address_id = str(address_id)

    def set_payment_method(self, method):
        try:
            self.payment_method = PaymentMethod(method)
        except ValueError:
            raise ValidationError({"payment_method": [f"Unknown payment method {method}"]})
        if self.payment_method != PaymentMethod.CASH:
            self.change_for = None

    def set_change_for(self, amount):
        """Cash note the customer will pay with, in cents. ``None`` means exact change."""
        self.change_for = amount

    def set_notes(self, notes):
        self.notes = notes or ""

    # -------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------
    def confirm(self):
        """Place the order from the last step."""
        if not self.is_last_step:
            raise ValidationError({"step": ["Orders can only be confirmed from the last step"]})

        rejection = self._cart_rejection()
        if rejection:
            return ConfirmOutcome.reject(*rejection)

        total = self.store.totals.total
        if self.payment_method is None:
            return ConfirmOutcome.reject(CheckoutRejection.PAYMENT_REQUIRED, "Choose a payment method")
        if self.payment_method == PaymentMethod.CASH and self.change_for is not None and self.change_for < total:
            return ConfirmOutcome.reject(
                CheckoutRejection.CHANGE_TOO_LOW,
                f"Change must be for at least {format_price(total)}",
            )
        if self.delivery_mode == DeliveryMode.DELIVERY.value and self.selected_address is None:
            return ConfirmOutcome.reject(CheckoutRejection.ADDRESS_REQUIRED, "Choose a delivery address")

        cart = self.store.cart
        command = PlaceOrder(
            cart_id=str(cart.id),
            user_id=cart.customer_id,
            payment_method=self.payment_method.value,
            address_id=self.selected_address_id if self.delivery_mode == DeliveryMode.DELIVERY.value else None,
            change_for=self.change_for if self.payment_method == PaymentMethod.CASH else None,
            notes=self.notes or None,
        )

        try:
            order_id = self._place_order(command)
        except ValidationError as exc:
            logger.info("order_rejected", cart_id=str(cart.id), errors=exc.messages)
            return ConfirmOutcome.reject(CheckoutRejection.ORDER_REJECTED, _first_message(exc))
        except Exception:
            logger.error("order_failed", cart_id=str(cart.id), exc_info=True)
            return ConfirmOutcome.reject(CheckoutRejection.ORDER_FAILED, "Could not place your order, please try again")

        self.store.reload()
        return ConfirmOutcome.placed(str(order_id))
