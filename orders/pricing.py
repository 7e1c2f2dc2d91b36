# orders/pricing.py
"""
Order arithmetic. Every amount is a whole number of currency units.
"""

from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class StoreSettings:
    platform_fee: int = 20
    shipping_fee: int = 0
    currency: str = 'INR'
    order_number_prefix: str = 'ORD'
    order_number_max_attempts: int = 3

    @classmethod
    def from_settings(cls, **overrides):
        values = {
            'platform_fee':              getattr(settings, 'STORE_PLATFORM_FEE', cls.platform_fee),
            'shipping_fee':              getattr(settings, 'STORE_SHIPPING_FEE', cls.shipping_fee),
            'currency':                  getattr(settings, 'STORE_CURRENCY', cls.currency),
            'order_number_prefix':       getattr(settings, 'ORDER_NUMBER_PREFIX', cls.order_number_prefix),
            'order_number_max_attempts': getattr(settings, 'ORDER_NUMBER_MAX_ATTEMPTS', cls.order_number_max_attempts),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class OrderTotals:
    total_amount: int
    total_discount: int
    coupon_discount: int
    platform_fee: int
    shipping_fee: int
    final_amount: int

    @property
    def merchandise_amount(self):
        return self.total_amount - self.total_discount

    def as_dict(self):
        return {
            'total_amount':    self.total_amount,
            'total_discount':  self.total_discount,
            'coupon_discount': self.coupon_discount,
            'platform_fee':    self.platform_fee,
            'shipping_fee':    self.shipping_fee,
            'final_amount':    self.final_amount,
        }


def _field(line, name, default=0):
    if isinstance(line, dict):
        return line.get(name, default)
    return getattr(line, name, default)


def compute_totals(lines, platform_fee, shipping_fee, coupon_discount=0):
    """
    ``lines`` are line items (dicts or objects) with ``price``, ``discount``
    and ``quantity``. Coupon discount is taken off after product discounts.
    """
    total_amount = 0
    total_discount = 0
    for line in lines:
        quantity = int(_field(line, 'quantity', 1))
        total_amount += int(_field(line, 'price')) * quantity
        total_discount += int(_field(line, 'discount')) * quantity

    coupon_discount = min(int(coupon_discount), total_amount - total_discount)
    final_amount = total_amount - total_discount - coupon_discount + int(platform_fee) + int(shipping_fee)

    return OrderTotals(
        total_amount=total_amount,
        total_discount=total_discount,
        coupon_discount=coupon_discount,
        platform_fee=int(platform_fee),
        shipping_fee=int(shipping_fee),
        final_amount=final_amount,
    )
