"""
Pricing

PricingCalculator is a pure function of (resource rate card, nights,
snapshotted selections, rate rules). Every stage is rounded half-up to the
rules' rounding quantum before it feeds the next one, so a preview and the
committed booking always produce the same figures:

    subtotal    = nights * base_price
    pre-tax     = subtotal + add-ons + activities + cleaning fee
    service fee = round(pre-tax * service_fee_rate)
    tax         = round((pre-tax + service fee) * tax_rate)
    total       = pre-tax + service fee + tax
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from apps.bookings.domain.errors import InvalidRequest, MinimumStayNotMet
from apps.catalog.domain import ResourceSnapshot
from shared.domain.value_objects import CENT, Money


@dataclass(frozen=True)
class RateRules:
    """Snapshot of the externally configured rate rules"""
    service_fee_rate: Decimal
    tax_rate: Decimal
    currency: str
    default_minimum_stay: int = 1
    rounding_quantum: Decimal = CENT


@dataclass(frozen=True)
class AddOnSelection:
    """An add-on with the unit price captured when it was selected"""
    item_id: UUID
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ActivitySelection:
    """An activity with the per-participant price captured when it was selected"""
    item_id: UUID
    unit_price: Decimal
    participants: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.participants


@dataclass(frozen=True)
class PriceBreakdown:
    nights: int
    unit_price: Money
    subtotal: Money
    add_ons_total: Money
    activities_total: Money
    cleaning_fee: Money
    service_fee: Money
    tax: Money
    total: Money
    service_fee_rate: Decimal
    tax_rate: Decimal
    security_deposit: Money | None = None

    @property
    def currency(self) -> str:
        return self.total.currency

    def to_dict(self) -> dict:
        amounts = (
            'unit_price', 'subtotal', 'add_ons_total', 'activities_total',
            'cleaning_fee', 'service_fee', 'tax', 'total',
        )
        data = {name: str(getattr(self, name).amount) for name in amounts}
        data.update(
            nights=self.nights,
            currency=self.currency,
            service_fee_rate=str(self.service_fee_rate),
            tax_rate=str(self.tax_rate),
            security_deposit=str(self.security_deposit.amount) if self.security_deposit else None,
        )
        return data


class PricingCalculator:
    """Deterministic price composition for stays and activity bookings"""

    def price_stay(
        self,
        resource: ResourceSnapshot,
        nights: int,
        rates: RateRules,
        add_ons: Sequence[AddOnSelection] = (),
        activities: Sequence[ActivitySelection] = (),
    ) -> PriceBreakdown:
        minimum_stay = self.minimum_stay_for(resource, rates)
        if nights < minimum_stay:
            raise MinimumStayNotMet(
                f"Minimum stay is {minimum_stay} night(s), requested {nights}",
                minimum_stay=minimum_stay,
                nights=nights,
            )

        unit_price = self._money(resource.base_price, rates)
        subtotal = (unit_price * nights).quantize(rates.rounding_quantum)
        return self._compose(
            nights=nights,
            unit_price=unit_price,
            subtotal=subtotal,
            add_ons=add_ons,
            activities=activities,
            cleaning_fee=resource.cleaning_fee,
            security_deposit=resource.security_deposit,
            rates=rates,
        )

    def price_activity(
        self,
        activity: ResourceSnapshot,
        participants: int,
        rates: RateRules,
        add_ons: Sequence[AddOnSelection] = (),
    ) -> PriceBreakdown:
        """No nights and no cleaning fee; the activity itself is an activity line"""
        if participants < 1:
            raise InvalidRequest("Participants must be at least 1")
        line = ActivitySelection(activity.id, activity.base_price, participants)
        return self._compose(
            nights=0,
            unit_price=self._money(activity.base_price, rates),
            subtotal=Money.zero(rates.currency),
            add_ons=add_ons,
            activities=(line,),
            cleaning_fee=None,
            security_deposit=activity.security_deposit,
            rates=rates,
        )

    @staticmethod
    def minimum_stay_for(resource: ResourceSnapshot, rates: RateRules) -> int:
        return resource.minimum_stay or rates.default_minimum_stay

    def _compose(
        self,
        *,
        nights: int,
        unit_price: Money,
        subtotal: Money,
        add_ons: Iterable[AddOnSelection],
        activities: Iterable[ActivitySelection],
        cleaning_fee: Decimal | None,
        security_deposit: Decimal | None,
        rates: RateRules,
    ) -> PriceBreakdown:
        quantum = rates.rounding_quantum
        add_ons_total = self._sum_lines(add_ons, rates)
        activities_total = self._sum_lines(activities, rates)
        cleaning = self._money(cleaning_fee or Decimal('0'), rates).quantize(quantum)

        pre_tax = subtotal + add_ons_total + activities_total + cleaning
        service_fee = (pre_tax * rates.service_fee_rate).quantize(quantum)
        tax = ((pre_tax + service_fee) * rates.tax_rate).quantize(quantum)

        return PriceBreakdown(
            nights=nights,
            unit_price=unit_price,
            subtotal=subtotal,
            add_ons_total=add_ons_total,
            activities_total=activities_total,
            cleaning_fee=cleaning,
            service_fee=service_fee,
            tax=tax,
            total=pre_tax + service_fee + tax,
            service_fee_rate=rates.service_fee_rate,
            tax_rate=rates.tax_rate,
            security_deposit=self._money(security_deposit, rates) if security_deposit else None,
        )

    def _sum_lines(self, lines, rates: RateRules) -> Money:
        total = sum((line.line_total for line in lines), Decimal('0'))
        return self._money(total, rates).quantize(rates.rounding_quantum)

    @staticmethod
    def _money(amount: Decimal, rates: RateRules) -> Money:
        return Money(amount, rates.currency)
