"""
Distribución de un pago masivo entre varias facturas.

`allocate` recorre las facturas en el orden recibido y aplica a cada una
min(restante, saldo) hasta agotar el monto. No reordena: quien lo llama
decide el orden, normalmente con `oldest_first` (fecha de vuelo más antigua
primero). El excedente que no cubre ningún saldo queda en `unapplied`.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from app.common.money import to_money, money_sum, ZERO
from app.modules.invoices.ledger import derive_status
from app.modules.invoices.models import InvoiceStatus


@dataclass(frozen=True)
class AllocationTarget:
    invoice_id: UUID
    balance: Decimal
    flight_date: date
    invoice_number: str = ""


@dataclass(frozen=True)
class Allocation:
    invoice_id: UUID
    applied: Decimal
    balance_before: Decimal
    balance_after: Decimal
    status: InvoiceStatus


@dataclass
class AllocationPlan:
    total_amount: Decimal
    allocations: List[Allocation] = field(default_factory=list)
    unapplied: Decimal = ZERO

    @property
    def applied_amount(self) -> Decimal:
        return money_sum(a.applied for a in self.allocations)


def oldest_first(targets: Iterable[AllocationTarget]) -> List[AllocationTarget]:
    """Descarta saldos no positivos y ordena por fecha de vuelo, luego número"""
    payable = [t for t in targets if t.balance > ZERO]
    return sorted(payable, key=lambda t: (t.flight_date, t.invoice_number))


def allocate(targets: Iterable[AllocationTarget], total_amount: Decimal, today: Optional[date] = None) -> AllocationPlan:
    remaining = to_money(total_amount)
    plan = AllocationPlan(total_amount=remaining)

    for target in targets:
        if remaining <= ZERO:
            break
        balance = to_money(target.balance)
        if balance <= ZERO:
            continue

        applied = min(remaining, balance)
        balance_after = to_money(balance - applied)
        plan.allocations.append(Allocation(
            invoice_id=target.invoice_id,
            applied=applied,
            balance_before=balance,
            balance_after=balance_after,
            status=derive_status(balance_after, target.flight_date, today),
        ))
        remaining = to_money(remaining - applied)

    plan.unapplied = remaining
    return plan
