"""
settlement.py - month balances and settle-up suggestions

compute_balances: the driver of each entry fronted total_amount; every rider
(the driver included) owes their charge. Positive balance => member should
receive money, negative => member owes money.

suggest_transfers: greedy debt simplification. Creditors and debtors are
sorted by amount (largest first) and matched pairwise until one side runs out.
Python's sort is stable, so equal amounts keep the order of the balance map,
which starts with members in their stored order.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ridesplit.models import DayEntry, Member, Transfer
from ridesplit.money import CENT, ZERO, round2


def compute_balances(members: Iterable[Member], entries: Iterable[DayEntry]) -> Dict[str, Decimal]:
    balances: Dict[str, Decimal] = {m.member_id: ZERO for m in members if m.active}

    for e in entries:
        total = e.total_amount or ZERO
        if not total:
            continue
        balances[e.driver_id] = balances.get(e.driver_id, ZERO) + total
        for r in e.riders:
            balances[r.member_id] = balances.get(r.member_id, ZERO) - r.charge

    return {member_id: round2(v) for member_id, v in balances.items()}


def suggest_transfers(balances: Dict[str, Decimal]) -> List[Transfer]:
    creditors = []
    debtors = []  # amounts stored positive
    for member_id, bal in balances.items():
        v = round2(bal)
        if v > CENT:
            creditors.append([member_id, v])
        elif v < -CENT:
            debtors.append([member_id, -v])

    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers: List[Transfer] = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        d_id, d_amt = debtors[i]
        c_id, c_amt = creditors[j]
        x = min(d_amt, c_amt)
        transfers.append(Transfer(from_member=d_id, to_member=c_id, amount=round2(x)))

        debtors[i][1] = round2(d_amt - x)
        creditors[j][1] = round2(c_amt - x)
        if debtors[i][1] <= CENT:
            i += 1
        if creditors[j][1] <= CENT:
            j += 1
    return transfers


def describe_transfers(transfers: Iterable[Transfer], names: Optional[Dict[str, str]] = None) -> List[str]:
    """Produce sentences like "Bob pays Alice 7.50" for display."""
    names = names or {}
    return [
        f"{names.get(t.from_member, t.from_member)} pays {names.get(t.to_member, t.to_member)} {t.amount:.2f}"
        for t in transfers
    ]
