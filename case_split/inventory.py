"""Remaining capacity per (handling unit, product) for one reconciliation run."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Set, Tuple

from .models import UnitFact


class Inventory:
    """Capacity map built from the Case Details ground truth.

    Balances are always positive: a leaf that reaches zero is removed, and a
    handling unit without products is removed with it. Reserving beyond the
    balance is recorded as an overdraw, so ``release`` can undo exactly what
    was over-committed without inventing capacity.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, Dict[str, int]] = {}
        self._overdrawn: Dict[Tuple[str, str], int] = {}
        self._known: Set[Tuple[str, str]] = set()
        self._pair_order: List[Tuple[str, str]] = []
        self._unit_order: List[str] = []

    @classmethod
    def from_facts(cls, facts: Iterable[UnitFact]) -> "Inventory":
        inventory = cls()
        for fact in facts:
            inventory._add(fact.handling_unit, fact.product_id, fact.quantity)
        return inventory

    def _add(self, hu: str, product: str, quantity: int) -> None:
        if hu not in self._unit_order:
            self._unit_order.append(hu)
        key = (hu, product)
        if key not in self._known:
            self._known.add(key)
            self._pair_order.append(key)
        if quantity > 0:
            products = self._balances.setdefault(hu, {})
            products[product] = products.get(product, 0) + quantity

    def _set(self, hu: str, product: str, quantity: int) -> None:
        if quantity > 0:
            self._balances.setdefault(hu, {})[product] = quantity
            return
        products = self._balances.get(hu)
        if products is None:
            return
        products.pop(product, None)
        if not products:
            del self._balances[hu]

    def is_known(self, hu: str, product: str) -> bool:
        return (hu, product) in self._known

    def available(self, hu: str, product: str) -> int:
        return self._balances.get(hu, {}).get(product, 0)

    def reserve(self, hu: str, product: str, amount: int) -> int:
        """Take up to ``amount``; returns the quantity actually taken from the balance."""
        if amount <= 0 or not self.is_known(hu, product):
            return 0
        balance = self.available(hu, product)
        taken = min(balance, amount)
        self._set(hu, product, balance - taken)
        if amount > taken:
            key = (hu, product)
            self._overdrawn[key] = self._overdrawn.get(key, 0) + amount - taken
        return taken

    def release(self, hu: str, product: str, amount: int) -> None:
        if amount <= 0 or not self.is_known(hu, product):
            return
        key = (hu, product)
        owed = self._overdrawn.pop(key, 0)
        if owed > amount:
            self._overdrawn[key] = owed - amount
            return
        self._set(hu, product, self.available(hu, product) + amount - owed)

    def overdrawn(self, hu: str, product: str) -> int:
        return self._overdrawn.get((hu, product), 0)

    def holders(self, product: str) -> List[str]:
        """Every handling unit ever known to hold ``product``, in document order."""
        return [hu for hu in self._unit_order if (hu, product) in self._known]

    def total(self, product: str) -> int:
        return sum(products.get(product, 0) for products in self._balances.values())

    def pairs(self) -> Iterator[Tuple[str, str, int]]:
        """``(hu, product, remaining)`` for every pair that ever had a balance, zeros included."""
        for hu, product in self._pair_order:
            yield hu, product, self.available(hu, product)

    def units(self) -> List[str]:
        """Handling units that still have a positive balance."""
        return [hu for hu in self._unit_order if hu in self._balances]

    def __bool__(self) -> bool:
        return bool(self._balances)

    def __len__(self) -> int:
        return sum(len(products) for products in self._balances.values())
