"""Collateral and fee arithmetic shared by the validator and the fillable calculator.

All values are integers in base units; results match the settlement contract's integer math.
"""

from ..models.market import ContractSpecs


def max_loss_per_unit(specs: ContractSpecs, qty_sign: int, price: int) -> int:
    """Worst-case loss of one contract entered at ``price`` in direction ``qty_sign``.

    A long position loses at most down to the price floor, a short at most up to the cap.
    """
    if qty_sign > 0:
        return max(0, price - specs.price_floor)
    if qty_sign < 0:
        return max(0, specs.price_cap - price)
    return 0


def collateral_per_unit(specs: ContractSpecs, qty_sign: int, price: int) -> int:
    """Collateral locked by one contract, in collateral token base units."""
    return max_loss_per_unit(specs, qty_sign, price) * specs.qty_multiplier


def calculate_needed_collateral(specs: ContractSpecs, qty: int, price: int) -> int:
    """Collateral required to open ``qty`` contracts (signed) at ``price``."""
    if qty == 0:
        return 0
    return collateral_per_unit(specs, 1 if qty > 0 else -1, price) * abs(qty)


def collateral_fillable_qty(balance: int, per_unit: int, cap: int) -> int:
    """Largest quantity (≤ ``cap``) whose collateral requirement fits in ``balance``."""
    if per_unit <= 0:
        return cap
    return min(cap, max(0, balance) // per_unit)


def fee_for_fill(fee: int, fill_qty: int, order_qty: int) -> int:
    """Fee paid for a partial fill: the order's fee scaled by the filled fraction, floored."""
    return fee * abs(fill_qty) // abs(order_qty)


def fee_fillable_qty(available: int, fee: int, order_qty: int) -> int:
    """Largest quantity whose floored pro-rata fee does not exceed ``available``.

    ``fee * q // |order_qty| <= available`` holds exactly for
    ``q <= ((available + 1) * |order_qty| - 1) // fee``.
    """
    if fee <= 0:
        return abs(order_qty)
    if available < 0:
        return 0
    return ((available + 1) * abs(order_qty) - 1) // fee
