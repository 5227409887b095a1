"""
Fee Calculator - advisory deposit fee math.

The contract charges the authoritative fee; these numbers are only shown
before a deposit is submitted.

Formula:
  fee = amount * (base_bp + (monthly_bp > 0 ? monthly_fee_bp : 0)) / 10000
  monthly_withdrawal = amount * monthly_bp / 10000
"""

from .settings import LacatSettings, MAX_BASIS_POINTS


class FeeCalculator:
    """Pure fee/allowance arithmetic in ETH units."""

    def __init__(self, base_fee_basis_points: int = 35, monthly_withdraw_fee_basis_points: int = 15):
        self.base_fee_basis_points = base_fee_basis_points
        self.monthly_withdraw_fee_basis_points = monthly_withdraw_fee_basis_points

    @classmethod
    def from_settings(cls, settings: LacatSettings) -> "FeeCalculator":
        return cls(
            base_fee_basis_points=settings.base_fee_basis_points,
            monthly_withdraw_fee_basis_points=settings.monthly_withdraw_fee_basis_points,
        )

    def fee_basis_points(self, monthly_withdraw_basis_points: int) -> int:
        extra = self.monthly_withdraw_fee_basis_points if monthly_withdraw_basis_points > 0 else 0
        return self.base_fee_basis_points + extra

    def fee(self, amount_in_eth: float, monthly_withdraw_basis_points: int) -> float:
        return amount_in_eth * self.fee_basis_points(monthly_withdraw_basis_points) / MAX_BASIS_POINTS

    def monthly_withdrawal(self, amount_in_eth: float, basis_points: int) -> float:
        return amount_in_eth * basis_points / MAX_BASIS_POINTS

    def quote(self, amount_in_eth: float, monthly_withdraw_basis_points: int) -> dict:
        """Fee + allowance preview for a prospective deposit."""
        return {
            "amount_in_eth": amount_in_eth,
            "monthly_withdraw_basis_points": monthly_withdraw_basis_points,
            "fee_basis_points": self.fee_basis_points(monthly_withdraw_basis_points),
            "fee_in_eth": self.fee(amount_in_eth, monthly_withdraw_basis_points),
            "monthly_withdrawal_in_eth": self.monthly_withdrawal(
                amount_in_eth, monthly_withdraw_basis_points
            ),
        }
