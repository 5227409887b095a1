"""
lacat - time-release vault client

Mirrors a user's deposits in the lacat contract, evaluates when locked funds
become withdrawable, and drives deposit/withdraw transactions through a
submit -> confirm -> notify pipeline.
"""

__version__ = "0.1.0"
