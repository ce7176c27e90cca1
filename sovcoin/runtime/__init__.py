"""
Runtime host for sovcoin settlement.
"""

from sovcoin.runtime.host import SettlementHost, StateStore

__all__ = ["SettlementHost", "StateStore"]
