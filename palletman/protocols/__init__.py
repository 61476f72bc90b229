"""
Palletman Protocols.

Defines interfaces for external system integration.
"""

from palletman.protocols.commission import CommissionRateTable

__all__ = [
    "CommissionRateTable",
]
