"""
Calculators Package

Provides all pure calculation components for quoting and closing.
"""

from .margin import MarginAnalyzer
from .payment import PaymentResolver
from .pricing import PricingCalculator

__all__ = [
    "PricingCalculator",
    "PaymentResolver",
    "MarginAnalyzer",
]
