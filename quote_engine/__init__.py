"""
QUOTE ENGINE
Commercial quoting and promise-lifecycle engine
"""

from .models import PaymentBreakdown, PaymentInput, PricingRequest, PricingResult
from .processor import QuoteProcessor

__all__ = ['QuoteProcessor', 'PricingRequest', 'PricingResult', 'PaymentInput', 'PaymentBreakdown']
