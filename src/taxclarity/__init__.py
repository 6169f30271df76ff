"""
TaxClarity - tax-awareness onboarding state for Nigerian taxpayers.
"""

__version__ = "0.1.0"
