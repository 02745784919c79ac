"""
Forecast taxonomy.

``RiskLevel`` classifies stock-out risk for a product over the forecast
horizon, combining inventory cover with forecast confidence.

This module has NO imports from any other ``retail_forecaster`` package.
"""

from enum import StrEnum


class RiskLevel(StrEnum):
    """Stock-out risk over the forecast horizon."""

    LOW = "LOW"
    """More than 1.5x predicted demand on hand, with high confidence."""

    MEDIUM = "MEDIUM"
    """More than 0.8x predicted demand on hand, with moderate confidence."""

    HIGH = "HIGH"
    """Thin cover, low confidence, or zero predicted demand."""
