"""Demand forecasting package.

Modules
-------
engine   - ForecastEngine: moving average, seasonal / external / trend
           adjustments, confidence, safety stock, reorder point, risk.
calendar - Public-holiday inference and regional demand patterns.
"""
