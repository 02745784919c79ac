"""Dynamic pricing package.

Modules
-------
engine     - PricingEngine: cost floor, competitor / demand / seasonal rules,
             locale endings, change cap, denominations, impact, confidence.
reasoning  - ReasoningBuilder: append-only (rule, message, delta) audit trail.
rounding   - Locale price endings and currency denomination rounding.
strategies - Calendar-driven seasonal factors by product category.
"""
