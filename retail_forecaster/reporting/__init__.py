"""
retail_forecaster.reporting - Terminal formatting and report export.

Modules:
  formatters - ASCII terminal table formatters for Typer CLI commands.
  export     - JSON/CSV batch report writers.
"""
