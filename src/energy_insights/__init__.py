"""Appliance energy analysis: periods, usage rows, costs, forecasts and advice."""

__version__ = "0.1.0"
