"""Forecast calculators and the simulation engine behind them."""
