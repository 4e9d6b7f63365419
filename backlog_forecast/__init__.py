"""Backlog Forecast - Monte Carlo forecasting of backlog completion.

This package simulates sprint-by-sprint delivery under several velocity
distributions and turns the results into percentile tables, cumulative
distribution and histogram data, and burn-up projections.
"""
