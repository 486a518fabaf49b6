"""
Fleetcast
Backend Application Package

Forecasting and simulation scheduler for a fleet of vehicles running on
fixed routes. Contains the forecasting algorithms, the prediction lifecycle,
the vehicle simulation loop and the real-time observer gateway.
"""

__version__ = "1.0.0"
