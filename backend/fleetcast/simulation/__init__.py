"""
Fleet movement simulation
"""

from .simulation_scheduler import SimulationScheduler
from .demo_fleet import build_demo_routes, build_demo_vehicles, seed_demo_fleet

__all__ = [
    'SimulationScheduler',
    'build_demo_routes',
    'build_demo_vehicles',
    'seed_demo_fleet',
]
