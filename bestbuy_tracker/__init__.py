"""
Best Buy Canada inventory tracker package.

This package contains modules for querying the availability API,
evaluating stock for pickup and shipping, serving the interactive
dashboard and running the unattended e-mail check.
"""

__all__ = [
    "availability",
    "checker",
    "config",
    "dashboard",
    "emailer",
    "inventory",
    "main",
    "models",
    "poller",
    "report",
    "utils",
]
