"""
Beacon Tracker package.

Tracks indoor positioning beacons and mobile tags, draws them over a
floorplan and records tag samples to CSV.
"""

__all__ = [
    "config",
    "models",
    "errors",
    "floorplan",
    "source",
    "simulator",
    "udp_source",
    "registry",
    "synchronizer",
    "commands",
    "viewer",
]
