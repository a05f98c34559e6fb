"""
Global configuration for the beacon tracker.
"""

from __future__ import annotations

# Positioning source. The channel is handed to PositioningSource.open().
SOURCE = {
    "channel": 5,
    "poll_interval_s": 0.001,  # Pause between refreshes to avoid busy-spinning
}

# CSV recording of mobile tag samples.
RECORDING = {
    "path": "log.csv",
    "header": "address,x,y,z,q,t",
}

# Section names and key prefixes of the deployment INI file (case-sensitive).
FLOORPLAN_FORMAT = {
    "floorplan_section": "floorplan",
    "devices_section": "devices",
    "beacon_section": "beacon {index}",
    "floor_image_prefix": "Floor",
    "beacon_prefix": "beacon",
    "fixed_beacon_mode": "0",  # Hedgehog_mode value of a stationary beacon
}

# Simulated positioning source.
SIMULATION = {
    "seed": 7,
    "beacons": [
        {"address": 1, "position_mm": (0, 0, 2000)},
        {"address": 2, "position_mm": (12000, 0, 2000)},
        {"address": 3, "position_mm": (12000, 8000, 2000)},
        {"address": 4, "position_mm": (0, 8000, 2000)},
    ],
    "hedgehogs": [
        {"address": 10, "radius_m": 3.0, "speed_m_s": 0.8, "height_mm": 1000},
        {"address": 11, "radius_m": 2.0, "speed_m_s": 0.5, "height_mm": 1200},
    ],
    "center_m": (6.0, 4.0),
    "update_rate_hz": 16,  # Fix rate of the simulated hedgehogs
    "position_noise_std_m": 0.02,
    "dropout_probability": 0.05,  # Chance of a quality-0 sample
}

# Networking options for the UDP position feed.
NETWORK = {
    "host": "0.0.0.0",
    "port": 8080,
    "discovery_s": 2.0,  # How long list_devices() listens for tags
}

VIEWER = {
    "refresh_ms": 50,
    "canvas_width": 900,
    "canvas_height": 650,
    "default_scale_pixels_per_m": 50.0,
}
