"""
Configuration for the URC Announcing Dashboard.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Placeholder endpoint for divisions whose Apps Script web app isn't deployed yet
UNCONFIGURED_ENDPOINT = "YOUR_GOOGLE_APPS_SCRIPT_WEB_APP_URL_HERE"

# Anchor the page scrolls to when a driver is found
RESULT_ANCHOR = "driver-details"

# Division -> Google Apps Script web app URL. Fixed at build time.
DEFAULT_DIVISIONS: tuple = (
    ("Select a division", ""),
    (
        "URC Sprints",
        "https://script.google.com/macros/s/AKfycbwXMRH2IWQNAEGrFf8s_q6ahe08y-a32DEpSZAqbFuIgeL4u7TR_drVRHi95GKGc4ug7Q/exec",
    ),
    ("Late Models", UNCONFIGURED_ENDPOINT),
    ("410 Sprints", UNCONFIGURED_ENDPOINT),
)


@dataclass
class Config:
    """Configuration with environment variable support."""

    # Divisions (name, endpoint) - not overridable from the environment
    divisions: tuple = DEFAULT_DIVISIONS

    # Division fetch
    fetch_timeout_sec: float = field(
        default_factory=lambda: float(os.getenv("FETCH_TIMEOUT_SEC", "15"))
    )

    # Dashboard server
    host: str = field(
        default_factory=lambda: os.getenv("DASHBOARD_HOST", "localhost")
    )
    port: int = field(
        default_factory=lambda: int(os.getenv("DASHBOARD_PORT", "8080"))
    )
    result_anchor: str = RESULT_ANCHOR

    def __post_init__(self):
        """Reject settings that would leave a fetch hanging."""
        if self.fetch_timeout_sec <= 0:
            raise ValueError(
                f"fetch_timeout_sec must be positive, got {self.fetch_timeout_sec}"
            )
