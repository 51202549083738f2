"""pinmatch - pinball table identity resolution across metadata sources."""

__version__ = "0.1.0"
