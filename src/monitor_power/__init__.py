"""monitor_power – republish battery power counters through several metrics backends."""

__version__ = "0.1.0"
