"""gearmatch: rule-driven marine gearbox, coupling and standby pump selection."""

__version__ = "0.1.0"
