"""Tea bid workflow core: lifecycle state machine and payment matching."""

__version__ = "0.1.0"
