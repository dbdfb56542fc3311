"""Battery and connection monitor for Bluetooth and USB peripherals."""

__version__ = "0.1.0"
