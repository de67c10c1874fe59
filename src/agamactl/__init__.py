"""agamactl — client and CLI for the installer D-Bus service."""

__version__ = "0.1.0"
