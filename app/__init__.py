"""Patient record service with billing provisioning and event publishing."""

__version__ = "0.1.0"
