"""HydroChill gateway: device telemetry into Firebase, dashboard commands onto MQTT."""

__version__ = "1.0.0"
