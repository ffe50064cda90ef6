"""Switchboard - agent processing pipeline for customer-support inboxes."""

__version__ = "1.0.0"
