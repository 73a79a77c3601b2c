"""Handlers for inbound HTTP deliveries."""
