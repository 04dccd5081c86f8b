"""Configuration, security, wiring and the order token codec."""
