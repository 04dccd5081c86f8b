"""Infrastructure adapters: persistence and outbound integrations."""
