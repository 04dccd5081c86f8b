"""Domain layer: orders, sessions and the payment lifecycle."""
