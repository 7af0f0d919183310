"""Applications of the delivery catalog service."""
