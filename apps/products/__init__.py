"""Products: store menu items with prices, discounts and images."""
