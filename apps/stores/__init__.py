"""Stores: merchants, their addresses and delivery terms."""
