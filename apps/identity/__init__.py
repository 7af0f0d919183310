"""Identity: JWT claim forwarding, roles and permission checks."""
