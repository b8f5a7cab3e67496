"""Client companies and client-account provisioning."""
