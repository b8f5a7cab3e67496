"""Per-user notification inbox."""
