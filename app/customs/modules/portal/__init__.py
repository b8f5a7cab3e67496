"""Client portal: read-only view of a client's own dispatches."""
