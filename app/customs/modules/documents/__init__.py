"""Documents attached to dispatches."""
