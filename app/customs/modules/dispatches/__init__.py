"""Dispatches (customs clearance shipments) and their status timeline."""
