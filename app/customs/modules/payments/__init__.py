"""Payments recorded against dispatches."""
