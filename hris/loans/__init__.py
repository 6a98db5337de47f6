"""Loans module — employee loan applications and HR review."""
