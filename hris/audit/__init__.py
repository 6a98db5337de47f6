"""Audit module — read access to the audit trail."""
