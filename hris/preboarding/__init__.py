"""Preboarding module — new-hire checklists and conversion to Employee."""
