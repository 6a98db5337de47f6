"""Notifications module — per-user in-app notifications."""
