"""Shared constants for the resolution service."""

SERVICE_NAME = "linkpreview"
