"""HTTP API for the Family Album application."""
