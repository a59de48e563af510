"""HTTP API for the admin ticket queue."""
