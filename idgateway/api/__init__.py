"""HTTP surface of the gateway (Flask blueprints)."""
