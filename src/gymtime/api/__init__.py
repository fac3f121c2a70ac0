"""HTTP routes for gymtime."""
