"""Voice workout logging backend."""
