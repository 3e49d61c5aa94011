"""Settings, error taxonomy, deadlines and startup helpers."""
