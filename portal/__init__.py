"""University content portal."""
