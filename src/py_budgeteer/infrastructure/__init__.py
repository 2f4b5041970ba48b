"""Infrastructure adapters: settings and structured logging."""
