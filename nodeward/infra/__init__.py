"""Infrastructure: HTTP transport and retry helpers."""
