"""Identity tokens and request authentication."""
