"""PDF translation forwarding service."""
