"""Core types and exceptions shared across Plugport."""
