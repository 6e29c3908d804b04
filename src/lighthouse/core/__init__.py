"""Core domain models and exceptions."""
