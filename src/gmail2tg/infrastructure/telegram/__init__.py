"""Telegram delivery provider."""
