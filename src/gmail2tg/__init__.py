"""gmail2tg - forward new Gmail messages to a Telegram chat."""

__version__ = "0.1.0"
