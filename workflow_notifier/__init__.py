"""CI/CD workflow notifications relayed into Telegram chats."""

__version__ = "0.1.0"
