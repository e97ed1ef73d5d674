"""Inbox Declutter - cluster inbox senders and suggest Gmail filters."""

__version__ = "0.1.0"
