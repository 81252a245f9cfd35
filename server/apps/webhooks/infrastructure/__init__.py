"""Webhook wire format and HTTP delivery."""
