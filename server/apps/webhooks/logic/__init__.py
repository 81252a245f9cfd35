"""Business logic for webhook subscriptions and fan-out."""
