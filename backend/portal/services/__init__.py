"""Business logic and Azure SDK access."""
