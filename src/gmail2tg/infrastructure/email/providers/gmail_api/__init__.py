"""Gmail API mailbox provider."""
