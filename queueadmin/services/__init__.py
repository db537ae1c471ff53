"""Queue service implementations used by QueueAdmin."""
