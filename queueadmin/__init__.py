"""
QueueAdmin: administrative tool for transactional message queues

Batch-creates, deletes, recreates or purges named queues and moves a bounded
number of messages between two queues.
"""

__version__ = "0.1.0"
__author__ = "QueueAdmin Contributors"

__all__ = ["__version__"]
