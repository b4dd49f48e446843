"""Search strategies registered with the dispatcher."""
