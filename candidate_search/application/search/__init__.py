"""Search dispatching, classification, strategies and result fusion."""
