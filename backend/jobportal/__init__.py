"""Job application portal."""
